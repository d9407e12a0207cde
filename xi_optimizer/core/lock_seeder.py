from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from xi_optimizer.core.pool_builder import CandidatePool
from xi_optimizer.data.models import CandidatePlayer, FormationShape, Squad
from xi_optimizer.utils.constants import Position, POSITION_ORDER
from xi_optimizer.utils.logging import app_logger


@dataclass
class SearchState:
    """Partial XI for one formation attempt.

    Mutated in place by ``apply`` and restored by ``undo`` while the search
    backtracks. Money is held in integer tenths of £1m.
    """
    formation: FormationShape
    need: Dict[Position, int]
    chosen: Set[int] = field(default_factory=set)
    team_counts: Dict[int, int] = field(default_factory=dict)
    breakdown: Dict[Position, List[int]] = field(
        default_factory=lambda: {pos: [] for pos in POSITION_ORDER}
    )
    cost_tenths: int = 0
    score: float = 0.0

    @classmethod
    def empty(cls, formation: FormationShape) -> "SearchState":
        return cls(formation=formation, need=formation.required_counts())

    def can_take(self, player: CandidatePlayer, budget_tenths: int, team_limit: int) -> bool:
        return (
            player.id not in self.chosen
            and self.team_counts.get(player.team_id, 0) < team_limit
            and self.cost_tenths + player.cost_tenths <= budget_tenths
        )

    def apply(self, player: CandidatePlayer):
        self.chosen.add(player.id)
        self.team_counts[player.team_id] = self.team_counts.get(player.team_id, 0) + 1
        self.breakdown[player.position].append(player.id)
        self.need[player.position] -= 1
        self.cost_tenths += player.cost_tenths
        self.score += player.weight

    def undo(self, player: CandidatePlayer, cost_tenths: int, score: float):
        """Revert ``apply``; cost and score are restored exactly"""
        self.chosen.discard(player.id)
        self.team_counts[player.team_id] -= 1
        self.breakdown[player.position].pop()
        self.need[player.position] += 1
        self.cost_tenths = cost_tenths
        self.score = score

    def to_squad(self) -> Squad:
        ids = [pid for pos in POSITION_ORDER for pid in self.breakdown[pos]]
        return Squad(
            ids=ids,
            score=self.score,
            total_cost=self.cost_tenths / 10,
            breakdown={pos.short_name: list(self.breakdown[pos]) for pos in POSITION_ORDER},
            formation=self.formation.as_tuple,
        )


def seed_locks(
    pool: CandidatePool,
    formation: FormationShape,
    locked_ids: Set[int],
    budget_tenths: int,
    team_limit: int,
) -> Tuple[Optional[SearchState], Optional[str]]:
    """Place every locked player for a formation before the search starts.

    Returns ``(state, None)`` on success, or ``(None, reason)`` when the locks
    cannot all fit this formation.
    """
    state = SearchState.empty(formation)

    for pos in POSITION_ORDER:
        for player in pool[pos].players:
            if player.id not in locked_ids:
                continue

            if state.need[pos] <= 0:
                return None, f"too many locked {pos.short_name} players"
            if state.team_counts.get(player.team_id, 0) >= team_limit:
                return None, f"locked players exceed team limit for team {player.team_id}"
            if state.cost_tenths + player.cost_tenths > budget_tenths:
                return None, f"locked players exceed budget £{budget_tenths / 10:.1f}m"

            state.apply(player)

    app_logger.debug(
        f"Seeded {len(state.chosen)} locked player(s) for {formation.label}, "
        f"cost £{state.cost_tenths / 10:.1f}m"
    )
    return state, None
