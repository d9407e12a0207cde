import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Union

from xi_optimizer.core.collector import TopSquads, finalize_squads
from xi_optimizer.core.lock_seeder import SearchState, seed_locks
from xi_optimizer.core.pool_builder import CandidatePool, build_candidate_pool
from xi_optimizer.data.models import CandidatePlayer, FORMATIONS, Squad, xi_budget
from xi_optimizer.utils.config import SolverConfig, config
from xi_optimizer.utils.constants import FPLConstants, POSITION_ORDER, budget_to_tenths
from xi_optimizer.utils.logging import app_logger, log_decision


class InvalidSquadInputError(ValueError):
    """Raised when optimizer inputs break the caller contract"""


class SearchLimitExceeded(RuntimeError):
    """Raised when the search expands more nodes than allowed"""

    def __init__(self, max_nodes: int):
        super().__init__(f"Search exceeded {max_nodes} nodes without completing")
        self.max_nodes = max_nodes


def validate_inputs(
    players: Sequence[CandidatePlayer],
    weights: Mapping[int, float],
    budget: float,
    locked_ids: Set[int],
):
    """Fail fast on inputs that indicate a caller bug rather than no solution"""
    if isinstance(budget, bool) or not isinstance(budget, (int, float)):
        raise InvalidSquadInputError(f"Budget must be a number, got {budget!r}")
    if not math.isfinite(budget) or budget < 0:
        raise InvalidSquadInputError(f"Budget must be finite and non-negative, got {budget}")

    for pid, weight in weights.items():
        if isinstance(weight, bool) or not isinstance(weight, (int, float)):
            raise InvalidSquadInputError(f"Weight for player {pid} must be a number, got {weight!r}")
        if not math.isfinite(weight):
            raise InvalidSquadInputError(f"Weight for player {pid} is not finite: {weight}")

    seen = set()
    for p in players:
        if p.id in seen:
            raise InvalidSquadInputError(f"Duplicate player {p.id} in pool")
        seen.add(p.id)

    unknown = sorted(locked_ids - seen)
    if unknown:
        raise InvalidSquadInputError(f"Locked players not in pool: {unknown}")

    if players:
        present = {p.position for p in players}
        missing = [pos.short_name for pos in POSITION_ORDER if pos not in present]
        if missing:
            raise InvalidSquadInputError(
                f"Pool has no candidates for position(s): {', '.join(missing)}"
            )


class BranchAndBound:
    """Depth-first search over one formation at a time.

    Positions are filled in a fixed order. Within a position, players are
    taken in branch order and each choice recurses for the next slot, so every
    combination of the required size is reachable. Two bounds cut branches:
    the best weight still reachable, which must beat the worst held squad once
    the collector is full (or tie it at no greater cost), and the cheapest cost
    still needed, which must fit the budget. Money is compared in integer
    tenths of £1m.
    """

    def __init__(
        self,
        candidates: CandidatePool,
        budget_tenths: int,
        collector: TopSquads,
        team_limit: int = 3,
        max_nodes: Optional[int] = None,
    ):
        self.candidates = candidates
        self.budget_tenths = budget_tenths
        self.collector = collector
        self.team_limit = team_limit
        self.max_nodes = max_nodes
        self.nodes = 0

    def run(self, state: SearchState) -> bool:
        """Explore every completion of a seeded state.

        Returns False when the formation is infeasible before any branching.
        """
        self.state = state
        self.order = [pos for pos in POSITION_ORDER if state.need[pos] > 0]

        # Bounds for positions after order[i]; they are untouched until reached
        self.rest_weight = [0.0] * len(self.order)
        self.rest_cost = [0] * len(self.order)
        for i in range(len(self.order) - 2, -1, -1):
            nxt = self.order[i + 1]
            bucket = self.candidates[nxt]
            self.rest_weight[i] = self.rest_weight[i + 1] + bucket.best_weight(state.need[nxt])
            self.rest_cost[i] = self.rest_cost[i + 1] + bucket.cheapest_cost(state.need[nxt])

        if self.order:
            first = self.order[0]
            cheapest = self.candidates[first].cheapest_cost(state.need[first])
            if state.cost_tenths + cheapest + self.rest_cost[0] > self.budget_tenths:
                return False

        self._fill(0)
        return True

    def _fill(self, index: int):
        if index == len(self.order):
            self.collector.consider(self.state.to_squad())
            return

        pos = self.order[index]
        bucket = self.candidates[pos]
        need = self.state.need[pos]
        upper = self.state.score + bucket.best_weight(need) + self.rest_weight[index]
        lower = self.state.cost_tenths + bucket.cheapest_cost(need) + self.rest_cost[index]
        if not self.collector.can_improve(upper, lower):
            return

        self._choose(index, 0)

    def _choose(self, index: int, start: int):
        state = self.state
        pos = self.order[index]
        left = state.need[pos]
        if left == 0:
            self._fill(index + 1)
            return

        bucket = self.candidates[pos]
        for i in range(start, len(bucket) - left + 1):
            self._count_node()

            # Both bounds only get worse as i grows, so a miss ends the loop
            upper = state.score + bucket.best_weight(left, i) + self.rest_weight[index]
            lower = state.cost_tenths + bucket.cheapest_cost(left, i) + self.rest_cost[index]
            if lower > self.budget_tenths:
                break
            if not self.collector.can_improve(upper, lower):
                break

            player = bucket.players[i]
            if not state.can_take(player, self.budget_tenths, self.team_limit):
                continue

            cost, score = state.cost_tenths, state.score
            state.apply(player)
            self._choose(index, i + 1)
            state.undo(player, cost, score)

    def _count_node(self):
        self.nodes += 1
        if self.max_nodes is not None and self.nodes > self.max_nodes:
            raise SearchLimitExceeded(self.max_nodes)


class SquadOptimizer:
    """Finds the highest-weight starting XIs within budget"""

    def __init__(self, settings: Optional[SolverConfig] = None):
        self.settings = settings or config.solver

    def best_xi(
        self,
        pool: Sequence[Union[CandidatePlayer, Dict[str, Any]]],
        weights: Optional[Mapping[int, float]] = None,
        budget: Optional[float] = None,
        locks: Optional[Mapping[int, bool]] = None,
    ) -> List[Squad]:
        """
        Return up to ``top_k`` distinct starting XIs ranked by total weight,
        cheaper first on ties. An empty list means no XI fits the constraints.

        Prices and the budget are resolved to tenths of £1m: player costs
        round up and the budget rounds down, so a returned XI never costs
        more than ``budget``.
        """
        locks = locks or {}
        if budget is None:
            budget = xi_budget(self.settings.total_budget, self.settings.bench_value)

        players = [
            p if isinstance(p, CandidatePlayer) else CandidatePlayer.model_validate(p)
            for p in pool
        ]
        locked_ids = {pid for pid, locked in locks.items() if locked}
        validate_inputs(players, weights or {}, budget, locked_ids)

        app_logger.info(
            f"Optimizing XI from {len(players)} players with budget £{budget:.1f}m "
            f"and {len(locked_ids)} lock(s)"
        )
        if not players:
            return []

        budget_tenths = budget_to_tenths(budget)
        candidate_pool = build_candidate_pool(players, weights)
        unlocked = {pos: bucket.without(locked_ids) for pos, bucket in candidate_pool.items()}

        collector = TopSquads(self.settings.top_k)
        search = BranchAndBound(
            unlocked,
            budget_tenths,
            collector,
            team_limit=self.settings.team_limit,
            max_nodes=self.settings.max_nodes,
        )

        for formation in FORMATIONS:
            state, reason = seed_locks(
                candidate_pool, formation, locked_ids, budget_tenths, self.settings.team_limit
            )
            if state is None:
                app_logger.debug(f"Skipping {formation.label}: {reason}")
                continue

            nodes_before = search.nodes
            if not search.run(state):
                app_logger.debug(f"Skipping {formation.label}: not enough cheap players left")
                continue
            app_logger.debug(
                f"Explored {formation.label}: {search.nodes - nodes_before} nodes"
            )

        results = finalize_squads(collector.results(), self.settings.top_k)

        if results:
            log_decision(
                "best_xi",
                squads=len(results),
                best_score=round(results[0].score, 3),
                best_cost=round(results[0].total_cost, 1),
                formation=results[0].formation_label,
                nodes=search.nodes,
            )
        else:
            app_logger.warning("No starting XI satisfies the constraints")

        return results


def best_xi_top3(
    pool: Sequence[Union[CandidatePlayer, Dict[str, Any]]],
    weights: Optional[Mapping[int, float]] = None,
    budget: Optional[float] = None,
    locks: Optional[Mapping[int, bool]] = None,
) -> List[Squad]:
    """Top three starting XIs for the pool using the default solver settings"""
    settings = config.solver.model_copy(update={"top_k": FPLConstants.TOP_SQUADS})
    return SquadOptimizer(settings).best_xi(pool, weights, budget, locks)
