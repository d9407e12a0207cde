from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional, Dict, Any, Tuple, Iterable

from xi_optimizer.utils.constants import (
    FPLConstants,
    FormationValidator,
    Position,
    POSITION_ORDER,
    cost_to_tenths,
)


class CandidatePlayer(BaseModel):
    """A shortlisted player eligible for the starting XI"""
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    team_id: int
    position: Position
    cost: float = Field(ge=0, allow_inf_nan=False)  # £m
    weight: float = Field(default=0.0, allow_inf_nan=False)
    web_name: str = ""

    @field_validator("position", mode="before")
    @classmethod
    def parse_position(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.isdigit():
            return Position.from_short_name(value)
        if isinstance(value, str):
            return Position(int(value))
        return value

    @classmethod
    def from_element(cls, element: Dict[str, Any], weight: float = 0.0) -> "CandidatePlayer":
        """Build a candidate from a raw bootstrap-static element"""
        return cls(
            id=element["id"],
            team_id=element["team"],
            position=element["element_type"],
            cost=element["now_cost"] / 10,
            weight=weight,
            web_name=element.get("web_name", ""),
        )

    @property
    def cost_tenths(self) -> int:
        """Price in whole tenths of £1m; all search arithmetic uses this"""
        return cost_to_tenths(self.cost)

    def with_weight(self, weight: float) -> "CandidatePlayer":
        return self.model_copy(update={"weight": weight})


class FormationShape(BaseModel):
    """Required counts for one starting XI formation"""
    model_config = ConfigDict(frozen=True)

    defenders: int
    midfielders: int
    forwards: int
    goalkeepers: int = 1

    @classmethod
    def from_tuple(cls, formation: Tuple[int, int, int, int]) -> "FormationShape":
        gk, def_, mid, fwd = formation
        return cls(goalkeepers=gk, defenders=def_, midfielders=mid, forwards=fwd)

    @property
    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.goalkeepers, self.defenders, self.midfielders, self.forwards)

    @property
    def label(self) -> str:
        return f"{self.defenders}-{self.midfielders}-{self.forwards}"

    def required_counts(self) -> Dict[Position, int]:
        return FormationValidator.required_counts(self.as_tuple)


# Immutable formation catalog, in search order
FORMATIONS: Tuple[FormationShape, ...] = tuple(
    FormationShape.from_tuple(f) for f in FPLConstants.VALID_FORMATIONS
)


class Squad(BaseModel):
    """A complete, valid starting XI produced by the optimizer"""
    model_config = ConfigDict(frozen=True)

    ids: List[int]
    score: float
    total_cost: float
    breakdown: Dict[str, List[int]]  # Keyed by position short name
    formation: Tuple[int, int, int, int]

    @property
    def key(self) -> Tuple[int, ...]:
        """Order-independent identity of the selected players"""
        return tuple(sorted(self.ids))

    @property
    def formation_label(self) -> str:
        _, def_, mid, fwd = self.formation
        return f"{def_}-{mid}-{fwd}"

    def rank_key(self) -> Tuple[float, float, Tuple[int, ...]]:
        """Sort key: score descending, then cost ascending, then IDs"""
        return (-self.score, self.total_cost, self.key)

    def position_ids(self, position: Position) -> List[int]:
        return list(self.breakdown.get(position.short_name, []))


class Shortlist(BaseModel):
    """Players picked by the user, with their weights and locks"""

    ids: List[int] = []
    weights: Dict[int, float] = {}
    locks: Dict[int, bool] = {}

    @classmethod
    def from_mapping(cls, data: Optional[Dict[str, Any]]) -> "Shortlist":
        """Load a shortlist from a parsed YAML/JSON document.

        ``weights`` and ``locks`` keys may be strings (JSON objects) and
        ``locks`` may also be given as a plain list of IDs.
        """
        data = data or {}
        ids = [int(pid) for pid in data.get("ids", [])]
        weights = {int(k): float(v) for k, v in (data.get("weights") or {}).items()}

        raw_locks = data.get("locks") or {}
        if isinstance(raw_locks, dict):
            locks = {int(k): bool(v) for k, v in raw_locks.items()}
        else:
            locks = {int(pid): True for pid in raw_locks}

        return cls(ids=ids, weights=weights, locks=locks)

    def toggle(self, player_id: int):
        """Add a player (default weight 1) or remove it with its weight and lock"""
        if player_id in self.ids:
            self.ids = [pid for pid in self.ids if pid != player_id]
            self.weights.pop(player_id, None)
            self.locks.pop(player_id, None)
        else:
            self.ids = self.ids + [player_id]
            self.weights.setdefault(player_id, 1.0)

    def set_weight(self, player_id: int, weight: float):
        self.weights[player_id] = weight

    def toggle_lock(self, player_id: int):
        self.locks[player_id] = not self.locks.get(player_id, False)

    @property
    def locked_ids(self) -> List[int]:
        return [pid for pid, locked in self.locks.items() if locked]

    def players(self, elements: Iterable[Dict[str, Any]]) -> List[CandidatePlayer]:
        """Resolve shortlisted IDs against feed elements, in shortlist order"""
        by_id = {e["id"]: e for e in elements}
        return [
            CandidatePlayer.from_element(by_id[pid], self.weights.get(pid, 0.0))
            for pid in self.ids
            if pid in by_id
        ]

    @staticmethod
    def position_counts(players: Iterable[CandidatePlayer]) -> Dict[Position, int]:
        counts = {pos: 0 for pos in POSITION_ORDER}
        for p in players:
            counts[p.position] += 1
        return counts

    @classmethod
    def can_compute(cls, players: List[CandidatePlayer]) -> bool:
        """Whether the shortlist covers enough of each position to pick an XI"""
        if len(players) < FPLConstants.SHORTLIST_MIN_PLAYERS:
            return False
        counts = cls.position_counts(players)
        return all(
            counts[pos] >= minimum
            for pos, minimum in FPLConstants.SHORTLIST_MIN_BY_POSITION.items()
        )


def xi_budget(
    total_budget: float = FPLConstants.INITIAL_BUDGET,
    bench_value: float = FPLConstants.DEFAULT_BENCH_VALUE,
) -> float:
    """Money available for the starting XI after reserving the bench"""
    return max(0.0, total_budget - bench_value)
