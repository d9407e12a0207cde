from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional
import math

import numpy as np

from xi_optimizer.data.models import CandidatePlayer
from xi_optimizer.utils.constants import Position, POSITION_ORDER


def branch_order_key(player: CandidatePlayer):
    """Weight descending, then cost ascending, then ID ascending"""
    return (-player.weight, player.cost, player.id)


@dataclass
class PositionBucket:
    """Candidates for one position plus the prefix tables used for bounding.

    ``players`` is in branch order. ``weight_prefix[n]`` is the total weight of
    the first ``n`` players in that order, which is also the best weight any
    ``n`` of them can reach. ``by_cost`` is the same players sorted cheapest
    first and ``cost_prefix[n]`` the cheapest possible cost of ``n`` of them.
    Costs are integer tenths of £1m so budget comparisons are exact.
    """
    position: Position
    players: List[CandidatePlayer]
    weight_prefix: np.ndarray = field(init=False, repr=False)
    by_cost: List[CandidatePlayer] = field(init=False, repr=False)
    cost_prefix: np.ndarray = field(init=False, repr=False)
    _suffix_costs: Optional[List[np.ndarray]] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        weights = np.array([p.weight for p in self.players], dtype=float)
        self.weight_prefix = np.concatenate(([0.0], np.cumsum(weights)))

        self.by_cost = sorted(self.players, key=lambda p: (p.cost_tenths, p.id))
        costs = np.array([p.cost_tenths for p in self.by_cost], dtype=np.int64)
        self.cost_prefix = np.concatenate(([0], np.cumsum(costs))).astype(np.int64)

    def __len__(self) -> int:
        return len(self.players)

    def best_weight(self, count: int, start: int = 0) -> float:
        """Highest total weight of ``count`` players from ``players[start:]``.

        Team and budget are ignored. When fewer players remain, all of them
        are counted.
        """
        if count <= 0:
            return 0.0
        end = min(start + count, len(self.players))
        return float(self.weight_prefix[end] - self.weight_prefix[start])

    def cheapest_cost(self, count: int, start: int = 0) -> float:
        """Lowest total cost, in tenths, of ``count`` players from ``players[start:]``.

        Returns infinity when fewer than ``count`` players remain.
        """
        if count <= 0:
            return 0
        if len(self.players) - start < count:
            return math.inf
        if start == 0:
            return int(self.cost_prefix[count])
        return int(self._suffix_cost_table()[start][count])

    def _suffix_cost_table(self) -> List[np.ndarray]:
        # Cheapest-n prefix sums for every suffix of the branch order
        if self._suffix_costs is None:
            costs = np.array([p.cost_tenths for p in self.players], dtype=np.int64)
            self._suffix_costs = [
                np.concatenate(([0], np.cumsum(np.sort(costs[start:])))).astype(np.int64)
                for start in range(len(self.players) + 1)
            ]
        return self._suffix_costs

    def without(self, excluded_ids: Iterable[int]) -> "PositionBucket":
        """Copy of this bucket minus the given players, order preserved"""
        excluded = set(excluded_ids)
        return PositionBucket(
            position=self.position,
            players=[p for p in self.players if p.id not in excluded],
        )


CandidatePool = Dict[Position, PositionBucket]


def build_candidate_pool(
    players: Iterable[CandidatePlayer],
    weights: Optional[Mapping[int, float]] = None,
) -> CandidatePool:
    """Partition players into per-position buckets sorted for branching.

    When ``weights`` is given, each player's weight is taken from it and
    players missing from it get weight 0. Empty buckets are kept.
    """
    grouped: Dict[Position, List[CandidatePlayer]] = {pos: [] for pos in POSITION_ORDER}

    for p in players:
        if weights is not None:
            p = p.with_weight(float(weights.get(p.id, 0.0)))
        grouped[p.position].append(p)

    return {
        pos: PositionBucket(position=pos, players=sorted(items, key=branch_order_key))
        for pos, items in grouped.items()
    }
