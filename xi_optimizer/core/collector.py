import bisect
from typing import Dict, Iterable, List, Optional, Tuple

from xi_optimizer.data.models import Squad
from xi_optimizer.utils.constants import FPLConstants, cost_to_tenths

# Float noise allowed when deciding that a bound only ties the worst score
SCORE_TOLERANCE = 1e-9


class TopSquads:
    """Fixed-capacity collection of the best squads seen so far.

    Kept sorted by score descending, cost ascending, then player IDs. A squad
    with the same player set as a held one replaces it only if it scores
    higher.
    """

    def __init__(self, capacity: int = FPLConstants.TOP_SQUADS):
        if capacity < 1:
            raise ValueError(f"Capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._squads: List[Squad] = []
        self._keys: List[Tuple[float, float, Tuple[int, ...]]] = []

    def __len__(self) -> int:
        return len(self._squads)

    @property
    def full(self) -> bool:
        return len(self._squads) >= self.capacity

    @property
    def worst_score(self) -> Optional[float]:
        """Lowest held score, or None until the collection is full"""
        if not self.full:
            return None
        return self._squads[-1].score

    def can_improve(self, upper_bound: float, cost_bound: Optional[int] = None) -> bool:
        """Whether a branch bounded by ``upper_bound`` could still place.

        ``cost_bound`` is the cheapest cost the branch can finish at, in tenths
        of £1m. When given, a branch that can at best tie the worst held score
        survives if it could also be no dearer than that squad.
        """
        if not self.full:
            return True
        worst = self._squads[-1]
        if upper_bound > worst.score:
            return True
        return (
            cost_bound is not None
            and upper_bound >= worst.score - SCORE_TOLERANCE
            and cost_bound <= cost_to_tenths(worst.total_cost)
        )

    def consider(self, squad: Squad) -> bool:
        """Insert a squad if it ranks; returns True when it was kept"""
        for i, held in enumerate(self._squads):
            if held.key == squad.key:
                if squad.score <= held.score:
                    return False
                del self._squads[i]
                del self._keys[i]
                break

        rank = squad.rank_key()
        index = bisect.bisect_right(self._keys, rank)
        if index >= self.capacity:
            return False

        self._squads.insert(index, squad)
        self._keys.insert(index, rank)
        if len(self._squads) > self.capacity:
            self._squads.pop()
            self._keys.pop()
        return True

    def results(self) -> List[Squad]:
        return list(self._squads)


def finalize_squads(
    squads: Iterable[Squad],
    limit: int = FPLConstants.TOP_SQUADS,
) -> List[Squad]:
    """Merge squads with identical player sets and rank them.

    The higher-scoring copy of a duplicated set is kept. Output is sorted by
    score descending, then cost ascending, and cut to ``limit``.
    """
    unique: Dict[Tuple[int, ...], Squad] = {}
    for squad in squads:
        held = unique.get(squad.key)
        if held is None or squad.score > held.score:
            unique[squad.key] = squad

    return sorted(unique.values(), key=Squad.rank_key)[:limit]
