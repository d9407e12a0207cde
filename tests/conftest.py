"""
Shared fixtures for the XI optimizer tests.
"""

from itertools import combinations, product
from typing import Dict, List, Optional, Set

import pytest

from xi_optimizer.data.models import CandidatePlayer
from xi_optimizer.utils.constants import FPLConstants, Position, POSITION_ORDER, budget_to_tenths


def mk(pid: int, team: int, pos: int, cost: float, weight: float = 0.0, name: Optional[str] = None) -> CandidatePlayer:
    return CandidatePlayer(
        id=pid,
        team_id=team,
        position=pos,
        cost=cost,
        weight=weight,
        web_name=name or f"P{pid}",
    )


def brute_force(
    pool: List[CandidatePlayer],
    budget: float,
    locked: Optional[Set[int]] = None,
    team_limit: int = 3,
) -> List[Dict]:
    """Every valid XI, best first, by exhaustive enumeration in whole tenths"""
    locked = locked or set()
    budget_tenths = budget_to_tenths(budget)
    by_pos = {pos: [p for p in pool if p.position == pos] for pos in POSITION_ORDER}
    found = []

    for formation in FPLConstants.VALID_FORMATIONS:
        choices = [combinations(by_pos[pos], n) for pos, n in zip(POSITION_ORDER, formation)]
        for parts in product(*choices):
            xi = [p for part in parts for p in part]
            cost_tenths = sum(p.cost_tenths for p in xi)
            if cost_tenths > budget_tenths:
                continue
            teams = {}
            for p in xi:
                teams[p.team_id] = teams.get(p.team_id, 0) + 1
            if max(teams.values()) > team_limit:
                continue
            ids = {p.id for p in xi}
            if not locked <= ids:
                continue
            found.append({
                "ids": ids,
                "score": sum(p.weight for p in xi),
                "cost": cost_tenths / 10,
            })

    found.sort(key=lambda s: (-s["score"], s["cost"], tuple(sorted(s["ids"]))))
    return found


@pytest.fixture
def greedy_beater_pool() -> List[CandidatePlayer]:
    """Premium GK soaks up money that two premium forwards need"""
    return [
        mk(1, 1, 1, 9.0, 9),
        mk(2, 2, 1, 4.0, 5),

        mk(11, 3, 2, 4.0, 3),
        mk(12, 4, 2, 4.0, 3),
        mk(13, 5, 2, 4.0, 3),

        mk(21, 6, 3, 5.0, 4),
        mk(22, 7, 3, 5.0, 4),
        mk(23, 8, 3, 5.0, 4),
        mk(24, 9, 3, 5.0, 4),
        mk(25, 10, 3, 5.0, 4),

        mk(31, 11, 4, 10.0, 12),
        mk(32, 12, 4, 10.0, 12),
        mk(33, 13, 4, 4.5, 4),
    ]


@pytest.fixture
def mixed_pool() -> List[CandidatePlayer]:
    """Six clubs, costs and weights that force trade-offs"""
    return [
        mk(1, 1, 1, 4.0, 10, "G1"),
        mk(2, 2, 1, 4.5, 12, "G2"),

        mk(11, 1, 2, 4.0, 9, "D1a"),
        mk(12, 1, 2, 4.5, 9.5, "D1b"),
        mk(13, 2, 2, 4.5, 11, "D2a"),
        mk(14, 3, 2, 4.0, 8, "D3a"),
        mk(15, 4, 2, 5.0, 12, "D4a"),
        mk(16, 5, 2, 4.0, 7, "D5a"),

        mk(21, 1, 3, 6.0, 18, "M1a"),
        mk(22, 2, 3, 6.5, 19, "M2a"),
        mk(23, 3, 3, 5.5, 14, "M3a"),
        mk(24, 4, 3, 7.5, 22, "M4a"),
        mk(25, 5, 3, 5.0, 12, "M5a"),
        mk(26, 6, 3, 4.5, 10, "M6a"),

        mk(31, 1, 4, 7.5, 20, "F1a"),
        mk(32, 2, 4, 6.0, 15, "F2a"),
        mk(33, 3, 4, 8.5, 24, "F3a"),
        mk(34, 4, 4, 5.5, 11, "F4a"),
        mk(35, 5, 4, 7.0, 18, "F5a"),
    ]


@pytest.fixture
def weights_of():
    def _weights(pool: List[CandidatePlayer]) -> Dict[int, float]:
        return {p.id: p.weight for p in pool}
    return _weights


@pytest.fixture
def as_rows():
    """Squad players as the plain mappings SquadValidator expects"""
    def _rows(ids, pool: List[CandidatePlayer]) -> List[Dict]:
        by_id = {p.id: p for p in pool}
        return [
            {
                "id": pid,
                "team": by_id[pid].team_id,
                "element_type": by_id[pid].position.value,
                "cost": by_id[pid].cost,
            }
            for pid in ids
        ]
    return _rows
