import math
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple


class Position(Enum):
    GOALKEEPER = 1
    DEFENDER = 2
    MIDFIELDER = 3
    FORWARD = 4

    @property
    def short_name(self) -> str:
        return POSITION_SHORT_NAMES[self]

    @classmethod
    def from_short_name(cls, name: str) -> "Position":
        for pos, short in POSITION_SHORT_NAMES.items():
            if short == name.upper():
                return pos
        raise ValueError(f"Unknown position: {name}")


POSITION_SHORT_NAMES = {
    Position.GOALKEEPER: "GK",
    Position.DEFENDER: "DEF",
    Position.MIDFIELDER: "MID",
    Position.FORWARD: "FWD",
}

# Order in which the search fills positions
POSITION_ORDER = [
    Position.GOALKEEPER,
    Position.DEFENDER,
    Position.MIDFIELDER,
    Position.FORWARD,
]


class FPLConstants:
    # Budget and squad
    INITIAL_BUDGET = 100.0  # £100m
    DEFAULT_BENCH_VALUE = 17.0  # Money kept back for the four bench players
    MAX_PLAYERS_PER_TEAM = 3

    STARTING_XI_SIZE = 11
    OUTFIELD_SIZE = 10

    # Number of ranked squads returned
    TOP_SQUADS = 3

    # Starting XI formations as (GK, DEF, MID, FWD), tried in this order
    VALID_FORMATIONS = [
        (1, 3, 4, 3),
        (1, 3, 5, 2),
        (1, 4, 4, 2),
        (1, 4, 3, 3),
        (1, 5, 3, 2),
        (1, 5, 4, 1),
    ]

    # Shortlist must cover a full squad before the XI is computed
    SHORTLIST_MIN_PLAYERS = 14
    SHORTLIST_MIN_BY_POSITION = {
        Position.GOALKEEPER: 1,
        Position.DEFENDER: 5,
        Position.MIDFIELDER: 5,
        Position.FORWARD: 3,
    }


def cost_to_tenths(cost: float) -> int:
    """Price in whole tenths of £1m, rounded up"""
    return math.ceil(round(cost * 10, 6))


def budget_to_tenths(budget: float) -> int:
    """Budget in whole tenths of £1m, rounded down"""
    return math.floor(round(budget * 10, 6))


class FormationValidator:
    @staticmethod
    def is_valid_formation(
        gk: int, def_: int, mid: int, fwd: int
    ) -> bool:
        """Check if a starting XI shape is one of the supported formations"""
        if gk + def_ + mid + fwd != FPLConstants.STARTING_XI_SIZE:
            return False
        if gk != 1:
            return False

        return (gk, def_, mid, fwd) in FPLConstants.VALID_FORMATIONS

    @staticmethod
    def get_all_valid_formations() -> List[Tuple[int, int, int, int]]:
        """Get all valid formations in search order"""
        return list(FPLConstants.VALID_FORMATIONS)

    @staticmethod
    def required_counts(
        formation: Tuple[int, int, int, int]
    ) -> Dict[Position, int]:
        """Required player count per position for a formation"""
        return dict(zip(POSITION_ORDER, formation))


class SquadValidator:
    @staticmethod
    def validate_xi(
        players: List[Dict],
        budget: float,
        locked_ids: Optional[Iterable[int]] = None,
        weights: Optional[Dict[int, float]] = None,
        score: Optional[float] = None,
    ) -> Dict[str, object]:
        """Validate a starting XI against the selection rules.

        Players are plain mappings with ``id``, ``team``, ``element_type``
        and ``cost`` keys.
        """
        validation = {
            "valid_size": len(players) == FPLConstants.STARTING_XI_SIZE,
            "valid_formation": True,
            "valid_teams": True,
            "valid_budget": True,
            "valid_locks": True,
            "valid_score": True,
            "errors": [],
        }

        if not validation["valid_size"]:
            validation["errors"].append(
                f"XI must have {FPLConstants.STARTING_XI_SIZE} players"
            )

        ids = [p.get("id") for p in players]
        if len(set(ids)) != len(ids):
            validation["valid_size"] = False
            validation["errors"].append("XI contains duplicate players")

        # Formation
        position_counts = {pos: 0 for pos in Position}
        for player in players:
            position_counts[Position(player.get("element_type"))] += 1

        shape = tuple(position_counts[pos] for pos in POSITION_ORDER)
        if not FormationValidator.is_valid_formation(*shape):
            validation["valid_formation"] = False
            validation["errors"].append(f"Invalid formation {shape}")

        # Team limits
        team_counts = {}
        for player in players:
            team = player.get("team")
            team_counts[team] = team_counts.get(team, 0) + 1

        for team, count in team_counts.items():
            if count > FPLConstants.MAX_PLAYERS_PER_TEAM:
                validation["valid_teams"] = False
                validation["errors"].append(
                    f"Maximum {FPLConstants.MAX_PLAYERS_PER_TEAM} players per team "
                    f"(team {team} has {count})"
                )

        # Budget, compared in whole tenths
        total_tenths = sum(cost_to_tenths(p.get("cost", 0)) for p in players)
        if total_tenths > budget_to_tenths(budget):
            validation["valid_budget"] = False
            validation["errors"].append(
                f"Total cost £{total_tenths / 10:.1f}m exceeds budget £{budget:.1f}m"
            )

        # Locks
        missing = sorted(set(locked_ids or []) - set(ids))
        if missing:
            validation["valid_locks"] = False
            validation["errors"].append(f"Locked players missing: {missing}")

        # Score
        if weights is not None and score is not None:
            expected = sum(weights.get(pid, 0.0) for pid in ids)
            if abs(expected - score) > 1e-6:
                validation["valid_score"] = False
                validation["errors"].append(
                    f"Score {score} does not match weight total {expected}"
                )

        return validation

    @staticmethod
    def is_valid(validation: Dict[str, object]) -> bool:
        return not validation["errors"]
