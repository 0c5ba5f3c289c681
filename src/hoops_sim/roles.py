from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable


class Position(str, Enum):
    PG = "PG"
    SG = "SG"
    SF = "SF"
    PF = "PF"
    C = "C"


POSITIONS: tuple[Position, ...] = tuple(Position)

ATTRIBUTES: tuple[str, ...] = (
    "shooting",
    "defense",
    "speed",
    "stamina",
    "passing",
    "rebounding",
    "ball_handling",
    "three_point",
    "post_shooting",
    "steals",
    "blocks",
)

# The eight ratings that make up a player's overall number.
CORE_ATTRIBUTES: tuple[str, ...] = ATTRIBUTES[:8]

MODIFIER_KEYS: tuple[str, ...] = (
    "assist",
    "shot_attempt",
    "three_point_attempt",
    "post_attempt",
    "steal",
    "block",
    "rebound",
)


class RoleArchetype(str, Enum):
    PG_ALL_AROUND = "pg_allaround"
    PG_FLOOR_GENERAL = "pg_floor_general"
    PG_SLASHING_PLAYMAKER = "pg_slashing_playmaker"
    PG_OFFENSIVE_POINT = "pg_offensive_point"
    SG_THREE_LEVEL_SCORER = "sg_three_level_scorer"
    SG_THREE_AND_D = "sg_3_and_d"
    SG_MICROWAVE_SHOOTER = "sg_microwave_shooter"
    SF_POINT_FORWARD = "sf_point_forward"
    SF_THREE_AND_D_WING = "sf_3_and_d_wing"
    SF_ATHLETIC_FINISHER = "sf_athletic_finisher"
    PF_PLAYMAKING_BIG = "pf_playmaking_big"
    PF_STRETCH_FOUR = "pf_stretch_four"
    PF_RIM_RUNNER = "pf_rim_runner"
    C_PAINT_BEAST = "c_paint_beast"
    C_STRETCH_FIVE = "c_stretch_five"
    C_STANDARD_CENTER = "c_standard_center"


@dataclass(slots=True, frozen=True)
class RoleProfile:
    position: Position
    label: str
    attribute_weights: dict[str, float]
    modifiers: dict[str, float] = field(default_factory=dict)


ROLE_PROFILES: dict[RoleArchetype, RoleProfile] = {
    RoleArchetype.PG_ALL_AROUND: RoleProfile(
        Position.PG,
        "All-Around PG",
        {"passing": 0.25, "shooting": 0.20, "ball_handling": 0.25, "speed": 0.20, "three_point": 0.10},
    ),
    RoleArchetype.PG_FLOOR_GENERAL: RoleProfile(
        Position.PG,
        "Floor General",
        {"passing": 0.45, "ball_handling": 0.30, "speed": 0.15, "defense": 0.10},
        {"assist": 1.20, "shot_attempt": 0.85},
    ),
    RoleArchetype.PG_SLASHING_PLAYMAKER: RoleProfile(
        Position.PG,
        "Slashing Playmaker",
        {"post_shooting": 0.35, "speed": 0.25, "ball_handling": 0.20, "passing": 0.20},
        {"post_attempt": 1.25, "three_point_attempt": 0.80},
    ),
    RoleArchetype.PG_OFFENSIVE_POINT: RoleProfile(
        Position.PG,
        "Offensive Point",
        {"shooting": 0.35, "three_point": 0.30, "passing": 0.20, "ball_handling": 0.15},
        {"shot_attempt": 1.15, "assist": 0.90},
    ),
    RoleArchetype.SG_THREE_LEVEL_SCORER: RoleProfile(
        Position.SG,
        "Three-Level Scorer",
        {"shooting": 0.35, "three_point": 0.30, "ball_handling": 0.25, "speed": 0.10},
        {"shot_attempt": 1.20, "assist": 0.85},
    ),
    RoleArchetype.SG_THREE_AND_D: RoleProfile(
        Position.SG,
        "3-and-D",
        {"three_point": 0.40, "defense": 0.30, "steals": 0.20, "shooting": 0.10},
        {"three_point_attempt": 1.30, "steal": 1.25},
    ),
    RoleArchetype.SG_MICROWAVE_SHOOTER: RoleProfile(
        Position.SG,
        "Microwave Shooter",
        {"shooting": 0.45, "three_point": 0.40, "speed": 0.10, "defense": 0.05},
        {"shot_attempt": 1.25, "assist": 0.80},
    ),
    RoleArchetype.SF_POINT_FORWARD: RoleProfile(
        Position.SF,
        "Point Forward",
        {"passing": 0.35, "ball_handling": 0.25, "shooting": 0.20, "speed": 0.20},
        {"assist": 1.25, "post_attempt": 0.80},
    ),
    RoleArchetype.SF_THREE_AND_D_WING: RoleProfile(
        Position.SF,
        "3-and-D Wing",
        {"three_point": 0.30, "defense": 0.25, "steals": 0.20, "blocks": 0.15, "rebounding": 0.10},
        {"three_point_attempt": 1.25, "steal": 1.20, "block": 1.15, "rebound": 1.10},
    ),
    RoleArchetype.SF_ATHLETIC_FINISHER: RoleProfile(
        Position.SF,
        "Athletic Finisher",
        {"post_shooting": 0.40, "speed": 0.25, "rebounding": 0.20, "defense": 0.15},
        {"post_attempt": 1.30, "three_point_attempt": 0.70},
    ),
    RoleArchetype.PF_PLAYMAKING_BIG: RoleProfile(
        Position.PF,
        "Playmaking Big",
        {"passing": 0.35, "rebounding": 0.30, "post_shooting": 0.20, "defense": 0.15},
        {"assist": 1.20, "three_point_attempt": 0.75},
    ),
    RoleArchetype.PF_STRETCH_FOUR: RoleProfile(
        Position.PF,
        "Stretch Four",
        {"three_point": 0.35, "shooting": 0.30, "rebounding": 0.25, "defense": 0.10},
        {"three_point_attempt": 1.25},
    ),
    RoleArchetype.PF_RIM_RUNNER: RoleProfile(
        Position.PF,
        "Rim Runner",
        {"post_shooting": 0.40, "rebounding": 0.35, "blocks": 0.20, "speed": 0.05},
        {"post_attempt": 1.35, "rebound": 1.20, "three_point_attempt": 0.10},
    ),
    RoleArchetype.C_PAINT_BEAST: RoleProfile(
        Position.C,
        "Paint Beast",
        {"post_shooting": 0.35, "blocks": 0.30, "rebounding": 0.25, "defense": 0.10},
        {"post_attempt": 1.30, "block": 1.35, "three_point_attempt": 0.0},
    ),
    RoleArchetype.C_STRETCH_FIVE: RoleProfile(
        Position.C,
        "Stretch Five",
        {"three_point": 0.35, "shooting": 0.25, "rebounding": 0.25, "defense": 0.15},
        {"three_point_attempt": 1.30},
    ),
    RoleArchetype.C_STANDARD_CENTER: RoleProfile(
        Position.C,
        "Standard Center",
        {"rebounding": 0.30, "post_shooting": 0.25, "blocks": 0.25, "defense": 0.20},
        {"post_attempt": 1.15, "rebound": 1.15, "block": 1.15},
    ),
}

# "athleticism" is derived from speed and stamina.
POSITION_WEIGHTS: dict[Position, dict[str, float]] = {
    Position.PG: {"passing": 0.40, "ball_handling": 0.30, "speed": 0.20},
    Position.SG: {"shooting": 0.35, "three_point": 0.35, "speed": 0.20},
    Position.SF: {"shooting": 0.25, "defense": 0.25, "athleticism": 0.25},
    Position.PF: {"rebounding": 0.35, "defense": 0.25, "shooting": 0.20},
    Position.C: {"rebounding": 0.35, "blocks": 0.30, "defense": 0.25},
}

HEIGHT_ADJUSTMENTS: dict[Position, Callable[[int], float]] = {
    Position.PG: lambda height: -(height - 72) * 0.5,
    Position.SG: lambda height: 10.0 if 73 <= height <= 78 else 0.0,
    Position.SF: lambda height: 25.0 if 76 <= height <= 80 else 0.0,
    Position.PF: lambda height: float(height - 76),
    Position.C: lambda height: (height - 78) * 1.5,
}

# Typical height band per position, used when generating players.
POSITION_HEIGHTS: dict[Position, tuple[int, int]] = {
    Position.PG: (72, 77),
    Position.SG: (74, 79),
    Position.SF: (77, 81),
    Position.PF: (79, 83),
    Position.C: (81, 86),
}


def _attribute(player: Any, name: str) -> float:
    if name == "athleticism":
        return (player.speed + player.stamina) / 2.0
    return float(getattr(player, name))


def position_affinity(player: Any, position: Position) -> float:
    weights = POSITION_WEIGHTS[position]
    score = sum(_attribute(player, attr) * weight for attr, weight in weights.items())
    return score + HEIGHT_ADJUSTMENTS[position](player.height_inches)


def best_position(player: Any) -> Position:
    return max(POSITIONS, key=lambda pos: position_affinity(player, pos))


def role_fit(player: Any, role: RoleArchetype) -> float:
    """Weighted average of the role's key attributes, clamped to 0-100."""
    weights = ROLE_PROFILES[role].attribute_weights
    total = sum(weights.values())
    if total <= 0:
        return 0.0
    score = sum(_attribute(player, attr) * weight for attr, weight in weights.items()) / total
    return max(0.0, min(100.0, score))


def roles_for_position(position: Position) -> list[RoleArchetype]:
    return [role for role, profile in ROLE_PROFILES.items() if profile.position == position]


def best_role(player: Any, position: Position) -> RoleArchetype:
    return max(roles_for_position(position), key=lambda role: role_fit(player, role))


def gameplay_modifier(role: RoleArchetype | None, key: str) -> float:
    if key not in MODIFIER_KEYS:
        raise ValueError(f"Unknown gameplay modifier '{key}'")
    if role is None:
        return 1.0
    return ROLE_PROFILES[role].modifiers.get(key, 1.0)
