from __future__ import annotations

import random
from dataclasses import replace
from typing import Iterable

from .config import LEAGUE_TEAMS
from .models import Player, Team, TeamStanding
from .names import NameGenerator
from .roles import POSITION_HEIGHTS, POSITIONS, Position, best_role
from .rotation import default_rotation
from .stats import PlayerSeasonStats

# Rating offsets per position; everything else sits at the player's base level.
POSITION_SKILL_BIAS: dict[Position, dict[str, int]] = {
    Position.PG: {"passing": 14, "ball_handling": 16, "speed": 10, "rebounding": -12, "blocks": -14, "post_shooting": -10},
    Position.SG: {"shooting": 10, "three_point": 14, "speed": 6, "rebounding": -8, "blocks": -10},
    Position.SF: {"shooting": 4, "defense": 6, "speed": 4, "stamina": 4},
    Position.PF: {"rebounding": 10, "defense": 6, "post_shooting": 8, "ball_handling": -8, "three_point": -4},
    Position.C: {"rebounding": 16, "blocks": 16, "post_shooting": 12, "speed": -10, "ball_handling": -14, "three_point": -12},
}

RATING_FIELDS = (
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

# Pro-style talent pyramid: a starter-grade player and two depth players per position.
TALENT_TIERS: tuple[list[tuple[float, float, float]], ...] = (
    [(0.12, 0.90, 1.00), (0.38, 0.72, 0.89), (0.50, 0.56, 0.71)],
    [(0.04, 0.80, 0.92), (0.36, 0.58, 0.79), (0.60, 0.40, 0.57)],
    [(0.20, 0.52, 0.70), (0.80, 0.30, 0.51)],
)


def _clamp_rating(value: float, low: int = 25, high: int = 99) -> int:
    return int(max(low, min(high, round(value))))


def _sample_quality(rng: random.Random, tier_plan: list[tuple[float, float, float]]) -> float:
    roll = rng.random()
    cumulative = 0.0
    for weight, low, high in tier_plan:
        cumulative += weight
        if roll <= cumulative:
            return rng.uniform(low, high)
    return rng.uniform(tier_plan[-1][1], tier_plan[-1][2])


def _make_player(rng: random.Random, position: Position, quality: float, name: str) -> Player:
    base = 42 + quality * 46
    bias = POSITION_SKILL_BIAS[position]
    ratings = {attr: _clamp_rating(base + bias.get(attr, 0) + rng.uniform(-6, 6)) for attr in RATING_FIELDS}
    low, high = POSITION_HEIGHTS[position]
    player = Player(
        name=name,
        position=position,
        height_inches=rng.randint(low, high),
        age=rng.randint(19, 36),
        **ratings,
    )
    return replace(player, role=best_role(player, position))


def _make_roster(team_id: str, name_gen: NameGenerator, seed: int | str) -> list[Player]:
    rng = random.Random(f"{seed}:{team_id}")
    roster: list[Player] = []
    for tiers in TALENT_TIERS:
        for position in POSITIONS:
            roster.append(_make_player(rng, position, _sample_quality(rng, tiers), name_gen.next_name()))
    return roster


def build_team(
    team_id: str,
    city: str,
    name: str,
    roster: Iterable[Player],
    conference: str = "Independent",
    division: str = "Independent",
) -> Team:
    """A team with the default eight-man rotation and matching starting lineup."""
    players = tuple(roster)
    rotation = default_rotation(players)
    return Team(
        team_id=team_id,
        city=city,
        name=name,
        conference=conference,
        division=division,
        roster=players,
        starting_lineup=tuple(rotation.starter_ids),
        rotation=rotation,
    )


def build_default_teams(seed: int | str = 7) -> list[Team]:
    name_gen = NameGenerator(seed=seed)
    return [
        build_team(team_id, city, name, _make_roster(team_id, name_gen, seed), conference, division)
        for team_id, city, name, conference, division in LEAGUE_TEAMS
    ]


def format_standings(rows: Iterable[TeamStanding]) -> str:
    lines = ["Pos Team                       Div          W  L   Pct  Home  Away  L10  Strk  Diff"]
    for idx, row in enumerate(rows, start=1):
        rec = row.record
        lines.append(
            f"{idx:>3} {row.team_name:<26} {row.division:<10} {rec.wins:>3} {rec.losses:>2} {rec.win_pct:>5.3f}"
            f" {rec.home_record:>5} {rec.away_record:>5} {rec.last10:>4} {rec.streak:>5} {rec.point_diff:>+5}"
        )
    return "\n".join(lines)


def format_player_stats(rows: Iterable[PlayerSeasonStats], names: dict[str, str], title: str, limit: int = 20) -> str:
    lines = [title, "Team Player                  GP   MIN   PTS  REB  AST  STL  BLK   FG%   3P%   FT%"]
    for row in list(rows)[:limit]:
        lines.append(
            f"{row.team_id:<4} {names.get(row.player_id, row.player_id):<22} {row.games_played:>3}"
            f" {row.minutes_per_game:>5.1f} {row.points_per_game:>5.1f} {row.rebounds_per_game:>4.1f}"
            f" {row.assists_per_game:>4.1f} {row.steals_per_game:>4.1f} {row.blocks_per_game:>4.1f}"
            f" {row.fg_pct:>5.1f} {row.three_pct:>5.1f} {row.ft_pct:>5.1f}"
        )
    return "\n".join(lines)
