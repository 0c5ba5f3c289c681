"""Season-long and playoff-long per-player totals.

Only raw counting totals are stored. Per-game rates and shooting
percentages are computed from those totals every time they are read.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from .models import PlayerGameStats

COUNTING_STATS: tuple[str, ...] = (
    "points",
    "rebounds",
    "offensive_rebounds",
    "assists",
    "steals",
    "blocks",
    "turnovers",
    "fouls",
    "field_goals_made",
    "field_goals_attempted",
    "three_pointers_made",
    "three_pointers_attempted",
    "free_throws_made",
    "free_throws_attempted",
    "minutes",
)


@dataclass(slots=True, frozen=True)
class PlayerSeasonStats:
    player_id: str
    team_id: str = ""
    games_played: int = 0
    points: int = 0
    rebounds: int = 0
    offensive_rebounds: int = 0
    assists: int = 0
    steals: int = 0
    blocks: int = 0
    turnovers: int = 0
    fouls: int = 0
    field_goals_made: int = 0
    field_goals_attempted: int = 0
    three_pointers_made: int = 0
    three_pointers_attempted: int = 0
    free_throws_made: int = 0
    free_throws_attempted: int = 0
    minutes: int = 0

    def _per_game(self, total: int) -> float:
        if self.games_played <= 0:
            return 0.0
        return total / self.games_played

    @property
    def points_per_game(self) -> float:
        return self._per_game(self.points)

    @property
    def rebounds_per_game(self) -> float:
        return self._per_game(self.rebounds)

    @property
    def assists_per_game(self) -> float:
        return self._per_game(self.assists)

    @property
    def steals_per_game(self) -> float:
        return self._per_game(self.steals)

    @property
    def blocks_per_game(self) -> float:
        return self._per_game(self.blocks)

    @property
    def turnovers_per_game(self) -> float:
        return self._per_game(self.turnovers)

    @property
    def minutes_per_game(self) -> float:
        return self._per_game(self.minutes)

    @property
    def fg_pct(self) -> float:
        if self.field_goals_attempted <= 0:
            return 0.0
        return self.field_goals_made / self.field_goals_attempted * 100

    @property
    def three_pct(self) -> float:
        if self.three_pointers_attempted <= 0:
            return 0.0
        return self.three_pointers_made / self.three_pointers_attempted * 100

    @property
    def ft_pct(self) -> float:
        if self.free_throws_attempted <= 0:
            return 0.0
        return self.free_throws_made / self.free_throws_attempted * 100

    def add_game(self, line: PlayerGameStats) -> PlayerSeasonStats:
        updates = {name: getattr(self, name) + getattr(line, name) for name in COUNTING_STATS}
        return replace(self, games_played=self.games_played + 1, **updates)


@dataclass(slots=True, frozen=True)
class PlayerPlayoffStats(PlayerSeasonStats):
    """Same totals as the regular season, kept in a separate ledger."""


def fold_box_score(
    totals: Mapping[str, PlayerSeasonStats],
    box_score: Mapping[str, PlayerGameStats],
    player_ids: Iterable[str] | None = None,
    team_ids: Mapping[str, str] | None = None,
    stat_type: type[PlayerSeasonStats] = PlayerSeasonStats,
) -> dict[str, PlayerSeasonStats]:
    """Add one game's box score to running totals and return the new mapping.

    Each call counts as a game played for every included player, so folding
    the same box score twice counts it twice. ``player_ids`` limits which
    players are tracked; ``team_ids`` records each player's team.
    """
    allowed = set(player_ids) if player_ids is not None else None
    updated = dict(totals)
    for player_id, line in box_score.items():
        if allowed is not None and player_id not in allowed:
            continue
        current = updated.get(player_id)
        if current is None:
            team_id = team_ids.get(player_id, "") if team_ids is not None else ""
            current = stat_type(player_id=player_id, team_id=team_id)
        updated[player_id] = current.add_game(line)
    return updated


LEADER_CATEGORIES: dict[str, str] = {
    "points": "points_per_game",
    "rebounds": "rebounds_per_game",
    "assists": "assists_per_game",
    "steals": "steals_per_game",
    "blocks": "blocks_per_game",
    "fg_pct": "fg_pct",
    "three_pct": "three_pct",
    "ft_pct": "ft_pct",
}


def leaders(
    totals: Mapping[str, PlayerSeasonStats],
    category: str = "points",
    limit: int = 10,
    min_games: int = 1,
) -> list[PlayerSeasonStats]:
    if category not in LEADER_CATEGORIES:
        raise ValueError(f"Unknown stat category '{category}'")
    attr = LEADER_CATEGORIES[category]
    eligible = [row for row in totals.values() if row.games_played >= min_games]
    eligible.sort(key=lambda row: (-getattr(row, attr), row.player_id))
    return eligible[: max(0, limit)]
