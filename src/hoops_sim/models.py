from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import ClassVar
from uuid import uuid4

from .config import ROSTER_SIZE, STARTERS
from .roles import (
    CORE_ATTRIBUTES,
    POSITIONS,
    Position,
    RoleArchetype,
    position_affinity,
    role_fit,
)


@dataclass(slots=True, frozen=True)
class Player:
    name: str
    position: Position
    height_inches: int
    shooting: int
    defense: int
    speed: int
    stamina: int
    passing: int
    rebounding: int
    ball_handling: int
    three_point: int
    post_shooting: int = 50
    steals: int = 50
    blocks: int = 50
    role: RoleArchetype | None = None
    age: int = 24
    player_id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def overall(self) -> int:
        return round(sum(getattr(self, attr) for attr in CORE_ATTRIBUTES) / len(CORE_ATTRIBUTES))

    @property
    def height_label(self) -> str:
        return f"{self.height_inches // 12}'{self.height_inches % 12}\""

    def position_affinity(self, position: Position | None = None) -> float:
        return position_affinity(self, position or self.position)

    @property
    def position_fit(self) -> float:
        """Affinity at the assigned position relative to the player's best position (0-1)."""
        scores = [max(0.0, position_affinity(self, pos)) for pos in POSITIONS]
        best = max(scores)
        if best <= 0:
            return 1.0
        return max(0.0, position_affinity(self, self.position)) / best

    @property
    def position_adjusted_rating(self) -> int:
        return round(self.overall * (0.9 + 0.1 * self.position_fit))

    @property
    def role_fit(self) -> float:
        if self.role is None:
            return 0.0
        return role_fit(self, self.role)


@dataclass(slots=True, frozen=True)
class DepthChartEntry:
    player_id: str
    position: Position
    depth: int


@dataclass(slots=True, frozen=True)
class RotationConfig:
    rotation_size: int
    player_minutes: dict[str, int]
    depth_chart: tuple[DepthChartEntry, ...]
    last_modified: datetime = field(default_factory=datetime.now)

    def minutes_for(self, player_id: str) -> int:
        return self.player_minutes.get(player_id, 0)

    def entries_at(self, position: Position) -> list[DepthChartEntry]:
        return sorted((e for e in self.depth_chart if e.position == position), key=lambda e: e.depth)

    def starter_for(self, position: Position) -> str | None:
        for entry in self.entries_at(position):
            if entry.depth == 1:
                return entry.player_id
        return None

    @property
    def starter_ids(self) -> list[str]:
        return [pid for pid in (self.starter_for(pos) for pos in POSITIONS) if pid is not None]

    @property
    def active_ids(self) -> list[str]:
        return [pid for pid, minutes in self.player_minutes.items() if minutes > 0]


@dataclass(slots=True, frozen=True)
class Team:
    team_id: str
    city: str
    name: str
    conference: str = "Independent"
    division: str = "Independent"
    roster: tuple[Player, ...] = ()
    starting_lineup: tuple[str, ...] = ()
    rotation: RotationConfig | None = None

    MAX_ROSTER_SIZE: ClassVar[int] = ROSTER_SIZE
    LINEUP_SIZE: ClassVar[int] = STARTERS

    def __post_init__(self) -> None:
        if len(self.roster) > self.MAX_ROSTER_SIZE:
            raise ValueError(f"{self.full_name} roster exceeds max of {self.MAX_ROSTER_SIZE}.")

    @property
    def full_name(self) -> str:
        return f"{self.city} {self.name}"

    def player(self, player_id: str) -> Player | None:
        for player in self.roster:
            if player.player_id == player_id:
                return player
        return None

    @property
    def player_ids(self) -> set[str]:
        return {p.player_id for p in self.roster}

    @property
    def starters(self) -> list[Player]:
        ids = self.rotation.starter_ids if self.rotation is not None else list(self.starting_lineup)
        return [p for p in (self.player(pid) for pid in ids) if p is not None]

    @property
    def bench(self) -> list[Player]:
        starter_ids = {p.player_id for p in self.starters}
        return [p for p in self.roster if p.player_id not in starter_ids]

    @property
    def team_rating(self) -> int:
        starters = self.starters
        if not starters:
            return 0
        return round(sum(p.position_adjusted_rating for p in starters) / len(starters))

    def with_player(self, player: Player) -> Team:
        roster = tuple(player if p.player_id == player.player_id else p for p in self.roster)
        return replace(self, roster=roster)


@dataclass(slots=True, frozen=True)
class PlayerGameStats:
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


@dataclass(slots=True, frozen=True)
class Game:
    game_id: str
    home_team_id: str
    away_team_id: str
    day: int = 0
    scheduled_date: date | None = None
    is_played: bool = False
    home_score: int | None = None
    away_score: int | None = None
    box_score: dict[str, PlayerGameStats] = field(default_factory=dict)
    overtime_periods: int = 0
    is_playoff: bool = False
    series_id: str | None = None

    @property
    def team_ids(self) -> tuple[str, str]:
        return (self.home_team_id, self.away_team_id)

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    @property
    def home_team_won(self) -> bool | None:
        if not self.is_played or self.home_score is None or self.away_score is None:
            return None
        return self.home_score > self.away_score

    @property
    def winner_id(self) -> str | None:
        won = self.home_team_won
        if won is None:
            return None
        return self.home_team_id if won else self.away_team_id

    @property
    def loser_id(self) -> str | None:
        won = self.home_team_won
        if won is None:
            return None
        return self.away_team_id if won else self.home_team_id


@dataclass(slots=True, frozen=True)
class TeamRecord:
    team_id: str
    wins: int = 0
    losses: int = 0
    home_wins: int = 0
    home_losses: int = 0
    away_wins: int = 0
    away_losses: int = 0
    points_for: int = 0
    points_against: int = 0
    recent_results: tuple[str, ...] = ()

    @property
    def games_played(self) -> int:
        return self.wins + self.losses

    @property
    def win_pct(self) -> float:
        gp = self.games_played
        if gp <= 0:
            return 0.0
        return self.wins / gp

    @property
    def point_diff(self) -> int:
        return self.points_for - self.points_against

    @property
    def home_record(self) -> str:
        return f"{self.home_wins}-{self.home_losses}"

    @property
    def away_record(self) -> str:
        return f"{self.away_wins}-{self.away_losses}"

    @property
    def last10(self) -> str:
        sample = self.recent_results[-10:]
        return f"{sample.count('W')}-{sample.count('L')}"

    @property
    def streak(self) -> str:
        if not self.recent_results:
            return "-"
        last = self.recent_results[-1]
        count = 1
        for result in reversed(self.recent_results[:-1]):
            if result != last:
                break
            count += 1
        return f"{last}{count}"

    def register_game(self, points_for: int, points_against: int, is_home: bool) -> TeamRecord:
        won = points_for > points_against
        return replace(
            self,
            wins=self.wins + (1 if won else 0),
            losses=self.losses + (0 if won else 1),
            home_wins=self.home_wins + (1 if won and is_home else 0),
            home_losses=self.home_losses + (1 if not won and is_home else 0),
            away_wins=self.away_wins + (1 if won and not is_home else 0),
            away_losses=self.away_losses + (1 if not won and not is_home else 0),
            points_for=self.points_for + points_for,
            points_against=self.points_against + points_against,
            recent_results=(*self.recent_results, "W" if won else "L")[-10:],
        )


@dataclass(slots=True, frozen=True)
class TeamStanding:
    team_id: str
    team_name: str
    conference: str
    division: str
    record: TeamRecord

    @property
    def wins(self) -> int:
        return self.record.wins

    @property
    def losses(self) -> int:
        return self.record.losses

    @property
    def win_pct(self) -> float:
        return self.record.win_pct

    @property
    def sort_key(self) -> tuple[int, float, str]:
        # Shared by the standings table and playoff seeding so they never disagree.
        return (-self.wins, -self.win_pct, self.team_name)


class PlayoffRound(str, Enum):
    PLAY_IN = "play-in"
    FIRST_ROUND = "first-round"
    CONF_SEMIS = "conf-semis"
    CONF_FINALS = "conf-finals"
    FINALS = "finals"
    COMPLETE = "complete"

    @property
    def order(self) -> int:
        return ROUND_ORDER.index(self)


ROUND_ORDER: tuple[PlayoffRound, ...] = tuple(PlayoffRound)
CONFERENCE_ROUNDS: tuple[PlayoffRound, ...] = (
    PlayoffRound.FIRST_ROUND,
    PlayoffRound.CONF_SEMIS,
    PlayoffRound.CONF_FINALS,
)


@dataclass(slots=True, frozen=True)
class PlayoffSeries:
    series_id: str
    round: PlayoffRound
    home_team_id: str
    away_team_id: str
    conference: str | None = None
    slot: int = 0
    home_seed: int = 0
    away_seed: int = 0
    wins_needed: int = 4
    home_wins: int = 0
    away_wins: int = 0
    winner_id: str | None = None
    game_ids: tuple[str, ...] = ()

    @property
    def is_complete(self) -> bool:
        return self.winner_id is not None

    @property
    def games_played(self) -> int:
        return self.home_wins + self.away_wins

    @property
    def loser_id(self) -> str | None:
        if self.winner_id is None:
            return None
        return self.away_team_id if self.winner_id == self.home_team_id else self.home_team_id

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def wins_for(self, team_id: str) -> int:
        if team_id == self.home_team_id:
            return self.home_wins
        if team_id == self.away_team_id:
            return self.away_wins
        return 0

    @property
    def status(self) -> str:
        if self.home_wins == self.away_wins:
            return f"Series tied {self.home_wins}-{self.away_wins}"
        leader = self.home_team_id if self.home_wins > self.away_wins else self.away_team_id
        high, low = max(self.home_wins, self.away_wins), min(self.home_wins, self.away_wins)
        verb = "wins" if self.is_complete else "leads"
        return f"{leader} {verb} {high}-{low}"


@dataclass(slots=True, frozen=True)
class BracketBye:
    team_id: str
    conference: str
    round: PlayoffRound
    slot: int
    seed: int


@dataclass(slots=True, frozen=True)
class PlayoffBracket:
    season_id: str
    seedings: dict[str, int]
    conferences: dict[str, str]
    league_rank: dict[str, int]
    qualifiers: dict[str, int]
    current_round: PlayoffRound
    play_in: tuple[PlayoffSeries, ...] = ()
    first_round: tuple[PlayoffSeries, ...] = ()
    conf_semis: tuple[PlayoffSeries, ...] = ()
    conf_finals: tuple[PlayoffSeries, ...] = ()
    finals: PlayoffSeries | None = None
    byes: tuple[BracketBye, ...] = ()
    # Conference rounds actually used, given how many teams qualify.
    conference_rounds: tuple[PlayoffRound, ...] = CONFERENCE_ROUNDS
    champion_id: str | None = None

    def series_for_round(self, round_: PlayoffRound) -> tuple[PlayoffSeries, ...]:
        if round_ == PlayoffRound.PLAY_IN:
            return self.play_in
        if round_ == PlayoffRound.FIRST_ROUND:
            return self.first_round
        if round_ == PlayoffRound.CONF_SEMIS:
            return self.conf_semis
        if round_ == PlayoffRound.CONF_FINALS:
            return self.conf_finals
        if round_ == PlayoffRound.FINALS:
            return (self.finals,) if self.finals is not None else ()
        return ()

    @property
    def active_series(self) -> tuple[PlayoffSeries, ...]:
        return self.series_for_round(self.current_round)

    @property
    def all_series(self) -> list[PlayoffSeries]:
        return [s for round_ in ROUND_ORDER for s in self.series_for_round(round_)]

    def series_by_id(self, series_id: str) -> PlayoffSeries | None:
        for series in self.all_series:
            if series.series_id == series_id:
                return series
        return None
