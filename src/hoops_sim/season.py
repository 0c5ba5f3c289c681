"""Season orchestration: regular season, postseason, complete.

Every operation takes a ``GameState`` and returns a new one. A game's result,
the standings update and the stat fold all land in the same returned state,
so any state handed back to a caller (or written to disk) is consistent.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Callable, Iterable
from uuid import uuid4

from . import playoffs
from .config import PLAYOFF_TEAMS_PER_CONFERENCE, REGULAR_SEASON_GAMES
from .engine import simulate_game
from .errors import InvalidStateTransition, MissingPlayerError, MissingTeamError, RotationRejected
from .models import (
    Game,
    Player,
    PlayoffBracket,
    PlayoffRound,
    PlayoffSeries,
    RotationConfig,
    Team,
    TeamRecord,
    TeamStanding,
)
from .roles import ROLE_PROFILES, Position, RoleArchetype
from .rotation import validate
from .schedule import generate_schedule
from .stats import PlayerPlayoffStats, PlayerSeasonStats, fold_box_score

logger = logging.getLogger(__name__)

STAT_SCOPES = ("user", "league")


class SeasonPhase(str, Enum):
    REGULAR_SEASON = "regular-season"
    AWAITING_POSTSEASON = "awaiting-postseason"
    PLAYOFFS = "playoffs"
    COMPLETE = "complete"


@dataclass(slots=True, frozen=True)
class SeasonSettings:
    games_per_team: int = REGULAR_SEASON_GAMES
    playoff_teams: int = PLAYOFF_TEAMS_PER_CONFERENCE
    play_in: bool = True
    # "user" tracks only the user team's players; "league" tracks everyone.
    stat_scope: str = "user"
    skip_playoffs_when_user_eliminated: bool = False


@dataclass(slots=True, frozen=True)
class Season:
    season_id: str
    year: int
    user_team_id: str
    seed: str
    games: tuple[Game, ...]
    records: dict[str, TeamRecord]
    settings: SeasonSettings = field(default_factory=SeasonSettings)
    season_stats: dict[str, PlayerSeasonStats] = field(default_factory=dict)
    playoff_stats: dict[str, PlayerSeasonStats] = field(default_factory=dict)
    aggregated_game_ids: frozenset[str] = frozenset()
    playoff_games: tuple[Game, ...] = ()
    bracket: PlayoffBracket | None = None
    is_complete: bool = False

    @property
    def games_played(self) -> int:
        return sum(1 for g in self.games if g.is_played)

    @property
    def games_remaining(self) -> int:
        return len(self.games) - self.games_played

    def game(self, game_id: str) -> Game | None:
        for game in self.games:
            if game.game_id == game_id:
                return game
        for game in self.playoff_games:
            if game.game_id == game_id:
                return game
        return None


@dataclass(slots=True, frozen=True)
class GameState:
    teams: tuple[Team, ...]
    season: Season

    @property
    def user_team_id(self) -> str:
        return self.season.user_team_id

    @property
    def user_team(self) -> Team:
        return find_team(self, self.user_team_id)


def find_team(state: GameState, team_id: str) -> Team:
    for team in state.teams:
        if team.team_id == team_id:
            return team
    raise MissingTeamError(team_id)


def _with_team(state: GameState, team: Team) -> GameState:
    find_team(state, team.team_id)
    teams = tuple(team if t.team_id == team.team_id else t for t in state.teams)
    return replace(state, teams=teams)


def _game_rng(season: Season, game_id: str) -> random.Random:
    return random.Random(f"{season.seed}:{game_id}")


def start_season(
    teams: Iterable[Team],
    user_team_id: str,
    year: int = 2025,
    seed: int | str | None = None,
    settings: SeasonSettings | None = None,
    start_date: date | None = None,
) -> GameState:
    """Generate the schedule and empty records for a new season."""
    team_list = tuple(teams)
    settings = settings or SeasonSettings()
    if settings.stat_scope not in STAT_SCOPES:
        raise ValueError(f"Unknown stat scope '{settings.stat_scope}'")
    # Persisted so every game's randomness can be rebuilt after a reload.
    seed_text = str(seed) if seed is not None else uuid4().hex[:12]
    season_id = f"{year}-{str(year + 1)[-2:]}"
    games = generate_schedule(
        team_list,
        user_team_id,
        games_per_team=settings.games_per_team,
        seed=seed_text,
        season_id=season_id,
        start_date=start_date or date(year, 10, 21),
    )
    season = Season(
        season_id=season_id,
        year=year,
        user_team_id=user_team_id,
        seed=seed_text,
        games=tuple(games),
        records={team.team_id: TeamRecord(team_id=team.team_id) for team in team_list},
        settings=settings,
    )
    logger.info("Started season %s with %d games; user team %s", season_id, len(games), user_team_id)
    return GameState(teams=team_list, season=season)


def standings(state: GameState, conference: str | None = None) -> list[TeamStanding]:
    rows = [
        TeamStanding(
            team_id=team.team_id,
            team_name=team.full_name,
            conference=team.conference,
            division=team.division,
            record=state.season.records.get(team.team_id, TeamRecord(team_id=team.team_id)),
        )
        for team in state.teams
        if conference is None or team.conference == conference
    ]
    rows.sort(key=lambda row: row.sort_key)
    return rows


def next_game(state: GameState) -> Game | None:
    for game in state.season.games:
        if not game.is_played:
            return game
    return None


def is_regular_season_complete(state: GameState) -> bool:
    return all(game.is_played for game in state.season.games)


def phase(state: GameState) -> SeasonPhase:
    season = state.season
    if season.is_complete:
        return SeasonPhase.COMPLETE
    if season.bracket is not None:
        if season.bracket.current_round == PlayoffRound.COMPLETE:
            return SeasonPhase.COMPLETE
        return SeasonPhase.PLAYOFFS
    if is_regular_season_complete(state):
        return SeasonPhase.AWAITING_POSTSEASON
    return SeasonPhase.REGULAR_SEASON


def aggregate_game(state: GameState, game: Game) -> Season:
    """Fold one played game's box score into the season or playoff ledger.

    A game id can only be folded once; a second attempt raises
    ``InvalidStateTransition``. Box-score ids that belong to neither team
    raise ``MissingPlayerError``.
    """
    season = state.season
    if not game.is_played:
        raise InvalidStateTransition(f"Game {game.game_id} has not been played.")
    if game.game_id in season.aggregated_game_ids:
        raise InvalidStateTransition(f"Game {game.game_id} has already been aggregated.")

    home = find_team(state, game.home_team_id)
    away = find_team(state, game.away_team_id)
    team_ids = {pid: home.team_id for pid in home.player_ids}
    team_ids.update({pid: away.team_id for pid in away.player_ids})
    for player_id in game.box_score:
        if player_id not in team_ids:
            raise MissingPlayerError(player_id, f"box score of {game.game_id}")

    tracked = None
    if season.settings.stat_scope == "user":
        tracked = find_team(state, season.user_team_id).player_ids

    seen = season.aggregated_game_ids | {game.game_id}
    if game.is_playoff:
        totals = fold_box_score(season.playoff_stats, game.box_score, tracked, team_ids, PlayerPlayoffStats)
        return replace(season, playoff_stats=totals, aggregated_game_ids=seen)
    totals = fold_box_score(season.season_stats, game.box_score, tracked, team_ids)
    return replace(season, season_stats=totals, aggregated_game_ids=seen)


def play_game(state: GameState, game_id: str) -> tuple[GameState, Game]:
    """Play one scheduled regular-season game and record everything it changes."""
    season = state.season
    if season.bracket is not None or season.is_complete:
        raise InvalidStateTransition("The regular season is over.")
    index = next((i for i, g in enumerate(season.games) if g.game_id == game_id), None)
    if index is None:
        raise InvalidStateTransition(f"Game {game_id} is not on the schedule.")
    scheduled = season.games[index]

    home = find_team(state, scheduled.home_team_id)
    away = find_team(state, scheduled.away_team_id)
    played = simulate_game(home, away, rng=_game_rng(season, game_id), game=scheduled)

    records = dict(season.records)
    records[home.team_id] = records[home.team_id].register_game(played.home_score, played.away_score, True)
    records[away.team_id] = records[away.team_id].register_game(played.away_score, played.home_score, False)
    games = season.games[:index] + (played,) + season.games[index + 1:]

    season = replace(season, games=games, records=records)
    season = aggregate_game(replace(state, season=season), played)
    return replace(state, season=season), played


def play_next_game(state: GameState) -> tuple[GameState, Game | None]:
    upcoming = next_game(state)
    if upcoming is None:
        return state, None
    return play_game(state, upcoming.game_id)


def simulate_until(
    state: GameState,
    should_stop: Callable[[GameState], bool] | None = None,
    max_games: int | None = None,
) -> GameState:
    """Play regular-season games in schedule order.

    ``should_stop`` is checked before each game, so an interrupted run always
    returns the state as of the last fully recorded game.
    """
    played = 0
    while next_game(state) is not None:
        if max_games is not None and played >= max_games:
            break
        if should_stop is not None and should_stop(state):
            break
        state, _ = play_next_game(state)
        played += 1
    if played:
        logger.info("Simulated %d games; %d remaining", played, state.season.games_remaining)
    return state


def simulate_remaining_season(state: GameState) -> GameState:
    return simulate_until(state)


def simulate_to_user_game(state: GameState) -> GameState:
    """Play other teams' games until the user team is next on the schedule."""
    user_id = state.user_team_id

    def user_is_next(current: GameState) -> bool:
        upcoming = next_game(current)
        return upcoming is not None and upcoming.involves(user_id)

    return simulate_until(state, should_stop=user_is_next)


def start_postseason(state: GameState) -> GameState:
    """Seed the bracket from final standings.

    With ``skip_playoffs_when_user_eliminated`` set and the user team out of
    both the playoffs and the play-in, the season ends here instead.
    """
    season = state.season
    if not is_regular_season_complete(state):
        raise InvalidStateTransition(f"{season.games_remaining} regular-season games remain.")
    if season.bracket is not None or season.is_complete:
        raise InvalidStateTransition("The postseason has already started.")

    settings = season.settings
    bracket = playoffs.seed(
        standings(state),
        season.season_id,
        playoff_teams=settings.playoff_teams,
        play_in=settings.play_in,
    )
    if settings.skip_playoffs_when_user_eliminated and _user_missed_postseason(bracket, season.user_team_id):
        logger.info("%s missed the postseason; season %s complete", season.user_team_id, season.season_id)
        return replace(state, season=replace(season, is_complete=True))

    complete = bracket.current_round == PlayoffRound.COMPLETE
    logger.info("Postseason started for %s in %s", season.season_id, bracket.current_round.value)
    return replace(state, season=replace(season, bracket=bracket, is_complete=complete))


def _user_missed_postseason(bracket: PlayoffBracket, team_id: str) -> bool:
    if any(s.involves(team_id) for s in bracket.play_in):
        return False
    return playoffs.is_eliminated(bracket, team_id)


def _require_bracket(state: GameState) -> PlayoffBracket:
    bracket = state.season.bracket
    if bracket is None:
        raise InvalidStateTransition("The postseason has not started.")
    return bracket


def _play_series_game(state: GameState, series: PlayoffSeries) -> tuple[GameState, Game]:
    season = state.season
    game_id = f"{series.series_id}-g{series.games_played + 1}"
    home = find_team(state, series.home_team_id)
    away = find_team(state, series.away_team_id)
    played = simulate_game(home, away, rng=_game_rng(season, game_id), series=series)

    bracket = playoffs.record_result(_require_bracket(state), played)
    if playoffs.is_round_complete(bracket):
        finished = bracket.current_round
        bracket = playoffs.advance_round(bracket)
        logger.info("Round %s finished; now in %s", finished.value, bracket.current_round.value)

    season = replace(
        season,
        bracket=bracket,
        playoff_games=season.playoff_games + (played,),
        is_complete=bracket.current_round == PlayoffRound.COMPLETE,
    )
    season = aggregate_game(replace(state, season=season), played)
    if season.is_complete:
        logger.info("Season %s complete; champion %s", season.season_id, bracket.champion_id)
    return replace(state, season=season), played


def _open_series(bracket: PlayoffBracket) -> list[PlayoffSeries]:
    return [s for s in bracket.active_series if not s.is_complete]


def play_next_playoff_game(state: GameState) -> tuple[GameState, Game | None]:
    """Play one game of the first undecided series in the current round."""
    bracket = _require_bracket(state)
    if bracket.current_round == PlayoffRound.COMPLETE:
        return state, None
    pending = _open_series(bracket)
    if not pending:
        raise InvalidStateTransition(f"No open series in {bracket.current_round.value}.")
    return _play_series_game(state, pending[0])


def simulate_user_series_game(state: GameState) -> tuple[GameState, Game | None]:
    """Play the next game of the user team's current series, if it has one."""
    bracket = _require_bracket(state)
    series = playoffs.get_user_team_series(bracket, state.user_team_id)
    if series is None or series.is_complete:
        return state, None
    return _play_series_game(state, series)


def simulate_non_user_series(state: GameState) -> GameState:
    """Finish every other series in the current round, leaving the user's untouched."""
    bracket = _require_bracket(state)
    round_ = bracket.current_round
    user_id = state.user_team_id
    while True:
        bracket = _require_bracket(state)
        if bracket.current_round != round_:
            break
        others = [s for s in _open_series(bracket) if not s.involves(user_id)]
        if not others:
            break
        state, _ = _play_series_game(state, others[0])
    return state


def simulate_remaining_playoffs(
    state: GameState,
    should_stop: Callable[[GameState], bool] | None = None,
) -> GameState:
    _require_bracket(state)
    while phase(state) == SeasonPhase.PLAYOFFS:
        if should_stop is not None and should_stop(state):
            break
        state, _ = play_next_playoff_game(state)
    return state


def update_team_rotation(state: GameState, team_id: str, config: RotationConfig | None) -> GameState:
    """Save a rotation after validating it against the team's roster.

    ``None`` clears the rotation so the team falls back to its starting lineup.
    """
    team = find_team(state, team_id)
    if config is None:
        return _with_team(state, replace(team, rotation=None))
    violations = validate(config, team.roster)
    if violations:
        raise RotationRejected(team_id, violations)
    return _with_team(state, replace(team, rotation=config, starting_lineup=tuple(config.starter_ids)))


def _player(team: Team, player_id: str) -> Player:
    player = team.player(player_id)
    if player is None:
        raise MissingPlayerError(player_id, team.team_id)
    return player


def change_position(state: GameState, team_id: str, player_id: str, position: Position) -> GameState:
    team = find_team(state, team_id)
    player = _player(team, player_id)
    role = player.role
    # A role belongs to one position, so it cannot follow the player.
    if role is not None and ROLE_PROFILES[role].position != position:
        role = None
    return _with_team(state, team.with_player(replace(player, position=Position(position), role=role)))


def change_role(state: GameState, team_id: str, player_id: str, role: RoleArchetype | None) -> GameState:
    team = find_team(state, team_id)
    player = _player(team, player_id)
    if role is not None and ROLE_PROFILES[role].position != player.position:
        raise ValueError(f"{ROLE_PROFILES[role].label} is not a {player.position.value} role.")
    return _with_team(state, team.with_player(replace(player, role=role)))


def set_starting_lineup(state: GameState, team_id: str, player_ids: Iterable[str]) -> GameState:
    """Set the lineup used when the team has no saved rotation."""
    team = find_team(state, team_id)
    lineup = tuple(player_ids)
    if len(lineup) != Team.LINEUP_SIZE or len(set(lineup)) != Team.LINEUP_SIZE:
        raise ValueError(f"A starting lineup needs {Team.LINEUP_SIZE} different players.")
    for player_id in lineup:
        _player(team, player_id)
    return _with_team(state, replace(team, starting_lineup=lineup))
