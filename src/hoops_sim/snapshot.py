"""JSON save files for a whole ``GameState``.

``dump_state`` and ``load_state`` convert to and from plain dicts;
``save_state`` and ``read_state`` add the file handling. Loading a dump
rebuilds the exact same state: every derived value (per-game rates,
standings order, the next scheduled game) is recomputed from what is stored.
"""

from __future__ import annotations

import json
import logging
import shutil
from datetime import date, datetime
from pathlib import Path
from typing import Any

from .config import PLAYOFF_TEAMS_PER_CONFERENCE, REGULAR_SEASON_GAMES
from .errors import SnapshotVersionError
from .models import (
    BracketBye,
    DepthChartEntry,
    Game,
    Player,
    PlayerGameStats,
    PlayoffBracket,
    PlayoffRound,
    PlayoffSeries,
    RotationConfig,
    Team,
    TeamRecord,
)
from .roles import Position, RoleArchetype
from .season import GameState, Season, SeasonSettings
from .stats import COUNTING_STATS, PlayerPlayoffStats, PlayerSeasonStats

logger = logging.getLogger(__name__)

SAVE_VERSION = 1

_PLAYER_RATINGS = (
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


def _serialize_player(player: Player) -> dict[str, Any]:
    out: dict[str, Any] = {
        "player_id": player.player_id,
        "name": player.name,
        "position": player.position.value,
        "height_inches": player.height_inches,
        "age": player.age,
        "role": player.role.value if player.role is not None else None,
    }
    out.update({attr: getattr(player, attr) for attr in _PLAYER_RATINGS})
    return out


def _deserialize_player(raw: dict[str, Any]) -> Player:
    return Player(
        player_id=str(raw["player_id"]),
        name=str(raw.get("name", "")),
        position=Position(raw.get("position", "SF")),
        height_inches=int(raw.get("height_inches", 78)),
        age=int(raw.get("age", 24)),
        role=RoleArchetype(raw["role"]) if raw.get("role") else None,
        **{attr: int(raw.get(attr, 50)) for attr in _PLAYER_RATINGS},
    )


def _serialize_rotation(rotation: RotationConfig | None) -> dict[str, Any] | None:
    if rotation is None:
        return None
    return {
        "rotation_size": rotation.rotation_size,
        "player_minutes": dict(rotation.player_minutes),
        "depth_chart": [
            {"player_id": e.player_id, "position": e.position.value, "depth": e.depth}
            for e in rotation.depth_chart
        ],
        "last_modified": rotation.last_modified.isoformat(),
    }


def _deserialize_rotation(raw: dict[str, Any] | None) -> RotationConfig | None:
    if not isinstance(raw, dict):
        return None
    return RotationConfig(
        rotation_size=int(raw["rotation_size"]),
        player_minutes={str(k): int(v) for k, v in raw.get("player_minutes", {}).items()},
        depth_chart=tuple(
            DepthChartEntry(player_id=str(e["player_id"]), position=Position(e["position"]), depth=int(e["depth"]))
            for e in raw.get("depth_chart", [])
        ),
        last_modified=datetime.fromisoformat(raw["last_modified"]),
    )


def _serialize_team(team: Team) -> dict[str, Any]:
    return {
        "team_id": team.team_id,
        "city": team.city,
        "name": team.name,
        "conference": team.conference,
        "division": team.division,
        "roster": [_serialize_player(p) for p in team.roster],
        "starting_lineup": list(team.starting_lineup),
        "rotation": _serialize_rotation(team.rotation),
    }


def _deserialize_team(raw: dict[str, Any]) -> Team:
    return Team(
        team_id=str(raw["team_id"]),
        city=str(raw.get("city", "")),
        name=str(raw.get("name", "")),
        conference=str(raw.get("conference", "Independent")),
        division=str(raw.get("division", "Independent")),
        roster=tuple(_deserialize_player(p) for p in raw.get("roster", []) if isinstance(p, dict)),
        starting_lineup=tuple(str(pid) for pid in raw.get("starting_lineup", [])),
        rotation=_deserialize_rotation(raw.get("rotation")),
    )


def _serialize_line(line: PlayerGameStats) -> dict[str, int]:
    return {name: getattr(line, name) for name in COUNTING_STATS}


def _serialize_game(game: Game) -> dict[str, Any]:
    return {
        "game_id": game.game_id,
        "home_team_id": game.home_team_id,
        "away_team_id": game.away_team_id,
        "day": game.day,
        "scheduled_date": game.scheduled_date.isoformat() if game.scheduled_date else None,
        "is_played": game.is_played,
        "home_score": game.home_score,
        "away_score": game.away_score,
        "overtime_periods": game.overtime_periods,
        "is_playoff": game.is_playoff,
        "series_id": game.series_id,
        "box_score": {pid: _serialize_line(line) for pid, line in game.box_score.items()},
    }


def _deserialize_game(raw: dict[str, Any]) -> Game:
    return Game(
        game_id=str(raw["game_id"]),
        home_team_id=str(raw["home_team_id"]),
        away_team_id=str(raw["away_team_id"]),
        day=int(raw.get("day", 0)),
        scheduled_date=date.fromisoformat(raw["scheduled_date"]) if raw.get("scheduled_date") else None,
        is_played=bool(raw.get("is_played", False)),
        home_score=int(raw["home_score"]) if raw.get("home_score") is not None else None,
        away_score=int(raw["away_score"]) if raw.get("away_score") is not None else None,
        overtime_periods=int(raw.get("overtime_periods", 0)),
        is_playoff=bool(raw.get("is_playoff", False)),
        series_id=str(raw["series_id"]) if raw.get("series_id") is not None else None,
        box_score={
            str(pid): PlayerGameStats(**{name: int(line.get(name, 0)) for name in COUNTING_STATS})
            for pid, line in raw.get("box_score", {}).items()
        },
    )


def _serialize_record(record: TeamRecord) -> dict[str, Any]:
    return {
        "wins": record.wins,
        "losses": record.losses,
        "home_wins": record.home_wins,
        "home_losses": record.home_losses,
        "away_wins": record.away_wins,
        "away_losses": record.away_losses,
        "points_for": record.points_for,
        "points_against": record.points_against,
        "recent_results": list(record.recent_results),
    }


def _deserialize_record(team_id: str, raw: dict[str, Any]) -> TeamRecord:
    return TeamRecord(
        team_id=team_id,
        wins=int(raw.get("wins", 0)),
        losses=int(raw.get("losses", 0)),
        home_wins=int(raw.get("home_wins", 0)),
        home_losses=int(raw.get("home_losses", 0)),
        away_wins=int(raw.get("away_wins", 0)),
        away_losses=int(raw.get("away_losses", 0)),
        points_for=int(raw.get("points_for", 0)),
        points_against=int(raw.get("points_against", 0)),
        recent_results=tuple(str(r) for r in raw.get("recent_results", []))[-10:],
    )


def _serialize_totals(totals: dict[str, PlayerSeasonStats]) -> dict[str, dict[str, Any]]:
    out: dict[str, dict[str, Any]] = {}
    for player_id, row in totals.items():
        out[player_id] = {"team_id": row.team_id, "games_played": row.games_played}
        out[player_id].update({name: getattr(row, name) for name in COUNTING_STATS})
    return out


def _deserialize_totals(raw: dict[str, Any], stat_type: type[PlayerSeasonStats]) -> dict[str, PlayerSeasonStats]:
    return {
        str(player_id): stat_type(
            player_id=str(player_id),
            team_id=str(row.get("team_id", "")),
            games_played=int(row.get("games_played", 0)),
            **{name: int(row.get(name, 0)) for name in COUNTING_STATS},
        )
        for player_id, row in raw.items()
    }


def _serialize_series(series: PlayoffSeries) -> dict[str, Any]:
    return {
        "series_id": series.series_id,
        "round": series.round.value,
        "home_team_id": series.home_team_id,
        "away_team_id": series.away_team_id,
        "conference": series.conference,
        "slot": series.slot,
        "home_seed": series.home_seed,
        "away_seed": series.away_seed,
        "wins_needed": series.wins_needed,
        "home_wins": series.home_wins,
        "away_wins": series.away_wins,
        "winner_id": series.winner_id,
        "game_ids": list(series.game_ids),
    }


def _deserialize_series(raw: dict[str, Any]) -> PlayoffSeries:
    return PlayoffSeries(
        series_id=str(raw["series_id"]),
        round=PlayoffRound(raw["round"]),
        home_team_id=str(raw["home_team_id"]),
        away_team_id=str(raw["away_team_id"]),
        conference=raw.get("conference"),
        slot=int(raw.get("slot", 0)),
        home_seed=int(raw.get("home_seed", 0)),
        away_seed=int(raw.get("away_seed", 0)),
        wins_needed=int(raw.get("wins_needed", 4)),
        home_wins=int(raw.get("home_wins", 0)),
        away_wins=int(raw.get("away_wins", 0)),
        winner_id=raw.get("winner_id"),
        game_ids=tuple(str(g) for g in raw.get("game_ids", [])),
    )


def _serialize_bracket(bracket: PlayoffBracket | None) -> dict[str, Any] | None:
    if bracket is None:
        return None
    return {
        "season_id": bracket.season_id,
        "seedings": dict(bracket.seedings),
        "conferences": dict(bracket.conferences),
        "league_rank": dict(bracket.league_rank),
        "qualifiers": dict(bracket.qualifiers),
        "current_round": bracket.current_round.value,
        "play_in": [_serialize_series(s) for s in bracket.play_in],
        "first_round": [_serialize_series(s) for s in bracket.first_round],
        "conf_semis": [_serialize_series(s) for s in bracket.conf_semis],
        "conf_finals": [_serialize_series(s) for s in bracket.conf_finals],
        "finals": _serialize_series(bracket.finals) if bracket.finals is not None else None,
        "byes": [
            {"team_id": b.team_id, "conference": b.conference, "round": b.round.value, "slot": b.slot, "seed": b.seed}
            for b in bracket.byes
        ],
        "conference_rounds": [r.value for r in bracket.conference_rounds],
        "champion_id": bracket.champion_id,
    }


def _deserialize_bracket(raw: dict[str, Any] | None) -> PlayoffBracket | None:
    if not isinstance(raw, dict):
        return None
    return PlayoffBracket(
        season_id=str(raw["season_id"]),
        seedings={str(k): int(v) for k, v in raw.get("seedings", {}).items()},
        conferences={str(k): str(v) for k, v in raw.get("conferences", {}).items()},
        league_rank={str(k): int(v) for k, v in raw.get("league_rank", {}).items()},
        qualifiers={str(k): int(v) for k, v in raw.get("qualifiers", {}).items()},
        current_round=PlayoffRound(raw["current_round"]),
        play_in=tuple(_deserialize_series(s) for s in raw.get("play_in", [])),
        first_round=tuple(_deserialize_series(s) for s in raw.get("first_round", [])),
        conf_semis=tuple(_deserialize_series(s) for s in raw.get("conf_semis", [])),
        conf_finals=tuple(_deserialize_series(s) for s in raw.get("conf_finals", [])),
        finals=_deserialize_series(raw["finals"]) if raw.get("finals") else None,
        byes=tuple(
            BracketBye(
                team_id=str(b["team_id"]),
                conference=str(b["conference"]),
                round=PlayoffRound(b["round"]),
                slot=int(b["slot"]),
                seed=int(b["seed"]),
            )
            for b in raw.get("byes", [])
        ),
        conference_rounds=tuple(PlayoffRound(r) for r in raw.get("conference_rounds", [])),
        champion_id=raw.get("champion_id"),
    )


def _serialize_season(season: Season) -> dict[str, Any]:
    settings = season.settings
    return {
        "season_id": season.season_id,
        "year": season.year,
        "user_team_id": season.user_team_id,
        "seed": season.seed,
        "settings": {
            "games_per_team": settings.games_per_team,
            "playoff_teams": settings.playoff_teams,
            "play_in": settings.play_in,
            "stat_scope": settings.stat_scope,
            "skip_playoffs_when_user_eliminated": settings.skip_playoffs_when_user_eliminated,
        },
        "games": [_serialize_game(g) for g in season.games],
        "records": {team_id: _serialize_record(r) for team_id, r in season.records.items()},
        "season_stats": _serialize_totals(season.season_stats),
        "playoff_stats": _serialize_totals(season.playoff_stats),
        "aggregated_game_ids": sorted(season.aggregated_game_ids),
        "playoff_games": [_serialize_game(g) for g in season.playoff_games],
        "bracket": _serialize_bracket(season.bracket),
        "is_complete": season.is_complete,
    }


def _deserialize_season(raw: dict[str, Any]) -> Season:
    raw_settings = raw.get("settings", {})
    return Season(
        season_id=str(raw["season_id"]),
        year=int(raw["year"]),
        user_team_id=str(raw["user_team_id"]),
        seed=str(raw["seed"]),
        settings=SeasonSettings(
            games_per_team=int(raw_settings.get("games_per_team", REGULAR_SEASON_GAMES)),
            playoff_teams=int(raw_settings.get("playoff_teams", PLAYOFF_TEAMS_PER_CONFERENCE)),
            play_in=bool(raw_settings.get("play_in", True)),
            stat_scope=str(raw_settings.get("stat_scope", "user")),
            skip_playoffs_when_user_eliminated=bool(raw_settings.get("skip_playoffs_when_user_eliminated", False)),
        ),
        games=tuple(_deserialize_game(g) for g in raw.get("games", [])),
        records={str(k): _deserialize_record(str(k), v) for k, v in raw.get("records", {}).items()},
        season_stats=_deserialize_totals(raw.get("season_stats", {}), PlayerSeasonStats),
        playoff_stats=_deserialize_totals(raw.get("playoff_stats", {}), PlayerPlayoffStats),
        aggregated_game_ids=frozenset(str(g) for g in raw.get("aggregated_game_ids", [])),
        playoff_games=tuple(_deserialize_game(g) for g in raw.get("playoff_games", [])),
        bracket=_deserialize_bracket(raw.get("bracket")),
        is_complete=bool(raw.get("is_complete", False)),
    )


def dump_state(state: GameState) -> dict[str, Any]:
    return {
        "save_version": SAVE_VERSION,
        "teams": [_serialize_team(team) for team in state.teams],
        "season": _serialize_season(state.season),
    }


def load_state(raw: dict[str, Any]) -> GameState:
    version = int(raw.get("save_version", 1) or 1)
    if version > SAVE_VERSION:
        raise SnapshotVersionError(f"Unsupported save version {version}; app supports up to {SAVE_VERSION}.")
    teams = tuple(_deserialize_team(t) for t in raw.get("teams", []) if isinstance(t, dict))
    return GameState(teams=teams, season=_deserialize_season(raw["season"]))


def _write_json_with_backup(path: Path, payload: Any) -> None:
    if path.exists():
        backup = path.with_suffix(path.suffix + ".bak")
        try:
            shutil.copy2(path, backup)
        except OSError as exc:
            logger.warning("Could not back up %s: %s", path, exc)
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def save_state(path: str | Path, state: GameState) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    _write_json_with_backup(target, dump_state(state))
    logger.info("Saved season %s to %s", state.season.season_id, target)
    return target


def read_state(path: str | Path) -> GameState:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError(f"{path} is not a saved game.")
    return load_state(raw)
