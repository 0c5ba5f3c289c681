from __future__ import annotations

import logging
import os
from pathlib import Path
from threading import Lock
from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from . import season as league
from .app import build_default_teams
from .errors import (
    InvalidStateTransition,
    MissingPlayerError,
    MissingTeamError,
    RotationRejected,
    SimulationError,
    SnapshotVersionError,
)
from .models import DepthChartEntry, Game, Player, PlayoffBracket, PlayoffRound, PlayoffSeries, RotationConfig, Team
from .roles import Position, RoleArchetype
from .rotation import validate
from .snapshot import read_state, save_state
from .stats import LEADER_CATEGORIES, leaders

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "HOOPS_SIM_DATA_DIR"


class TeamSelection(BaseModel):
    team_id: str


class SimulateSelection(BaseModel):
    games: int | None = None
    until_user_game: bool = False


class DepthChartRow(BaseModel):
    player_id: str
    position: str
    depth: int


class RotationSelection(BaseModel):
    team_id: str | None = None
    rotation_size: int
    player_minutes: dict[str, int] = {}
    depth_chart: list[DepthChartRow] = []


class PositionSelection(BaseModel):
    team_id: str | None = None
    player_id: str
    position: str


class RoleSelection(BaseModel):
    team_id: str | None = None
    player_id: str
    role: str | None = None


class LineupSelection(BaseModel):
    team_id: str | None = None
    player_ids: list[str]


class PlayoffAdvanceSelection(BaseModel):
    mode: str = "next"


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, (MissingTeamError, MissingPlayerError)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, RotationRejected):
        return HTTPException(status_code=400, detail={"message": str(exc), "violations": exc.violations})
    if isinstance(exc, InvalidStateTransition):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def _player_row(player: Player, team: Team) -> dict[str, Any]:
    rotation = team.rotation
    return {
        "player_id": player.player_id,
        "name": player.name,
        "position": player.position.value,
        "role": player.role.value if player.role is not None else None,
        "height": player.height_label,
        "age": player.age,
        "overall": player.overall,
        "adjusted_rating": player.position_adjusted_rating,
        "role_fit": round(player.role_fit, 1),
        "minutes": rotation.minutes_for(player.player_id) if rotation is not None else None,
        "starter": player.player_id in {p.player_id for p in team.starters},
    }


def _game_row(game: Game) -> dict[str, Any]:
    return {
        "game_id": game.game_id,
        "day": game.day,
        "date": game.scheduled_date.isoformat() if game.scheduled_date else None,
        "home": game.home_team_id,
        "away": game.away_team_id,
        "played": game.is_played,
        "home_score": game.home_score,
        "away_score": game.away_score,
        "overtime_periods": game.overtime_periods,
        "series_id": game.series_id,
    }


def _series_row(series: PlayoffSeries) -> dict[str, Any]:
    return {
        "series_id": series.series_id,
        "round": series.round.value,
        "conference": series.conference,
        "home": series.home_team_id,
        "away": series.away_team_id,
        "home_seed": series.home_seed,
        "away_seed": series.away_seed,
        "home_wins": series.home_wins,
        "away_wins": series.away_wins,
        "winner": series.winner_id,
        "status": series.status,
    }


def _bracket_rounds(bracket: PlayoffBracket) -> list[PlayoffRound]:
    rounds = [PlayoffRound.PLAY_IN] if bracket.play_in else []
    return rounds + list(bracket.conference_rounds)


def _bracket_payload(bracket: PlayoffBracket) -> dict[str, Any]:
    return {
        "current_round": bracket.current_round.value,
        "champion": bracket.champion_id,
        "seedings": dict(bracket.seedings),
        "rounds": {
            round_.value: [_series_row(s) for s in bracket.series_for_round(round_)]
            for round_ in _bracket_rounds(bracket)
        },
        "finals": _series_row(bracket.finals) if bracket.finals is not None else None,
        "byes": [{"team_id": b.team_id, "round": b.round.value, "seed": b.seed} for b in bracket.byes],
    }


class SimService:
    def __init__(self, data_root: Path | None = None) -> None:
        env_root = os.environ.get(DATA_DIR_ENV)
        self.data_root = data_root or (Path(env_root) if env_root else Path(__file__).resolve().parents[2])
        self.save_path = self.data_root / "league_save.json"
        self.last_load_error: str | None = None
        self._init_fresh_state()
        self._load_saved_state()
        self._lock = Lock()

    def _init_fresh_state(self, user_team_id: str | None = None) -> None:
        teams = build_default_teams()
        self.state = league.start_season(teams, user_team_id or teams[0].team_id, seed="hoops")

    def _load_saved_state(self) -> None:
        if not self.save_path.exists():
            return
        try:
            self.state = read_state(self.save_path)
        except (SnapshotVersionError, ValueError, KeyError, OSError) as exc:
            self.last_load_error = f"Failed to load {self.save_path.name} ({exc}); starting a new season."
            logger.warning("%s", self.last_load_error)

    def _team(self, team_id: str | None) -> Team:
        try:
            return league.find_team(self.state, team_id or self.state.user_team_id)
        except MissingTeamError as exc:
            raise _http_error(exc) from exc

    def meta(self) -> dict[str, Any]:
        season = self.state.season
        return {
            "season_id": season.season_id,
            "phase": league.phase(self.state).value,
            "user_team": self.state.user_team_id,
            "games_played": season.games_played,
            "games_remaining": season.games_remaining,
            "teams": [{"team_id": t.team_id, "name": t.full_name, "conference": t.conference} for t in self.state.teams],
            "roles": [role.value for role in RoleArchetype],
            "stat_categories": list(LEADER_CATEGORIES),
            "last_load_error": self.last_load_error,
        }

    def standings(self, conference: str | None = None) -> list[dict[str, Any]]:
        rows = league.standings(self.state, conference=conference)
        return [
            {
                "rank": idx,
                "team_id": row.team_id,
                "team": row.team_name,
                "conference": row.conference,
                "division": row.division,
                "wins": row.wins,
                "losses": row.losses,
                "win_pct": round(row.win_pct, 3),
                "home": row.record.home_record,
                "away": row.record.away_record,
                "last10": row.record.last10,
                "streak": row.record.streak,
                "point_diff": row.record.point_diff,
            }
            for idx, row in enumerate(rows, start=1)
        ]

    def schedule(self, team_id: str | None = None, played: bool | None = None, limit: int = 100) -> list[dict[str, Any]]:
        games = [g for g in self.state.season.games if team_id is None or g.involves(team_id)]
        if played is not None:
            games = [g for g in games if g.is_played == played]
        return [_game_row(g) for g in games[: max(0, limit)]]

    def team(self, team_id: str) -> dict[str, Any]:
        team = self._team(team_id)
        rotation = team.rotation
        return {
            "team_id": team.team_id,
            "name": team.full_name,
            "conference": team.conference,
            "division": team.division,
            "rating": team.team_rating,
            "roster": [_player_row(p, team) for p in team.roster],
            "starting_lineup": list(team.starting_lineup),
            "rotation": None
            if rotation is None
            else {
                "rotation_size": rotation.rotation_size,
                "player_minutes": dict(rotation.player_minutes),
                "depth_chart": [
                    {"player_id": e.player_id, "position": e.position.value, "depth": e.depth}
                    for e in rotation.depth_chart
                ],
            },
        }

    def set_user_team(self, team_id: str) -> dict[str, Any]:
        self._team(team_id)
        if self.state.season.games_played > 0:
            raise HTTPException(status_code=409, detail="User team can only change before the first game")
        self._init_fresh_state(team_id)
        return {"ok": True, "user_team": self.state.user_team_id}

    def advance(self) -> dict[str, Any]:
        try:
            if league.phase(self.state) != league.SeasonPhase.REGULAR_SEASON:
                raise InvalidStateTransition("The regular season is over.")
            self.state, game = league.play_next_game(self.state)
        except SimulationError as exc:
            raise _http_error(exc) from exc
        return {"ok": True, "game": _game_row(game) if game is not None else None, "phase": league.phase(self.state).value}

    def simulate(self, games: int | None = None, until_user_game: bool = False) -> dict[str, Any]:
        before = self.state.season.games_played
        try:
            if until_user_game:
                self.state = league.simulate_to_user_game(self.state)
            else:
                self.state = league.simulate_until(self.state, max_games=games)
        except SimulationError as exc:
            raise _http_error(exc) from exc
        return {
            "ok": True,
            "games_simulated": self.state.season.games_played - before,
            "phase": league.phase(self.state).value,
        }

    def _rotation_from(self, payload: RotationSelection) -> RotationConfig:
        try:
            depth_chart = tuple(
                DepthChartEntry(row.player_id, Position(row.position), row.depth) for row in payload.depth_chart
            )
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return RotationConfig(
            rotation_size=payload.rotation_size,
            player_minutes=dict(payload.player_minutes),
            depth_chart=depth_chart,
        )

    def validate_rotation(self, payload: RotationSelection) -> dict[str, Any]:
        team = self._team(payload.team_id)
        violations = validate(self._rotation_from(payload), team.roster)
        return {"ok": not violations, "violations": violations}

    def save_rotation(self, payload: RotationSelection) -> dict[str, Any]:
        team = self._team(payload.team_id)
        try:
            self.state = league.update_team_rotation(self.state, team.team_id, self._rotation_from(payload))
        except SimulationError as exc:
            raise _http_error(exc) from exc
        return {"ok": True, "team": self.team(team.team_id)}

    def change_position(self, payload: PositionSelection) -> dict[str, Any]:
        team = self._team(payload.team_id)
        try:
            self.state = league.change_position(self.state, team.team_id, payload.player_id, Position(payload.position))
        except (SimulationError, ValueError) as exc:
            raise _http_error(exc) from exc
        return {"ok": True, "team": self.team(team.team_id)}

    def change_role(self, payload: RoleSelection) -> dict[str, Any]:
        team = self._team(payload.team_id)
        try:
            role = RoleArchetype(payload.role) if payload.role else None
            self.state = league.change_role(self.state, team.team_id, payload.player_id, role)
        except (SimulationError, ValueError) as exc:
            raise _http_error(exc) from exc
        return {"ok": True, "team": self.team(team.team_id)}

    def set_lineup(self, payload: LineupSelection) -> dict[str, Any]:
        team = self._team(payload.team_id)
        try:
            self.state = league.set_starting_lineup(self.state, team.team_id, payload.player_ids)
        except (SimulationError, ValueError) as exc:
            raise _http_error(exc) from exc
        return {"ok": True, "team": self.team(team.team_id)}

    def start_postseason(self) -> dict[str, Any]:
        try:
            self.state = league.start_postseason(self.state)
        except SimulationError as exc:
            raise _http_error(exc) from exc
        return {"ok": True, "phase": league.phase(self.state).value}

    def playoffs(self) -> dict[str, Any]:
        bracket = self.state.season.bracket
        if bracket is None:
            raise HTTPException(status_code=404, detail="Playoffs have not started")
        return _bracket_payload(bracket)

    def advance_playoffs(self, mode: str = "next") -> dict[str, Any]:
        played_before = len(self.state.season.playoff_games)
        try:
            if mode == "next":
                self.state, _ = league.play_next_playoff_game(self.state)
            elif mode == "user":
                self.state, _ = league.simulate_user_series_game(self.state)
            elif mode == "others":
                self.state = league.simulate_non_user_series(self.state)
            elif mode == "all":
                self.state = league.simulate_remaining_playoffs(self.state)
            else:
                raise HTTPException(status_code=400, detail=f"Unknown playoff mode '{mode}'")
        except SimulationError as exc:
            raise _http_error(exc) from exc
        new_games = self.state.season.playoff_games[played_before:]
        return {
            "ok": True,
            "games": [_game_row(g) for g in new_games],
            "phase": league.phase(self.state).value,
            "bracket": self.playoffs(),
        }

    def stats(self, kind: str = "season", category: str = "points", limit: int = 10) -> list[dict[str, Any]]:
        season = self.state.season
        if kind not in {"season", "playoff"}:
            raise HTTPException(status_code=400, detail=f"Unknown stat kind '{kind}'")
        totals = season.season_stats if kind == "season" else season.playoff_stats
        try:
            rows = leaders(totals, category=category, limit=limit)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        names = {p.player_id: p.name for t in self.state.teams for p in t.roster}
        return [
            {
                "player_id": row.player_id,
                "name": names.get(row.player_id, row.player_id),
                "team_id": row.team_id,
                "games_played": row.games_played,
                "ppg": round(row.points_per_game, 1),
                "rpg": round(row.rebounds_per_game, 1),
                "apg": round(row.assists_per_game, 1),
                "spg": round(row.steals_per_game, 1),
                "bpg": round(row.blocks_per_game, 1),
                "mpg": round(row.minutes_per_game, 1),
                "fg_pct": round(row.fg_pct, 1),
                "three_pct": round(row.three_pct, 1),
                "ft_pct": round(row.ft_pct, 1),
            }
            for row in rows
        ]

    def save(self) -> dict[str, Any]:
        path = save_state(self.save_path, self.state)
        return {"ok": True, "path": str(path)}

    def load(self) -> dict[str, Any]:
        if not self.save_path.exists():
            raise HTTPException(status_code=404, detail="No saved game")
        try:
            self.state = read_state(self.save_path)
        except (SimulationError, ValueError, KeyError) as exc:
            raise _http_error(exc) from exc
        self.last_load_error = None
        return {"ok": True, "season_id": self.state.season.season_id, "phase": league.phase(self.state).value}

    def reset(self) -> dict[str, Any]:
        self._init_fresh_state(self.state.user_team_id)
        return {"ok": True, "season_id": self.state.season.season_id}


service = SimService()
app = FastAPI(title="Hoops Sim API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/meta")
def meta() -> dict[str, Any]:
    with service._lock:
        return service.meta()


@app.get("/api/standings")
def standings(conference: str | None = None) -> list[dict[str, Any]]:
    with service._lock:
        return service.standings(conference=conference)


@app.get("/api/schedule")
def schedule(team: str | None = None, played: bool | None = None, limit: int = 100) -> list[dict[str, Any]]:
    with service._lock:
        return service.schedule(team_id=team, played=played, limit=limit)


@app.get("/api/teams/{team_id}")
def team_detail(team_id: str) -> dict[str, Any]:
    with service._lock:
        return service.team(team_id)


@app.post("/api/user-team")
def set_user_team(payload: TeamSelection) -> dict[str, Any]:
    with service._lock:
        return service.set_user_team(payload.team_id)


@app.post("/api/advance")
def advance() -> dict[str, Any]:
    with service._lock:
        return service.advance()


@app.post("/api/simulate")
def simulate(payload: SimulateSelection) -> dict[str, Any]:
    with service._lock:
        return service.simulate(games=payload.games, until_user_game=payload.until_user_game)


@app.post("/api/rotation/validate")
def validate_rotation(payload: RotationSelection) -> dict[str, Any]:
    with service._lock:
        return service.validate_rotation(payload)


@app.post("/api/rotation")
def save_rotation(payload: RotationSelection) -> dict[str, Any]:
    with service._lock:
        return service.save_rotation(payload)


@app.post("/api/players/position")
def change_position(payload: PositionSelection) -> dict[str, Any]:
    with service._lock:
        return service.change_position(payload)


@app.post("/api/players/role")
def change_role(payload: RoleSelection) -> dict[str, Any]:
    with service._lock:
        return service.change_role(payload)


@app.post("/api/lineup")
def set_lineup(payload: LineupSelection) -> dict[str, Any]:
    with service._lock:
        return service.set_lineup(payload)


@app.post("/api/postseason")
def start_postseason() -> dict[str, Any]:
    with service._lock:
        return service.start_postseason()


@app.get("/api/playoffs")
def playoffs() -> dict[str, Any]:
    with service._lock:
        return service.playoffs()


@app.post("/api/playoffs/advance")
def advance_playoffs(payload: PlayoffAdvanceSelection) -> dict[str, Any]:
    with service._lock:
        return service.advance_playoffs(mode=payload.mode)


@app.get("/api/stats")
def stats(kind: str = "season", category: str = "points", limit: int = 10) -> list[dict[str, Any]]:
    with service._lock:
        return service.stats(kind=kind, category=category, limit=limit)


@app.post("/api/save")
def save() -> dict[str, Any]:
    with service._lock:
        return service.save()


@app.post("/api/load")
def load() -> dict[str, Any]:
    with service._lock:
        return service.load()


@app.post("/api/reset")
def reset() -> dict[str, Any]:
    with service._lock:
        return service.reset()
