from __future__ import annotations

import logging
import random
from collections import Counter
from dataclasses import dataclass, field

from .config import (
    GAME_MINUTES,
    HALF_MINUTES,
    MAX_SHOTS_PER_POSSESSION,
    OVERTIME_MINUTES,
    OVERTIME_POSSESSIONS_RANGE,
    POSSESSIONS_RANGE,
    STARTERS,
)
from .errors import InvalidStateTransition, MissingPlayerError, RotationRejected
from .models import Game, Player, PlayerGameStats, PlayoffSeries, Team
from .playoffs import series_home_team
from .roles import POSITIONS, Position, gameplay_modifier
from .rotation import lineup_positions, validate

logger = logging.getLogger(__name__)

# Position multipliers applied on top of the player's ratings.
THREE_ATTEMPT_BY_POSITION = {Position.SG: 1.20, Position.SF: 0.95}
BLOCK_BY_POSITION = {Position.C: 1.20}
ASSIST_BY_POSITION = {Position.PG: 1.15}
REBOUND_BY_POSITION = {Position.PF: 1.15, Position.C: 1.25}
HANDLER_BY_POSITION = {Position.PG: 1.50}


@dataclass(slots=True)
class _Side:
    team: Team
    # Who holds each position for every regulation minute.
    timeline: dict[Position, list[str]]
    box: dict[str, Counter[str]] = field(default_factory=dict)
    score: int = 0

    def starters(self) -> list[tuple[Position, Player]]:
        return self.on_court(0)

    def on_court(self, minute: int) -> list[tuple[Position, Player]]:
        court: list[tuple[Position, Player]] = []
        for position in POSITIONS:
            player_id = self.timeline[position][minute]
            player = self.team.player(player_id)
            if player is None:
                raise MissingPlayerError(player_id, self.team.team_id)
            court.append((position, player))
        return court

    def credit(self, player: Player, stat: str, amount: int = 1) -> None:
        self.box.setdefault(player.player_id, Counter())[stat] += amount


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _avg(values: list[float], fallback: float = 50.0) -> float:
    if not values:
        return fallback
    return sum(values) / len(values)


def _choose_weighted(
    players: list[tuple[Position, Player]],
    weights: list[float],
    rng: random.Random,
) -> tuple[Position, Player]:
    if not players:
        raise ValueError("No players available for weighted selection.")
    return rng.choices(players, weights=[max(0.1, w) for w in weights], k=1)[0]


def _roll(rng: random.Random, chance_pct: float) -> bool:
    return rng.random() * 100 < chance_pct


def build_timeline(team: Team) -> dict[Position, list[str]]:
    """Lay out each position's 48 minutes across the two halves.

    Every player gets exactly the minutes the rotation allots. Starters open
    both halves and reserves follow in depth order. Without a rotation the
    starting lineup plays the whole game.
    """
    if team.rotation is None:
        if len(team.starting_lineup) != STARTERS:
            raise RotationRejected(team.team_id, [f"Starting lineup needs exactly {STARTERS} players"])
        for player_id in team.starting_lineup:
            if team.player(player_id) is None:
                raise MissingPlayerError(player_id, f"{team.team_id} starting lineup")
        assigned = lineup_positions(team.starters)
        return {pos: [assigned[pos].player_id] * GAME_MINUTES for pos in POSITIONS}

    violations = validate(team.rotation, team.roster)
    if violations:
        raise RotationRejected(team.team_id, violations)

    timeline: dict[Position, list[str]] = {}
    for position in POSITIONS:
        allotted = [
            (entry.player_id, team.rotation.minutes_for(entry.player_id))
            for entry in team.rotation.entries_at(position)
            if team.rotation.minutes_for(entry.player_id) > 0
        ]
        first_half = [minutes // 2 for _pid, minutes in allotted]
        short = HALF_MINUTES - sum(first_half)
        for idx, (_pid, minutes) in enumerate(allotted):
            if short <= 0:
                break
            if minutes % 2:
                first_half[idx] += 1
                short -= 1
        second_half = [minutes - first for (_pid, minutes), first in zip(allotted, first_half)]
        slots: list[str] = []
        for half in (first_half, second_half):
            for (player_id, _minutes), share in zip(allotted, half):
                slots.extend([player_id] * share)
        timeline[position] = slots
    return timeline


def _shoot(
    offense: _Side,
    defense: _Side,
    lineup: list[tuple[Position, Player]],
    defenders: list[tuple[Position, Player]],
    rng: random.Random,
) -> bool:
    """Resolve one shot; returns True when the offense keeps the ball."""
    avg_def = _avg([p.defense for _pos, p in defenders])
    shooter_pos, shooter = _choose_weighted(
        lineup,
        [(p.shooting + p.three_point) * gameplay_modifier(p.role, "shot_attempt") for _pos, p in lineup],
        rng,
    )
    three_chance = (25 + 0.25 * shooter.three_point) * THREE_ATTEMPT_BY_POSITION.get(shooter_pos, 1.0)
    three_chance *= gameplay_modifier(shooter.role, "three_point_attempt")
    three_chance /= max(0.5, gameplay_modifier(shooter.role, "post_attempt"))
    is_three = _roll(rng, _clamp(three_chance, 0, 60))

    if _roll(rng, _clamp(12 + avg_def / 100 * 3, 8, 20)):
        _fouler_pos, fouler = _choose_weighted(defenders, [p.defense for _pos, p in defenders], rng)
        defense.credit(fouler, "fouls")
        ft_chance = _clamp(70 + shooter.shooting / 100 * 15, 60, 90)
        for _ in range(3 if is_three else 2):
            offense.credit(shooter, "free_throws_attempted")
            if _roll(rng, ft_chance):
                offense.credit(shooter, "free_throws_made")
                offense.credit(shooter, "points")
                offense.score += 1
        return False

    offense.credit(shooter, "field_goals_attempted")
    if is_three:
        offense.credit(shooter, "three_pointers_attempted")

    blocker_pos, blocker = _choose_weighted(
        defenders,
        [p.blocks * BLOCK_BY_POSITION.get(pos, 1.0) * gameplay_modifier(p.role, "block") for pos, p in defenders],
        rng,
    )
    if is_three:
        block_chance = 2.0
    else:
        block_chance = (6 + blocker.blocks / 100 * 8) * BLOCK_BY_POSITION.get(blocker_pos, 1.0)
        block_chance = _clamp(block_chance, 3, 18)

    if _roll(rng, block_chance):
        defense.credit(blocker, "blocks")
    else:
        if is_three:
            make_chance = _clamp(35 + shooter.three_point / 100 * 10 - avg_def / 100 * 5, 20, 70)
        else:
            make_chance = _clamp(45 + shooter.shooting / 100 * 15 - avg_def / 100 * 7, 20, 70)
        if _roll(rng, make_chance):
            points = 3 if is_three else 2
            offense.credit(shooter, "field_goals_made")
            if is_three:
                offense.credit(shooter, "three_pointers_made")
            offense.credit(shooter, "points", points)
            offense.score += points
            teammates = [(pos, p) for pos, p in lineup if p.player_id != shooter.player_id]
            if teammates:
                _passer_pos, passer = _choose_weighted(
                    teammates,
                    [
                        p.passing * ASSIST_BY_POSITION.get(pos, 1.0) * gameplay_modifier(p.role, "assist")
                        for pos, p in teammates
                    ],
                    rng,
                )
                if _roll(rng, _clamp(50 + passer.passing / 100 * 20, 0, 90)):
                    offense.credit(passer, "assists")
            return False

    off_reb = _avg([p.rebounding for _pos, p in lineup])
    def_reb = _avg([p.rebounding for _pos, p in defenders])
    if _roll(rng, _clamp(25 + off_reb / 100 * 15 - def_reb / 100 * 10, 15, 40)):
        _pos, rebounder = _choose_weighted(
            lineup,
            [p.rebounding * REBOUND_BY_POSITION.get(pos, 1.0) * gameplay_modifier(p.role, "rebound") for pos, p in lineup],
            rng,
        )
        offense.credit(rebounder, "rebounds")
        offense.credit(rebounder, "offensive_rebounds")
        return True
    _pos, rebounder = _choose_weighted(
        defenders,
        [p.rebounding * REBOUND_BY_POSITION.get(pos, 1.0) * gameplay_modifier(p.role, "rebound") for pos, p in defenders],
        rng,
    )
    defense.credit(rebounder, "rebounds")
    return False


def _possession(
    offense: _Side,
    defense: _Side,
    lineup: list[tuple[Position, Player]],
    defenders: list[tuple[Position, Player]],
    rng: random.Random,
) -> None:
    _handler_pos, handler = _choose_weighted(
        lineup,
        [p.ball_handling * HANDLER_BY_POSITION.get(pos, 1.0) for pos, p in lineup],
        rng,
    )
    _stealer_pos, stealer = _choose_weighted(
        defenders,
        [p.steals * gameplay_modifier(p.role, "steal") for _pos, p in defenders],
        rng,
    )
    steal_chance = (8 + stealer.defense / 100 * 5 - handler.ball_handling / 100 * 4) * gameplay_modifier(
        stealer.role, "steal"
    )
    if _roll(rng, _clamp(steal_chance, 2, 15)):
        offense.credit(handler, "turnovers")
        defense.credit(stealer, "steals")
        return
    if _roll(rng, _clamp(15 - handler.ball_handling / 100 * 10, 3, 20)):
        offense.credit(handler, "turnovers")
        return
    for _ in range(MAX_SHOTS_PER_POSSESSION):
        if not _shoot(offense, defense, lineup, defenders, rng):
            return


def _box_score(side: _Side, overtime_periods: int) -> dict[str, PlayerGameStats]:
    minutes: Counter[str] = Counter()
    for slots in side.timeline.values():
        minutes.update(slots)
    for _pos, player in side.starters():
        minutes[player.player_id] += OVERTIME_MINUTES * overtime_periods
    box: dict[str, PlayerGameStats] = {}
    for player in side.team.roster:
        played = minutes.get(player.player_id, 0)
        if played <= 0:
            continue
        counts = side.box.get(player.player_id, Counter())
        box[player.player_id] = PlayerGameStats(minutes=played, **counts)
    return box


def simulate_game(
    home: Team,
    away: Team,
    rng: random.Random | None = None,
    game: Game | None = None,
    series: PlayoffSeries | None = None,
) -> Game:
    """Play one game and return it with scores and a full box score.

    With ``series``, home court follows the series pattern regardless of the
    order the teams are passed in, and the game is tagged as a playoff game.
    """
    rng = rng or random.Random()
    if home.team_id == away.team_id:
        raise InvalidStateTransition(f"{home.team_id} cannot play itself.")

    game_number = 0
    if series is not None:
        if {home.team_id, away.team_id} != {series.home_team_id, series.away_team_id}:
            raise InvalidStateTransition(f"{home.team_id} vs {away.team_id} is not series {series.series_id}.")
        if series.is_complete:
            raise InvalidStateTransition(f"Series {series.series_id} is already decided.")
        game_number = series.games_played + 1
        if home.team_id != series_home_team(series, game_number):
            home, away = away, home
    if game is not None:
        if game.is_played:
            raise InvalidStateTransition(f"Game {game.game_id} has already been played.")
        if (game.home_team_id, game.away_team_id) != (home.team_id, away.team_id):
            raise InvalidStateTransition(f"Game {game.game_id} is not {home.team_id} vs {away.team_id}.")

    home_side = _Side(home, build_timeline(home))
    away_side = _Side(away, build_timeline(away))

    total = rng.randint(*POSSESSIONS_RANGE)
    home_first = rng.random() < 0.5
    for idx in range(total):
        minute = min(GAME_MINUTES - 1, idx * GAME_MINUTES // total)
        home_ball = (idx % 2 == 0) == home_first
        offense, defense = (home_side, away_side) if home_ball else (away_side, home_side)
        _possession(offense, defense, offense.on_court(minute), defense.on_court(minute), rng)

    overtime_periods = 0
    while home_side.score == away_side.score:
        overtime_periods += 1
        for idx in range(rng.randint(*OVERTIME_POSSESSIONS_RANGE)):
            home_ball = (idx % 2 == 0) == home_first
            offense, defense = (home_side, away_side) if home_ball else (away_side, home_side)
            _possession(offense, defense, offense.starters(), defense.starters(), rng)

    box_score = {**_box_score(home_side, overtime_periods), **_box_score(away_side, overtime_periods)}
    if series is not None:
        game_id = game.game_id if game is not None else f"{series.series_id}-g{game_number}"
    elif game is not None:
        game_id = game.game_id
    else:
        game_id = f"{home.team_id}-{away.team_id}-exhibition"
    logger.debug(
        "%s: %s %d, %s %d%s",
        game_id,
        home.team_id,
        home_side.score,
        away.team_id,
        away_side.score,
        f" ({overtime_periods}OT)" if overtime_periods else "",
    )
    return Game(
        game_id=game_id,
        home_team_id=home.team_id,
        away_team_id=away.team_id,
        day=game.day if game is not None else 0,
        scheduled_date=game.scheduled_date if game is not None else None,
        is_played=True,
        home_score=home_side.score,
        away_score=away_side.score,
        box_score=box_score,
        overtime_periods=overtime_periods,
        is_playoff=series is not None,
        series_id=series.series_id if series is not None else None,
    )
