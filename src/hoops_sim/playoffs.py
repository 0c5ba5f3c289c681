"""Playoff seeding and the bracket state machine.

Rounds run strictly in order: play-in, first round, conference semifinals,
conference finals, finals, complete. Every function here takes a bracket and
returns a new one; nothing is mutated in place.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterable

from .config import (
    MIN_QUALIFIERS_FOR_PLAY_IN,
    PLAY_IN_GAMES,
    PLAY_IN_WINS,
    PLAYOFF_TEAMS_PER_CONFERENCE,
    SERIES_HOME_PATTERN,
    SERIES_WINS,
)
from .errors import ConfigurationError, InvalidStateTransition
from .models import (
    CONFERENCE_ROUNDS,
    BracketBye,
    Game,
    PlayoffBracket,
    PlayoffRound,
    PlayoffSeries,
    TeamStanding,
)

logger = logging.getLogger(__name__)

_ROUND_FIELDS = {
    PlayoffRound.PLAY_IN: "play_in",
    PlayoffRound.FIRST_ROUND: "first_round",
    PlayoffRound.CONF_SEMIS: "conf_semis",
    PlayoffRound.CONF_FINALS: "conf_finals",
}


def _slug(text: str) -> str:
    return "-".join(text.lower().split())


def bracket_order(size: int) -> list[int]:
    """Seed order down the bracket, e.g. 8 -> [1, 8, 4, 5, 2, 7, 3, 6]."""
    order = [1]
    while len(order) < size:
        total = len(order) * 2 + 1
        order = [seed for top in order for seed in (top, total - top)]
    return order


def _bracket_size(qualifiers: int) -> int:
    size = 1
    while size < qualifiers:
        size *= 2
    return size


def series_home_team(series: PlayoffSeries, game_number: int) -> str:
    """Higher seed hosts games 1, 2, 5 and 7 (2-2-1-1-1)."""
    hosts_higher = SERIES_HOME_PATTERN[min(game_number - 1, len(SERIES_HOME_PATTERN) - 1)]
    return series.home_team_id if hosts_higher else series.away_team_id


def _series(
    bracket_id: str,
    round_: PlayoffRound,
    conference: str | None,
    slot: int,
    high: tuple[str, int],
    low: tuple[str, int],
    wins_needed: int = SERIES_WINS,
) -> PlayoffSeries:
    conf_part = f"-{_slug(conference)}" if conference else ""
    return PlayoffSeries(
        series_id=f"{bracket_id}-{round_.value}{conf_part}-{slot + 1}",
        round=round_,
        conference=conference,
        slot=slot,
        home_team_id=high[0],
        away_team_id=low[0],
        home_seed=high[1],
        away_seed=low[1],
        wins_needed=wins_needed,
    )


def seed(
    standings: Iterable[TeamStanding],
    season_id: str,
    playoff_teams: int = PLAYOFF_TEAMS_PER_CONFERENCE,
    play_in: bool = True,
) -> PlayoffBracket:
    """Rank each conference and build the opening round of the bracket.

    Seeds use ``TeamStanding.sort_key`` (wins, then win percentage, then team
    name), the same ordering as the standings table. When a conference has at
    least ``playoff_teams + 2`` teams and ``playoff_teams`` is at least
    ``MIN_QUALIFIERS_FOR_PLAY_IN``, seeds ``playoff_teams - 1`` through
    ``playoff_teams + 2`` go through the play-in first.
    """
    if not 1 <= playoff_teams <= PLAYOFF_TEAMS_PER_CONFERENCE:
        raise ConfigurationError(
            f"Playoff teams per conference must be between 1 and {PLAYOFF_TEAMS_PER_CONFERENCE}."
        )
    rows = sorted(standings, key=lambda row: row.sort_key)
    if not rows:
        raise ConfigurationError("Cannot seed playoffs without standings.")

    by_conference: dict[str, list[TeamStanding]] = {}
    for row in rows:
        by_conference.setdefault(row.conference, []).append(row)
    if len(by_conference) > 2:
        raise ConfigurationError("Playoff brackets support one or two conferences.")

    seedings: dict[str, int] = {}
    conferences: dict[str, str] = {}
    qualifiers: dict[str, int] = {}
    for conf, conf_rows in by_conference.items():
        for seed_no, row in enumerate(conf_rows, start=1):
            seedings[row.team_id] = seed_no
            conferences[row.team_id] = conf
        qualifiers[conf] = min(playoff_teams, len(conf_rows))

    rounds_needed = _bracket_size(max(qualifiers.values())).bit_length() - 1
    conference_rounds = CONFERENCE_ROUNDS[len(CONFERENCE_ROUNDS) - rounds_needed:] if rounds_needed else ()

    bracket = PlayoffBracket(
        season_id=season_id,
        seedings=seedings,
        conferences=conferences,
        league_rank={row.team_id: idx for idx, row in enumerate(rows, start=1)},
        qualifiers=qualifiers,
        current_round=PlayoffRound.PLAY_IN,
        conference_rounds=conference_rounds,
    )

    play_in_series: list[PlayoffSeries] = []
    if play_in:
        for conf in sorted(by_conference):
            q = qualifiers[conf]
            if q < MIN_QUALIFIERS_FOR_PLAY_IN or len(by_conference[conf]) < q + 2:
                continue
            by_seed = {seedings[t]: t for t, c in conferences.items() if c == conf}
            play_in_series.append(
                _series(season_id, PlayoffRound.PLAY_IN, conf, 0, (by_seed[q - 1], q - 1), (by_seed[q], q), PLAY_IN_WINS)
            )
            play_in_series.append(
                _series(season_id, PlayoffRound.PLAY_IN, conf, 1, (by_seed[q + 1], q + 1), (by_seed[q + 2], q + 2), PLAY_IN_WINS)
            )

    if play_in_series:
        logger.info("Seeded %s with a %d-game play-in", season_id, len(play_in_series))
        return replace(bracket, play_in=tuple(play_in_series))
    logger.info("Seeded %s without a play-in", season_id)
    return _enter_round(bracket, _rounds_after(bracket, PlayoffRound.PLAY_IN)[0])


def _rounds_after(bracket: PlayoffBracket, round_: PlayoffRound) -> list[PlayoffRound]:
    sequence = [PlayoffRound.PLAY_IN, *bracket.conference_rounds, PlayoffRound.FINALS, PlayoffRound.COMPLETE]
    return sequence[sequence.index(round_) + 1:]


def _conference_teams_by_seed(bracket: PlayoffBracket, conference: str) -> dict[int, str]:
    return {s: t for t, s in bracket.seedings.items() if bracket.conferences.get(t) == conference}


def _round_entrants(bracket: PlayoffBracket, round_: PlayoffRound) -> dict[str, list[tuple[str, int] | None]]:
    """Teams entering ``round_`` per conference, in bracket-slot order."""
    entrants: dict[str, list[tuple[str, int] | None]] = {}
    round_idx = bracket.conference_rounds.index(round_)
    if round_idx == 0:
        for conf, q in sorted(bracket.qualifiers.items()):
            by_seed = _conference_teams_by_seed(bracket, conf)
            order = bracket_order(2 ** len(bracket.conference_rounds))
            entrants[conf] = [(by_seed[s], s) if s <= q else None for s in order]
        return entrants

    previous = bracket.conference_rounds[round_idx - 1]
    for conf in sorted(bracket.qualifiers):
        size = 2 ** (len(bracket.conference_rounds) - round_idx + 1)
        slots: list[tuple[str, int] | None] = [None] * (size // 2)
        for series in bracket.series_for_round(previous):
            if series.conference == conf and series.winner_id is not None:
                slots[series.slot] = (series.winner_id, bracket.seedings[series.winner_id])
        for bye in bracket.byes:
            if bye.round == previous and bye.conference == conf:
                slots[bye.slot] = (bye.team_id, bye.seed)
        entrants[conf] = slots
    return entrants


def _conference_champions(bracket: PlayoffBracket) -> list[str]:
    champions: list[str] = []
    for conf in sorted(bracket.qualifiers):
        if not bracket.conference_rounds:
            champions.append(_conference_teams_by_seed(bracket, conf)[1])
            continue
        last = bracket.conference_rounds[-1]
        for series in bracket.series_for_round(last):
            if series.conference == conf and series.winner_id is not None:
                champions.append(series.winner_id)
        for bye in bracket.byes:
            if bye.round == last and bye.conference == conf:
                champions.append(bye.team_id)
    return champions


def _enter_round(bracket: PlayoffBracket, round_: PlayoffRound) -> PlayoffBracket:
    if round_ == PlayoffRound.COMPLETE:
        champions = _conference_champions(bracket)
        champion = bracket.finals.winner_id if bracket.finals is not None else (champions[0] if champions else None)
        logger.info("Playoffs %s complete; champion %s", bracket.season_id, champion)
        return replace(bracket, current_round=PlayoffRound.COMPLETE, champion_id=champion)

    if round_ == PlayoffRound.FINALS:
        champions = _conference_champions(bracket)
        if len(champions) < 2:
            return _enter_round(bracket, PlayoffRound.COMPLETE)
        high, low = sorted(champions, key=lambda team_id: bracket.league_rank[team_id])
        finals = _series(
            bracket.season_id,
            PlayoffRound.FINALS,
            None,
            0,
            (high, bracket.seedings[high]),
            (low, bracket.seedings[low]),
        )
        logger.info("Finals set: %s vs %s", high, low)
        return replace(bracket, finals=finals, current_round=PlayoffRound.FINALS)

    created: list[PlayoffSeries] = []
    byes: list[BracketBye] = []
    for conf, slots in _round_entrants(bracket, round_).items():
        for slot in range(len(slots) // 2):
            a, b = slots[2 * slot], slots[2 * slot + 1]
            if a is not None and b is not None:
                high, low = (a, b) if a[1] < b[1] else (b, a)
                created.append(_series(bracket.season_id, round_, conf, slot, high, low))
            elif a is not None or b is not None:
                lone = a if a is not None else b
                if lone is not None:
                    byes.append(BracketBye(lone[0], conf, round_, slot, lone[1]))

    bracket = replace(
        bracket,
        **{_ROUND_FIELDS[round_]: tuple(created)},
        byes=bracket.byes + tuple(byes),
        current_round=round_,
    )
    if not created:
        # Only byes: nobody plays this round.
        return _enter_round(bracket, _rounds_after(bracket, round_)[0])
    logger.info("Entered %s with %d series and %d byes", round_.value, len(created), len(byes))
    return bracket


def get_user_team_series(bracket: PlayoffBracket, team_id: str) -> PlayoffSeries | None:
    """The series in the current round involving ``team_id``, preferring one still in progress."""
    found: PlayoffSeries | None = None
    for series in bracket.active_series:
        if series.involves(team_id):
            if not series.is_complete:
                return series
            found = series
    return found


def update_series_with_result(series: PlayoffSeries, game: Game) -> PlayoffSeries:
    if series.is_complete:
        raise InvalidStateTransition(f"Series {series.series_id} is already decided.")
    if not game.is_played or game.winner_id is None:
        raise InvalidStateTransition(f"Game {game.game_id} has not been played.")
    if {game.home_team_id, game.away_team_id} != {series.home_team_id, series.away_team_id}:
        raise InvalidStateTransition(f"Game {game.game_id} does not belong to series {series.series_id}.")
    if game.series_id is not None and game.series_id != series.series_id:
        raise InvalidStateTransition(f"Game {game.game_id} is tagged for series {game.series_id}.")
    if game.game_id in series.game_ids:
        raise InvalidStateTransition(f"Game {game.game_id} was already counted in {series.series_id}.")

    home_wins = series.home_wins + (1 if game.winner_id == series.home_team_id else 0)
    away_wins = series.away_wins + (1 if game.winner_id == series.away_team_id else 0)
    winner_id = None
    if home_wins >= series.wins_needed:
        winner_id = series.home_team_id
    elif away_wins >= series.wins_needed:
        winner_id = series.away_team_id
    return replace(
        series,
        home_wins=home_wins,
        away_wins=away_wins,
        winner_id=winner_id,
        game_ids=(*series.game_ids, game.game_id),
    )


def _with_series(bracket: PlayoffBracket, updated: PlayoffSeries) -> PlayoffBracket:
    if updated.round == PlayoffRound.FINALS:
        return replace(bracket, finals=updated)
    field_name = _ROUND_FIELDS[updated.round]
    current = getattr(bracket, field_name)
    return replace(
        bracket,
        **{field_name: tuple(updated if s.series_id == updated.series_id else s for s in current)},
    )


def _play_in_decider(bracket: PlayoffBracket, conference: str) -> PlayoffBracket:
    games = {s.slot: s for s in bracket.play_in if s.conference == conference}
    if 2 in games or not (0 in games and 1 in games):
        return bracket
    upper, lower = games[0], games[1]
    if not (upper.is_complete and lower.is_complete):
        return bracket
    if upper.loser_id is None or lower.winner_id is None:
        return bracket
    decider = _series(
        bracket.season_id,
        PlayoffRound.PLAY_IN,
        conference,
        2,
        (upper.loser_id, bracket.seedings[upper.loser_id]),
        (lower.winner_id, bracket.seedings[lower.winner_id]),
        PLAY_IN_WINS,
    )
    logger.info("Play-in decider for %s: %s vs %s", conference, upper.loser_id, lower.winner_id)
    return replace(bracket, play_in=bracket.play_in + (decider,))


def record_result(bracket: PlayoffBracket, game: Game) -> PlayoffBracket:
    """Apply a played game to its series in the current round."""
    if bracket.current_round == PlayoffRound.COMPLETE:
        raise InvalidStateTransition("The playoffs are already complete.")
    series = next((s for s in bracket.active_series if s.series_id == game.series_id), None)
    if series is None:
        raise InvalidStateTransition(
            f"Game {game.game_id} does not belong to a {bracket.current_round.value} series."
        )
    updated = update_series_with_result(series, game)
    bracket = _with_series(bracket, updated)
    if updated.is_complete:
        logger.info("%s: %s wins %s", updated.round.value, updated.winner_id, updated.series_id)
        if updated.round == PlayoffRound.PLAY_IN and updated.conference is not None:
            bracket = _play_in_decider(bracket, updated.conference)
    return bracket


def is_round_complete(bracket: PlayoffBracket) -> bool:
    if bracket.current_round == PlayoffRound.COMPLETE:
        return True
    series = bracket.active_series
    if not series:
        return False
    if bracket.current_round == PlayoffRound.PLAY_IN:
        for conf in {s.conference for s in series}:
            if sum(1 for s in series if s.conference == conf) < PLAY_IN_GAMES:
                return False
    return all(s.is_complete for s in series)


def _resolve_play_in(bracket: PlayoffBracket) -> PlayoffBracket:
    seedings = dict(bracket.seedings)
    for conf in sorted({s.conference for s in bracket.play_in if s.conference}):
        games = {s.slot: s for s in bracket.play_in if s.conference == conf}
        q = bracket.qualifiers[conf]
        seventh = games[0].winner_id
        eighth = games[2].winner_id
        field = sorted(
            {games[0].home_team_id, games[0].away_team_id, games[1].home_team_id, games[1].away_team_id},
            key=lambda team_id: bracket.seedings[team_id],
        )
        out = [team_id for team_id in field if team_id not in (seventh, eighth)]
        for team_id, new_seed in zip([seventh, eighth, *out], range(q - 1, q + 3)):
            if team_id is not None:
                seedings[team_id] = new_seed
    return replace(bracket, seedings=seedings)


def advance_round(bracket: PlayoffBracket) -> PlayoffBracket:
    """Move to the next round once every series in the current one is decided.

    Calling this on an unfinished round returns the bracket unchanged.
    """
    if bracket.current_round == PlayoffRound.COMPLETE:
        return bracket
    if not is_round_complete(bracket):
        logger.warning("Round %s is not complete; bracket left unchanged", bracket.current_round.value)
        return bracket
    if bracket.current_round == PlayoffRound.PLAY_IN:
        bracket = _resolve_play_in(bracket)
    return _enter_round(bracket, _rounds_after(bracket, bracket.current_round)[0])


def is_eliminated(bracket: PlayoffBracket, team_id: str) -> bool:
    conference = bracket.conferences.get(team_id)
    if conference is None:
        return True
    if any(s.loser_id == team_id for s in bracket.all_series if s.round != PlayoffRound.PLAY_IN):
        return True
    if bracket.current_round == PlayoffRound.PLAY_IN:
        entries = [s for s in bracket.play_in if s.involves(team_id)]
        if entries:
            # Losing the 7/8 game still leaves the decider.
            return any(s.loser_id == team_id and s.slot != 0 for s in entries)
    return bracket.seedings[team_id] > bracket.qualifiers[conference]
