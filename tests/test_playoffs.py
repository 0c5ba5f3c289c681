import pytest

from hoops_sim.errors import ConfigurationError, InvalidStateTransition
from hoops_sim.models import Game, PlayoffBracket, PlayoffRound, PlayoffSeries, TeamRecord, TeamStanding
from hoops_sim.playoffs import (
    advance_round,
    bracket_order,
    get_user_team_series,
    is_eliminated,
    is_round_complete,
    record_result,
    seed,
    series_home_team,
    update_series_with_result,
)


def _standings(conference: str, count: int, prefix: str, top_wins: int = 60) -> list[TeamStanding]:
    rows = []
    for idx in range(1, count + 1):
        team_id = f"{prefix}{idx}"
        wins = top_wins - idx
        rows.append(
            TeamStanding(team_id, f"{conference} Team {idx:02d}", conference, "Div", TeamRecord(team_id, wins, 82 - wins))
        )
    return rows


def _game(series: PlayoffSeries, winner_id: str) -> Game:
    number = series.games_played + 1
    home = series_home_team(series, number)
    away = series.away_team_id if home == series.home_team_id else series.home_team_id
    home_won = winner_id == home
    return Game(
        game_id=f"{series.series_id}-g{number}",
        home_team_id=home,
        away_team_id=away,
        is_played=True,
        home_score=101 if home_won else 95,
        away_score=95 if home_won else 101,
        is_playoff=True,
        series_id=series.series_id,
    )


def _finish(bracket: PlayoffBracket, series_id: str, winner_id: str) -> PlayoffBracket:
    series = bracket.series_by_id(series_id)
    while series is not None and not series.is_complete:
        bracket = record_result(bracket, _game(series, winner_id))
        series = bracket.series_by_id(series_id)
    return bracket


def _finish_round(bracket: PlayoffBracket, pick_high: bool = True) -> PlayoffBracket:
    # Play-in deciders appear mid-round, so keep going until nothing is open.
    while True:
        open_series = [s for s in bracket.active_series if not s.is_complete]
        if not open_series:
            return bracket
        series = open_series[0]
        winner = series.home_team_id if pick_high else series.away_team_id
        bracket = _finish(bracket, series.series_id, winner)


def test_bracket_order() -> None:
    assert bracket_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]
    assert bracket_order(4) == [1, 4, 2, 3]
    assert bracket_order(2) == [1, 2]


def test_eight_team_conference_semis_pair_by_seed() -> None:
    bracket = seed(_standings("East", 8, "E"), "s")
    assert bracket.current_round == PlayoffRound.FIRST_ROUND
    assert not bracket.play_in
    pairs = [(s.home_seed, s.away_seed) for s in bracket.first_round]
    assert pairs == [(1, 8), (4, 5), (2, 7), (3, 6)]

    bracket = _finish_round(bracket)
    assert is_round_complete(bracket)
    bracket = advance_round(bracket)
    assert bracket.current_round == PlayoffRound.CONF_SEMIS
    assert [(s.home_team_id, s.away_team_id) for s in bracket.conf_semis] == [("E1", "E4"), ("E2", "E3")]


def test_round_advance_is_monotonic_to_completion() -> None:
    bracket = seed(_standings("East", 15, "E") + _standings("West", 15, "W", top_wins=62), "s")
    seen = [bracket.current_round]
    while bracket.current_round != PlayoffRound.COMPLETE:
        bracket = _finish_round(bracket)
        advanced = advance_round(bracket)
        assert advanced.current_round.order > bracket.current_round.order
        bracket = advanced
        seen.append(bracket.current_round)
    assert seen == [
        PlayoffRound.PLAY_IN,
        PlayoffRound.FIRST_ROUND,
        PlayoffRound.CONF_SEMIS,
        PlayoffRound.CONF_FINALS,
        PlayoffRound.FINALS,
        PlayoffRound.COMPLETE,
    ]
    assert bracket.finals is not None
    # W1 has the best record in the league, so it hosts the finals and wins it here.
    assert bracket.finals.home_team_id == "W1"
    assert bracket.champion_id == "W1"
    assert advance_round(bracket) == bracket


def test_advancing_an_unfinished_round_is_a_no_op() -> None:
    bracket = seed(_standings("East", 8, "E"), "s")
    first = bracket.first_round[0]
    bracket = record_result(bracket, _game(first, first.home_team_id))
    assert not is_round_complete(bracket)
    assert advance_round(bracket) == bracket


def test_play_in_decider_and_reseeding() -> None:
    bracket = seed(_standings("East", 15, "E"), "s")
    assert bracket.current_round == PlayoffRound.PLAY_IN
    assert [(s.home_seed, s.away_seed) for s in bracket.play_in] == [(7, 8), (9, 10)]
    assert all(s.wins_needed == 1 for s in bracket.play_in)

    upper, lower = bracket.play_in
    bracket = _finish(bracket, upper.series_id, "E8")
    assert not is_round_complete(bracket)
    bracket = _finish(bracket, lower.series_id, "E9")
    assert len(bracket.play_in) == 3
    decider = bracket.play_in[2]
    assert (decider.home_team_id, decider.away_team_id) == ("E7", "E9")
    assert not is_round_complete(bracket)

    bracket = _finish(bracket, decider.series_id, "E9")
    assert is_round_complete(bracket)
    bracket = advance_round(bracket)
    assert bracket.current_round == PlayoffRound.FIRST_ROUND
    assert bracket.seedings["E8"] == 7
    assert bracket.seedings["E9"] == 8
    assert is_eliminated(bracket, "E7")
    assert is_eliminated(bracket, "E10")
    assert not is_eliminated(bracket, "E9")
    matchups = {(s.home_team_id, s.away_team_id) for s in bracket.first_round}
    assert ("E1", "E9") in matchups
    assert ("E2", "E8") in matchups


def test_byes_when_fewer_teams_qualify() -> None:
    bracket = seed(_standings("East", 6, "E"), "s", playoff_teams=6, play_in=False)
    assert bracket.current_round == PlayoffRound.FIRST_ROUND
    assert {(s.home_seed, s.away_seed) for s in bracket.first_round} == {(4, 5), (3, 6)}
    assert {b.team_id for b in bracket.byes} == {"E1", "E2"}

    bracket = advance_round(_finish_round(bracket, pick_high=False))
    assert bracket.current_round == PlayoffRound.CONF_SEMIS
    assert [(s.home_team_id, s.away_team_id) for s in bracket.conf_semis] == [("E1", "E5"), ("E2", "E6")]


def test_single_conference_completes_after_conference_finals() -> None:
    bracket = seed(_standings("East", 4, "E"), "s", playoff_teams=4)
    assert bracket.conference_rounds == (PlayoffRound.CONF_SEMIS, PlayoffRound.CONF_FINALS)
    while bracket.current_round != PlayoffRound.COMPLETE:
        bracket = advance_round(_finish_round(bracket))
    assert bracket.finals is None
    assert bracket.champion_id == "E1"


def test_series_result_bookkeeping() -> None:
    bracket = seed(_standings("East", 8, "E"), "s")
    series = bracket.first_round[0]
    game = _game(series, series.away_team_id)
    updated = update_series_with_result(series, game)
    assert (updated.home_wins, updated.away_wins) == (0, 1)
    assert updated.winner_id is None
    with pytest.raises(InvalidStateTransition):
        update_series_with_result(updated, game)

    for _ in range(3):
        updated = update_series_with_result(updated, _game(updated, updated.away_team_id))
    assert updated.winner_id == updated.away_team_id
    assert updated.status == f"{updated.away_team_id} wins 4-0"
    with pytest.raises(InvalidStateTransition):
        update_series_with_result(updated, _game(updated, updated.home_team_id))


def test_results_for_other_rounds_are_rejected() -> None:
    bracket = seed(_standings("East", 8, "E"), "s")
    stray = Game(
        game_id="stray",
        home_team_id="E1",
        away_team_id="E2",
        is_played=True,
        home_score=100,
        away_score=90,
        is_playoff=True,
        series_id="s-conf-semis-east-1",
    )
    with pytest.raises(InvalidStateTransition):
        record_result(bracket, stray)


def test_user_series_lookup() -> None:
    bracket = seed(_standings("East", 8, "E"), "s")
    series = get_user_team_series(bracket, "E5")
    assert series is not None
    assert (series.home_team_id, series.away_team_id) == ("E4", "E5")
    assert get_user_team_series(bracket, "nobody") is None


def test_seeding_rejects_bad_input() -> None:
    rows = _standings("East", 4, "E") + _standings("West", 4, "W") + _standings("Central", 4, "C")
    with pytest.raises(ConfigurationError):
        seed(rows, "s")
    with pytest.raises(ConfigurationError):
        seed([], "s")
    with pytest.raises(ConfigurationError):
        seed(_standings("East", 8, "E"), "s", playoff_teams=9)


def test_small_fields_skip_the_play_in() -> None:
    bracket = seed(_standings("East", 15, "E"), "s", playoff_teams=2)
    assert not bracket.play_in
    assert bracket.current_round != PlayoffRound.PLAY_IN
    assert [(s.home_seed, s.away_seed) for s in bracket.active_series] == [(1, 2)]


def test_play_in_covers_the_last_two_qualifying_seeds() -> None:
    bracket = seed(_standings("East", 15, "E"), "s", playoff_teams=6)
    assert [(s.home_seed, s.away_seed) for s in bracket.play_in] == [(5, 6), (7, 8)]
