import random
from dataclasses import replace
from statistics import mean

import pytest

from hoops_sim.app import build_default_teams
from hoops_sim.engine import build_timeline, simulate_game
from hoops_sim.errors import InvalidStateTransition, MissingPlayerError, RotationRejected
from hoops_sim.models import Game, PlayoffRound, PlayoffSeries, Team
from hoops_sim.playoffs import series_home_team


def _mirror(team: Team, team_id: str) -> Team:
    """Same players and rotation under new ids, so both sides are identical."""
    id_map = {p.player_id: f"{team_id}-{idx}" for idx, p in enumerate(team.roster)}
    rotation = team.rotation
    assert rotation is not None
    return replace(
        team,
        team_id=team_id,
        roster=tuple(replace(p, player_id=id_map[p.player_id]) for p in team.roster),
        starting_lineup=tuple(id_map[pid] for pid in team.starting_lineup),
        rotation=replace(
            rotation,
            player_minutes={id_map[pid]: minutes for pid, minutes in rotation.player_minutes.items()},
            depth_chart=tuple(replace(e, player_id=id_map[e.player_id]) for e in rotation.depth_chart),
        ),
    )


@pytest.fixture(scope="module")
def twins() -> tuple[Team, Team]:
    base = build_default_teams()[0]
    return _mirror(base, "HOM"), _mirror(base, "AWY")


def test_identical_teams_produce_realistic_scores(twins) -> None:
    home, away = twins
    rng = random.Random(42)
    scores: list[int] = []
    for _ in range(40):
        game = simulate_game(home, away, rng=rng)
        assert game.is_played
        assert game.home_score != game.away_score
        scores.extend([game.home_score, game.away_score])
    assert min(scores) > 0
    assert 90 <= mean(scores) <= 130


def test_box_score_is_internally_consistent(twins) -> None:
    home, away = twins
    rng = random.Random(7)
    for _ in range(15):
        game = simulate_game(home, away, rng=rng)
        for team, score in ((home, game.home_score), (away, game.away_score)):
            lines = [game.box_score[pid] for pid in team.player_ids if pid in game.box_score]
            assert sum(line.points for line in lines) == score
            assert sum(line.minutes for line in lines) == 240 + 25 * game.overtime_periods
            for line in lines:
                assert line.field_goals_made <= line.field_goals_attempted
                assert line.three_pointers_made <= line.three_pointers_attempted
                assert line.three_pointers_attempted <= line.field_goals_attempted
                assert line.free_throws_made <= line.free_throws_attempted
                assert line.offensive_rebounds <= line.rebounds
                assert line.points == (
                    2 * line.field_goals_made + line.three_pointers_made + line.free_throws_made
                )


def test_minutes_follow_the_rotation(twins) -> None:
    home, away = twins
    rng = random.Random(3)
    game = simulate_game(home, away, rng=rng)
    while game.overtime_periods:
        game = simulate_game(home, away, rng=rng)
    assert home.rotation is not None
    for player_id, minutes in home.rotation.player_minutes.items():
        if minutes == 0:
            assert player_id not in game.box_score
        else:
            assert game.box_score[player_id].minutes == minutes


def test_same_seed_same_game(twins) -> None:
    home, away = twins
    first = simulate_game(home, away, rng=random.Random("seed"))
    second = simulate_game(home, away, rng=random.Random("seed"))
    assert (first.home_score, first.away_score) == (second.home_score, second.away_score)
    assert first.box_score == second.box_score


def test_scheduled_game_keeps_its_identity(twins) -> None:
    home, away = twins
    scheduled = Game(game_id="s-g0001", home_team_id="HOM", away_team_id="AWY", day=4)
    played = simulate_game(home, away, rng=random.Random(1), game=scheduled)
    assert played.game_id == "s-g0001"
    assert played.day == 4
    assert not played.is_playoff
    with pytest.raises(InvalidStateTransition):
        simulate_game(home, away, rng=random.Random(1), game=played)
    with pytest.raises(InvalidStateTransition):
        simulate_game(away, home, rng=random.Random(1), game=scheduled)


def test_team_cannot_play_itself(twins) -> None:
    home, _away = twins
    with pytest.raises(InvalidStateTransition):
        simulate_game(home, home)


def test_series_games_follow_home_pattern(twins) -> None:
    high, low = twins
    series = PlayoffSeries(
        series_id="s-first-round-east-1",
        round=PlayoffRound.FIRST_ROUND,
        home_team_id="HOM",
        away_team_id="AWY",
        conference="East",
        home_seed=1,
        away_seed=8,
    )
    expected = ["HOM", "HOM", "AWY", "AWY", "HOM", "AWY", "HOM"]
    assert [series_home_team(series, n) for n in range(1, 8)] == expected

    series = replace(series, home_wins=1, away_wins=1, game_ids=("a", "b"))
    game = simulate_game(high, low, rng=random.Random(9), series=series)
    assert game.home_team_id == "AWY"
    assert game.is_playoff
    assert game.series_id == series.series_id
    assert game.game_id == f"{series.series_id}-g3"


def test_series_context_rejects_wrong_or_finished_series(twins) -> None:
    home, away = twins
    series = PlayoffSeries(
        series_id="x",
        round=PlayoffRound.FINALS,
        home_team_id="HOM",
        away_team_id="OTHER",
    )
    with pytest.raises(InvalidStateTransition):
        simulate_game(home, away, series=series)
    done = PlayoffSeries(
        series_id="y",
        round=PlayoffRound.FINALS,
        home_team_id="HOM",
        away_team_id="AWY",
        home_wins=4,
        winner_id="HOM",
    )
    with pytest.raises(InvalidStateTransition):
        simulate_game(home, away, series=done)


def test_lineup_only_team_plays_starters_all_game(twins) -> None:
    home, away = twins
    lineup_only = replace(home, rotation=None)
    game = simulate_game(lineup_only, away, rng=random.Random(5))
    home_lines = {pid: line for pid, line in game.box_score.items() if pid in home.player_ids}
    assert set(home_lines) == set(home.starting_lineup)
    for line in home_lines.values():
        assert line.minutes == 48 + 5 * game.overtime_periods


def test_invalid_rotation_is_rejected_before_tipoff(twins) -> None:
    home, away = twins
    assert home.rotation is not None
    broken = replace(home, rotation=replace(home.rotation, rotation_size=10))
    with pytest.raises(RotationRejected) as excinfo:
        simulate_game(broken, away)
    assert excinfo.value.violations


def test_lineup_with_unknown_player_is_a_missing_reference(twins) -> None:
    home, _away = twins
    broken = replace(home, rotation=None, starting_lineup=home.starting_lineup[:4] + ("nobody",))
    with pytest.raises(MissingPlayerError):
        build_timeline(broken)


def test_minutes_for_a_player_off_the_depth_chart_stop_the_game(twins) -> None:
    home, away = twins
    rotation = home.rotation
    assert rotation is not None
    bench_id = next(p.player_id for p in home.roster if p.player_id not in rotation.active_ids)
    padded = replace(
        rotation,
        player_minutes=dict(rotation.player_minutes, **{bench_id: 20}),
        rotation_size=rotation.rotation_size + 1,
    )
    with pytest.raises(RotationRejected) as excinfo:
        simulate_game(replace(home, rotation=padded), away)
    assert f"{bench_id} has 20 minutes but no depth-chart position" in excinfo.value.violations
