import pytest

from hoops_sim.models import PlayerGameStats
from hoops_sim.stats import PlayerPlayoffStats, PlayerSeasonStats, fold_box_score, leaders


def _line(points: int, fgm: int, fga: int, minutes: int = 30) -> PlayerGameStats:
    return PlayerGameStats(points=points, field_goals_made=fgm, field_goals_attempted=fga, minutes=minutes, rebounds=5)


def test_fold_accumulates_raw_totals() -> None:
    totals = fold_box_score({}, {"p1": _line(20, 8, 15)}, team_ids={"p1": "BOS"})
    totals = fold_box_score(totals, {"p1": _line(11, 4, 10)})
    row = totals["p1"]
    assert row.games_played == 2
    assert row.points == 31
    assert row.team_id == "BOS"
    assert row.points_per_game == pytest.approx(15.5)
    assert row.fg_pct == pytest.approx(12 / 25 * 100)
    assert row.rebounds_per_game == pytest.approx(5.0)


def test_rates_are_computed_from_totals_not_averaged() -> None:
    totals = fold_box_score({}, {"p1": _line(10, 1, 1)})
    totals = fold_box_score(totals, {"p1": _line(0, 0, 9)})
    # Averaging the two game percentages would give 50%.
    assert totals["p1"].fg_pct == pytest.approx(10.0)


def test_folding_the_same_box_score_twice_is_observable() -> None:
    box = {"p1": _line(20, 8, 15)}
    once = fold_box_score({}, box)
    twice = fold_box_score(once, box)
    assert once["p1"].games_played == 1
    assert twice["p1"].games_played == 2


def test_player_filter_limits_tracked_players() -> None:
    box = {"mine": _line(12, 5, 9), "theirs": _line(30, 12, 20)}
    totals = fold_box_score({}, box, player_ids={"mine"})
    assert set(totals) == {"mine"}


def test_input_totals_are_not_mutated() -> None:
    start = {"p1": PlayerSeasonStats(player_id="p1", games_played=1, points=9)}
    fold_box_score(start, {"p1": _line(20, 8, 15)})
    assert start["p1"].points == 9


def test_playoff_ledger_uses_its_own_type() -> None:
    totals = fold_box_score({}, {"p1": _line(20, 8, 15)}, stat_type=PlayerPlayoffStats)
    assert isinstance(totals["p1"], PlayerPlayoffStats)


def test_empty_totals_report_zero_rates() -> None:
    row = PlayerSeasonStats(player_id="p1")
    assert row.points_per_game == 0.0
    assert row.fg_pct == 0.0
    assert row.three_pct == 0.0
    assert row.ft_pct == 0.0


def test_leaders_sort_by_per_game_rate() -> None:
    totals = {
        "a": PlayerSeasonStats(player_id="a", games_played=10, points=200),
        "b": PlayerSeasonStats(player_id="b", games_played=2, points=60),
        "c": PlayerSeasonStats(player_id="c", games_played=0),
    }
    assert [row.player_id for row in leaders(totals, "points")] == ["b", "a"]
    assert [row.player_id for row in leaders(totals, "points", min_games=5)] == ["a"]
    assert len(leaders(totals, "points", limit=1)) == 1
    with pytest.raises(ValueError):
        leaders(totals, "dunks")

