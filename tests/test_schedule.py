from collections import Counter

import pytest

from hoops_sim.config import LEAGUE_TEAMS
from hoops_sim.errors import ConfigurationError
from hoops_sim.models import Team
from hoops_sim.schedule import (
    games_per_team,
    generate_schedule,
    home_games_per_team,
    league_layout,
    opponent_counts,
    plan_matchups,
    team_schedule,
)


def _league() -> list[Team]:
    return [
        Team(team_id=team_id, city=city, name=name, conference=conf, division=div)
        for team_id, city, name, conf, div in LEAGUE_TEAMS
    ]


def _mini_league() -> list[Team]:
    teams = []
    for idx in range(8):
        conference = "East" if idx < 4 else "West"
        teams.append(
            Team(team_id=f"T{idx}", city="City", name=f"Team {idx}", conference=conference, division=conference)
        )
    return teams


def _summary(games):
    return [(g.game_id, g.home_team_id, g.away_team_id, g.day) for g in games]


def test_same_seed_gives_same_schedule() -> None:
    first = generate_schedule(_league(), "BOS", seed=11)
    second = generate_schedule(_league(), "BOS", seed=11)
    assert _summary(first) == _summary(second)
    assert _summary(first) != _summary(generate_schedule(_league(), "BOS", seed=12))


def test_every_team_plays_full_season_with_even_home_split() -> None:
    games = generate_schedule(_league(), "BOS", seed=5)
    assert len(games) == 30 * 82 // 2
    assert set(games_per_team(games).values()) == {82}
    assert set(home_games_per_team(games).values()) == {41}


def test_division_rivals_meet_more_often() -> None:
    teams = _league()
    games = generate_schedule(teams, "BOS", seed=5)
    by_id = {t.team_id: t for t in teams}
    for team in teams:
        counts = opponent_counts(games, team.team_id)
        division = [n for opp, n in counts.items() if by_id[opp].division == team.division]
        conference = [
            n for opp, n in counts.items()
            if by_id[opp].conference == team.conference and by_id[opp].division != team.division
        ]
        other = [n for opp, n in counts.items() if by_id[opp].conference != team.conference]
        assert min(division) > max(conference + other)
        assert min(conference) > max(other)
        assert len(counts) == 29


def test_no_team_plays_twice_on_one_day() -> None:
    games = generate_schedule(_league(), "BOS", seed=2)
    per_day: Counter[tuple[int, str]] = Counter()
    for game in games:
        per_day[(game.day, game.home_team_id)] += 1
        per_day[(game.day, game.away_team_id)] += 1
    assert max(per_day.values()) == 1
    days = [g.day for g in games]
    assert days == sorted(days)
    assert all(g.scheduled_date is not None for g in games)


def test_small_league_schedule() -> None:
    games = generate_schedule(_mini_league(), "T0", games_per_team=16, seed=1)
    assert set(games_per_team(games).values()) == {16}
    assert set(home_games_per_team(games).values()) == {8}
    counts = opponent_counts(games, "T0")
    assert counts == {"T1": 4, "T2": 4, "T3": 4, "T4": 1, "T5": 1, "T6": 1, "T7": 1}


def test_matchup_plan_for_full_league() -> None:
    plan = plan_matchups(league_layout(_league()), 82)
    assert plan.division_games > plan.conference_games >= plan.inter_conference_games
    assert 4 * plan.division_games + 10 * plan.conference_games + plan.extra_conference_opponents + 15 * plan.inter_conference_games == 82


def test_unknown_user_team_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        generate_schedule(_league(), "XXX", seed=1)


def test_too_few_teams_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        generate_schedule([Team(team_id="A", city="A", name="A")], "A", seed=1)


def test_uneven_divisions_are_a_configuration_error() -> None:
    teams = _mini_league()[:7]
    with pytest.raises(ConfigurationError):
        generate_schedule(teams, "T0", games_per_team=16, seed=1)


def test_impossible_season_length_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        generate_schedule(_mini_league(), "T0", games_per_team=3, seed=1)


def test_team_schedule_is_in_day_order() -> None:
    games = generate_schedule(_league(), "BOS", seed=5)
    mine = team_schedule(games, "BOS")
    assert len(mine) == 82
    assert all(game.involves("BOS") for game in mine)
    days = [game.day for game in mine]
    assert days == sorted(days)
    assert len(set(days)) == 82
