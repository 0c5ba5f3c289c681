from dataclasses import replace

import pytest

from hoops_sim.app import build_default_teams
from hoops_sim.models import DepthChartEntry, RotationConfig
from hoops_sim.roles import POSITIONS, Position
from hoops_sim.rotation import default_rotation, generate_preset, position_minutes, validate


def _roster():
    return build_default_teams()[0].roster


def _without_entry(config: RotationConfig, position: Position, depth: int) -> RotationConfig:
    kept = tuple(e for e in config.depth_chart if not (e.position == position and e.depth == depth))
    return replace(config, depth_chart=kept)


@pytest.mark.parametrize("size", [6, 7, 8, 9, 10])
def test_presets_are_valid_for_every_size(size: int) -> None:
    roster = _roster()
    config = generate_preset(roster, size)
    assert validate(config, roster) == []
    assert len(config.active_ids) == size
    assert all(total == 48 for total in position_minutes(config).values())


def test_preset_rejects_out_of_range_size() -> None:
    with pytest.raises(ValueError):
        generate_preset(_roster(), 5)
    with pytest.raises(ValueError):
        generate_preset(_roster(), 11)


def test_missing_starter_names_the_position() -> None:
    roster = _roster()
    config = default_rotation(roster)
    for position in POSITIONS:
        broken = _without_entry(config, position, 1)
        violations = validate(broken, roster)
        assert f"No starter at {position.value}" in violations


def test_minutes_must_sum_to_game_length_per_position() -> None:
    roster = _roster()
    config = default_rotation(roster)
    starter = config.starter_for(Position.SF)
    minutes = dict(config.player_minutes)
    minutes[starter] -= 3
    violations = validate(replace(config, player_minutes=minutes), roster)
    assert any(v.startswith("SF minutes total") for v in violations)


def test_every_violation_is_reported() -> None:
    roster = _roster()
    config = default_rotation(roster)
    pg_starter = config.starter_for(Position.PG)
    depth_chart = list(config.depth_chart)
    # Move the PG starter down to depth 3, leaving a gap and no starter.
    depth_chart = [
        DepthChartEntry(e.player_id, e.position, 3) if e.player_id == pg_starter else e for e in depth_chart
    ]
    depth_chart.append(DepthChartEntry("ghost", Position.C, 2))
    broken = replace(config, rotation_size=12, depth_chart=tuple(depth_chart))
    violations = validate(broken, roster)
    assert any("Rotation size 12 must be between" in v for v in violations)
    assert "No starter at PG" in violations
    assert any("ghost" in v and "not on the roster" in v for v in violations)
    assert len(violations) >= 4


def test_duplicate_depth_and_multiple_positions_are_flagged() -> None:
    roster = _roster()
    config = default_rotation(roster)
    sg_starter = config.starter_for(Position.SG)
    depth_chart = config.depth_chart + (
        DepthChartEntry(sg_starter, Position.PF, 1),
    )
    violations = validate(replace(config, depth_chart=depth_chart), roster)
    assert any("Duplicate depth 1 at PF" in v for v in violations)
    assert any(sg_starter in v and "multiple positions" in v for v in violations)


def test_minutes_outside_game_range_are_flagged() -> None:
    roster = _roster()
    config = default_rotation(roster)
    bench_player = next(p.player_id for p in roster if config.minutes_for(p.player_id) == 0)
    minutes = dict(config.player_minutes)
    minutes[bench_player] = -4
    violations = validate(replace(config, player_minutes=minutes), roster)
    assert any("minutes must be between 0 and 48" in v for v in violations)


def test_rotation_size_must_match_players_with_minutes() -> None:
    roster = _roster()
    config = default_rotation(roster)
    violations = validate(replace(config, rotation_size=9), roster)
    assert violations == ["Rotation size 9 does not match 8 players with minutes"]


def test_minutes_without_a_depth_chart_slot_are_rejected() -> None:
    roster = _roster()
    config = default_rotation(roster)
    bench_id = next(p.player_id for p in roster if p.player_id not in config.active_ids)
    minutes = dict(config.player_minutes, **{bench_id: 20})
    padded = replace(config, player_minutes=minutes, rotation_size=config.rotation_size + 1)
    assert validate(padded, roster) == [f"{bench_id} has 20 minutes but no depth-chart position"]
