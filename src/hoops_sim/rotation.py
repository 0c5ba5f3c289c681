"""Rotation legality checks and preset depth charts."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Iterable

from .config import (
    DEFAULT_ROTATION_SIZE,
    GAME_MINUTES,
    MAX_ROTATION_SIZE,
    MIN_ROTATION_SIZE,
    ROTATION_PRESET_MINUTES,
)
from .models import DepthChartEntry, Player, RotationConfig
from .roles import POSITIONS, Position, position_affinity


def validate(config: RotationConfig, roster: Iterable[Player]) -> list[str]:
    """Return every rule the rotation breaks; an empty list means it is legal."""
    roster_ids = {p.player_id for p in roster}
    violations: list[str] = []

    if not MIN_ROTATION_SIZE <= config.rotation_size <= MAX_ROTATION_SIZE:
        violations.append(
            f"Rotation size {config.rotation_size} must be between {MIN_ROTATION_SIZE} and {MAX_ROTATION_SIZE}"
        )

    for entry in config.depth_chart:
        if entry.player_id not in roster_ids:
            violations.append(f"Depth chart player {entry.player_id} at {entry.position.value} is not on the roster")
        if entry.depth < 1:
            violations.append(f"Depth {entry.depth} for {entry.player_id} at {entry.position.value} must be at least 1")
    for player_id in config.player_minutes:
        if player_id not in roster_ids:
            violations.append(f"Minutes assigned to {player_id}, who is not on the roster")

    for player_id, minutes in config.player_minutes.items():
        if not 0 <= minutes <= GAME_MINUTES:
            violations.append(f"{player_id} has {minutes} minutes; minutes must be between 0 and {GAME_MINUTES}")

    positions_by_player: dict[str, set[Position]] = {}
    for entry in config.depth_chart:
        positions_by_player.setdefault(entry.player_id, set()).add(entry.position)
    for player_id, positions in positions_by_player.items():
        if len(positions) > 1:
            labels = ", ".join(sorted(pos.value for pos in positions))
            violations.append(f"{player_id} is assigned to multiple positions ({labels})")
    for player_id, minutes in config.player_minutes.items():
        if minutes > 0 and player_id not in positions_by_player:
            violations.append(f"{player_id} has {minutes} minutes but no depth-chart position")

    for position in POSITIONS:
        entries = config.entries_at(position)
        depths = [e.depth for e in entries]
        if 1 not in depths:
            violations.append(f"No starter at {position.value}")
        duplicates = sorted(d for d, count in Counter(depths).items() if count > 1)
        if duplicates:
            violations.append(f"Duplicate depth {', '.join(map(str, duplicates))} at {position.value}")
        expected = list(range(1, len(set(depths)) + 1))
        if sorted(set(depths)) != expected and depths:
            violations.append(f"Depth chart at {position.value} has gaps: {sorted(set(depths))}")

        total = sum(config.minutes_for(e.player_id) for e in entries)
        if total != GAME_MINUTES:
            violations.append(f"{position.value} minutes total {total}, must equal exactly {GAME_MINUTES}")

        for entry in entries:
            if entry.depth == 1 and config.minutes_for(entry.player_id) <= 0:
                violations.append(f"Starter {entry.player_id} at {position.value} has no minutes")

    active = sum(1 for minutes in config.player_minutes.values() if minutes > 0)
    if config.rotation_size != active:
        violations.append(
            f"Rotation size {config.rotation_size} does not match {active} players with minutes"
        )
    return violations


def position_minutes(config: RotationConfig) -> dict[Position, int]:
    return {pos: sum(config.minutes_for(e.player_id) for e in config.entries_at(pos)) for pos in POSITIONS}


def _pick(candidates: list[Player], position: Position) -> Player:
    return max(
        candidates,
        key=lambda p: (p.position == position, position_affinity(p, position), p.overall, p.player_id),
    )


def generate_preset(roster: Iterable[Player], size: int = DEFAULT_ROTATION_SIZE) -> RotationConfig:
    """Build a legal rotation of ``size`` players from the best fits on the roster.

    Starters take one player per position. Positions with the weakest starters get
    a bench partner first; the strongest starters play the full game when the
    rotation has fewer than ten players.
    """
    if size not in ROTATION_PRESET_MINUTES:
        raise ValueError(f"Rotation size must be between {MIN_ROTATION_SIZE} and {MAX_ROTATION_SIZE}")
    remaining = list(roster)
    if len(remaining) < size:
        raise ValueError(f"Roster has {len(remaining)} players; a {size}-man rotation needs more")

    starters: dict[Position, Player] = {}
    for position in POSITIONS:
        choice = _pick(remaining, position)
        starters[position] = choice
        remaining.remove(choice)

    bench_count = size - len(POSITIONS)
    bench_positions = sorted(
        POSITIONS,
        key=lambda pos: (position_affinity(starters[pos], pos), POSITIONS.index(pos)),
    )[:bench_count]
    starter_minutes, bench_minutes = ROTATION_PRESET_MINUTES[size]

    minutes: dict[str, int] = {}
    depth_chart: list[DepthChartEntry] = []
    for position in POSITIONS:
        starter = starters[position]
        depth_chart.append(DepthChartEntry(starter.player_id, position, 1))
        if position in bench_positions:
            backup = _pick(remaining, position)
            remaining.remove(backup)
            depth_chart.append(DepthChartEntry(backup.player_id, position, 2))
            minutes[starter.player_id] = starter_minutes
            minutes[backup.player_id] = bench_minutes
        else:
            minutes[starter.player_id] = GAME_MINUTES
    for player in remaining:
        minutes[player.player_id] = 0

    return RotationConfig(
        rotation_size=size,
        player_minutes=minutes,
        depth_chart=tuple(depth_chart),
        last_modified=datetime.now(),
    )


def default_rotation(roster: Iterable[Player]) -> RotationConfig:
    return generate_preset(roster, DEFAULT_ROTATION_SIZE)


def lineup_positions(players: list[Player]) -> dict[Position, Player]:
    """Map a five-man lineup onto the five positions, natural positions first."""
    assigned: dict[Position, Player] = {}
    leftover: list[Player] = []
    for player in players:
        if player.position not in assigned:
            assigned[player.position] = player
        else:
            leftover.append(player)
    for position in POSITIONS:
        if position not in assigned and leftover:
            choice = _pick(leftover, position)
            assigned[position] = choice
            leftover.remove(choice)
    return assigned
