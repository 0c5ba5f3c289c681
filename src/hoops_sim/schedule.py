from __future__ import annotations

import logging
import random
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from itertools import combinations
from typing import Iterable

from .config import CALENDAR_DENSITY, REGULAR_SEASON_GAMES
from .errors import ConfigurationError
from .models import Game, Team

logger = logging.getLogger(__name__)

_VIRTUAL = "__virtual__"


@dataclass(slots=True, frozen=True)
class LeagueLayout:
    # conference -> divisions -> team ids
    conferences: dict[str, list[list[str]]]
    division_opponents: int
    conference_opponents: int
    inter_conference_opponents: int

    @property
    def conference_size(self) -> int:
        return self.division_opponents + self.conference_opponents + 1

    @property
    def divisions_per_conference(self) -> int:
        return self.conference_size // (self.division_opponents + 1)


@dataclass(slots=True, frozen=True)
class MatchupPlan:
    division_games: int
    conference_games: int
    inter_conference_games: int
    # Conference non-division opponents each team meets one extra time.
    extra_conference_opponents: int
    extra_offsets: tuple[int, ...]


def league_layout(teams: Iterable[Team]) -> LeagueLayout:
    team_list = sorted(teams, key=lambda t: t.team_id)
    if len(team_list) < 2:
        raise ConfigurationError("A schedule needs at least two teams.")
    ids = [t.team_id for t in team_list]
    if len(set(ids)) != len(ids):
        raise ConfigurationError("Team ids must be unique.")

    grouped: dict[str, dict[str, list[str]]] = defaultdict(lambda: defaultdict(list))
    for team in team_list:
        grouped[team.conference][team.division].append(team.team_id)

    shapes: set[tuple[int, int, int]] = set()
    for team in team_list:
        conference = grouped[team.conference]
        division_size = len(conference[team.division])
        conference_size = sum(len(members) for members in conference.values())
        shapes.add((division_size - 1, conference_size - division_size, len(team_list) - conference_size))
    if len(shapes) != 1:
        raise ConfigurationError(
            "Every team needs the same number of division, conference and inter-conference opponents; "
            f"found {sorted(shapes)}."
        )
    nd, nc, ni = shapes.pop()
    conferences = {
        conf: [sorted(divisions[name]) for name in sorted(divisions)]
        for conf, divisions in sorted(grouped.items())
    }
    return LeagueLayout(conferences, nd, nc, ni)


def _extra_offsets(conference_size: int, divisions: int, extra: int) -> tuple[int, ...] | None:
    """Ring offsets whose circulant pairing gives every team ``extra`` cross-division partners."""
    if extra == 0:
        return ()
    offsets: list[int] = []
    half_offset: int | None = None
    for step in range(1, conference_size // 2 + 1):
        if step % divisions == 0:
            continue
        if step * 2 == conference_size:
            half_offset = step
        else:
            offsets.append(step)
    needed_pairs, needs_half = divmod(extra, 2)
    if needed_pairs > len(offsets) or (needs_half and half_offset is None):
        return None
    chosen = offsets[:needed_pairs]
    if needs_half and half_offset is not None:
        chosen.append(half_offset)
    return tuple(chosen)


def plan_matchups(layout: LeagueLayout, games_per_team: int) -> MatchupPlan:
    """Pick per-opponent game counts that hit ``games_per_team`` exactly.

    Division rivals must meet strictly more often than any conference opponent,
    who meet strictly more often than inter-conference opponents. The most even
    spread (highest inter-conference count) wins.
    """
    nd = layout.division_opponents
    nc = layout.conference_opponents
    ni = layout.inter_conference_opponents
    if games_per_team <= 0:
        raise ConfigurationError("Season length must be positive.")

    inter_options = range(games_per_team // ni, 0, -1) if ni else range(0, 1)
    for k_inter in inter_options:
        remainder = games_per_team - k_inter * ni
        div_options = range(1, remainder // nd + 1) if nd else range(0, 1)
        for k_div in div_options:
            rest = remainder - k_div * nd
            if nc:
                k_conf, extra = divmod(rest, nc)
                if k_conf < 1 or (ni and k_conf <= k_inter):
                    continue
                if nd and k_div <= k_conf + (1 if extra else 0):
                    continue
            else:
                if rest != 0:
                    continue
                k_conf, extra = 0, 0
                if nd and ni and k_div <= k_inter:
                    continue
            offsets = _extra_offsets(layout.conference_size, layout.divisions_per_conference, extra)
            if offsets is None:
                continue
            return MatchupPlan(k_div, k_conf, k_inter, extra, offsets)

    raise ConfigurationError(
        f"Cannot build a {games_per_team}-game season for {nd} division, {nc} conference and "
        f"{ni} inter-conference opponents per team."
    )


def _pair_counts(layout: LeagueLayout, plan: MatchupPlan, rng: random.Random) -> dict[tuple[str, str], int]:
    conference_of: dict[str, str] = {}
    division_of: dict[str, int] = {}
    for conf, divisions in layout.conferences.items():
        for div_idx, members in enumerate(divisions):
            for team_id in members:
                conference_of[team_id] = conf
                division_of[team_id] = div_idx

    counts: dict[tuple[str, str], int] = {}
    for a, b in combinations(sorted(conference_of), 2):
        if conference_of[a] != conference_of[b]:
            counts[(a, b)] = plan.inter_conference_games
        elif division_of[a] == division_of[b]:
            counts[(a, b)] = plan.division_games
        else:
            counts[(a, b)] = plan.conference_games

    if plan.extra_offsets:
        for divisions in layout.conferences.values():
            shuffled = [rng.sample(members, len(members)) for members in divisions]
            # Interleave divisions so ring neighbours at offsets not divisible by
            # the division count always sit in different divisions.
            ring = [shuffled[idx % len(shuffled)][idx // len(shuffled)] for idx in range(layout.conference_size)]
            size = len(ring)
            for step in plan.extra_offsets:
                for idx in range(size):
                    if step * 2 == size and idx >= size // 2:
                        continue
                    a, b = sorted((ring[idx], ring[(idx + step) % size]))
                    counts[(a, b)] += 1
    return {pair: k for pair, k in counts.items() if k > 0}


def _orient_odd_pairs(pairs: list[tuple[str, str]], rng: random.Random) -> list[tuple[str, str]]:
    """Orient single leftover games so no team gets more than one extra home game."""
    degree: Counter[str] = Counter()
    for a, b in pairs:
        degree[a] += 1
        degree[b] += 1
    edges = list(pairs)
    edges.extend((team_id, _VIRTUAL) for team_id in sorted(degree) if degree[team_id] % 2 == 1)

    adjacency: dict[str, list[int]] = defaultdict(list)
    for idx, (a, b) in enumerate(edges):
        adjacency[a].append(idx)
        adjacency[b].append(idx)
    for node in sorted(adjacency):
        rng.shuffle(adjacency[node])

    used = [False] * len(edges)
    oriented: list[tuple[str, str]] = []
    # Hierholzer walk: every vertex has even degree, so each traversal closes on
    # itself and leaves in-degree equal to out-degree.
    for start in sorted(adjacency):
        stack = [start]
        while stack:
            node = stack[-1]
            neighbours = adjacency[node]
            while neighbours and used[neighbours[-1]]:
                neighbours.pop()
            if not neighbours:
                stack.pop()
                continue
            idx = neighbours.pop()
            used[idx] = True
            a, b = edges[idx]
            nxt = b if a == node else a
            if _VIRTUAL not in (node, nxt):
                oriented.append((node, nxt))
            stack.append(nxt)
    return oriented


def _pack_days(
    games: list[tuple[str, str]],
    team_count: int,
    calendar_density: float,
) -> list[list[tuple[str, str]]]:
    # Convert slates into calendar days so not every team plays nightly.
    per_day = max(1, int((team_count * max(0.35, min(calendar_density, 1.0))) / 2))
    remaining = list(games)
    days: list[list[tuple[str, str]]] = []
    while remaining:
        load: Counter[str] = Counter()
        for home, away in remaining:
            load[home] += 1
            load[away] += 1
        # Teams with the most games left go first so the calendar ends evenly.
        ordered = sorted(remaining, key=lambda g: -(load[g[0]] + load[g[1]]))
        busy: set[str] = set()
        today: list[tuple[str, str]] = []
        leftover: list[tuple[str, str]] = []
        for home, away in ordered:
            if len(today) < per_day and home not in busy and away not in busy:
                today.append((home, away))
                busy.update((home, away))
            else:
                leftover.append((home, away))
        days.append(today)
        remaining = leftover
    return days


def generate_schedule(
    teams: Iterable[Team],
    user_team_id: str,
    games_per_team: int = REGULAR_SEASON_GAMES,
    seed: int | str | None = None,
    season_id: str = "season",
    start_date: date | None = None,
    calendar_density: float = CALENDAR_DENSITY,
) -> list[Game]:
    """Build a balanced regular season.

    Same teams and same seed always give the same list of games. Raises
    ``ConfigurationError`` when the league cannot be scheduled evenly.
    """
    team_list = list(teams)
    layout = league_layout(team_list)
    if user_team_id not in {t.team_id for t in team_list}:
        raise ConfigurationError(f"User team {user_team_id} is not in the league.")
    plan = plan_matchups(layout, games_per_team)
    rng = random.Random(f"schedule:{seed}") if seed is not None else random.Random()

    counts = _pair_counts(layout, plan, rng)
    matchups: list[tuple[str, str]] = []
    odd_pairs: list[tuple[str, str]] = []
    for (a, b), k in sorted(counts.items()):
        matchups.extend([(a, b)] * (k // 2))
        matchups.extend([(b, a)] * (k // 2))
        if k % 2:
            odd_pairs.append((a, b))
    matchups.extend(_orient_odd_pairs(odd_pairs, rng))
    rng.shuffle(matchups)

    days = _pack_days(matchups, len(team_list), calendar_density)
    opening = start_date or date(2025, 10, 21)
    schedule: list[Game] = []
    for day_idx, day_games in enumerate(days):
        for home, away in day_games:
            schedule.append(
                Game(
                    game_id=f"{season_id}-g{len(schedule) + 1:04d}",
                    home_team_id=home,
                    away_team_id=away,
                    day=day_idx,
                    scheduled_date=opening + timedelta(days=day_idx),
                )
            )
    logger.info(
        "Generated %d games over %d days (division x%d, conference x%d +%d, inter-conference x%d)",
        len(schedule),
        len(days),
        plan.division_games,
        plan.conference_games,
        plan.extra_conference_opponents,
        plan.inter_conference_games,
    )
    return schedule


def games_per_team(games: Iterable[Game]) -> dict[str, int]:
    totals: Counter[str] = Counter()
    for game in games:
        totals[game.home_team_id] += 1
        totals[game.away_team_id] += 1
    return dict(totals)


def home_games_per_team(games: Iterable[Game]) -> dict[str, int]:
    return dict(Counter(game.home_team_id for game in games))


def opponent_counts(games: Iterable[Game], team_id: str) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for game in games:
        if game.home_team_id == team_id:
            counts[game.away_team_id] += 1
        elif game.away_team_id == team_id:
            counts[game.home_team_id] += 1
    return dict(counts)


def team_schedule(games: Iterable[Game], team_id: str) -> list[Game]:
    return [game for game in games if game.involves(team_id)]
