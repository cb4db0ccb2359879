"""
Auto scheduling — pool draw sizes, round-robin fixtures and slot filling.

Every placement goes through ``validate_assignment`` against the games already
on the timetable plus the ones placed earlier in the same run, so the result
never double-books a team or a field. Matchups that find no slot are handed
back instead of being dropped.
"""
from __future__ import annotations

import logging
import string
from dataclasses import asdict, dataclass, field
from itertools import combinations
from typing import Any, Dict, List, Optional, Sequence, Tuple

from tourney.models.game import PLAYOFF_ROUNDS, ROUND_FINAL
from tourney.services.bracket import ROUND_SIZES, slot_label
from tourney.services.slot_scheduler import (
    MINUTES_PER_DAY,
    ProposedGame,
    ScheduleConfig,
    format_time,
    list_available_start_times,
    parse_time,
    validate_assignment,
)

logger = logging.getLogger(__name__)

IDEAL_POOL_SIZE = 4
MIN_POOL_SIZE = 2


class AutoScheduleError(ValueError):
    pass


# ============================================================================
# Pools
# ============================================================================


def pool_distribution(total_teams: int, pool_count: Optional[int] = None) -> List[int]:
    """Pool sizes for ``total_teams``; sizes differ by at most one, larger pools first."""
    if pool_count is None:
        pool_count = max(1, total_teams // IDEAL_POOL_SIZE)
    if pool_count < 1:
        raise AutoScheduleError(f"Pool count must be >= 1, got {pool_count}")
    if total_teams < pool_count * MIN_POOL_SIZE:
        raise AutoScheduleError(
            f"{total_teams} teams cannot fill {pool_count} pools of at least {MIN_POOL_SIZE}"
        )
    base, extra = divmod(total_teams, pool_count)
    return [base + 1] * extra + [base] * (pool_count - extra)


def pool_names(count: int, custom_names: Optional[Sequence[str]] = None) -> List[str]:
    names: List[str] = []
    custom_names = custom_names or []
    for i in range(count):
        custom = custom_names[i].strip() if i < len(custom_names) and custom_names[i] else ""
        if custom:
            names.append(custom)
        elif i < len(string.ascii_uppercase):
            names.append(f"Pool {string.ascii_uppercase[i]}")
        else:
            names.append(f"Pool {i + 1}")
    return names


def assign_to_pools(team_ids: Sequence[int], sizes: Sequence[int]) -> List[List[int]]:
    """Deal teams into consecutive pools of the given sizes, in the order given."""
    if sum(sizes) != len(team_ids):
        raise AutoScheduleError(f"Pool sizes {list(sizes)} do not add up to {len(team_ids)} teams")
    pools: List[List[int]] = []
    start = 0
    for size in sizes:
        pools.append(list(team_ids[start:start + size]))
        start += size
    return pools


# ============================================================================
# Round robin
# ============================================================================


def round_robin_rounds(team_ids: Sequence[int]) -> List[List[Tuple[int, int]]]:
    """Circle-method rounds; within a round no team appears twice.

    The team listed earlier in ``team_ids`` is at home.
    """
    order = {tid: i for i, tid in enumerate(team_ids)}
    ring: List[Optional[int]] = list(team_ids)
    if len(ring) % 2:
        ring.append(None)  # bye
    n = len(ring)

    rounds: List[List[Tuple[int, int]]] = []
    for _ in range(n - 1):
        pairs: List[Tuple[int, int]] = []
        for i in range(n // 2):
            a, b = ring[i], ring[n - 1 - i]
            if a is None or b is None:
                continue
            pairs.append((a, b) if order[a] < order[b] else (b, a))
        rounds.append(pairs)
        ring = [ring[0], ring[-1]] + ring[1:-1]
    return rounds


def round_robin_matchups(team_ids: Sequence[int]) -> List[Tuple[int, int]]:
    """Every pair of teams exactly once, grouped round by round."""
    if len(set(team_ids)) != len(team_ids):
        raise AutoScheduleError(f"Duplicate team ids in round robin: {list(team_ids)}")
    if len(team_ids) < MIN_POOL_SIZE:
        raise AutoScheduleError(f"Need at least {MIN_POOL_SIZE} teams for a round robin, got {len(team_ids)}")
    return [pair for rnd in round_robin_rounds(team_ids) for pair in rnd]


def verify_round_robin(team_ids: Sequence[int], matchups: Sequence[Tuple[int, int]]) -> bool:
    expected = {frozenset(p) for p in combinations(team_ids, 2)}
    seen = [frozenset(m) for m in matchups]
    return len(seen) == len(expected) and set(seen) == expected


# ============================================================================
# Slot filling
# ============================================================================


@dataclass
class ScheduleRun:
    placed: List[ProposedGame] = field(default_factory=list)
    unplaced: List[Tuple[int, int]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "placed": [asdict(p) for p in self.placed],
            "unplaced": [list(m) for m in self.unplaced],
        }


def schedule_matchups(
    matchups: Sequence[Tuple[int, int]],
    config: ScheduleConfig,
    existing_games: Sequence[Any] = (),
) -> ScheduleRun:
    """Place each matchup in the earliest (kick-off, field) slot that creates no conflict."""
    run = ScheduleRun()
    start_times = list_available_start_times(config)
    busy: List[Any] = [g for g in existing_games if g.scheduled_start_time]

    for home_id, away_id in matchups:
        placement = _first_free_slot(home_id, away_id, start_times, config, busy)
        if placement is None:
            run.unplaced.append((home_id, away_id))
            continue
        busy.append(placement)
        run.placed.append(placement)

    if run.unplaced:
        logger.warning(
            "Auto schedule left %d of %d matchups without a slot: %s",
            len(run.unplaced),
            len(matchups),
            run.unplaced,
        )
    return run


def _first_free_slot(
    home_id: int,
    away_id: int,
    start_times: Sequence[str],
    config: ScheduleConfig,
    busy: Sequence[Any],
) -> Optional[ProposedGame]:
    for start_time in start_times:
        for field_name in config.field_names:
            proposed = ProposedGame(
                home_team_id=home_id,
                away_team_id=away_id,
                field=field_name,
                scheduled_start_time=start_time,
            )
            if validate_assignment(proposed, busy, config) is None:
                return proposed
    return None


# ============================================================================
# Playoff timing
# ============================================================================


@dataclass
class PlayoffSlotPlan:
    playoff_round: str
    position: int
    field: str
    start_time: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def plan_playoff_schedule(
    config: ScheduleConfig,
    round_break_minutes: int,
    pool_games: Sequence[Any] = (),
) -> List[PlayoffSlotPlan]:
    """Kick-off and field for every bracket position.

    Quarterfinals start one game plus one round break after the last pool
    kick-off (tournament start when there are no timed pool games). Games of a
    round share a kick-off across the fields, spilling into later waves when
    fields run out. The final goes on the first field.

    Raises AutoScheduleError when a kick-off would fall past midnight.
    """
    if round_break_minutes < 0:
        raise AutoScheduleError(f"Round break must be >= 0, got {round_break_minutes}")

    # A round never starts inside the break of the games before it
    round_gap = config.game_duration_minutes + max(round_break_minutes, config.break_duration_minutes)

    pool_kickoffs = [parse_time(g.scheduled_start_time) for g in pool_games if g.scheduled_start_time]
    if pool_kickoffs:
        current = max(pool_kickoffs) + round_gap
    else:
        current = config.start_minutes

    fields = list(config.field_names)
    plan: List[PlayoffSlotPlan] = []
    for playoff_round in PLAYOFF_ROUNDS:
        size = ROUND_SIZES[playoff_round]
        round_fields = fields[:1] if playoff_round == ROUND_FINAL else fields
        last_wave = 0
        for position in range(1, size + 1):
            wave, field_index = divmod(position - 1, len(round_fields))
            last_wave = wave
            kickoff = current + wave * config.slot_minutes
            if kickoff >= MINUTES_PER_DAY:
                raise AutoScheduleError(
                    f"{slot_label(playoff_round, position)} would kick off past midnight; "
                    f"start pool play earlier or shorten the round break"
                )
            plan.append(PlayoffSlotPlan(
                playoff_round=playoff_round,
                position=position,
                field=round_fields[field_index],
                start_time=format_time(kickoff),
            ))
        current += last_wave * config.slot_minutes + round_gap
    return plan
