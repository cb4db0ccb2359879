"""
Slot scheduler — start-time grid and double-booking checks.

A game occupies the half-open interval [start, start + game + break).
Two games overlap when new_start < existing_end and new_end > existing_start,
so back-to-back games (one ends exactly when the next starts) are fine.

Nothing here writes game state. ``validate_assignment`` is a predicate; the
caller (manual editor, auto scheduler) performs the write, and must re-run the
check inside the same transaction that persists it.
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
MINUTES_PER_DAY = 24 * 60

CONFLICT_SELF_MATCH = "self_match"
CONFLICT_UNKNOWN_FIELD = "unknown_field"
CONFLICT_OUTSIDE_HOURS = "outside_hours"
CONFLICT_TEAM = "team"
CONFLICT_FIELD = "field"


class SchedulingError(ValueError):
    """Invalid scheduling request (as opposed to a conflict, which is returned as data)."""


class ScheduleConfigError(SchedulingError):
    pass


def parse_time(value: str) -> int:
    """'HH:MM' -> minutes since midnight."""
    match = TIME_PATTERN.match((value or "").strip())
    if not match:
        raise SchedulingError(f"Invalid time-of-day '{value}', expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(total_minutes: int) -> str:
    """Minutes since midnight -> 'HH:MM'. Only times within one day are valid kick-offs."""
    if not 0 <= total_minutes < MINUTES_PER_DAY:
        raise SchedulingError(f"{total_minutes} minutes is not a time of day (00:00-23:59)")
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def format_end_time(total_minutes: int) -> str:
    """End of an occupied interval, for display. May run past midnight ('24:05'); never parsed back."""
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def is_valid_time(value: Optional[str]) -> bool:
    return bool(value) and TIME_PATTERN.match(value.strip()) is not None


@dataclass(frozen=True)
class ScheduleConfig:
    tournament_start: str
    tournament_end: str
    game_duration_minutes: int
    break_duration_minutes: int
    field_names: Sequence[str] = field(default_factory=tuple)

    def __post_init__(self):
        try:
            start = parse_time(self.tournament_start)
            end = parse_time(self.tournament_end)
        except SchedulingError as exc:
            raise ScheduleConfigError(str(exc)) from exc
        if end <= start:
            raise ScheduleConfigError(
                f"Tournament end {self.tournament_end} must be after start {self.tournament_start}"
            )
        if self.game_duration_minutes <= 0:
            raise ScheduleConfigError(f"Game duration must be positive, got {self.game_duration_minutes}")
        if self.break_duration_minutes < 0:
            raise ScheduleConfigError(f"Break duration must be >= 0, got {self.break_duration_minutes}")
        if not self.field_names:
            raise ScheduleConfigError("At least one field name is required")
        object.__setattr__(self, "field_names", tuple(self.field_names))

    @property
    def start_minutes(self) -> int:
        return parse_time(self.tournament_start)

    @property
    def end_minutes(self) -> int:
        return parse_time(self.tournament_end)

    @property
    def slot_minutes(self) -> int:
        """Time a game blocks its field and teams: game plus the break after it."""
        return self.game_duration_minutes + self.break_duration_minutes


@dataclass
class ProposedGame:
    """A placement to check when the caller has no Game row (yet)."""
    home_team_id: Optional[int]
    away_team_id: Optional[int]
    field: str
    scheduled_start_time: str
    id: Optional[int] = None


@dataclass
class ScheduleConflict:
    kind: str
    message: str
    conflicting_game_id: Optional[int] = None
    team_id: Optional[int] = None
    field: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    game_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScheduleSlot:
    start_time: str
    end_time: str
    field: str
    game_id: Optional[int] = None
    available: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def list_available_start_times(config: ScheduleConfig) -> List[str]:
    """Kick-off times from the day start, one per game+break step, while the game still ends by day end."""
    times: List[str] = []
    current = config.start_minutes
    while current + config.game_duration_minutes <= config.end_minutes:
        times.append(format_time(current))
        current += config.slot_minutes
    return times


def occupied_interval(start_time: str, config: ScheduleConfig) -> Tuple[int, int]:
    start = parse_time(start_time)
    return start, start + config.slot_minutes


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    return start_a < end_b and end_a > start_b


def _team_ids(game: Any) -> List[int]:
    return [tid for tid in (game.home_team_id, game.away_team_id) if tid is not None]


def _team_label(team_id: int, team_names: Optional[Mapping[int, str]]) -> str:
    if team_names and team_id in team_names:
        return team_names[team_id]
    return f"Team {team_id}"


def validate_assignment(
    proposed: Any,
    existing_games: Iterable[Any],
    config: ScheduleConfig,
    team_names: Optional[Mapping[int, str]] = None,
) -> Optional[ScheduleConflict]:
    """Return the first conflict the proposed placement would create, or None.

    Checked in order: a team against itself, a team already busy, the field
    already busy. An existing game with the same id as ``proposed`` is the one
    being edited and is skipped.
    """
    if not proposed.field or not proposed.scheduled_start_time:
        raise SchedulingError(
            f"Game {getattr(proposed, 'id', None)}: field and start time are required to validate a placement"
        )

    new_start, new_end = occupied_interval(proposed.scheduled_start_time, config)
    proposed_id = getattr(proposed, "id", None)

    if proposed.home_team_id is not None and proposed.home_team_id == proposed.away_team_id:
        return ScheduleConflict(
            kind=CONFLICT_SELF_MATCH,
            message="A team cannot play against itself",
            team_id=proposed.home_team_id,
            game_id=proposed_id,
        )

    scheduled = [
        g for g in existing_games
        if g.scheduled_start_time and not (proposed_id is not None and g.id == proposed_id)
    ]
    proposed_teams = set(_team_ids(proposed))

    for existing in scheduled:
        start, end = occupied_interval(existing.scheduled_start_time, config)
        if not intervals_overlap(new_start, new_end, start, end):
            continue
        shared = [tid for tid in _team_ids(existing) if tid in proposed_teams]
        if shared:
            team_id = shared[0]
            return ScheduleConflict(
                kind=CONFLICT_TEAM,
                message=(
                    f"Team conflict: {_team_label(team_id, team_names)} is already playing "
                    f"at {existing.scheduled_start_time}"
                ),
                conflicting_game_id=existing.id,
                team_id=team_id,
                start_time=existing.scheduled_start_time,
                end_time=format_end_time(end),
                game_id=proposed_id,
            )

    for existing in scheduled:
        if existing.field != proposed.field:
            continue
        start, end = occupied_interval(existing.scheduled_start_time, config)
        if intervals_overlap(new_start, new_end, start, end):
            return ScheduleConflict(
                kind=CONFLICT_FIELD,
                message=(
                    f"Field conflict: {proposed.field} is already booked from "
                    f"{existing.scheduled_start_time} to {format_end_time(end)}"
                ),
                conflicting_game_id=existing.id,
                field=proposed.field,
                start_time=existing.scheduled_start_time,
                end_time=format_end_time(end),
                game_id=proposed_id,
            )

    return None


def check_placement_bounds(proposed: Any, config: ScheduleConfig) -> Optional[ScheduleConflict]:
    """Field must be configured and the game must fit inside the tournament day."""
    proposed_id = getattr(proposed, "id", None)
    if proposed.field not in config.field_names:
        return ScheduleConflict(
            kind=CONFLICT_UNKNOWN_FIELD,
            message=f"Unknown field '{proposed.field}' (fields: {', '.join(config.field_names)})",
            field=proposed.field,
            game_id=proposed_id,
        )

    start = parse_time(proposed.scheduled_start_time)
    if start < config.start_minutes or start + config.game_duration_minutes > config.end_minutes:
        return ScheduleConflict(
            kind=CONFLICT_OUTSIDE_HOURS,
            message=(
                f"Kick-off {proposed.scheduled_start_time} does not fit between "
                f"{config.tournament_start} and {config.tournament_end}"
            ),
            start_time=proposed.scheduled_start_time,
            game_id=proposed_id,
        )
    return None


def build_schedule_grid(config: ScheduleConfig, games: Iterable[Any]) -> List[ScheduleSlot]:
    """Every (kick-off, field) slot of the day, with the game starting there and whether it is free."""
    scheduled = [g for g in games if g.scheduled_start_time and g.field]
    slots: List[ScheduleSlot] = []
    for start_time in list_available_start_times(config):
        start, end = occupied_interval(start_time, config)
        for field_name in config.field_names:
            slot = ScheduleSlot(start_time=start_time, end_time=format_end_time(end), field=field_name)
            for game in scheduled:
                if game.field != field_name:
                    continue
                g_start, g_end = occupied_interval(game.scheduled_start_time, config)
                if g_start == start:
                    slot.game_id = game.id
                if intervals_overlap(start, end, g_start, g_end):
                    slot.available = False
            slots.append(slot)
    return slots


def find_schedule_conflicts(
    games: Sequence[Any],
    config: ScheduleConfig,
    team_names: Optional[Mapping[int, str]] = None,
) -> List[ScheduleConflict]:
    """Audit a whole timetable: every pair of overlapping games sharing a team or a field."""
    scheduled = sorted(
        (g for g in games if g.scheduled_start_time),
        key=lambda g: (parse_time(g.scheduled_start_time), g.field or "", g.id or 0),
    )
    conflicts: List[ScheduleConflict] = []
    for i, first in enumerate(scheduled):
        a_start, a_end = occupied_interval(first.scheduled_start_time, config)
        for second in scheduled[i + 1:]:
            b_start, b_end = occupied_interval(second.scheduled_start_time, config)
            if not intervals_overlap(a_start, a_end, b_start, b_end):
                continue
            for team_id in sorted(set(_team_ids(first)) & set(_team_ids(second))):
                conflicts.append(ScheduleConflict(
                    kind=CONFLICT_TEAM,
                    message=(
                        f"Team conflict: {_team_label(team_id, team_names)} plays at "
                        f"{first.scheduled_start_time} and {second.scheduled_start_time}"
                    ),
                    game_id=second.id,
                    conflicting_game_id=first.id,
                    team_id=team_id,
                    start_time=first.scheduled_start_time,
                    end_time=format_end_time(a_end),
                ))
            if first.field and first.field == second.field:
                conflicts.append(ScheduleConflict(
                    kind=CONFLICT_FIELD,
                    message=(
                        f"Field conflict: {first.field} is booked from {first.scheduled_start_time} "
                        f"to {format_end_time(a_end)} but game {second.id} starts at {second.scheduled_start_time}"
                    ),
                    game_id=second.id,
                    conflicting_game_id=first.id,
                    field=first.field,
                    start_time=first.scheduled_start_time,
                    end_time=format_end_time(a_end),
                ))
    return conflicts
