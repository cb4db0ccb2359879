"""
Canonical parser for tournament field names, and the bridge from a
Tournament row to the scheduler's ScheduleConfig.

Handles both string ("Field 1, Field 2") and list (["Field 1", "Field 2"])
inputs so labels are never split into characters
(e.g. list("North,South") -> ['N', 'o', ...]).
"""
from typing import Any, List, Optional, Union

from tourney.models.tournament import DEFAULT_FIELD_NAMES
from tourney.services.slot_scheduler import ScheduleConfig


def parse_field_names(field_names: Optional[Union[str, List[str]]]) -> List[str]:
    """
    Normalize field_names to a list of non-empty, distinct strings.

    - None or "" -> []
    - String (e.g. "North, South") -> split on commas, strip whitespace, drop empties
    - List -> coerce each to str(x).strip(), drop empties
    - Duplicates keep their first occurrence
    """
    if field_names is None:
        return []
    if isinstance(field_names, str):
        raw = field_names.split(",")
    elif isinstance(field_names, (list, tuple)):
        raw = [str(x) for x in field_names]
    else:
        return []

    labels: List[str] = []
    for label in (x.strip() for x in raw):
        if label and label not in labels:
            labels.append(label)
    return labels


def schedule_config_for(tournament: Any) -> ScheduleConfig:
    """ScheduleConfig from a tournament's settings; no configured fields means the default four."""
    return ScheduleConfig(
        tournament_start=tournament.start_time,
        tournament_end=tournament.end_time,
        game_duration_minutes=tournament.game_duration_minutes,
        break_duration_minutes=tournament.break_duration_minutes,
        field_names=parse_field_names(tournament.field_names) or list(DEFAULT_FIELD_NAMES),
    )
