"""
Schedule views: kick-off times, the (time x field) grid, dry-run placement
checks and a whole-timetable conflict audit. Nothing here writes.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlmodel import Session

from tourney.database import get_session
from tourney.services.slot_scheduler import (
    ProposedGame,
    ScheduleConfigError,
    build_schedule_grid,
    check_placement_bounds,
    find_schedule_conflicts,
    is_valid_time,
    list_available_start_times,
    validate_assignment,
)
from tourney.utils.fields import schedule_config_for
from tourney.utils.snapshot import load_snapshot

router = APIRouter()


class PlacementCheckRequest(BaseModel):
    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    field: str
    scheduled_start_time: str
    game_id: Optional[int] = None  # the game being moved, excluded from the check

    @field_validator("scheduled_start_time")
    @classmethod
    def validate_time(cls, v):
        if not is_valid_time(v):
            raise ValueError(f"'{v}' is not a valid HH:MM time")
        return v.strip()


def _config_or_422(tournament):
    try:
        return schedule_config_for(tournament)
    except ScheduleConfigError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.get("/tournaments/{tournament_id}/schedule/start-times")
def get_start_times(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    snap = load_snapshot(session, tournament_id)
    config = _config_or_422(snap.tournament)
    return {
        "start_times": list_available_start_times(config),
        "fields": list(config.field_names),
        "slot_minutes": config.slot_minutes,
    }


@router.get("/tournaments/{tournament_id}/schedule/grid")
def get_schedule_grid(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    snap = load_snapshot(session, tournament_id)
    config = _config_or_422(snap.tournament)
    slots = build_schedule_grid(config, snap.games)
    return {
        "fields": list(config.field_names),
        "slots": [s.to_dict() for s in slots],
        "unscheduled_game_ids": [g.id for g in snap.games if not g.scheduled_start_time],
    }


@router.post("/tournaments/{tournament_id}/schedule/validate")
def validate_placement(
    tournament_id: int, request: PlacementCheckRequest, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    """Dry run of a placement. Always 200; ``conflict`` is null when the slot is free."""
    snap = load_snapshot(session, tournament_id)
    config = _config_or_422(snap.tournament)
    proposed = ProposedGame(
        id=request.game_id,
        home_team_id=request.home_team_id,
        away_team_id=request.away_team_id,
        field=request.field,
        scheduled_start_time=request.scheduled_start_time,
    )
    conflict = check_placement_bounds(proposed, config) or validate_assignment(
        proposed, snap.games, config, team_names=snap.team_names
    )
    return {"valid": conflict is None, "conflict": conflict.to_dict() if conflict else None}


@router.get("/tournaments/{tournament_id}/schedule/conflicts")
def get_schedule_conflicts(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    snap = load_snapshot(session, tournament_id)
    config = _config_or_422(snap.tournament)
    conflicts = find_schedule_conflicts(snap.games, config, team_names=snap.team_names)
    return {"conflict_count": len(conflicts), "conflicts": [c.to_dict() for c in conflicts]}
