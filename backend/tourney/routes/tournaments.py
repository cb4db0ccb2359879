from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlmodel import Session, select

from tourney.database import get_session
from tourney.models.tournament import DEFAULT_FIELD_NAMES, Tournament
from tourney.services.slot_scheduler import ScheduleConfigError, is_valid_time, parse_time
from tourney.utils.fields import parse_field_names, schedule_config_for
from tourney.utils.snapshot import get_tournament_or_404

router = APIRouter()

TOURNAMENT_STATUSES = ("setup", "pool_play", "playoffs", "complete")


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not is_valid_time(v):
        raise ValueError(f"'{v}' is not a valid HH:MM time")
    return v.strip()


class TournamentCreate(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    season: Optional[str] = None
    start_time: str = "09:00"
    end_time: str = "17:00"
    game_duration_minutes: int = Field(default=45, gt=0)
    break_duration_minutes: int = Field(default=10, ge=0)
    round_break_minutes: int = Field(default=60, ge=0)
    field_names: Optional[List[str]] = None
    wildcard_count: int = Field(default=2, ge=0, le=8)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, v):
        return _check_time(v)

    @field_validator("field_names")
    @classmethod
    def normalize_field_names(cls, v):
        return parse_field_names(v) or None

    @model_validator(mode="after")
    def validate_day(self):
        if parse_time(self.end_time) <= parse_time(self.start_time):
            raise ValueError("end_time must be after start_time")
        return self


class TournamentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    season: Optional[str] = None
    status: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    game_duration_minutes: Optional[int] = Field(default=None, gt=0)
    break_duration_minutes: Optional[int] = Field(default=None, ge=0)
    round_break_minutes: Optional[int] = Field(default=None, ge=0)
    field_names: Optional[List[str]] = None
    wildcard_count: Optional[int] = Field(default=None, ge=0, le=8)

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_times(cls, v):
        return _check_time(v)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in TOURNAMENT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(TOURNAMENT_STATUSES)}")
        return v

    @field_validator("field_names")
    @classmethod
    def normalize_field_names(cls, v):
        return parse_field_names(v) or None


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    season: Optional[str] = None
    status: str
    start_time: str
    end_time: str
    game_duration_minutes: int
    break_duration_minutes: int
    round_break_minutes: int
    field_names: List[str]
    wildcard_count: int
    created_at: datetime
    updated_at: datetime

    @field_validator("field_names", mode="before")
    @classmethod
    def effective_field_names(cls, v):
        """Unset field names fall back to the default four, same as the scheduler."""
        return parse_field_names(v) or list(DEFAULT_FIELD_NAMES)


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(session: Session = Depends(get_session)):
    """List all tournaments"""
    return session.exec(select(Tournament).order_by(Tournament.id)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(tournament_data: TournamentCreate, session: Session = Depends(get_session)):
    tournament = Tournament(**tournament_data.model_dump())
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return get_tournament_or_404(session, tournament_id)


@router.patch("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(tournament_id: int, tournament_data: TournamentUpdate, session: Session = Depends(get_session)):
    """Update settings. The combined day schedule must still be valid."""
    tournament = get_tournament_or_404(session, tournament_id)

    update_data = tournament_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        # Only season and field_names may be cleared
        if value is None and field not in ("season", "field_names"):
            continue
        setattr(tournament, field, value)

    try:
        schedule_config_for(tournament)
    except ScheduleConfigError as e:
        session.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    tournament.updated_at = datetime.utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament
