"""
Team Management API Routes
Registration, editing (including pool assignment) and removal of teams.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, or_, select

from tourney.database import get_session
from tourney.models.game import Game
from tourney.models.pool import Pool
from tourney.models.team import Team
from tourney.utils.snapshot import get_tournament_or_404

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TeamCreateRequest(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    captain: Optional[str] = Field(default=None, max_length=100)
    contact_email: Optional[str] = Field(default=None, max_length=255)
    pool_id: Optional[int] = None


class TeamUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    captain: Optional[str] = Field(default=None, max_length=100)
    contact_email: Optional[str] = Field(default=None, max_length=255)
    pool_id: Optional[int] = None  # explicit null unassigns


class TeamResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    name: str
    captain: Optional[str] = None
    contact_email: Optional[str] = None
    pool_id: Optional[int] = None
    fair_play_points: int = 0
    created_at: datetime


def _check_pool(session: Session, tournament_id: int, pool_id: Optional[int]) -> None:
    if pool_id is None:
        return
    pool = session.get(Pool, pool_id)
    if not pool or pool.tournament_id != tournament_id:
        raise HTTPException(status_code=422, detail=f"Pool {pool_id} does not belong to tournament {tournament_id}")


def _get_team_or_404(session: Session, tournament_id: int, team_id: int) -> Team:
    team = session.get(Team, team_id)
    if not team or team.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


# ============================================================================
# Team CRUD Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/teams", response_model=List[TeamResponse])
def get_teams(tournament_id: int, session: Session = Depends(get_session)):
    """Get all teams for a tournament, ordered by name then id."""
    get_tournament_or_404(session, tournament_id)
    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    return sorted(teams, key=lambda t: (t.name, t.id))


@router.post("/tournaments/{tournament_id}/teams", response_model=TeamResponse, status_code=201)
def create_team(tournament_id: int, request: TeamCreateRequest, session: Session = Depends(get_session)):
    """
    Register a team.

    Constraints:
    - (tournament_id, name) must be unique
    - pool_id, when given, must be a pool of the same tournament
    """
    get_tournament_or_404(session, tournament_id)
    _check_pool(session, tournament_id, request.pool_id)

    team = Team(
        tournament_id=tournament_id,
        name=request.name.strip(),
        captain=request.captain,
        contact_email=request.contact_email,
        pool_id=request.pool_id,
    )

    try:
        session.add(team)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(
            status_code=409, detail=f"Team with name '{request.name}' already exists for this tournament"
        )
    session.refresh(team)
    return team


@router.patch("/tournaments/{tournament_id}/teams/{team_id}", response_model=TeamResponse)
def update_team(
    tournament_id: int, team_id: int, request: TeamUpdateRequest, session: Session = Depends(get_session)
):
    team = _get_team_or_404(session, tournament_id, team_id)

    update_data = request.model_dump(exclude_unset=True)
    if "pool_id" in update_data:
        _check_pool(session, tournament_id, update_data["pool_id"])
        team.pool_id = update_data["pool_id"]
    if update_data.get("name") is not None:
        team.name = update_data["name"].strip()
    if "captain" in update_data:
        team.captain = update_data["captain"]
    if "contact_email" in update_data:
        team.contact_email = update_data["contact_email"]

    try:
        session.add(team)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(
            status_code=409, detail=f"Team with name '{request.name}' already exists for this tournament"
        )
    session.refresh(team)
    return team


@router.delete("/tournaments/{tournament_id}/teams/{team_id}", status_code=204)
def delete_team(tournament_id: int, team_id: int, session: Session = Depends(get_session)):
    """Delete a team. Teams already on the schedule must have their games removed first."""
    team = _get_team_or_404(session, tournament_id, team_id)

    scheduled = session.exec(
        select(Game).where(or_(Game.home_team_id == team_id, Game.away_team_id == team_id))
    ).first()
    if scheduled:
        raise HTTPException(
            status_code=409, detail=f"Team '{team.name}' still appears in game {scheduled.id}"
        )

    session.delete(team)
    session.commit()
    return None
