"""
Pool API Routes
Pool CRUD, automatic pool draw and round-robin scheduling of a pool.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from tourney.database import get_session
from tourney.models.game import Game
from tourney.models.pool import Pool
from tourney.models.team import Team
from tourney.services.auto_schedule import (
    AutoScheduleError,
    assign_to_pools,
    pool_distribution,
    pool_names,
    round_robin_matchups,
    schedule_matchups,
)
from tourney.utils.fields import schedule_config_for
from tourney.utils.snapshot import get_tournament_or_404, lock_timed_games

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PoolCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)


class PoolGenerateRequest(BaseModel):
    pool_count: Optional[int] = Field(default=None, ge=1)
    names: Optional[List[str]] = None


class PoolResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    name: str
    team_ids: List[int] = []
    created_at: datetime


class PoolScheduleResponse(BaseModel):
    pool_id: int
    created_game_ids: List[int]
    skipped_existing: int
    unplaced: List[List[int]]


def _pool_response(pool: Pool) -> PoolResponse:
    return PoolResponse(
        id=pool.id,
        tournament_id=pool.tournament_id,
        name=pool.name,
        team_ids=sorted(t.id for t in pool.teams),
        created_at=pool.created_at,
    )


def _get_pool_or_404(session: Session, tournament_id: int, pool_id: int) -> Pool:
    pool = session.get(Pool, pool_id)
    if not pool or pool.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Pool not found")
    return pool


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/pools", response_model=List[PoolResponse])
def list_pools(tournament_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    pools = session.exec(select(Pool).where(Pool.tournament_id == tournament_id).order_by(Pool.name, Pool.id)).all()
    return [_pool_response(p) for p in pools]


@router.post("/tournaments/{tournament_id}/pools", response_model=PoolResponse, status_code=201)
def create_pool(tournament_id: int, request: PoolCreateRequest, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    pool = Pool(tournament_id=tournament_id, name=request.name.strip())
    try:
        session.add(pool)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Pool '{request.name}' already exists for this tournament")
    session.refresh(pool)
    return _pool_response(pool)


@router.post("/tournaments/{tournament_id}/pools/generate", response_model=List[PoolResponse], status_code=201)
def generate_pools(tournament_id: int, request: PoolGenerateRequest, session: Session = Depends(get_session)):
    """
    Replace the tournament's pools with an even draw of all registered teams.

    Teams are dealt in registration order. Refused once any game exists,
    since existing games reference the current pools.
    """
    get_tournament_or_404(session, tournament_id)

    if session.exec(select(Game).where(Game.tournament_id == tournament_id)).first():
        raise HTTPException(status_code=409, detail="Pools cannot be regenerated once games exist")

    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.id)).all()
    try:
        sizes = pool_distribution(len(teams), request.pool_count)
        assignments = assign_to_pools([t.id for t in teams], sizes)
    except AutoScheduleError as e:
        raise HTTPException(status_code=422, detail=str(e))
    names = pool_names(len(sizes), request.names)
    if len(set(names)) != len(names):
        raise HTTPException(status_code=422, detail=f"Pool names must be unique: {names}")

    for team in teams:
        team.pool_id = None
        session.add(team)
    for old in session.exec(select(Pool).where(Pool.tournament_id == tournament_id)).all():
        session.delete(old)
    session.flush()

    by_id = {t.id: t for t in teams}
    pools: List[Pool] = []
    for name, member_ids in zip(names, assignments):
        pool = Pool(tournament_id=tournament_id, name=name)
        session.add(pool)
        session.flush()
        for team_id in member_ids:
            by_id[team_id].pool_id = pool.id
            session.add(by_id[team_id])
        pools.append(pool)
    session.commit()

    logger.info("Tournament %s: %d teams drawn into pools of %s", tournament_id, len(teams), sizes)
    for pool in pools:
        session.refresh(pool)
    return [_pool_response(p) for p in pools]


@router.delete("/tournaments/{tournament_id}/pools/{pool_id}", status_code=204)
def delete_pool(tournament_id: int, pool_id: int, session: Session = Depends(get_session)):
    """Delete a pool and unassign its teams. Pools with games cannot be deleted."""
    pool = _get_pool_or_404(session, tournament_id, pool_id)
    if session.exec(select(Game).where(Game.pool_id == pool_id)).first():
        raise HTTPException(status_code=409, detail=f"Pool '{pool.name}' still has games")

    for team in session.exec(select(Team).where(Team.pool_id == pool_id)).all():
        team.pool_id = None
        session.add(team)
    session.delete(pool)
    session.commit()
    return None


@router.post("/tournaments/{tournament_id}/pools/{pool_id}/schedule", response_model=PoolScheduleResponse)
def schedule_pool(tournament_id: int, pool_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """
    Create the pool's round-robin games and place them on the timetable.

    Pairings that already have a game in this pool are skipped, so running it
    again only fills gaps. Matchups with no free slot are reported, not created.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    pool = _get_pool_or_404(session, tournament_id, pool_id)

    team_ids = sorted(t.id for t in pool.teams)
    try:
        matchups = round_robin_matchups(team_ids)
    except AutoScheduleError as e:
        raise HTTPException(status_code=422, detail=str(e))

    existing_pairs = {
        frozenset((g.home_team_id, g.away_team_id))
        for g in session.exec(select(Game).where(Game.pool_id == pool_id)).all()
    }
    pending = [m for m in matchups if frozenset(m) not in existing_pairs]

    run = schedule_matchups(pending, schedule_config_for(tournament), lock_timed_games(session, tournament_id))

    created: List[Game] = []
    for placement in run.placed:
        game = Game(
            tournament_id=tournament_id,
            pool_id=pool_id,
            home_team_id=placement.home_team_id,
            away_team_id=placement.away_team_id,
            field=placement.field,
            scheduled_start_time=placement.scheduled_start_time,
        )
        session.add(game)
        created.append(game)
    session.commit()

    logger.info(
        "Pool %s (%s): %d game(s) scheduled, %d unplaced",
        pool.name,
        pool_id,
        len(created),
        len(run.unplaced),
    )
    return {
        "pool_id": pool_id,
        "created_game_ids": [g.id for g in created],
        "skipped_existing": len(matchups) - len(pending),
        "unplaced": [list(m) for m in run.unplaced],
    }
