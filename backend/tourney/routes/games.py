"""
Game API Routes
Manual schedule editing and pool result entry.

Every placement is re-validated against a FOR UPDATE read of the timed games
inside the session that writes it; a conflict is returned as 409 with the
conflict as ``detail``.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlmodel import Session, select

from tourney.database import get_session
from tourney.models.game import STATUS_COMPLETED, Game
from tourney.models.pool import Pool
from tourney.models.team import Team
from tourney.services.advancement_service import downstream_game
from tourney.services.slot_scheduler import (
    CONFLICT_SELF_MATCH,
    ProposedGame,
    ScheduleConfig,
    ScheduleConflict,
    check_placement_bounds,
    is_valid_time,
    validate_assignment,
)
from tourney.utils.fields import schedule_config_for
from tourney.utils.snapshot import get_tournament_or_404, lock_timed_games

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_SCORE = 50


# ============================================================================
# Request/Response Models
# ============================================================================


def _check_time(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not is_valid_time(v):
        raise ValueError(f"'{v}' is not a valid HH:MM time")
    return v.strip()


class GameCreateRequest(BaseModel):
    home_team_id: int
    away_team_id: int
    pool_id: Optional[int] = None
    field: Optional[str] = None
    scheduled_start_time: Optional[str] = None

    @field_validator("scheduled_start_time")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)

    @model_validator(mode="after")
    def validate_placement(self):
        if (self.field is None) != (self.scheduled_start_time is None):
            raise ValueError("field and scheduled_start_time must be given together")
        return self


class GameUpdateRequest(BaseModel):
    """Reschedule. Both null clears the placement."""

    field: Optional[str] = None
    scheduled_start_time: Optional[str] = None

    @field_validator("scheduled_start_time")
    @classmethod
    def validate_time(cls, v):
        return _check_time(v)

    @model_validator(mode="after")
    def validate_placement(self):
        if (self.field is None) != (self.scheduled_start_time is None):
            raise ValueError("field and scheduled_start_time must be given together")
        return self


class BulkPlacement(GameUpdateRequest):
    id: int


class BulkScheduleRequest(BaseModel):
    games: List[BulkPlacement] = Field(min_length=1)


class GameResultRequest(BaseModel):
    home_score: int = Field(ge=0, le=MAX_SCORE)
    away_score: int = Field(ge=0, le=MAX_SCORE)


class GameResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    pool_id: Optional[int] = None
    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    status: str
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    field: Optional[str] = None
    scheduled_start_time: Optional[str] = None
    playoff_round: Optional[str] = None
    position: Optional[int] = None
    completed_at: Optional[datetime] = None


# ============================================================================
# Helpers
# ============================================================================


def _get_game_or_404(session: Session, tournament_id: int, game_id: int) -> Game:
    game = session.get(Game, game_id)
    if not game or game.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Game not found")
    return game


def _team_names(session: Session, tournament_id: int) -> Dict[int, str]:
    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id)).all()
    return {t.id: t.name for t in teams}


def _reject(session: Session, tournament_id: int, conflict: ScheduleConflict) -> None:
    session.rollback()
    logger.info("Rejected placement for tournament %s: %s", tournament_id, conflict.message)
    raise HTTPException(status_code=409, detail=conflict.to_dict())


def validate_placement_or_409(
    session: Session, tournament_id: int, proposed: ProposedGame, config: ScheduleConfig
) -> None:
    """Bounds first, then team/field overlap against a locked read of the timetable."""
    conflict = check_placement_bounds(proposed, config) or validate_assignment(
        proposed,
        lock_timed_games(session, tournament_id),
        config,
        team_names=_team_names(session, tournament_id),
    )
    if conflict is not None:
        _reject(session, tournament_id, conflict)


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/games", response_model=List[GameResponse])
def list_games(
    tournament_id: int,
    pool_id: Optional[int] = Query(default=None),
    playoff: Optional[bool] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Games ordered by kick-off (untimed last), field, then id."""
    get_tournament_or_404(session, tournament_id)
    query = select(Game).where(Game.tournament_id == tournament_id)
    if pool_id is not None:
        query = query.where(Game.pool_id == pool_id)
    if playoff is True:
        query = query.where(Game.playoff_round.is_not(None))
    elif playoff is False:
        query = query.where(Game.playoff_round.is_(None))
    games = session.exec(query).all()
    return sorted(
        games,
        key=lambda g: (g.scheduled_start_time is None, g.scheduled_start_time or "", g.field or "", g.id),
    )


@router.post("/tournaments/{tournament_id}/games", response_model=GameResponse, status_code=201)
def create_game(tournament_id: int, request: GameCreateRequest, session: Session = Depends(get_session)):
    tournament = get_tournament_or_404(session, tournament_id)

    for team_id in (request.home_team_id, request.away_team_id):
        team = session.get(Team, team_id)
        if not team or team.tournament_id != tournament_id:
            raise HTTPException(status_code=422, detail=f"Team {team_id} does not belong to tournament {tournament_id}")
    if request.pool_id is not None:
        pool = session.get(Pool, request.pool_id)
        if not pool or pool.tournament_id != tournament_id:
            raise HTTPException(status_code=422, detail=f"Pool {request.pool_id} does not belong to tournament {tournament_id}")

    proposed = ProposedGame(
        home_team_id=request.home_team_id,
        away_team_id=request.away_team_id,
        field=request.field,
        scheduled_start_time=request.scheduled_start_time,
    )
    if request.home_team_id == request.away_team_id:
        conflict = ScheduleConflict(
            kind=CONFLICT_SELF_MATCH,
            message="A team cannot play against itself",
            team_id=request.home_team_id,
        )
        raise HTTPException(status_code=409, detail=conflict.to_dict())
    if proposed.field is not None:
        validate_placement_or_409(session, tournament_id, proposed, schedule_config_for(tournament))

    game = Game(
        tournament_id=tournament_id,
        pool_id=request.pool_id,
        home_team_id=request.home_team_id,
        away_team_id=request.away_team_id,
        field=request.field,
        scheduled_start_time=request.scheduled_start_time,
    )
    session.add(game)
    session.commit()
    session.refresh(game)
    return game


@router.patch("/tournaments/{tournament_id}/games/{game_id}", response_model=GameResponse)
def reschedule_game(
    tournament_id: int, game_id: int, request: GameUpdateRequest, session: Session = Depends(get_session)
):
    tournament = get_tournament_or_404(session, tournament_id)
    game = _get_game_or_404(session, tournament_id, game_id)

    if request.field is not None:
        proposed = ProposedGame(
            id=game.id,
            home_team_id=game.home_team_id,
            away_team_id=game.away_team_id,
            field=request.field,
            scheduled_start_time=request.scheduled_start_time,
        )
        validate_placement_or_409(session, tournament_id, proposed, schedule_config_for(tournament))

    game.field = request.field
    game.scheduled_start_time = request.scheduled_start_time
    session.add(game)
    session.commit()
    session.refresh(game)
    return game


@router.put("/tournaments/{tournament_id}/games/bulk-schedule", response_model=List[GameResponse])
def bulk_schedule_games(tournament_id: int, request: BulkScheduleRequest, session: Session = Depends(get_session)):
    """
    Move several games at once. All or nothing.

    Games in the request are checked at their new slots, in request order,
    against the rest of the (locked) timetable and the placements accepted
    before them. The first conflict rejects the whole batch with 409.
    """
    tournament = get_tournament_or_404(session, tournament_id)
    config = schedule_config_for(tournament)

    ids = [entry.id for entry in request.games]
    if len(set(ids)) != len(ids):
        raise HTTPException(status_code=422, detail=f"A game appears more than once in the batch: {ids}")
    games = {game_id: _get_game_or_404(session, tournament_id, game_id) for game_id in ids}

    team_names = _team_names(session, tournament_id)
    busy: List[Any] = [g for g in lock_timed_games(session, tournament_id) if g.id not in games]
    for entry in request.games:
        if entry.field is None:
            continue
        game = games[entry.id]
        proposed = ProposedGame(
            id=game.id,
            home_team_id=game.home_team_id,
            away_team_id=game.away_team_id,
            field=entry.field,
            scheduled_start_time=entry.scheduled_start_time,
        )
        conflict = check_placement_bounds(proposed, config) or validate_assignment(
            proposed, busy, config, team_names=team_names
        )
        if conflict is not None:
            _reject(session, tournament_id, conflict)
        busy.append(proposed)

    for entry in request.games:
        game = games[entry.id]
        game.field = entry.field
        game.scheduled_start_time = entry.scheduled_start_time
        session.add(game)
    session.commit()

    logger.info("Tournament %s: %d game(s) rescheduled in one batch", tournament_id, len(ids))
    result = []
    for game_id in ids:
        session.refresh(games[game_id])
        result.append(games[game_id])
    return result


@router.delete("/tournaments/{tournament_id}/games/{game_id}", status_code=204)
def delete_game(tournament_id: int, game_id: int, session: Session = Depends(get_session)):
    """Delete a game. A playoff game whose next-round game exists cannot be deleted."""
    game = _get_game_or_404(session, tournament_id, game_id)
    if game.playoff_round:
        downstream = downstream_game(session, game)
        if downstream is not None:
            raise HTTPException(
                status_code=409,
                detail=f"Game {game_id} already feeds game {downstream.id}; delete that game first",
            )
    session.delete(game)
    session.commit()
    return None


@router.post("/tournaments/{tournament_id}/games/{game_id}/result", response_model=GameResponse)
def record_result(
    tournament_id: int, game_id: int, request: GameResultRequest, session: Session = Depends(get_session)
):
    """Record (or correct) a pool game result. Playoff results go through /playoffs."""
    game = _get_game_or_404(session, tournament_id, game_id)
    if game.playoff_round:
        raise HTTPException(
            status_code=422, detail=f"Game {game_id} is a playoff game; use the playoff result endpoint"
        )

    game.home_score = request.home_score
    game.away_score = request.away_score
    game.status = STATUS_COMPLETED
    game.completed_at = datetime.utcnow()
    session.add(game)
    session.commit()
    session.refresh(game)

    logger.info(
        "Tournament %s game %s result %s-%s", tournament_id, game_id, request.home_score, request.away_score
    )
    return game
