"""
Playoff API Routes
Qualification -> quarterfinals, bracket view, result entry with advancement,
and playoff timing.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from tourney.database import get_session
from tourney.models.game import ROUND_FINAL, STATUS_COMPLETED, Game
from tourney.routes.games import GameResponse, GameResultRequest
from tourney.services.advancement_service import create_quarterfinal_games, record_playoff_result
from tourney.services.auto_schedule import AutoScheduleError, plan_playoff_schedule
from tourney.services.bracket import BracketError, build_bracket, seeds_from_quarterfinals
from tourney.services.qualification import (
    STATUS_READY,
    QualificationError,
    Seed,
    build_custom_seeds,
    compute_pool_results,
    compute_qualifiers,
)
from tourney.services.slot_scheduler import ProposedGame, check_placement_bounds, validate_assignment
from tourney.services.standings import GameValidationError, compute_standings
from tourney.utils.fields import schedule_config_for
from tourney.utils.snapshot import Snapshot, load_snapshot, lock_timed_games

logger = logging.getLogger(__name__)

router = APIRouter()


class PlayoffGenerateRequest(BaseModel):
    # Resolves a pending wildcard tie (see /qualification)
    selected_wildcard_ids: Optional[List[int]] = None
    # Organiser-supplied seed order, best seed first; overrides the computed seeding
    custom_order: Optional[List[int]] = Field(default=None, min_length=8, max_length=8)


def _pool_winner_ids(snap: Snapshot) -> List[int]:
    results = compute_pool_results(snap.pools, snap.teams, snap.pool_games)
    return [p.winner.team_id for p in results if p.winner is not None]


def _current_seeds(snap: Snapshot) -> List[Seed]:
    seed_map = seeds_from_quarterfinals(snap.playoff_games)
    if not seed_map:
        return []
    standings = {s.team_id: s for s in compute_standings(snap.teams, snap.pool_games)}
    winner_ids = set(_pool_winner_ids(snap))
    return [
        Seed(
            seed=seed,
            team_id=team_id,
            team_name=standings[team_id].team_name if team_id in standings else f"Team {team_id}",
            is_pool_winner=team_id in winner_ids,
            standing=standings.get(team_id),
        )
        for seed, team_id in sorted(seed_map.items())
    ]


@router.post("/tournaments/{tournament_id}/playoffs/generate", status_code=201)
def generate_playoffs(
    tournament_id: int, request: PlayoffGenerateRequest, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    """
    Seed the qualifiers and create QF1..QF4.

    Without a custom order the qualification must be ready; a pending or
    incomplete qualification is returned as 409 with the full qualification.
    """
    snap = load_snapshot(session, tournament_id)
    if snap.playoff_games:
        raise HTTPException(status_code=409, detail="Playoff games already exist for this tournament")

    try:
        if request.custom_order:
            standings = {s.team_id: s for s in compute_standings(snap.teams, snap.pool_games)}
            seeds = build_custom_seeds(request.custom_order, standings, _pool_winner_ids(snap))
        else:
            result = compute_qualifiers(
                snap.pools,
                snap.teams,
                snap.pool_games,
                snap.tournament.wildcard_count,
                selected_wildcard_ids=request.selected_wildcard_ids,
            )
            if result.status != STATUS_READY:
                raise HTTPException(status_code=409, detail=result.to_dict())
            seeds = result.seeds
        games = create_quarterfinal_games(session, tournament_id, seeds)
    except (GameValidationError, QualificationError, BracketError) as e:
        session.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    tournament = snap.tournament
    tournament.status = "playoffs"
    session.add(tournament)
    session.commit()

    return {
        "seeds": [s.to_dict() for s in seeds],
        "games": [GameResponse.model_validate(g).model_dump() for g in games],
    }


@router.get("/tournaments/{tournament_id}/playoffs")
def get_bracket(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Bracket view: real games where they exist, placeholder labels elsewhere."""
    snap = load_snapshot(session, tournament_id)
    try:
        bracket = build_bracket(_current_seeds(snap), snap.playoff_games)
    except (GameValidationError, BracketError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    data = bracket.to_dict()
    data["team_names"] = snap.team_names
    return data


@router.post("/tournaments/{tournament_id}/playoffs/{game_id}/result")
def record_playoff_game_result(
    tournament_id: int, game_id: int, request: GameResultRequest, session: Session = Depends(get_session)
) -> Dict[str, Any]:
    """Record a playoff result (no ties) and create any next-round game it completes."""
    game = session.get(Game, game_id)
    if not game or game.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Game not found")

    try:
        outcome = record_playoff_result(session, game, request.home_score, request.away_score)
    except (GameValidationError, BracketError) as e:
        session.rollback()
        raise HTTPException(status_code=422, detail=str(e))

    if game.playoff_round == ROUND_FINAL:
        tournament = game.tournament
        tournament.status = "complete"
        session.add(tournament)
        session.commit()
        session.refresh(game)

    return {
        "game": GameResponse.model_validate(outcome["game"]).model_dump(),
        "created": [GameResponse.model_validate(g).model_dump() for g in outcome["created"]],
    }


@router.post("/tournaments/{tournament_id}/playoffs/auto-schedule")
def auto_schedule_playoffs(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """
    Time every bracket position and apply it to the playoff games that exist.

    Completed games keep their slot. Every other planned placement is checked
    against a locked read of the timetable (and the placements before it);
    the first clash aborts the whole run with 409. Later rounds created
    afterwards are untimed until this runs again. Kick-offs past the end of
    the day are applied and reported as warnings.
    """
    snap = load_snapshot(session, tournament_id)
    config = schedule_config_for(snap.tournament)
    try:
        plan = plan_playoff_schedule(config, snap.tournament.round_break_minutes, snap.pool_games)
    except AutoScheduleError as e:
        raise HTTPException(status_code=422, detail=str(e))

    by_slot = {(g.playoff_round, g.position): g for g in snap.playoff_games}
    to_time = {g.id: g for g in snap.playoff_games if g.status != STATUS_COMPLETED}
    # Games being re-timed are checked at their new slot, not their old one
    busy: List[Any] = [g for g in lock_timed_games(session, tournament_id) if g.id not in to_time]

    placements: List[ProposedGame] = []
    skipped: List[int] = []
    for entry in plan:
        game = by_slot.get((entry.playoff_round, entry.position))
        if game is None:
            continue
        if game.id not in to_time:
            skipped.append(game.id)
            continue
        proposed = ProposedGame(
            id=game.id,
            home_team_id=game.home_team_id,
            away_team_id=game.away_team_id,
            field=entry.field,
            scheduled_start_time=entry.start_time,
        )
        conflict = validate_assignment(proposed, busy, config, team_names=snap.team_names)
        if conflict is not None:
            session.rollback()
            logger.info("Playoff schedule for tournament %s rejected: %s", tournament_id, conflict.message)
            raise HTTPException(status_code=409, detail=conflict.to_dict())
        busy.append(proposed)
        placements.append(proposed)

    warnings: List[Dict[str, Any]] = []
    for proposed in placements:
        game = to_time[proposed.id]
        game.field = proposed.field
        game.scheduled_start_time = proposed.scheduled_start_time
        session.add(game)
        conflict = check_placement_bounds(proposed, config)
        if conflict is not None:
            warnings.append(conflict.to_dict())
    session.commit()

    if warnings:
        logger.warning("Tournament %s playoff schedule runs past the day: %d game(s)", tournament_id, len(warnings))
    return {
        "plan": [p.to_dict() for p in plan],
        "assigned_game_ids": [p.id for p in placements],
        "skipped_completed_ids": skipped,
        "warnings": warnings,
    }
