"""
Standings, qualification and statistics (read-only).

Everything is recomputed from the current rows on each request.
"""
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from tourney.database import get_session
from tourney.services.qualification import QualificationError, compute_pool_results, compute_qualifiers
from tourney.services.standings import GameValidationError, compute_standings
from tourney.services.statistics import game_analytics, top_performers, tournament_summary
from tourney.utils.snapshot import load_snapshot

router = APIRouter()


@router.get("/tournaments/{tournament_id}/standings")
def get_standings(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Overall table over pool games plus one table per pool."""
    snap = load_snapshot(session, tournament_id)
    try:
        overall = compute_standings(snap.teams, snap.pool_games)
        pools = compute_pool_results(snap.pools, snap.teams, snap.pool_games)
    except GameValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "tournament_id": tournament_id,
        "overall": [s.to_dict() for s in overall],
        "pools": [p.to_dict() for p in pools],
    }


@router.get("/tournaments/{tournament_id}/qualification")
def get_qualification(
    tournament_id: int,
    selected: Optional[List[int]] = Query(default=None),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    """
    Pool winners, wildcards and seeds.

    ``selected`` resolves a wildcard tie: the team ids picked from the tied
    candidates, exactly one per open slot.
    """
    snap = load_snapshot(session, tournament_id)
    try:
        result = compute_qualifiers(
            snap.pools,
            snap.teams,
            snap.pool_games,
            snap.tournament.wildcard_count,
            selected_wildcard_ids=selected,
        )
    except (GameValidationError, QualificationError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return result.to_dict()


@router.get("/tournaments/{tournament_id}/statistics")
def get_statistics(
    tournament_id: int,
    limit: int = Query(default=5, ge=1, le=50),
    session: Session = Depends(get_session),
) -> Dict[str, Any]:
    snap = load_snapshot(session, tournament_id)
    try:
        standings = compute_standings(snap.teams, snap.games)
    except GameValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {
        "summary": tournament_summary(snap.teams, snap.pools, snap.games),
        "analytics": game_analytics(snap.games),
        "top_performers": top_performers(standings, limit=limit),
    }
