"""
Announcement API Routes
Messages posted by the organisers for the display screens, newest first.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlmodel import Session, select

from tourney.database import get_session
from tourney.models.announcement import DEFAULT_AUTHOR, Announcement
from tourney.utils.snapshot import get_tournament_or_404

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class AnnouncementCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    message: str = Field(min_length=1, max_length=2000)
    created_by: Optional[str] = Field(default=None, max_length=100)


class AnnouncementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    title: str
    message: str
    created_by: str
    created_at: datetime


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/announcements", response_model=List[AnnouncementResponse])
def list_announcements(tournament_id: int, session: Session = Depends(get_session)):
    get_tournament_or_404(session, tournament_id)
    return session.exec(
        select(Announcement)
        .where(Announcement.tournament_id == tournament_id)
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
    ).all()


@router.post("/tournaments/{tournament_id}/announcements", response_model=AnnouncementResponse, status_code=201)
def create_announcement(
    tournament_id: int, request: AnnouncementCreateRequest, session: Session = Depends(get_session)
):
    get_tournament_or_404(session, tournament_id)
    title = request.title.strip()
    message = request.message.strip()
    if not title or not message:
        raise HTTPException(status_code=422, detail="Title and message are required")

    announcement = Announcement(
        tournament_id=tournament_id,
        title=title,
        message=message,
        created_by=(request.created_by or "").strip() or DEFAULT_AUTHOR,
    )
    session.add(announcement)
    session.commit()
    session.refresh(announcement)

    logger.info("Tournament %s announcement %s posted: %s", tournament_id, announcement.id, title)
    return announcement


# Must stay above the {announcement_id} route
@router.delete("/tournaments/{tournament_id}/announcements/reset")
def reset_announcements(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Delete every announcement of the tournament."""
    get_tournament_or_404(session, tournament_id)
    announcements = session.exec(
        select(Announcement).where(Announcement.tournament_id == tournament_id)
    ).all()
    for announcement in announcements:
        session.delete(announcement)
    session.commit()

    logger.info("Tournament %s: %d announcement(s) cleared", tournament_id, len(announcements))
    return {"deleted": len(announcements)}


@router.delete("/tournaments/{tournament_id}/announcements/{announcement_id}", status_code=204)
def delete_announcement(tournament_id: int, announcement_id: int, session: Session = Depends(get_session)):
    announcement = session.get(Announcement, announcement_id)
    if not announcement or announcement.tournament_id != tournament_id:
        raise HTTPException(status_code=404, detail="Announcement not found")
    session.delete(announcement)
    session.commit()
    return None
