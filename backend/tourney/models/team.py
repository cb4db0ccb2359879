from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from tourney.models.pool import Pool
    from tourney.models.tournament import Tournament


class Team(SQLModel, table=True):
    __table_args__ = (
        # Team names double as the last ranking tie-break, keep them unique
        SAUniqueConstraint("tournament_id", "name", name="uq_tournament_team_name"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str
    captain: Optional[str] = None
    contact_email: Optional[str] = None

    # A team sits in at most one pool at a time (nullable until pools are drawn)
    pool_id: Optional[int] = Field(default=None, foreign_key="pool.id", index=True)

    # Disciplinary points; reserved tie-break, nothing populates it yet
    fair_play_points: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="teams")
    pool: Optional["Pool"] = Relationship(back_populates="teams")
