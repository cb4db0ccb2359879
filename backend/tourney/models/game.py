from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from tourney.models.tournament import Tournament

STATUS_SCHEDULED = "scheduled"
STATUS_COMPLETED = "completed"

ROUND_QUARTERFINAL = "quarterfinal"
ROUND_SEMIFINAL = "semifinal"
ROUND_FINAL = "final"
PLAYOFF_ROUNDS = (ROUND_QUARTERFINAL, ROUND_SEMIFINAL, ROUND_FINAL)


class Game(SQLModel, table=True):
    __table_args__ = (
        # One game per bracket position; pool games have NULL round so are unaffected
        SAUniqueConstraint("tournament_id", "playoff_round", "position", name="uq_tournament_round_position"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    pool_id: Optional[int] = Field(default=None, foreign_key="pool.id", index=True)  # NULL for playoff games

    home_team_id: Optional[int] = Field(default=None, foreign_key="team.id")
    away_team_id: Optional[int] = Field(default=None, foreign_key="team.id")

    status: str = Field(default=STATUS_SCHEDULED)  # "scheduled" | "completed"
    home_score: Optional[int] = Field(default=None)
    away_score: Optional[int] = Field(default=None)

    field: Optional[str] = Field(default=None)
    scheduled_start_time: Optional[str] = Field(default=None)  # "HH:MM"

    # Playoff games only: "quarterfinal" | "semifinal" | "final" and 1-based position in the round
    playoff_round: Optional[str] = Field(default=None, index=True)
    position: Optional[int] = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = Field(default=None)

    # Relationships
    tournament: "Tournament" = Relationship(back_populates="games")
