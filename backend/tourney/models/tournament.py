from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from tourney.models.announcement import Announcement
    from tourney.models.game import Game
    from tourney.models.pool import Pool
    from tourney.models.team import Team

DEFAULT_FIELD_NAMES = ["Field 1", "Field 2", "Field 3", "Field 4"]


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    season: Optional[str] = None
    status: str = Field(default="setup")  # "setup" | "pool_play" | "playoffs" | "complete"

    # Day schedule ("HH:MM" time-of-day strings)
    start_time: str = Field(default="09:00")
    end_time: str = Field(default="17:00")
    game_duration_minutes: int = Field(default=45)
    break_duration_minutes: int = Field(default=10)
    round_break_minutes: int = Field(default=60)  # Gap between playoff rounds
    field_names: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))

    # Playoff format: pool winners + wildcard_count best runners-up
    wildcard_count: int = Field(default=2)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    pools: List["Pool"] = Relationship(back_populates="tournament")
    teams: List["Team"] = Relationship(back_populates="tournament")
    games: List["Game"] = Relationship(back_populates="tournament")
    announcements: List["Announcement"] = Relationship(back_populates="tournament")
