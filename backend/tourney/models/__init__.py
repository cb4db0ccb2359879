from tourney.models.announcement import Announcement
from tourney.models.game import Game
from tourney.models.pool import Pool
from tourney.models.team import Team
from tourney.models.tournament import Tournament

__all__ = [
    "Tournament",
    "Pool",
    "Team",
    "Game",
    "Announcement",
]
