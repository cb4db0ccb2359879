"""
Loading the in-memory snapshot the engine works on.

Every read endpoint loads the tournament's rows once and hands plain lists to
the pure services; nothing derived is stored.
"""
from typing import List, NamedTuple

from fastapi import HTTPException
from sqlmodel import Session, select

from tourney.models.game import Game
from tourney.models.pool import Pool
from tourney.models.team import Team
from tourney.models.tournament import Tournament


class Snapshot(NamedTuple):
    tournament: Tournament
    teams: List[Team]
    pools: List[Pool]
    games: List[Game]

    @property
    def pool_games(self) -> List[Game]:
        return [g for g in self.games if g.playoff_round is None]

    @property
    def playoff_games(self) -> List[Game]:
        return [g for g in self.games if g.playoff_round is not None]

    @property
    def team_names(self):
        return {t.id: t.name for t in self.teams}


def get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    """Get tournament or raise 404."""
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail=f"Tournament {tournament_id} not found")
    return tournament


def load_snapshot(session: Session, tournament_id: int) -> Snapshot:
    tournament = get_tournament_or_404(session, tournament_id)
    teams = session.exec(select(Team).where(Team.tournament_id == tournament_id).order_by(Team.id)).all()
    pools = session.exec(select(Pool).where(Pool.tournament_id == tournament_id).order_by(Pool.id)).all()
    games = session.exec(select(Game).where(Game.tournament_id == tournament_id).order_by(Game.id)).all()
    return Snapshot(tournament=tournament, teams=list(teams), pools=list(pools), games=list(games))


def lock_timed_games(session: Session, tournament_id: int) -> List[Game]:
    """Re-read every timed game of the tournament with SELECT ... FOR UPDATE.

    Placements are validated against this list and written in the same
    session, so two editors cannot both claim the same slot.
    """
    return list(session.exec(
        select(Game)
        .where(Game.tournament_id == tournament_id, Game.scheduled_start_time.is_not(None))
        .order_by(Game.id)
        .with_for_update()
    ).all())
