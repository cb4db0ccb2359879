"""
Playoff advancement: when a playoff game is completed, create the next-round
games whose feeders are now all decided.

The bracket math lives in ``bracket.propagate_winners``; this module only
persists its output. Result + new games are written in one commit.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from tourney.models.game import STATUS_COMPLETED, Game
from tourney.services.bracket import (
    FEEDERS,
    BracketError,
    GameStub,
    generate_quarterfinals,
    propagate_winners,
    slot_label,
)
from tourney.services.standings import GameValidationError, validate_completed_game

logger = logging.getLogger(__name__)


def playoff_games_for(session: Session, tournament_id: int) -> List[Game]:
    return list(session.exec(
        select(Game)
        .where(Game.tournament_id == tournament_id, Game.playoff_round.is_not(None))
        .order_by(Game.id)
    ).all())


def downstream_slot(game: Game) -> Optional[Tuple[str, int]]:
    key = (game.playoff_round, game.position)
    for target, feeders in FEEDERS.items():
        if key in feeders:
            return target
    return None


def downstream_game(session: Session, game: Game) -> Optional[Game]:
    """The persisted next-round game this one feeds, if it exists yet."""
    target = downstream_slot(game)
    if target is None:
        return None
    return session.exec(
        select(Game).where(
            Game.tournament_id == game.tournament_id,
            Game.playoff_round == target[0],
            Game.position == target[1],
        )
    ).first()


def _game_from_stub(tournament_id: int, stub: GameStub) -> Game:
    return Game(
        tournament_id=tournament_id,
        home_team_id=stub.home_team_id,
        away_team_id=stub.away_team_id,
        status=stub.status,
        playoff_round=stub.playoff_round,
        position=stub.position,
    )


def create_quarterfinal_games(session: Session, tournament_id: int, seeds: Sequence) -> List[Game]:
    """Insert QF1..QF4 for ``seeds``. Refuses when the tournament already has playoff games."""
    existing = playoff_games_for(session, tournament_id)
    if existing:
        raise BracketError(
            f"Tournament {tournament_id} already has {len(existing)} playoff game(s); delete them before regenerating"
        )

    games = [_game_from_stub(tournament_id, stub) for stub in generate_quarterfinals(seeds)]
    for game in games:
        session.add(game)
    session.commit()
    for game in games:
        session.refresh(game)

    logger.info(
        "Tournament %s quarterfinals created: %s",
        tournament_id,
        ", ".join(f"{slot_label(g.playoff_round, g.position)}={g.home_team_id}v{g.away_team_id}" for g in games),
    )
    return games


def record_playoff_result(session: Session, game: Game, home_score: int, away_score: int) -> Dict:
    """
    Complete a playoff game and advance its winner.

    Returns:
        Dict with:
        - game: the updated game
        - created: next-round games inserted by this call (possibly empty)

    Guarantees:
        - Idempotent: recording the same result twice creates nothing new
        - A result that would change an already-advanced winner is rejected
    """
    if not game.playoff_round:
        raise GameValidationError(game.id, "not a playoff game")
    if game.home_team_id is None or game.away_team_id is None:
        raise GameValidationError(game.id, "both teams must be known before recording a result")

    previous_winner = None
    if game.status == STATUS_COMPLETED and game.home_score is not None and game.away_score is not None:
        previous_winner = game.home_team_id if game.home_score > game.away_score else game.away_team_id

    candidate = Game(
        id=game.id,
        tournament_id=game.tournament_id,
        home_team_id=game.home_team_id,
        away_team_id=game.away_team_id,
        status=STATUS_COMPLETED,
        home_score=home_score,
        away_score=away_score,
        playoff_round=game.playoff_round,
        position=game.position,
    )
    validate_completed_game(candidate)
    new_winner = game.home_team_id if home_score > away_score else game.away_team_id

    if previous_winner is not None and previous_winner != new_winner:
        downstream = downstream_game(session, game)
        if downstream is not None:
            raise BracketError(
                f"Game {game.id}: {slot_label(downstream.playoff_round, downstream.position)} "
                f"(game {downstream.id}) already has the previous winner; delete it before changing this result"
            )

    game.home_score = home_score
    game.away_score = away_score
    game.status = STATUS_COMPLETED
    game.completed_at = datetime.utcnow()
    session.add(game)
    session.flush()

    stubs = propagate_winners(playoff_games_for(session, game.tournament_id))
    created = [_game_from_stub(game.tournament_id, stub) for stub in stubs]
    for new_game in created:
        session.add(new_game)
    session.commit()

    session.refresh(game)
    for new_game in created:
        session.refresh(new_game)
        logger.info(
            "Tournament %s: %s created (%s v %s)",
            game.tournament_id,
            slot_label(new_game.playoff_round, new_game.position),
            new_game.home_team_id,
            new_game.away_team_id,
        )

    return {"game": game, "created": created}
