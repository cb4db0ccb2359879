"""
Standings — per-team records and the ranking cascade.

Every standing is recomputed from the full list of completed games; nothing
is stored or patched incrementally.

Scoring: win = 3, tie = 1, loss = 0.

Ranking cascade (each level only breaks ties left by the previous one):
  1. points              (desc)
  2. goal differential   (desc)
  3. goals for           (desc)
  4. goals against       (asc)
  5. fair-play points    (asc)
  6. team name           (asc)  — stand-in for the real-world coin toss
"""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from tourney.models.game import STATUS_COMPLETED

POINTS_WIN = 3
POINTS_TIE = 1
POINTS_LOSS = 0


class GameValidationError(ValueError):
    """A completed game carries a result that can never be valid."""

    def __init__(self, game_id: Optional[int], message: str):
        self.game_id = game_id
        super().__init__(f"Game {game_id}: {message}")


@dataclass
class TeamStanding:
    team_id: int
    team_name: str
    pool_id: Optional[int] = None
    games_played: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0
    goals_for: int = 0
    goals_against: int = 0
    fair_play_points: int = 0

    @property
    def points(self) -> int:
        return self.wins * POINTS_WIN + self.ties * POINTS_TIE + self.losses * POINTS_LOSS

    @property
    def goal_differential(self) -> int:
        return self.goals_for - self.goals_against

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["points"] = self.points
        data["goal_differential"] = self.goal_differential
        return data


def is_completed(game: Any) -> bool:
    return (game.status or "").lower() == STATUS_COMPLETED


def validate_completed_game(game: Any) -> None:
    """Reject completed games whose scores are missing or negative, and drawn playoff games."""
    if game.home_score is None or game.away_score is None:
        raise GameValidationError(game.id, "completed game is missing a score")
    if game.home_score < 0 or game.away_score < 0:
        raise GameValidationError(
            game.id, f"negative score {game.home_score}-{game.away_score}"
        )
    if getattr(game, "playoff_round", None) and game.home_score == game.away_score:
        raise GameValidationError(
            game.id,
            f"{game.playoff_round} ended {game.home_score}-{game.away_score}; "
            "playoff games need a winner (record the shootout result)",
        )


def ranking_key(standing: TeamStanding) -> Tuple:
    """Sort key implementing the full cascade. Team id keeps equal names deterministic."""
    return (
        -standing.points,
        -standing.goal_differential,
        -standing.goals_for,
        standing.goals_against,
        standing.fair_play_points,
        standing.team_name,
        standing.team_id,
    )


def rank_standings(standings: Iterable[TeamStanding]) -> List[TeamStanding]:
    return sorted(standings, key=ranking_key)


def compute_standings(teams: Sequence[Any], games: Iterable[Any]) -> List[TeamStanding]:
    """Build ranked standings for ``teams`` from the completed games in ``games``.

    Games involving a team outside ``teams`` only count for the side that is
    inside. Teams without completed games get zero-valued standings.

    Raises:
        GameValidationError: a completed game has an impossible result.
    """
    table: Dict[int, TeamStanding] = {
        t.id: TeamStanding(
            team_id=t.id,
            team_name=t.name,
            pool_id=getattr(t, "pool_id", None),
            fair_play_points=getattr(t, "fair_play_points", 0) or 0,
        )
        for t in teams
    }

    for game in games:
        if not is_completed(game):
            continue
        if game.home_team_id not in table and game.away_team_id not in table:
            continue
        validate_completed_game(game)

        home = table.get(game.home_team_id)
        away = table.get(game.away_team_id)
        if home is not None:
            _apply_result(home, game.home_score, game.away_score)
        if away is not None:
            _apply_result(away, game.away_score, game.home_score)

    return rank_standings(table.values())


def _apply_result(standing: TeamStanding, scored: int, conceded: int) -> None:
    standing.games_played += 1
    standing.goals_for += scored
    standing.goals_against += conceded
    if scored > conceded:
        standing.wins += 1
    elif scored < conceded:
        standing.losses += 1
    else:
        standing.ties += 1
