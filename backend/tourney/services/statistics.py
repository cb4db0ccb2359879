"""
Tournament statistics — summary counts, game analytics and top performers.

Read-only projections over the same snapshot the standings use. Only
completed games contribute goals.
"""
from typing import Any, Dict, List, Sequence

from tourney.models.game import STATUS_SCHEDULED
from tourney.services.standings import TeamStanding, is_completed

HIGH_SCORING_THRESHOLD = 5


def _total_goals(game: Any) -> int:
    return (game.home_score or 0) + (game.away_score or 0)


def _margin(game: Any) -> int:
    return abs((game.home_score or 0) - (game.away_score or 0))


def tournament_summary(teams: Sequence[Any], pools: Sequence[Any], games: Sequence[Any]) -> Dict[str, Any]:
    completed = [g for g in games if is_completed(g)]
    scheduled = [g for g in games if (g.status or "").lower() == STATUS_SCHEDULED]
    total_goals = sum(_total_goals(g) for g in completed)

    return {
        "registered_teams": len(teams),
        "pool_count": len(pools),
        "total_games": len(games),
        "completed_games": len(completed),
        "scheduled_games": len(scheduled),
        "playoff_games": sum(1 for g in games if g.playoff_round),
        "completion_percentage": round(len(completed) / len(games) * 100) if games else 0,
        "total_goals": total_goals,
        "avg_goals_per_game": round(total_goals / len(completed), 2) if completed else 0.0,
        "highest_individual_score": max(
            (max(g.home_score or 0, g.away_score or 0) for g in completed), default=0
        ),
    }


def game_analytics(games: Sequence[Any]) -> Dict[str, Any]:
    completed = [g for g in games if is_completed(g)]
    if not completed:
        return {
            "total_completed_games": 0,
            "avg_goals_per_game": 0.0,
            "highest_scoring_game": 0,
            "lowest_scoring_game": 0,
            "avg_goal_difference": 0.0,
            "total_draws": 0,
            "one_goal_games": 0,
            "high_scoring_games": 0,
            "scoreless_games": 0,
        }

    totals = [_total_goals(g) for g in completed]
    margins = [_margin(g) for g in completed]
    return {
        "total_completed_games": len(completed),
        "avg_goals_per_game": round(sum(totals) / len(completed), 2),
        "highest_scoring_game": max(totals),
        "lowest_scoring_game": min(totals),
        "avg_goal_difference": round(sum(margins) / len(completed), 2),
        "total_draws": sum(1 for m in margins if m == 0),
        "one_goal_games": sum(1 for m in margins if m == 1),
        "high_scoring_games": sum(1 for t in totals if t >= HIGH_SCORING_THRESHOLD),
        "scoreless_games": sum(1 for t in totals if t == 0),
    }


def _entry(standing: TeamStanding, **values: Any) -> Dict[str, Any]:
    return {"team_id": standing.team_id, "team_name": standing.team_name, **values}


def top_performers(standings: Sequence[TeamStanding], limit: int = 5) -> Dict[str, List[Dict[str, Any]]]:
    """Top scorers, best defence and most wins among teams that have played.

    Ties inside a category fall back to team name so the lists are stable.
    """
    played = [s for s in standings if s.games_played > 0]

    scorers = sorted(played, key=lambda s: (-s.goals_for, s.team_name, s.team_id))[:limit]
    defence = sorted(played, key=lambda s: (s.goals_against, -s.games_played, s.team_name, s.team_id))[:limit]
    winners = sorted(played, key=lambda s: (-s.wins, s.team_name, s.team_id))[:limit]

    return {
        "top_scorers": [_entry(s, total_goals=s.goals_for) for s in scorers],
        "best_defense": [
            _entry(s, goals_conceded=s.goals_against, games_played=s.games_played) for s in defence
        ],
        "most_wins": [_entry(s, wins=s.wins) for s in winners],
    }
