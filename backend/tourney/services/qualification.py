"""
Playoff qualification — pool winners, tie-aware wildcards and seeding.

Pipeline (recomputed on every call, nothing cached):

1. Pool standings: each pool is ranked over its own teams and the completed
   games between them. Only teams that have played are eligible; rank 1 is
   the pool winner, rank 2 the runner-up.
2. Pool winners are locks.
3. Runners-up are ranked with the standings cascade and grouped into
   tie-blocks (equal points AND equal goal differential). The wildcard quota
   is a fold over those blocks:
     - block fits in the open slots -> every member LOCKED
     - block bigger than the open slots -> every member ELIGIBLE, fold stops
     - no open slots left -> remaining blocks EXCLUDED
   A tied block is never split; an organiser decides it outside the engine
   (``selected_wildcard_ids``).
4. Exactly ``bracket_size`` locks -> seeds 1..N by the cascade.
   Otherwise the result is "pending" (tie to decide) or "insufficient_data".

Goals-for is intentionally not part of the tie-block equality even though the
ranking cascade uses it; blocks are coarser than the ranking.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from itertools import groupby
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from tourney.services.standings import (
    TeamStanding,
    compute_standings,
    is_completed,
    rank_standings,
)

logger = logging.getLogger(__name__)

BRACKET_SIZE = 8
MIN_COMPLETED_GAMES = 2

STATUS_READY = "ready"
STATUS_PENDING = "pending"
STATUS_INSUFFICIENT_DATA = "insufficient_data"


class QualificationError(ValueError):
    """Invalid qualification request (bad quota, bad manual selection, bad custom seeding)."""


class BlockState(str, Enum):
    LOCKED = "locked"
    ELIGIBLE = "eligible"
    EXCLUDED = "excluded"


@dataclass
class TieBlock:
    points: int
    goal_differential: int
    teams: List[TeamStanding]
    state: BlockState = BlockState.EXCLUDED

    @property
    def size(self) -> int:
        return len(self.teams)


@dataclass
class WildcardAllocation:
    quota: int
    blocks: List[TieBlock]

    @property
    def locked(self) -> List[TeamStanding]:
        return [t for b in self.blocks if b.state == BlockState.LOCKED for t in b.teams]

    @property
    def eligible(self) -> List[TeamStanding]:
        return [t for b in self.blocks if b.state == BlockState.ELIGIBLE for t in b.teams]

    @property
    def open_slots(self) -> int:
        return self.quota - len(self.locked)


@dataclass
class PoolResult:
    pool_id: int
    pool_name: str
    standings: List[TeamStanding]
    winner: Optional[TeamStanding] = None
    runner_up: Optional[TeamStanding] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_id": self.pool_id,
            "pool_name": self.pool_name,
            "standings": [s.to_dict() for s in self.standings],
            "winner_id": self.winner.team_id if self.winner else None,
            "runner_up_id": self.runner_up.team_id if self.runner_up else None,
        }


@dataclass
class Seed:
    seed: int
    team_id: int
    team_name: str
    is_pool_winner: bool
    standing: Optional[TeamStanding] = None

    @property
    def is_wildcard(self) -> bool:
        return not self.is_pool_winner

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "is_pool_winner": self.is_pool_winner,
            "is_wildcard": self.is_wildcard,
        }


@dataclass
class QualificationResult:
    status: str
    wildcard_quota: int
    pool_results: List[PoolResult] = field(default_factory=list)
    pool_winners: List[TeamStanding] = field(default_factory=list)
    locked_wildcards: List[TeamStanding] = field(default_factory=list)
    tied_wildcard_candidates: List[TeamStanding] = field(default_factory=list)
    seeds: List[Seed] = field(default_factory=list)
    message: str = ""

    @property
    def locked_wildcard_count(self) -> int:
        return len(self.locked_wildcards)

    @property
    def open_wildcard_slots(self) -> int:
        return self.wildcard_quota - self.locked_wildcard_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "wildcard_quota": self.wildcard_quota,
            "locked_wildcard_count": self.locked_wildcard_count,
            "open_wildcard_slots": self.open_wildcard_slots,
            "pools": [p.to_dict() for p in self.pool_results],
            "pool_winners": [s.to_dict() for s in self.pool_winners],
            "locked_wildcards": [s.to_dict() for s in self.locked_wildcards],
            "tied_wildcard_candidates": [s.to_dict() for s in self.tied_wildcard_candidates],
            "seeds": [s.to_dict() for s in self.seeds],
        }


# ============================================================================
# Pool standings
# ============================================================================


def compute_pool_results(pools: Sequence[Any], teams: Sequence[Any], games: Sequence[Any]) -> List[PoolResult]:
    """Rank every pool over its own teams and the completed games played between them."""
    results: List[PoolResult] = []
    for pool in sorted(pools, key=lambda p: (p.name, p.id)):
        pool_teams = [t for t in teams if t.pool_id == pool.id]
        member_ids = {t.id for t in pool_teams}
        pool_games = [
            g for g in games
            if g.home_team_id in member_ids and g.away_team_id in member_ids
        ]
        standings = compute_standings(pool_teams, pool_games)
        played = [s for s in standings if s.games_played > 0]
        results.append(PoolResult(
            pool_id=pool.id,
            pool_name=pool.name,
            standings=standings,
            winner=played[0] if len(played) >= 1 else None,
            runner_up=played[1] if len(played) >= 2 else None,
        ))
    return results


# ============================================================================
# Wildcard quota
# ============================================================================


def _block_key(standing: TeamStanding) -> Tuple[int, int]:
    return (standing.points, standing.goal_differential)


def group_tie_blocks(ranked: Sequence[TeamStanding]) -> List[TieBlock]:
    """Split an already-ranked list into maximal runs of equal (points, goal differential)."""
    blocks: List[TieBlock] = []
    for (points, goal_diff), members in groupby(ranked, key=_block_key):
        blocks.append(TieBlock(points=points, goal_differential=goal_diff, teams=list(members)))
    return blocks


def allocate_wildcards(runners_up: Iterable[TeamStanding], quota: int) -> WildcardAllocation:
    """Fill ``quota`` wildcard slots from runners-up without ever splitting a tie-block."""
    if quota < 0:
        raise QualificationError(f"Wildcard quota must be >= 0, got {quota}")

    blocks = group_tie_blocks(rank_standings(runners_up))
    remaining = quota
    stopped = False
    for block in blocks:
        if stopped or remaining == 0:
            block.state = BlockState.EXCLUDED
        elif block.size <= remaining:
            block.state = BlockState.LOCKED
            remaining -= block.size
        else:
            block.state = BlockState.ELIGIBLE
            stopped = True

    return WildcardAllocation(quota=quota, blocks=blocks)


# ============================================================================
# Qualification
# ============================================================================


def _names(standings: Iterable[TeamStanding]) -> str:
    return ", ".join(s.team_name for s in standings)


def _seed(locks: Sequence[TeamStanding], winner_ids: set) -> List[Seed]:
    return [
        Seed(seed=i + 1, team_id=s.team_id, team_name=s.team_name, is_pool_winner=s.team_id in winner_ids, standing=s)
        for i, s in enumerate(rank_standings(locks))
    ]


def compute_qualifiers(
    pools: Sequence[Any],
    teams: Sequence[Any],
    games: Sequence[Any],
    wildcard_count: int,
    bracket_size: int = BRACKET_SIZE,
    selected_wildcard_ids: Optional[Sequence[int]] = None,
) -> QualificationResult:
    """Determine pool winners, wildcards and (when unambiguous) the seeds.

    ``selected_wildcard_ids`` is an organiser's decision for a tied block: it
    must name exactly the open slots' worth of teams, all from the tied
    candidates.

    Never raises for missing data; raises QualificationError only for an
    invalid quota (negative, or more pool winners plus wildcards than the
    bracket holds) or an invalid manual selection.
    """
    if wildcard_count < 0:
        raise QualificationError(f"Wildcard quota must be >= 0, got {wildcard_count}")
    if len(pools) + wildcard_count > bracket_size:
        raise QualificationError(
            f"Format overfills the bracket: {len(pools)} pool winner(s) + {wildcard_count} wildcard(s) "
            f"exceed the {bracket_size} bracket places"
        )

    completed = sum(1 for g in games if is_completed(g))
    if completed < MIN_COMPLETED_GAMES:
        if selected_wildcard_ids:
            raise QualificationError("No wildcard tie to resolve: not enough completed games yet")
        return QualificationResult(
            status=STATUS_INSUFFICIENT_DATA,
            wildcard_quota=wildcard_count,
            message=f"Not enough results yet ({completed} completed game(s))",
        )

    pool_results = compute_pool_results(pools, teams, games)
    winners = [p.winner for p in pool_results if p.winner is not None]
    runners_up = [p.runner_up for p in pool_results if p.runner_up is not None]

    allocation = allocate_wildcards(runners_up, wildcard_count)
    locked_wildcards = allocation.locked
    tied = allocation.eligible

    if selected_wildcard_ids:
        locked_wildcards = locked_wildcards + _apply_selection(allocation, selected_wildcard_ids)
        tied = []

    result = QualificationResult(
        status=STATUS_PENDING,
        wildcard_quota=wildcard_count,
        pool_results=pool_results,
        pool_winners=winners,
        locked_wildcards=locked_wildcards,
        tied_wildcard_candidates=tied,
    )

    if tied:
        result.message = (
            f"{len(tied)} runners-up are tied for {allocation.open_slots} wildcard slot(s): "
            f"{_names(tied)}. Select {allocation.open_slots} to complete the bracket."
        )
    else:
        locks = winners + locked_wildcards
        if len(locks) == bracket_size:
            result.status = STATUS_READY
            result.seeds = _seed(locks, {w.team_id for w in winners})
            result.message = f"{bracket_size} teams qualified"
        else:
            result.status = STATUS_INSUFFICIENT_DATA
            result.message = (
                f"{len(locks)} of {bracket_size} playoff places locked "
                f"({len(winners)} pool winner(s), {len(locked_wildcards)} wildcard(s))"
            )

    logger.info(
        "Qualification %s: winners=[%s] wildcards=[%s] tied=[%s]",
        result.status,
        _names(winners),
        _names(locked_wildcards),
        _names(tied),
    )
    return result


def _apply_selection(allocation: WildcardAllocation, selected_ids: Sequence[int]) -> List[TeamStanding]:
    candidates = {s.team_id: s for s in allocation.eligible}
    if not candidates:
        raise QualificationError("No wildcard tie to resolve; selection not allowed")
    if len(set(selected_ids)) != len(selected_ids):
        raise QualificationError(f"Duplicate team in wildcard selection: {list(selected_ids)}")
    unknown = [tid for tid in selected_ids if tid not in candidates]
    if unknown:
        raise QualificationError(
            f"Teams {unknown} are not among the tied wildcard candidates ({_names(candidates.values())})"
        )
    if len(selected_ids) != allocation.open_slots:
        raise QualificationError(
            f"Select exactly {allocation.open_slots} wildcard team(s) from "
            f"{_names(candidates.values())}; got {len(selected_ids)}"
        )
    return [candidates[tid] for tid in selected_ids]


def build_custom_seeds(
    team_ids: Sequence[int],
    standings_by_team: Dict[int, TeamStanding],
    pool_winner_ids: Iterable[int],
    bracket_size: int = BRACKET_SIZE,
) -> List[Seed]:
    """Seed an organiser-supplied order as-is (seed = position + 1)."""
    if len(team_ids) != bracket_size:
        raise QualificationError(f"Custom seeding needs exactly {bracket_size} teams, got {len(team_ids)}")
    if len(set(team_ids)) != len(team_ids):
        raise QualificationError(f"Custom seeding repeats a team: {list(team_ids)}")
    missing = [tid for tid in team_ids if tid not in standings_by_team]
    if missing:
        raise QualificationError(f"Custom seeding references unknown teams: {missing}")

    winner_ids = set(pool_winner_ids)
    return [
        Seed(
            seed=i + 1,
            team_id=tid,
            team_name=standings_by_team[tid].team_name,
            is_pool_winner=tid in winner_ids,
            standing=standings_by_team[tid],
        )
        for i, tid in enumerate(team_ids)
    ]
