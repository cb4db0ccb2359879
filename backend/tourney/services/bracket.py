"""
Playoff bracket — fixed 8-team single elimination.

Quarterfinals (better seed at home, position order):
  QF1 = 1 v 8, QF2 = 2 v 7, QF3 = 3 v 6, QF4 = 4 v 5

Propagation:
  SF1 = W(QF1) v W(QF2), SF2 = W(QF3) v W(QF4), Final = W(SF1) v W(SF2)

A later-round game only exists once all of its feeder games are completed;
until then its slot shows placeholder text ("QF1 Winner").
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from tourney.models.game import (
    ROUND_FINAL,
    ROUND_QUARTERFINAL,
    ROUND_SEMIFINAL,
    STATUS_SCHEDULED,
)
from tourney.services.standings import GameValidationError, is_completed, validate_completed_game

QUARTERFINAL_PAIRINGS: Tuple[Tuple[int, int], ...] = ((1, 8), (2, 7), (3, 6), (4, 5))

ROUND_ABBREVIATIONS = {ROUND_QUARTERFINAL: "QF", ROUND_SEMIFINAL: "SF", ROUND_FINAL: "Final"}

# (round, position) -> ((feeder round, feeder position) for home, ... for away)
FEEDERS: Dict[Tuple[str, int], Tuple[Tuple[str, int], Tuple[str, int]]] = {
    (ROUND_SEMIFINAL, 1): ((ROUND_QUARTERFINAL, 1), (ROUND_QUARTERFINAL, 2)),
    (ROUND_SEMIFINAL, 2): ((ROUND_QUARTERFINAL, 3), (ROUND_QUARTERFINAL, 4)),
    (ROUND_FINAL, 1): ((ROUND_SEMIFINAL, 1), (ROUND_SEMIFINAL, 2)),
}

ROUND_SIZES = {ROUND_QUARTERFINAL: 4, ROUND_SEMIFINAL: 2, ROUND_FINAL: 1}


class BracketError(ValueError):
    """Programming error while building or advancing the bracket."""


@dataclass
class GameStub:
    """A playoff game not yet persisted."""
    playoff_round: str
    position: int
    home_team_id: int
    away_team_id: int
    status: str = STATUS_SCHEDULED
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    home_seed: Optional[int] = None
    away_seed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BracketSlot:
    playoff_round: str
    position: int
    label: str
    home_placeholder: str
    away_placeholder: str
    game_id: Optional[int] = None
    home_team_id: Optional[int] = None
    away_team_id: Optional[int] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    status: str = "pending"  # "pending" until the game exists
    field: Optional[str] = None
    scheduled_start_time: Optional[str] = None
    winner_team_id: Optional[int] = None

    @property
    def is_placeholder(self) -> bool:
        return self.game_id is None and self.home_team_id is None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["is_placeholder"] = self.is_placeholder
        return data


@dataclass
class Bracket:
    seeds: List[Any]
    rounds: Dict[str, List[BracketSlot]] = field(default_factory=dict)
    champion_team_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seeds": [s.to_dict() for s in self.seeds],
            "rounds": {r: [slot.to_dict() for slot in slots] for r, slots in self.rounds.items()},
            "champion_team_id": self.champion_team_id,
        }


def slot_label(playoff_round: str, position: int) -> str:
    abbrev = ROUND_ABBREVIATIONS[playoff_round]
    return abbrev if playoff_round == ROUND_FINAL else f"{abbrev}{position}"


def placeholder_for(playoff_round: str, position: int) -> str:
    return f"{slot_label(playoff_round, position)} Winner"


# ============================================================================
# Quarterfinals
# ============================================================================


def _validate_seeds(seeds: Sequence[Any]) -> Dict[int, Any]:
    if len(seeds) != 8:
        raise BracketError(f"Quarterfinals need exactly 8 seeds, got {len(seeds)}")

    team_ids = [s.team_id for s in seeds]
    duplicates = sorted({tid for tid in team_ids if team_ids.count(tid) > 1})
    if duplicates:
        raise BracketError(f"Team(s) {duplicates} appear more than once among the seeds")

    by_seed = {s.seed: s for s in seeds}
    if sorted(by_seed) != list(range(1, 9)):
        raise BracketError(f"Seeds must be numbered 1..8, got {sorted(s.seed for s in seeds)}")
    return by_seed


def generate_quarterfinals(seeds: Sequence[Any]) -> List[GameStub]:
    """Pair seeds 1v8, 2v7, 3v6, 4v5 (better seed at home) as QF1..QF4."""
    by_seed = _validate_seeds(seeds)
    stubs: List[GameStub] = []
    for position, (high, low) in enumerate(QUARTERFINAL_PAIRINGS, start=1):
        stubs.append(GameStub(
            playoff_round=ROUND_QUARTERFINAL,
            position=position,
            home_team_id=by_seed[high].team_id,
            away_team_id=by_seed[low].team_id,
            home_seed=high,
            away_seed=low,
        ))
    return stubs


# ============================================================================
# Results and propagation
# ============================================================================


def winner_of(game: Any) -> Optional[int]:
    """Winning team id of a completed playoff game, None while it is unplayed."""
    if not is_completed(game):
        return None
    try:
        validate_completed_game(game)
    except GameValidationError as exc:
        raise BracketError(str(exc)) from exc
    if game.home_score == game.away_score:
        raise BracketError(f"Game {game.id}: playoff game recorded as a tie")
    return game.home_team_id if game.home_score > game.away_score else game.away_team_id


def loser_of(game: Any) -> Optional[int]:
    winner = winner_of(game)
    if winner is None:
        return None
    return game.away_team_id if winner == game.home_team_id else game.home_team_id


def _index_playoff_games(playoff_games: Sequence[Any]) -> Dict[Tuple[str, int], Any]:
    index: Dict[Tuple[str, int], Any] = {}
    for game in playoff_games:
        if not game.playoff_round:
            continue
        if game.playoff_round not in ROUND_SIZES:
            raise BracketError(f"Game {game.id}: unknown playoff round '{game.playoff_round}'")
        key = (game.playoff_round, game.position)
        if key in index:
            raise BracketError(
                f"Games {index[key].id} and {game.id} both occupy {slot_label(*key)}"
            )
        index[key] = game
    return index


def propagate_winners(playoff_games: Sequence[Any]) -> List[GameStub]:
    """Stubs for every later-round game whose feeders are all completed and which does not exist yet.

    Pure: returns new stubs, the caller persists them. Running it again after
    persisting returns nothing new.
    """
    index = _index_playoff_games(playoff_games)
    stubs: List[GameStub] = []
    for (playoff_round, position), (home_feeder, away_feeder) in FEEDERS.items():
        if (playoff_round, position) in index:
            continue
        home_game = index.get(home_feeder)
        away_game = index.get(away_feeder)
        if home_game is None or away_game is None:
            continue
        home_winner = winner_of(home_game)
        away_winner = winner_of(away_game)
        if home_winner is None or away_winner is None:
            continue
        stubs.append(GameStub(
            playoff_round=playoff_round,
            position=position,
            home_team_id=home_winner,
            away_team_id=away_winner,
        ))
    return stubs


def seeds_from_quarterfinals(playoff_games: Sequence[Any]) -> Dict[int, int]:
    """Seed number -> team id, read back from the persisted quarterfinals.

    The pairing is fixed, so a quarterfinal's position gives both seeds.
    """
    index = _index_playoff_games(playoff_games)
    seeds: Dict[int, int] = {}
    for position, (high, low) in enumerate(QUARTERFINAL_PAIRINGS, start=1):
        game = index.get((ROUND_QUARTERFINAL, position))
        if game is None:
            continue
        seeds[high] = game.home_team_id
        seeds[low] = game.away_team_id
    return seeds


def build_bracket(seeds: Sequence[Any], playoff_games: Sequence[Any]) -> Bracket:
    """Full bracket view: persisted games where they exist, placeholders elsewhere."""
    index = _index_playoff_games(playoff_games)
    seeds_by_position = {
        pos: pair for pos, pair in enumerate(QUARTERFINAL_PAIRINGS, start=1)
    }
    bracket = Bracket(seeds=list(seeds))

    for playoff_round, size in ROUND_SIZES.items():
        slots: List[BracketSlot] = []
        for position in range(1, size + 1):
            if playoff_round == ROUND_QUARTERFINAL:
                high, low = seeds_by_position[position]
                home_ph, away_ph = f"Seed {high}", f"Seed {low}"
            else:
                home_feeder, away_feeder = FEEDERS[(playoff_round, position)]
                home_ph, away_ph = placeholder_for(*home_feeder), placeholder_for(*away_feeder)

            slot = BracketSlot(
                playoff_round=playoff_round,
                position=position,
                label=slot_label(playoff_round, position),
                home_placeholder=home_ph,
                away_placeholder=away_ph,
            )
            game = index.get((playoff_round, position))
            if game is not None:
                slot.game_id = game.id
                slot.home_team_id = game.home_team_id
                slot.away_team_id = game.away_team_id
                slot.home_score = game.home_score
                slot.away_score = game.away_score
                slot.status = game.status
                slot.field = getattr(game, "field", None)
                slot.scheduled_start_time = getattr(game, "scheduled_start_time", None)
                slot.winner_team_id = winner_of(game)
            slots.append(slot)
        bracket.rounds[playoff_round] = slots

    final = bracket.rounds[ROUND_FINAL][0]
    bracket.champion_team_id = final.winner_team_id
    return bracket
