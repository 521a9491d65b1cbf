"""
Data models for parsed PTCG match logs.
"""
from dataclasses import asdict, dataclass, field
from typing import Optional


WIN_DECK_OUT = "Deck out"
WIN_CONCEDE = "Concede"
WIN_BENCH_OUT = "Ran out of pokemon in bench"
WIN_PRIZE_CARDS = "Prize cards"

WIN_CONDITIONS = (WIN_DECK_OUT, WIN_CONCEDE, WIN_BENCH_OUT, WIN_PRIZE_CARDS)

DEFAULT_PLAYER1 = "Player 1"
DEFAULT_PLAYER2 = "Player 2"
UNKNOWN_WINNER = "Unknown"
UNKNOWN_POKEMON = "Unknown Pokemon"


@dataclass
class AttackEvent:
    """One attack that dealt damage."""
    pokemon: str
    attack: str
    damage: int
    turn: int
    player: str  # player1, player2 or unknown

    @classmethod
    def from_dict(cls, data: dict) -> "AttackEvent":
        return cls(
            pokemon=data.get("pokemon", UNKNOWN_POKEMON),
            attack=data.get("attack", ""),
            damage=int(data.get("damage", 0) or 0),
            turn=int(data.get("turn", 1) or 1),
            player=data.get("player", "unknown"),
        )


@dataclass
class MatchRecord:
    """Structured facts extracted from one match log."""
    player1: str = DEFAULT_PLAYER1
    player2: str = DEFAULT_PLAYER2
    winner: str = UNKNOWN_WINNER
    first_player: Optional[str] = None
    turns: int = 1
    player1_pokemon: list[str] = field(default_factory=list)
    player2_pokemon: list[str] = field(default_factory=list)
    player1_cards: list[str] = field(default_factory=list)  # "Name (Nx)"
    player2_cards: list[str] = field(default_factory=list)
    player1_prizes: int = 0
    player2_prizes: int = 0
    player1_total_damage: int = 0
    player2_total_damage: int = 0
    attacks_used: list[AttackEvent] = field(default_factory=list)
    win_condition: str = WIN_PRIZE_CARDS

    @property
    def loser(self) -> str:
        return self.player2 if self.winner == self.player1 else self.player1

    def pokemon_for(self, player: str) -> list[str]:
        if player == self.player1:
            return self.player1_pokemon
        if player == self.player2:
            return self.player2_pokemon
        return []

    def cards_for(self, player: str) -> list[str]:
        if player == self.player1:
            return self.player1_cards
        if player == self.player2:
            return self.player2_cards
        return []

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class StoredMatch(MatchRecord):
    """A persisted match: parsed facts plus upload metadata."""
    id: Optional[str] = None
    title: str = ""
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    uploader: Optional[str] = None
    full_log: str = ""
    uploaded_at: Optional[str] = None
    file_size: int = 0


@dataclass
class ConfidenceFlags:
    """Which MatchRecord fields were parsed rather than defaulted."""
    players_detected: bool = False
    first_player_detected: bool = False
    turns_detected: bool = False
    winner_detected: bool = False
    win_condition_detected: bool = False

    @property
    def fully_parsed(self) -> bool:
        return all((
            self.players_detected,
            self.first_player_detected,
            self.turns_detected,
            self.winner_detected,
        ))

    def to_dict(self) -> dict:
        return {**asdict(self), "fully_parsed": self.fully_parsed}


def match_title(record: MatchRecord, timestamp: int) -> str:
    """Default title for a freshly uploaded match."""
    return f"{record.player1} vs {record.player2} - Match #{timestamp}"
