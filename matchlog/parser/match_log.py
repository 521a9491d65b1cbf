"""
Match log parser: raw game-client transcript -> MatchRecord.

Parsing never raises. Anything that cannot be recognized degrades to the
documented defaults, and ConfidenceFlags records which fields were defaulted.
"""
import re
from collections import Counter
from typing import Optional

from ..analyzer.classifier import POKEMON, CardClassifier
from .lines import (
    Attack,
    CoinFlip,
    FirstPlayerDecision,
    OpeningHand,
    PlayCard,
    Prize,
    TurnHeader,
    WinStatement,
    classify_line,
)
from .models import (
    DEFAULT_PLAYER1,
    DEFAULT_PLAYER2,
    UNKNOWN_POKEMON,
    UNKNOWN_WINNER,
    WIN_BENCH_OUT,
    WIN_CONCEDE,
    WIN_DECK_OUT,
    WIN_PRIZE_CARDS,
    AttackEvent,
    ConfidenceFlags,
    MatchRecord,
)
from .names import format_card_entry


MAX_CARDS_PER_PLAYER = 20

_WINS_RE = re.compile(r"(\w+) wins\.", re.IGNORECASE)
_CONCEDED_BY_RE = re.compile(r"(\w+) (?:conceded|has conceded|concedes)", re.IGNORECASE)

_DECK_OUT_PHRASES = ("deck ran out of cards", "ran out of cards", "no cards left")
_BENCH_OUT_PHRASES = ("ran out of pokemon", "ran out of pokémon", "no pokemon left", "all pokemon knocked out")
_PRIZE_PHRASES = ("all prize cards taken", "6 prize cards", "game completed")


class _PlayerState:
    """Running per-player totals during the first pass."""

    def __init__(self):
        self.pokemon: dict[str, None] = {}  # insertion-ordered set
        self.cards: Counter = Counter()
        self.prizes = 0
        self.damage = 0

    def add_card(self, name: str, is_pokemon: bool):
        if is_pokemon:
            self.pokemon.setdefault(name, None)
        self.cards[name] += 1

    def card_entries(self, limit: int = MAX_CARDS_PER_PLAYER) -> list[str]:
        # Counter.most_common keeps first-seen order for equal counts
        return [format_card_entry(name, count) for name, count in self.cards.most_common(limit)]


class MatchLogParser:
    """Extracts a MatchRecord from a pasted match log."""

    def __init__(self, classifier: Optional[CardClassifier] = None):
        self.classifier = classifier or CardClassifier()

    def parse(self, log_text) -> MatchRecord:
        record, _flags = self.parse_with_confidence(log_text)
        return record

    def parse_with_confidence(self, log_text) -> tuple[MatchRecord, ConfidenceFlags]:
        """
        Parse a match log.

        Args:
            log_text: Raw transcript as pasted by the user

        Returns:
            (record, flags) where flags tell parsed fields from defaulted ones
        """
        if not isinstance(log_text, str) or not log_text.strip():
            return MatchRecord(), ConfidenceFlags()

        lines = [line.strip() for line in log_text.splitlines()]
        lines = [line for line in lines if line]

        player1 = ""
        player2 = ""
        decided_first = ""
        turn_one_player = ""
        turns = 0
        winner = ""
        attacks: list[tuple[str, AttackEvent]] = []
        states = {}

        def state_for(name: str) -> Optional[_PlayerState]:
            if not name or name not in (player1, player2):
                return None
            return states.setdefault(name, _PlayerState())

        for line in lines:
            event = classify_line(line, player1, player2)

            if isinstance(event, CoinFlip):
                if not player1:
                    player1 = event.player
            elif isinstance(event, OpeningHand):
                if not player2 and event.player != player1:
                    player2 = event.player
            elif isinstance(event, FirstPlayerDecision):
                decided_first = decided_first or event.player
            elif isinstance(event, TurnHeader):
                turns = max(turns, event.number)
                if event.number == 1 and event.player and not turn_one_player:
                    turn_one_player = event.player
            elif isinstance(event, Attack):
                attacker = state_for(event.attacker)
                if attacker is not None:
                    attacker.damage += event.damage
                    if event.pokemon and event.pokemon != UNKNOWN_POKEMON:
                        attacker.add_card(event.pokemon, is_pokemon=True)
                if event.attacker == player1 and player1:
                    slot = "player1"
                elif event.attacker == player2 and player2:
                    slot = "player2"
                else:
                    slot = "unknown"
                attacks.append((event.attacker, AttackEvent(
                    pokemon=event.pokemon or UNKNOWN_POKEMON,
                    attack=event.attack,
                    damage=event.damage,
                    turn=max(1, turns),
                    player=slot,
                )))
            elif isinstance(event, Prize):
                target = state_for(event.player)
                if target is not None:
                    target.prizes += event.count
            elif isinstance(event, WinStatement):
                winner = event.player
            elif isinstance(event, PlayCard):
                is_pokemon = event.is_pokemon or self.classifier.classify(event.card) == POKEMON
                state_for(event.player).add_card(event.card, is_pokemon)

        # An explicit turn-order decision outranks the first turn header
        first_player = decided_first or turn_one_player
        winner, win_condition = resolve_outcome(lines, player1, player2, winner)

        flags = ConfidenceFlags(
            players_detected=bool(player1 and player2),
            first_player_detected=bool(first_player),
            turns_detected=turns > 0,
            winner_detected=bool(winner) and winner in (player1, player2),
            win_condition_detected=win_condition is not None,
        )

        if flags.winner_detected:
            final_winner = winner
        else:
            final_winner = player1 or player2 or UNKNOWN_WINNER

        empty = _PlayerState()
        p1 = states.get(player1, empty) if player1 else empty
        p2 = states.get(player2, empty) if player2 else empty

        record = MatchRecord(
            player1=player1 or DEFAULT_PLAYER1,
            player2=player2 or DEFAULT_PLAYER2,
            winner=final_winner,
            first_player=first_player or None,
            turns=turns or 1,
            player1_pokemon=list(p1.pokemon),
            player2_pokemon=list(p2.pokemon),
            player1_cards=p1.card_entries(),
            player2_cards=p2.card_entries(),
            player1_prizes=p1.prizes,
            player2_prizes=p2.prizes,
            player1_total_damage=p1.damage,
            player2_total_damage=p2.damage,
            attacks_used=[event for _attacker, event in attacks],
            win_condition=win_condition or WIN_PRIZE_CARDS,
        )
        return record, flags


def resolve_outcome(lines: list[str], player1: str, player2: str,
                    winner: str = "") -> tuple[str, Optional[str]]:
    """
    Second pass: find the win condition and settle the winner.

    Condition lines are checked most specific first. A later condition line
    overrides an earlier one; a bare "X wins." only fills an empty winner.

    Returns:
        (winner, win_condition); win_condition is None if no marker was found
    """
    win_condition = None

    for line in lines:
        lower = line.lower()
        wins = _WINS_RE.search(line)

        if any(phrase in lower for phrase in _DECK_OUT_PHRASES):
            win_condition = WIN_DECK_OUT
            if wins:
                winner = wins.group(1)
        elif "concede" in lower:
            win_condition = WIN_CONCEDE
            if "opponent conceded" in lower:
                if wins:
                    winner = wins.group(1)
            else:
                conceded = _CONCEDED_BY_RE.search(line)
                if conceded:
                    loser = conceded.group(1)
                    if loser == player1 and player2:
                        winner = player2
                    elif loser == player2 and player1:
                        winner = player1
        elif any(phrase in lower for phrase in _BENCH_OUT_PHRASES):
            win_condition = WIN_BENCH_OUT
            if wins:
                winner = wins.group(1)
        elif any(phrase in lower for phrase in _PRIZE_PHRASES):
            win_condition = WIN_PRIZE_CARDS
            if wins:
                winner = wins.group(1)

        if wins and not winner:
            winner = wins.group(1)

    return winner, win_condition


def parse_match_log(log_text) -> MatchRecord:
    """Parse a match log with the default classifier tables."""
    return MatchLogParser().parse(log_text)
