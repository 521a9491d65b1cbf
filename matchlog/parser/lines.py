"""
Line-shape classification for PTCG match logs.

classify_line() runs a ranked list of rules over one trimmed log line and
returns the first event that matches. The ranking is the parser's priority
order, so a line that looks like both a card play and a damage statement is
always classified the same way.
"""
import re
from dataclasses import dataclass
from typing import Callable, Optional

from ..analyzer.classifier import has_rank_suffix
from .names import clean_name


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Events
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@dataclass(frozen=True)
class LineEvent:
    pass


@dataclass(frozen=True)
class TurnHeader(LineEvent):
    number: int
    player: Optional[str] = None


@dataclass(frozen=True)
class CoinFlip(LineEvent):
    player: str


@dataclass(frozen=True)
class OpeningHand(LineEvent):
    player: str


@dataclass(frozen=True)
class FirstPlayerDecision(LineEvent):
    player: str


@dataclass(frozen=True)
class Attack(LineEvent):
    attacker: str
    pokemon: Optional[str]  # None when only the simple "X used Z" shape matched
    attack: str
    damage: int
    target: Optional[str] = None


@dataclass(frozen=True)
class Prize(LineEvent):
    player: str
    count: int


@dataclass(frozen=True)
class WinStatement(LineEvent):
    player: str


@dataclass(frozen=True)
class PlayCard(LineEvent):
    player: str
    card: str
    is_pokemon: bool
    pattern: str


@dataclass(frozen=True)
class Unrecognized(LineEvent):
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Patterns
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_TURN_NAMED_RE = re.compile(r"^Turn # (\d+) - (\w+)'s Turn")
_TURN_NUMBER_RE = re.compile(r"^Turn # (\d+)")
_TURN_PAREN_RE = re.compile(r"^Turn (\d+) \((\w+)\):")

_COIN_CHOSE_RE = re.compile(r"^(.+?) chose (?:heads|tails) for the opening coin flip")
_COIN_WON_RE = re.compile(r"^(.+?) won the coin toss")
_OPENING_HAND_RE = re.compile(r"^(\w+) drew 7 cards for the opening hand")
_DECIDED_FIRST_RE = re.compile(r"(\w+) decided to go first")
_CHOSE_FIRST_RE = re.compile(r"^(.+?) chose to go first")

_RICH_ATTACK_RE = re.compile(r"(\w+)'s (.+?) used (.+?)(?: on (.+?))? for (\d+) damage")
_SIMPLE_ATTACK_RE = re.compile(r"(\w+) used ([^.]+?)(?: on ([^.]+?))? for (\d+) damage")

_PRIZE_RE = re.compile(r"(\w+) took (\w+) Prize cards?", re.IGNORECASE)
_WIN_RE = re.compile(r"(\w+) wins\.")

_END = r"(?=\s+(?:to|from|on|into|in)\b|\.|,|$)"
_PLAYED_RE = re.compile(r"played (.+?)" + _END)
_PLAYED_TO_SPOT_RE = re.compile(r"played ([^.]+?) (?:on)?to the (?:Bench|Active Spot)\b")
_OWNED_USED_RE = re.compile(r"(\w+)'s ([^.]+?) used\b")
_ATTACHED_RE = re.compile(r"attached (.+?)" + _END)
_USED_RE = re.compile(r"used (.+?)" + _END)
_DREW_RE = re.compile(r"(?:drew|searched for|put) (.+?)" + _END)
_EVOLVED_INTO_RE = re.compile(r"(?:evolved|evolving) into (.+?)" + _END)
_EVOLVED_RE = re.compile(r"(?:evolved|evolving) (.+?)(?=\s+(?:into|to|from)\b|\.|,|$)")
_EVOLVED_AB_RE = re.compile(r"(?:evolved|evolving) .+? into (.+?)" + _END)

_LOCATION_CLAUSES = re.compile(
    r"\s+(?:from their hand|to the Active Spot|to the Bench|from their deck|"
    r"into their hand|on top of their deck|in play)$"
)
_SKIP_WORDS_RE = re.compile(
    r"\b(?:Prize cards?|prize cards?|cards?|damage|turn|hand|deck|discard pile|"
    r"bench|active|knocked out|ko)\b"
)
_NUMERIC_RE = re.compile(r"^\d+$")
_TINY_RE = re.compile(r"^[a-z]{1,2}$", re.IGNORECASE)

PRIZE_QUANTITIES = {
    "a": 1, "an": 1, "one": 1, "1": 1,
    "2": 2, "two": 2,
    "3": 3, "three": 3,
}


def normalize_card_candidate(raw: str) -> str:
    """Strip location clauses and set codes, returning "" for junk names."""
    name = raw.strip()
    previous = None
    while previous != name:
        previous = name
        name = _LOCATION_CLAUSES.sub("", name).strip()
    name = clean_name(name)

    if len(name) <= 2 or _NUMERIC_RE.match(name) or _TINY_RE.match(name):
        return ""
    if _SKIP_WORDS_RE.search(name):
        return ""
    return name


def starts_with_player(line: str, player: str) -> bool:
    if not player or not line.startswith(player):
        return False
    rest = line[len(player):]
    return not rest or not (rest[0].isalnum() or rest[0] == "_")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
#  Rules
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _turn_header(line: str, player1: str, player2: str) -> Optional[LineEvent]:
    match = _TURN_NAMED_RE.match(line)
    if match:
        return TurnHeader(int(match.group(1)), match.group(2))
    match = _TURN_PAREN_RE.match(line)
    if match:
        return TurnHeader(int(match.group(1)), match.group(2))
    match = _TURN_NUMBER_RE.match(line)
    if match:
        return TurnHeader(int(match.group(1)))
    return None


def _coin_flip(line: str, player1: str, player2: str) -> Optional[LineEvent]:
    match = _COIN_CHOSE_RE.match(line) or _COIN_WON_RE.match(line)
    if match:
        return CoinFlip(match.group(1).strip())
    return None


def _opening_hand(line: str, player1: str, player2: str) -> Optional[LineEvent]:
    match = _OPENING_HAND_RE.match(line)
    if match:
        return OpeningHand(match.group(1))
    return None


def _first_player(line: str, player1: str, player2: str) -> Optional[LineEvent]:
    match = _DECIDED_FIRST_RE.search(line) or _CHOSE_FIRST_RE.match(line)
    if match:
        return FirstPlayerDecision(match.group(1).strip())
    return None


def _attack(line: str, player1: str, player2: str) -> Optional[LineEvent]:
    if "used " not in line or "damage" not in line:
        return None
    match = _RICH_ATTACK_RE.search(line)
    if match:
        return Attack(
            attacker=match.group(1),
            pokemon=clean_name(match.group(2)),
            attack=match.group(3).strip(),
            damage=int(match.group(5)),
            target=match.group(4).strip() if match.group(4) else None,
        )
    match = _SIMPLE_ATTACK_RE.search(line)
    if match:
        return Attack(
            attacker=match.group(1),
            pokemon=None,
            attack=match.group(2).strip(),
            damage=int(match.group(4)),
            target=match.group(3).strip() if match.group(3) else None,
        )
    return None


def _prize(line: str, player1: str, player2: str) -> Optional[LineEvent]:
    match = _PRIZE_RE.search(line)
    if match:
        count = PRIZE_QUANTITIES.get(match.group(2).lower(), 1)
        return Prize(match.group(1), count)
    return None


def _win_statement(line: str, player1: str, player2: str) -> Optional[LineEvent]:
    match = _WIN_RE.search(line)
    if match:
        return WinStatement(match.group(1))
    return None


def _extract_card(line: str) -> Optional[tuple[str, bool, str]]:
    """Try the seven card patterns in order; first hit wins."""
    if "played " in line:
        match = _PLAYED_TO_SPOT_RE.search(line)
        if match:
            return match.group(1), True, "pokemon_play"
        match = _PLAYED_RE.search(line)
        if match:
            if has_rank_suffix(clean_name(match.group(1))):
                return match.group(1), True, "pokemon_play"

    if "'s " in line and (" used " in line or " ability " in line):
        match = _OWNED_USED_RE.search(line)
        if match:
            return match.group(2), True, "owner_used"

    if "played " in line:
        match = _PLAYED_RE.search(line)
        if match:
            return match.group(1), False, "played"

    if "attached " in line:
        match = _ATTACHED_RE.search(line)
        if match:
            return match.group(1), False, "attached"

    if "used " in line and " for " not in line and "damage" not in line:
        match = _USED_RE.search(line)
        if match:
            return match.group(1), False, "used"

    if "drew " in line or "searched for " in line or "put " in line:
        match = _DREW_RE.search(line)
        if match:
            return match.group(1), False, "drew"

    if "evolved " in line or "evolving " in line:
        match = _EVOLVED_INTO_RE.search(line) or _EVOLVED_AB_RE.search(line) or _EVOLVED_RE.search(line)
        if match:
            return match.group(1), True, "evolved"

    return None


def _play_card(line: str, player1: str, player2: str) -> Optional[LineEvent]:
    if starts_with_player(line, player1):
        player = player1
    elif starts_with_player(line, player2):
        player = player2
    else:
        return None

    extracted = _extract_card(line)
    if not extracted:
        return None
    raw, is_pokemon, pattern = extracted
    card = normalize_card_candidate(raw)
    if not card:
        return None
    return PlayCard(player, card, is_pokemon, pattern)


Rule = Callable[[str, str, str], Optional[LineEvent]]

LINE_RULES: list[tuple[str, Rule]] = [
    ("turn_header", _turn_header),
    ("coin_flip", _coin_flip),
    ("opening_hand", _opening_hand),
    ("first_player", _first_player),
    ("attack", _attack),
    ("prize", _prize),
    ("win_statement", _win_statement),
    ("play_card", _play_card),
]


def classify_line(line: str, player1: str = "", player2: str = "") -> LineEvent:
    """
    Classify one trimmed log line.

    Args:
        line: The log line
        player1: Player name discovered so far ("" if none yet)
        player2: Player name discovered so far ("" if none yet)

    Returns:
        The event of the first matching rule, or Unrecognized()
    """
    for _name, rule in LINE_RULES:
        event = rule(line, player1, player2)
        if event is not None:
            return event
    return Unrecognized()
