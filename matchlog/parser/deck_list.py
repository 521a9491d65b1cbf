"""
Deck list parsing and validation for exported PTCG Live deck lists.

Expected layout:

    Pokémon: 17
    3 Marnie's Impidimp DRI 134
    ...
    Trainer: 35
    4 Ultra Ball SVI 196
    ...
    Energy: 8
    8 Basic Darkness Energy SVE 15
"""
import re
from collections import Counter
from dataclasses import dataclass, field

from ..analyzer.classifier import has_rank_suffix
from .names import clean_name


DECK_SIZE = 60
MAX_COPIES = 4

_SECTION_HEADERS = (
    (("Pokémon:", "Pokemon:"), "pokemon"),
    (("Trainer:",), "trainer"),
    (("Energy:",), "energy"),
)
_SECTION_TOTAL_RE = re.compile(r"^\d+$")
_CARD_LINE_RE = re.compile(r"^(\d+)\s+(.+)$")

STAPLE_TRAINERS = (
    (4, "Professor's Research"),
    (4, "Ultra Ball"),
    (3, "Nest Ball"),
    (2, "Boss's Orders"),
    (2, "Switch"),
)


@dataclass
class ParsedDeck:
    pokemon_cards: list[str] = field(default_factory=list)  # "<count> <name>"
    trainer_cards: list[str] = field(default_factory=list)
    energy_cards: list[str] = field(default_factory=list)
    total_cards: int = 0

    def entries(self) -> list[tuple[int, str]]:
        """All (count, raw name) pairs across the three sections."""
        result = []
        for line in self.pokemon_cards + self.trainer_cards + self.energy_cards:
            match = _CARD_LINE_RE.match(line)
            if match:
                result.append((int(match.group(1)), match.group(2)))
        return result

    def to_dict(self) -> dict:
        return {
            "pokemon_cards": self.pokemon_cards,
            "trainer_cards": self.trainer_cards,
            "energy_cards": self.energy_cards,
            "total_cards": self.total_cards,
        }


def is_basic_energy(name: str) -> bool:
    lowered = name.lower()
    return "basic" in lowered and "energy" in lowered


def parse_deck_list(deck_list) -> ParsedDeck:
    """Split a deck list into sections. Card lines before any header count toward the total only."""
    deck = ParsedDeck()
    if not isinstance(deck_list, str):
        return deck

    section = ""
    for line in (l.strip() for l in deck_list.splitlines()):
        if not line:
            continue

        header = next(
            (name for prefixes, name in _SECTION_HEADERS if line.startswith(prefixes)),
            None,
        )
        if header:
            section = header
            continue

        # Bare section totals such as "17"
        if _SECTION_TOTAL_RE.match(line):
            continue

        match = _CARD_LINE_RE.match(line)
        if not match:
            continue

        count = int(match.group(1))
        entry = f"{count} {match.group(2)}"
        deck.total_cards += count
        if section == "pokemon":
            deck.pokemon_cards.append(entry)
        elif section == "trainer":
            deck.trainer_cards.append(entry)
        elif section == "energy":
            deck.energy_cards.append(entry)

    return deck


def validate_deck_list(deck_list) -> list[str]:
    """
    Check a deck list against the standard construction rules.

    Returns:
        Human-readable error messages; an empty list means the deck is legal
    """
    errors = []
    deck = parse_deck_list(deck_list)

    if deck.total_cards != DECK_SIZE:
        errors.append(f"Deck must contain exactly {DECK_SIZE} cards (found {deck.total_cards})")
    if not deck.pokemon_cards:
        errors.append("Deck must include at least one Pokémon")
    if not deck.energy_cards:
        errors.append("Deck must include at least one Energy card")

    # Copies of the same card printed in different sets share the limit
    copies = Counter()
    for count, raw_name in deck.entries():
        name = clean_name(raw_name)
        if not is_basic_energy(name):
            copies[name] += count

    for name, count in copies.items():
        if count > MAX_COPIES:
            errors.append(f"At most {MAX_COPIES} copies allowed per card: {name} ({count} found)")

    return errors


def generate_deck_list_export(pokemon_used) -> str:
    """Estimate a deck list from the Pokémon seen in one match."""
    lines = ["Pokémon: (estimated)"]
    for pokemon in pokemon_used or []:
        copies = 2 if has_rank_suffix(pokemon) else 3
        lines.append(f"{copies} {pokemon}")

    lines.append("")
    lines.append("Trainer: (estimated)")
    for count, name in STAPLE_TRAINERS:
        lines.append(f"{count} {name}")
    lines.append("// Add more trainer cards as needed")

    lines.append("")
    lines.append("Energy: (estimated)")
    lines.append("// Adjust energy types to match the Pokémon used")
    return "\n".join(lines)
