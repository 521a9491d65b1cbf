"""
Card and Pokemon classification from reference tables and name heuristics.

The tables are necessarily incomplete, so classify() is conservative: names
that are not in a table come back as Unknown. heuristic_classification() is
the keyword/suffix fallback shared by the statistics and card analyzers.
"""
import re
from dataclasses import dataclass
from typing import Optional


POKEMON = "Pokemon"
TRAINER = "Trainer"
ENERGY = "Energy"
ABILITY = "Ability"
ATTACK = "Attack"
UNKNOWN = "Unknown"

CATEGORIES = (POKEMON, TRAINER, ENERGY, ABILITY, ATTACK, UNKNOWN)

ITEM = "Item"
TOOL = "Tool"
SUPPORTER = "Supporter"
STADIUM = "Stadium"
ACE_SPEC = "ACE SPEC"
BASIC = "Basic"
SPECIAL = "Special"


KNOWN_POKEMON = frozenset([
    # Metal / Colorless
    "Munkidori", "Gimmighoul", "Gholdengo ex", "Genesect ex", "Genesect",
    "Fezandipiti ex", "Scyther", "Scizor",
    # Psychic
    "Ralts", "Kirlia", "Gardevoir ex", "Frillish", "Mew ex", "Scream Tail",
    # Water
    "Lapras ex", "Hydreigon ex", "Deino",
    # Fire
    "Charcadet", "Armarouge", "Ethan's Cyndaquil", "Ethan's Quilava", "Victini",
    "Charmander", "Charmeleon", "Charizard ex",
    # Lightning
    "Fan Rotom", "Tynamo", "Eelektrik", "Squawkabilly ex", "Miraidon ex",
    "Iron Hands ex", "Zeraora", "Iron Thorns ex", "Pikachu ex",
    # Grass
    "Wellspring Mask Ogerpon ex", "Teal Mask Ogerpon ex", "Shaymin",
    # Colorless
    "Hoothoot", "Pidgey", "Pidgeot ex",
    # Darkness
    "Snorunt", "Marnie's Impidimp", "Marnie's Morgrem", "Marnie's Grimmsnarl ex",
    # Fighting
    "Okidogi ex",
    # Dragon
    "Latias ex", "Dragapult ex", "Drakloak", "Dreepy",
    "Lillie's Clefairy ex", "Roaring Moon ex",
])

POKEMON_ABILITIES = frozenset([
    "Metallic Signal", "Coin Bonus", "Psychic Embrace", "Flip the Script",
    "Adrena-Brain", "Restart", "Minor Errand-Running", "Squawk and Seize",
    "Tandem Unit", "Evolution", "Punk Up", "Filch", "Fan Call", "Golden Flame",
    "Quick Search", "Recon Directive",
])

POKEMON_ATTACKS = frozenset([
    "Make It Rain", "Freezing Shroud", "Shadow Bullet", "Punishing Scissors",
    "Roaring Scream", "Miracle Force", "Crashing Headbutt", "Torrential Pump",
    "Fire Off", "Sob", "Flame Cannon", "Larimar Rain", "Combustion",
    "Buddy Blast", "Burning Darkness", "Phantom Dive",
])

ITEM_CARDS = frozenset([
    "Nest Ball", "Ultra Ball", "Earthen Vessel", "Superior Energy Retrieval",
    "Energy Search Pro", "Counter Catcher", "Tool Scrapper", "Night Stretcher",
    "Super Rod", "Redeemable Ticket", "Electric Generator", "Sacred Ash",
    "Buddy-Buddy Poffin", "Rare Candy", "Switch", "Picnic Basket",
    "Technical Machine: Evolution", "Technical Machine: Turbo Energize",
])

TOOL_CARDS = frozenset([
    "Air Balloon", "Bravery Charm", "Occa Berry", "Rescue Board", "Forest Seal Stone",
])

SUPPORTER_CARDS = frozenset([
    "Professor's Research", "Professor Turo's Scenario", "Boss's Orders",
    "Arven", "Iono", "Carmine", "Ciphermaniac's Codebreaking",
    "Ethan's Adventure", "Jewel Seeker", "Penny", "Nemona", "Jacq",
])

STADIUM_CARDS = frozenset([
    "Artazon", "Levincia", "Spikemuth Gym", "Jamming Tower", "Pokemon Center",
])

ACE_SPEC_CARDS = frozenset([
    "Prime Catcher", "Master Ball", "Unfair Stamp", "Maximum Belt",
    "Hero's Cape", "Secret Box", "Sparkling Crystal", "Reboot Pod",
    "Energy Recycler", "Hyper Aroma", "Survival Brace", "Dangerous Laser",
    "Neo Upper Energy", "Legacy Energy", "Brilliant Blender", "Amulet of Hope",
])

ENERGY_CARDS = frozenset([
    "Basic Grass Energy", "Basic Fire Energy", "Basic Water Energy",
    "Basic Lightning Energy", "Basic Psychic Energy", "Basic Fighting Energy",
    "Basic Darkness Energy", "Basic Metal Energy", "Prism Energy",
    "Luminous Energy", "Jet Energy", "Reversal Energy", "Mist Energy",
])


_ATTACK_SHAPE_RE = re.compile(r"\bfor \d+ damage\b")
_RANK_SUFFIX_RE = re.compile(r"[\s-](?:ex|EX|V|GX|VMAX|VSTAR|VStar)$|\bTAG TEAM\b")
_BASIC_ENERGY_RE = re.compile(
    r"^(?:basic )?(?:grass|fire|water|lightning|electric|psychic|fighting|"
    r"darkness|dark|metal|fairy|dragon) energy$"
)
_SIMPLE_NAME_RE = re.compile(r"^[a-z]+(?:[ -][a-z]+)*$", re.IGNORECASE)
_ARTIFACT_SUFFIX_RE = re.compile(r"(?:signal|ability|power|bonus)$", re.IGNORECASE)

_SUPPORTER_KEYWORDS = (
    "professor", "'s orders", "research", "arven", "iono", "nemona", "penny",
    "jacq", "juniper", "sycamore", "scenario",
)
_TOOL_KEYWORDS = ("balloon", "belt", "band", "cape", "helmet", "charm", "berry", "tool")
_ITEM_KEYWORDS = (
    "ball", "poffin", "vessel", "potion", "candy", "search", "rod", "device",
    "machine", "catcher", "stretcher", "switch", "ticket", "mail", "retrieval",
)
_STADIUM_KEYWORDS = ("stadium", "tower", "gym", "center", "artazon", "levincia")
_ARTIFACT_PHRASES = ("metallic signal", "coin bonus", "damage counter")


@dataclass(frozen=True)
class CardTables:
    """Reference name sets consulted by CardClassifier."""
    pokemon: frozenset = KNOWN_POKEMON
    abilities: frozenset = POKEMON_ABILITIES
    attacks: frozenset = POKEMON_ATTACKS
    items: frozenset = ITEM_CARDS
    tools: frozenset = TOOL_CARDS
    supporters: frozenset = SUPPORTER_CARDS
    stadiums: frozenset = STADIUM_CARDS
    ace_specs: frozenset = ACE_SPEC_CARDS
    energy: frozenset = ENERGY_CARDS

    @property
    def trainers(self) -> frozenset:
        ace_trainers = frozenset(n for n in self.ace_specs if not n.endswith("Energy"))
        return self.items | self.tools | self.supporters | self.stadiums | ace_trainers


@dataclass
class CardClassification:
    """Derived classification of one card name; never persisted."""
    name: str
    category: str = UNKNOWN
    sub_category: Optional[str] = None
    pokemon_type: Optional[str] = None

    @property
    def is_pokemon(self) -> bool:
        return self.category == POKEMON

    @property
    def is_trainer(self) -> bool:
        return self.category == TRAINER

    @property
    def is_energy(self) -> bool:
        return self.category == ENERGY


def has_rank_suffix(name: str) -> bool:
    """True for names such as "Gardevoir ex", "Arceus VSTAR" or "TAG TEAM" cards."""
    return bool(isinstance(name, str) and _RANK_SUFFIX_RE.search(name.strip()))


class CardClassifier:
    """Classifies cleaned card names into a single category."""

    def __init__(self, tables: Optional[CardTables] = None):
        self.tables = tables or CardTables()
        self._trainers = self.tables.trainers

    def classify(self, name) -> str:
        """Return exactly one of CATEGORIES for any input."""
        if not isinstance(name, str) or not name:
            return UNKNOWN

        # "Make It Rain on Bob's Munkidori for 150 damage"
        if " on " in name and _ATTACK_SHAPE_RE.search(name):
            return ATTACK
        if name in self.tables.pokemon:
            return POKEMON
        if name in self.tables.abilities:
            return ABILITY
        if name in self.tables.attacks:
            return ATTACK
        if name in self._trainers:
            return TRAINER
        if name in self.tables.energy:
            return ENERGY
        return UNKNOWN

    def trainer_sub_category(self, name: str) -> Optional[str]:
        if name in self.tables.ace_specs:
            return ACE_SPEC
        if name in self.tables.supporters:
            return SUPPORTER
        if name in self.tables.tools:
            return TOOL
        if name in self.tables.stadiums:
            return STADIUM
        if name in self.tables.items:
            return ITEM
        return None

    def is_ace_spec(self, name: str) -> bool:
        lowered = name.lower()
        return any(ace.lower() in lowered for ace in self.tables.ace_specs)

    def is_non_card_artifact(self, name) -> bool:
        """True for ability or attack names that logs report like card plays."""
        if not isinstance(name, str):
            return True
        lowered = name.lower()
        if _ARTIFACT_SUFFIX_RE.search(name):
            return True
        if any(phrase in lowered for phrase in _ARTIFACT_PHRASES):
            return True
        return self.classify(name) in (ABILITY, ATTACK)

    def heuristic_classification(self, name, permissive: bool = False) -> CardClassification:
        """
        Classify by tables first, then by keywords and suffixes.

        Args:
            name: Cleaned card name
            permissive: Also treat plain alphabetic names with no trainer
                keyword as Pokemon (used for usage top-picks)
        """
        if not isinstance(name, str):
            return CardClassification(name="")

        category = self.classify(name)
        if category == TRAINER:
            return CardClassification(name, TRAINER, self.trainer_sub_category(name) or ITEM)
        if category == ENERGY:
            sub = BASIC if name.lower().startswith("basic ") else SPECIAL
            return CardClassification(name, ENERGY, sub)
        if category != UNKNOWN:
            return CardClassification(name, category)

        lowered = name.lower().strip()
        if _BASIC_ENERGY_RE.match(lowered):
            return CardClassification(name, ENERGY, BASIC)
        if has_rank_suffix(name):
            return CardClassification(name, POKEMON)
        if self.is_ace_spec(name) and "energy" not in lowered:
            return CardClassification(name, TRAINER, ACE_SPEC)
        if any(word in lowered for word in _SUPPORTER_KEYWORDS):
            return CardClassification(name, TRAINER, SUPPORTER)
        if any(word in lowered for word in _TOOL_KEYWORDS):
            return CardClassification(name, TRAINER, TOOL)
        if any(word in lowered for word in _ITEM_KEYWORDS):
            return CardClassification(name, TRAINER, ITEM)
        if any(word in lowered for word in _STADIUM_KEYWORDS):
            return CardClassification(name, TRAINER, STADIUM)
        if lowered.endswith("energy"):
            return CardClassification(name, ENERGY, SPECIAL)
        if permissive and _SIMPLE_NAME_RE.match(name):
            return CardClassification(name, POKEMON)
        return CardClassification(name)
