"""
Card effectiveness and deck composition analysis.
Layered on the card lookup: when metadata is missing for a name the
classifier's keyword heuristics fill in.
"""
from collections import Counter, defaultdict
from typing import Optional

from .classifier import (
    ACE_SPEC,
    BASIC,
    ENERGY,
    ITEM,
    POKEMON,
    SPECIAL,
    STADIUM,
    SUPPORTER,
    TOOL,
    TRAINER,
    UNKNOWN,
    CardClassification,
    CardClassifier,
)
from ..parser.names import split_card_entry


BASIC_ENERGY_TYPES = {
    "Fire Energy": "Fire",
    "Water Energy": "Water",
    "Lightning Energy": "Lightning",
    "Grass Energy": "Grass",
    "Psychic Energy": "Psychic",
    "Darkness Energy": "Darkness",
    "Fighting Energy": "Fighting",
    "Metal Energy": "Metal",
    "Fairy Energy": "Fairy",
}

_TRAINER_CATEGORIES = {
    "Item": ITEM,
    "Supporter": SUPPORTER,
    "Stadium": STADIUM,
    "Pokémon Tool": TOOL,
    "ACE SPEC": ACE_SPEC,
}

DEFAULT_DECK_SIZE = 60


class EnhancedCardAnalyzer:
    """Analyzes per-card win rates and the makeup of played decks."""

    def __init__(self, records, lookup=None, classifier: Optional[CardClassifier] = None):
        """
        Args:
            records: Parsed matches
            lookup: Optional CardLookup; without it only heuristics are used
            classifier: Card classifier, defaults to the built-in tables
        """
        self.records = list(records)
        self.lookup = lookup
        self.classifier = classifier or CardClassifier()

    def _card_entries(self):
        """Yield (match index, player won, card name, copies) for every card entry."""
        for index, record in enumerate(self.records):
            for player in (record.player1, record.player2):
                won = record.winner == player
                for entry in record.cards_for(player):
                    name, copies = split_card_entry(entry)
                    if len(name) <= 2 or self.classifier.is_non_card_artifact(name):
                        continue
                    yield index, won, name, copies

    def classify_cards(self, names) -> dict[str, CardClassification]:
        """Classify names via the lookup, falling back to heuristics per name."""
        names = list(dict.fromkeys(names))
        infos = self.lookup.lookup_many(names) if self.lookup is not None else {}

        result = {}
        for name in names:
            info = infos.get(name)
            if info is None or info.category == UNKNOWN:
                result[name] = self.classifier.heuristic_classification(name, permissive=False)
                continue

            sub_category = None
            if info.category == TRAINER:
                sub_category = _TRAINER_CATEGORIES.get(info.trainer_category, ITEM)
            elif info.category == ENERGY:
                sub_category = BASIC if info.energy_type == BASIC else SPECIAL
            if self.classifier.is_ace_spec(name) and info.category == TRAINER:
                sub_category = ACE_SPEC
            result[name] = CardClassification(name, info.category, sub_category, info.pokemon_type)
        return result

    def analyze_card_effectiveness(self) -> list[dict]:
        """
        Win rate per card, weighted by copies.

        Only cards seen in at least two distinct matches are reported.
        """
        usage = defaultdict(lambda: {"copies": 0, "wins": 0, "matches": set()})
        for index, won, name, copies in self._card_entries():
            stats = usage[name]
            stats["copies"] += copies
            stats["matches"].add(index)
            if won:
                stats["wins"] += copies

        eligible = {name: s for name, s in usage.items() if len(s["matches"]) >= 2}
        classifications = self.classify_cards(eligible)

        results = []
        for name, stats in eligible.items():
            count = stats["copies"]
            win_rate = round(stats["wins"] / count * 100, 1) if count else 0.0
            effectiveness, recommendation = self._effectiveness(win_rate, count)
            classification = classifications[name]
            results.append({
                "name": name,
                "count": count,
                "win_rate": win_rate,
                "avg_per_match": round(count / len(stats["matches"]), 1),
                "matches_seen": len(stats["matches"]),
                "card_type": classification.category,
                "sub_category": classification.sub_category,
                "pokemon_type": classification.pokemon_type,
                "is_pokemon": classification.is_pokemon,
                "is_trainer": classification.is_trainer,
                "is_energy": classification.is_energy,
                "effectiveness": effectiveness,
                "recommendation": recommendation,
            })

        return sorted(results, key=lambda c: c["win_rate"], reverse=True)

    @staticmethod
    def _effectiveness(win_rate: float, count: int) -> tuple[Optional[str], str]:
        if win_rate >= 60 and count >= 10:
            return "High", "Highly effective card; consider it for more decks"
        if win_rate >= 45 and count >= 5:
            return "Medium", "Solid card; useful in certain archetypes"
        if win_rate < 30 and count >= 5:
            return "Low", "Underperforming card; consider replacing it"
        return None, "Insufficient data to rate effectiveness"

    def analyze_deck_composition(self) -> dict:
        appearances = Counter()
        winning = Counter()
        for _index, won, name, _copies in self._card_entries():
            appearances[name] += 1
            if won:
                winning[name] += 1

        classifications = self.classify_cards(appearances)

        pokemon, energy_basic, energy_special = [], [], []
        trainers = {SUPPORTER: [], ITEM: [], STADIUM: [], TOOL: []}
        ace_specs = []
        for name, classification in classifications.items():
            if classification.category == POKEMON:
                pokemon.append(classification)
            elif classification.category == ENERGY:
                (energy_basic if classification.sub_category == BASIC else energy_special).append(name)
            elif classification.category == TRAINER:
                if classification.sub_category == ACE_SPEC:
                    ace_specs.append(name)
                    trainers[ITEM].append(name)
                else:
                    trainers.get(classification.sub_category, trainers[ITEM]).append(name)

        by_type = Counter(p.pokemon_type or UNKNOWN for p in pokemon)

        def most_effective(names, category="", limit=5):
            ranked = [
                {
                    "name": name,
                    "category": category,
                    "win_rate": round(winning[name] / appearances[name] * 100, 1),
                }
                for name in names
                if appearances[name] >= 3
            ]
            ranked.sort(key=lambda c: c["win_rate"], reverse=True)
            return ranked[:limit]

        trainer_total = sum(len(names) for names in trainers.values())
        energy_total = len(energy_basic) + len(energy_special)
        distinct = len(classifications)

        def ratio(part):
            return round(part / distinct * 100, 1) if distinct else 0.0

        trainer_best = []
        for sub_category, names in trainers.items():
            trainer_best.extend(most_effective(names, sub_category))
        trainer_best.sort(key=lambda c: c["win_rate"], reverse=True)

        return {
            "pokemon": {
                "total": len(pokemon),
                "by_type": dict(by_type),
                "most_effective": most_effective([p.name for p in pokemon]),
            },
            "trainers": {
                "total": trainer_total,
                "supporters": len(trainers[SUPPORTER]),
                "items": len(trainers[ITEM]),
                "stadiums": len(trainers[STADIUM]),
                "tools": len(trainers[TOOL]),
                "ace_specs": len(ace_specs),
                "most_effective": trainer_best[:8],
            },
            "energy": {
                "total": energy_total,
                "basic": len(energy_basic),
                "special": len(energy_special),
                "most_used": sorted(energy_basic + energy_special, key=lambda n: -appearances[n])[:5],
            },
            "meta_analysis": {
                "average_cards_per_deck": self.average_deck_size(),
                "trainer_ratio": ratio(trainer_total),
                "pokemon_ratio": ratio(len(pokemon)),
                "energy_ratio": ratio(energy_total),
                "deck_archetypes": self._archetypes(by_type, energy_basic, appearances),
            },
        }

    @staticmethod
    def _archetypes(by_type: Counter, energy_basic: list[str], appearances: Counter) -> list[str]:
        types = Counter({t: n for t, n in by_type.items() if t != UNKNOWN})
        if not types:
            # No typed Pokemon; read the types off the basic energy played
            for name in energy_basic:
                for suffix, energy_type in BASIC_ENERGY_TYPES.items():
                    if name.endswith(suffix):
                        types[energy_type] += appearances[name]
                        break
        if not types:
            return ["Mixed"]
        top = [t for t, _count in types.most_common(3)]
        return [f"{top[0]} Focus", f"{'/'.join(top)} Mix"]

    def average_deck_size(self) -> float:
        sizes = []
        for record in self.records:
            for cards in (record.player1_cards, record.player2_cards):
                if cards:
                    sizes.append(sum(split_card_entry(entry)[1] for entry in cards))
        return round(sum(sizes) / len(sizes), 1) if sizes else DEFAULT_DECK_SIZE

    def generate_recommendations(self, stats: Optional[list[dict]] = None) -> list[str]:
        """
        Threshold-based advice over analyze_card_effectiveness() output.

        Args:
            stats: Precomputed card stats; computed when omitted
        """
        if stats is None:
            stats = self.analyze_card_effectiveness()
        recommendations = []

        dominant = [c for c in stats if c["win_rate"] > 70 and c["count"] >= 10 and c["effectiveness"] == "High"]
        if dominant:
            names = ", ".join(c["name"] for c in dominant[:3])
            recommendations.append(
                f"Dominant cards in the meta: {names}. Consider including these highly effective cards."
            )

        underperforming = [c for c in stats if c["win_rate"] < 40 and c["count"] >= 8 and c["effectiveness"] == "Low"]
        if underperforming:
            names = ", ".join(c["name"] for c in underperforming[:2])
            recommendations.append(
                f"Popular but underperforming cards: {names}. Consider more effective alternatives."
            )

        trainers = [c for c in stats if c["is_trainer"] and c["win_rate"] > 55 and c["count"] >= 5]
        if trainers:
            names = ", ".join(c["name"] for c in trainers[:3])
            recommendations.append(
                f"Effective trainer cards: {names}. These support cards show a strong impact on winning."
            )

        return recommendations
