"""
Unit tests for EnhancedCardAnalyzer.
"""

import unittest
from unittest.mock import Mock

from matchlog.analyzer.cards import EnhancedCardAnalyzer
from matchlog.analyzer.classifier import POKEMON, TRAINER
from matchlog.parser.models import MatchRecord
from matchlog.utils.card_db import CardInfo


def make_record(player1_cards, player2_cards, winner="Alice"):
    return MatchRecord(
        player1="Alice",
        player2="Bob",
        winner=winner,
        player1_cards=player1_cards,
        player2_cards=player2_cards,
    )


ALICE_CARDS = ["Ultra Ball (4x)", "Gardevoir ex (2x)", "Prime Catcher (1x)", "Metallic Signal (2x)"]
BOB_CARDS = ["Ultra Ball (2x)", "Pidgey (3x)", "Basic Psychic Energy (2x)"]


class TestCardEffectiveness(unittest.TestCase):
    """Test cases for analyze_card_effectiveness."""

    def setUp(self):
        """Set up test fixtures."""
        self.records = [
            make_record(ALICE_CARDS + ["Rare Candy (1x)"], BOB_CARDS),
            make_record(ALICE_CARDS, BOB_CARDS),
        ]
        self.analyzer = EnhancedCardAnalyzer(self.records)

    def test_copy_weighted_win_rate(self):
        cards = {c["name"]: c for c in self.analyzer.analyze_card_effectiveness()}

        self.assertEqual(cards["Ultra Ball"]["count"], 12)
        self.assertEqual(cards["Ultra Ball"]["win_rate"], 66.7)
        self.assertEqual(cards["Ultra Ball"]["effectiveness"], "High")
        self.assertEqual(cards["Pidgey"]["win_rate"], 0.0)
        self.assertEqual(cards["Pidgey"]["effectiveness"], "Low")

    def test_small_samples_are_unrated(self):
        cards = {c["name"]: c for c in self.analyzer.analyze_card_effectiveness()}
        self.assertIsNone(cards["Gardevoir ex"]["effectiveness"])
        self.assertEqual(cards["Gardevoir ex"]["recommendation"], "Insufficient data to rate effectiveness")

    def test_single_match_cards_and_artifacts_excluded(self):
        names = [c["name"] for c in self.analyzer.analyze_card_effectiveness()]
        self.assertNotIn("Rare Candy", names)
        self.assertNotIn("Metallic Signal", names)

    def test_sorted_by_win_rate(self):
        rates = [c["win_rate"] for c in self.analyzer.analyze_card_effectiveness()]
        self.assertEqual(rates, sorted(rates, reverse=True))

    def test_heuristic_classification_without_lookup(self):
        cards = {c["name"]: c for c in self.analyzer.analyze_card_effectiveness()}
        self.assertEqual(cards["Ultra Ball"]["card_type"], TRAINER)
        self.assertTrue(cards["Ultra Ball"]["is_trainer"])
        self.assertEqual(cards["Gardevoir ex"]["card_type"], POKEMON)

    def test_lookup_failure_falls_back(self):
        lookup = Mock()
        lookup.lookup_many.side_effect = lambda names: {n: None for n in names}
        analyzer = EnhancedCardAnalyzer(self.records, lookup=lookup)

        cards = {c["name"]: c for c in analyzer.analyze_card_effectiveness()}
        self.assertEqual(cards["Pidgey"]["card_type"], POKEMON)

    def test_lookup_metadata_wins(self):
        lookup = Mock()
        lookup.lookup_many.side_effect = lambda names: {
            n: CardInfo(n, POKEMON, pokemon_type="Colorless") if n == "Pidgey" else None
            for n in names
        }
        analyzer = EnhancedCardAnalyzer(self.records, lookup=lookup)

        cards = {c["name"]: c for c in analyzer.analyze_card_effectiveness()}
        self.assertEqual(cards["Pidgey"]["pokemon_type"], "Colorless")


class TestDeckComposition(unittest.TestCase):
    """Test cases for analyze_deck_composition."""

    def setUp(self):
        """Set up test fixtures."""
        self.records = [make_record(ALICE_CARDS, BOB_CARDS) for _ in range(2)]

    def test_composition_counts(self):
        composition = EnhancedCardAnalyzer(self.records).analyze_deck_composition()

        self.assertEqual(composition["pokemon"]["total"], 2)
        self.assertEqual(composition["trainers"]["items"], 2)
        self.assertEqual(composition["trainers"]["ace_specs"], 1)
        self.assertEqual(composition["energy"]["basic"], 1)
        self.assertEqual(composition["energy"]["special"], 0)

    def test_archetype_from_energy(self):
        composition = EnhancedCardAnalyzer(self.records).analyze_deck_composition()
        self.assertEqual(
            composition["meta_analysis"]["deck_archetypes"], ["Psychic Focus", "Psychic Mix"])

    def test_archetype_from_lookup_types(self):
        lookup = Mock()
        lookup.lookup_many.side_effect = lambda names: {
            n: CardInfo(n, POKEMON, pokemon_type="Psychic") if n == "Gardevoir ex" else None
            for n in names
        }
        composition = EnhancedCardAnalyzer(self.records, lookup=lookup).analyze_deck_composition()

        self.assertEqual(composition["pokemon"]["by_type"], {"Psychic": 1, "Unknown": 1})
        self.assertEqual(composition["meta_analysis"]["deck_archetypes"][0], "Psychic Focus")

    def test_mixed_without_types(self):
        records = [make_record(["Ultra Ball (4x)"], ["Nest Ball (4x)"])]
        composition = EnhancedCardAnalyzer(records).analyze_deck_composition()
        self.assertEqual(composition["meta_analysis"]["deck_archetypes"], ["Mixed"])

    def test_average_deck_size(self):
        analyzer = EnhancedCardAnalyzer(self.records)
        self.assertEqual(analyzer.average_deck_size(), 8.0)
        self.assertEqual(EnhancedCardAnalyzer([MatchRecord()]).average_deck_size(), 60)


class TestRecommendations(unittest.TestCase):
    """Test cases for generate_recommendations."""

    def test_thresholds(self):
        stats = [
            {"name": "Ultra Ball", "win_rate": 80.0, "count": 12, "effectiveness": "High", "is_trainer": True},
            {"name": "Pidgey", "win_rate": 20.0, "count": 9, "effectiveness": "Low", "is_trainer": False},
        ]
        recommendations = EnhancedCardAnalyzer([]).generate_recommendations(stats)

        self.assertEqual(len(recommendations), 3)
        self.assertTrue(recommendations[0].startswith("Dominant cards in the meta: Ultra Ball."))
        self.assertIn("Pidgey", recommendations[1])
        self.assertIn("Ultra Ball", recommendations[2])

    def test_no_data(self):
        self.assertEqual(EnhancedCardAnalyzer([]).generate_recommendations(), [])


if __name__ == '__main__':
    unittest.main()
