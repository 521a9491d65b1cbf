"""
Unit tests for log line classification.
"""

import unittest

from matchlog.parser.lines import (
    Attack,
    CoinFlip,
    FirstPlayerDecision,
    OpeningHand,
    PlayCard,
    Prize,
    TurnHeader,
    Unrecognized,
    WinStatement,
    classify_line,
    normalize_card_candidate,
    starts_with_player,
)


class TestStructuralLines(unittest.TestCase):
    """Test cases for turn, setup and outcome lines."""

    def test_turn_headers(self):
        self.assertEqual(classify_line("Turn # 3 - Alice's Turn"), TurnHeader(3, "Alice"))
        self.assertEqual(classify_line("Turn # 4"), TurnHeader(4))
        self.assertEqual(classify_line("Turn 2 (Bob):"), TurnHeader(2, "Bob"))

    def test_coin_flip(self):
        self.assertEqual(
            classify_line("Alice chose heads for the opening coin flip."), CoinFlip("Alice"))
        self.assertEqual(classify_line("Bob won the coin toss."), CoinFlip("Bob"))

    def test_opening_hand(self):
        self.assertEqual(
            classify_line("Bob drew 7 cards for the opening hand."), OpeningHand("Bob"))

    def test_first_player(self):
        self.assertEqual(
            classify_line("Alice decided to go first."), FirstPlayerDecision("Alice"))

    def test_prizes(self):
        self.assertEqual(classify_line("Bob took 2 Prize cards."), Prize("Bob", 2))
        self.assertEqual(classify_line("Bob took a Prize card."), Prize("Bob", 1))
        self.assertEqual(classify_line("Bob took three Prize cards."), Prize("Bob", 3))

    def test_win_statement(self):
        self.assertEqual(classify_line("Alice wins."), WinStatement("Alice"))


class TestAttackLines(unittest.TestCase):
    """Test cases for damage statements."""

    def test_rich_attack(self):
        event = classify_line(
            "Alice's Charizard ex used Fire Blast on Bob's Pidgey for 120 damage.")
        self.assertEqual(event, Attack("Alice", "Charizard ex", "Fire Blast", 120, "Bob's Pidgey"))

    def test_simple_attack(self):
        event = classify_line("Bob used Tackle for 30 damage.")
        self.assertEqual(event, Attack("Bob", None, "Tackle", 30))

    def test_attack_beats_win_statement(self):
        """A line with both shapes is classified by the higher-ranked rule."""
        event = classify_line("Alice's Pikachu ex used Thunderbolt for 200 damage. Alice wins.")
        self.assertIsInstance(event, Attack)


class TestCardLines(unittest.TestCase):
    """Test cases for card plays attributed to a known player."""

    def _classify(self, line):
        return classify_line(line, "Alice", "Bob")

    def test_played_trainer(self):
        self.assertEqual(
            self._classify("Alice played Nest Ball."),
            PlayCard("Alice", "Nest Ball", False, "played"))

    def test_played_to_bench(self):
        self.assertEqual(
            self._classify("Bob played Ralts to the Bench."),
            PlayCard("Bob", "Ralts", True, "pokemon_play"))

    def test_played_rank_suffix(self):
        event = self._classify("Alice played Gardevoir ex.")
        self.assertEqual(event, PlayCard("Alice", "Gardevoir ex", True, "pokemon_play"))

    def test_attached(self):
        event = self._classify("Alice attached Basic Psychic Energy to Kirlia in the Active Spot.")
        self.assertEqual(event, PlayCard("Alice", "Basic Psychic Energy", False, "attached"))

    def test_owner_used(self):
        event = self._classify("Alice's Kirlia used Refinement.")
        self.assertEqual(event, PlayCard("Alice", "Kirlia", True, "owner_used"))

    def test_drew(self):
        self.assertEqual(
            self._classify("Alice drew Ultra Ball."),
            PlayCard("Alice", "Ultra Ball", False, "drew"))
        self.assertEqual(self._classify("Alice drew a card."), Unrecognized())

    def test_evolved(self):
        event = self._classify("Alice evolved Ralts into Kirlia.")
        self.assertEqual(event, PlayCard("Alice", "Kirlia", True, "evolved"))

    def test_unknown_player(self):
        self.assertEqual(self._classify("Carol played Nest Ball."), Unrecognized())

    def test_player_prefix_must_end_at_word_boundary(self):
        self.assertEqual(classify_line("Alicia played Nest Ball.", "Alice"), Unrecognized())

    def test_no_players_yet(self):
        self.assertEqual(classify_line("Alice played Nest Ball."), Unrecognized())


class TestHelpers(unittest.TestCase):

    def test_normalize_card_candidate(self):
        self.assertEqual(normalize_card_candidate("Nest Ball from their hand"), "Nest Ball")
        self.assertEqual(normalize_card_candidate("Ralts to the Bench"), "Ralts")
        self.assertEqual(normalize_card_candidate("12"), "")
        self.assertEqual(normalize_card_candidate("ab"), "")
        self.assertEqual(normalize_card_candidate("2 Prize cards"), "")

    def test_starts_with_player(self):
        self.assertTrue(starts_with_player("Alice's Ralts", "Alice"))
        self.assertTrue(starts_with_player("Alice played", "Alice"))
        self.assertFalse(starts_with_player("Alicia played", "Alice"))
        self.assertFalse(starts_with_player("Alice played", ""))


if __name__ == '__main__':
    unittest.main()
