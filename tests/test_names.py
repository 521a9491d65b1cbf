"""
Unit tests for card name normalization.
"""

import unittest

from matchlog.parser.names import clean_name, format_card_entry, split_card_entry


class TestCleanName(unittest.TestCase):
    """Test cases for clean_name."""

    def test_strips_leading_bracketed_code(self):
        self.assertEqual(clean_name("(sv7_28) Gholdengo ex"), "Gholdengo ex")

    def test_strips_trailing_count(self):
        self.assertEqual(clean_name("Nest Ball (3x)"), "Nest Ball")

    def test_strips_set_codes(self):
        self.assertEqual(clean_name("Marnie's Impidimp DRI 134"), "Marnie's Impidimp")
        self.assertEqual(clean_name("Gardevoir ex sv10_185"), "Gardevoir ex")
        self.assertEqual(clean_name("PAL 185 Iono"), "Iono")

    def test_strips_runs_of_set_codes(self):
        self.assertEqual(clean_name("Iono PAL 12 PAL 123"), "Iono")
        self.assertEqual(clean_name("PAL 12 SVI 3 Iono"), "Iono")

    def test_set_codes_alone_are_not_a_name(self):
        self.assertEqual(clean_name("PAL 12 PAL 123"), "")
        self.assertEqual(clean_name("SVE 5"), "")

    def test_strips_punctuation_and_whitespace(self):
        self.assertEqual(clean_name("Ultra Ball."), "Ultra Ball")
        self.assertEqual(clean_name("  Rare   Candy  "), "Rare Candy")

    def test_non_string_input(self):
        self.assertEqual(clean_name(None), "")
        self.assertEqual(clean_name(42), "")

    def test_idempotent(self):
        """Cleaning a cleaned name changes nothing."""
        samples = [
            "(sv7_28) Gholdengo ex",
            "Nest Ball (3x)",
            "Marnie's Impidimp DRI 134 (2x)",
            "Boss's Orders PAL 172.",
            "  Basic   Psychic Energy SVE 5 ",
            "PAL 12 PAL 123",
        ]
        for raw in samples:
            once = clean_name(raw)
            self.assertEqual(clean_name(once), once, raw)


class TestCardEntries(unittest.TestCase):
    """Test cases for the "Name (Nx)" entry helpers."""

    def test_split_with_count(self):
        self.assertEqual(split_card_entry("Nest Ball (3x)"), ("Nest Ball", 3))

    def test_split_without_count(self):
        self.assertEqual(split_card_entry("Nest Ball"), ("Nest Ball", 1))

    def test_split_invalid(self):
        self.assertEqual(split_card_entry(None), ("", 0))

    def test_format(self):
        entry = format_card_entry("Boss's Orders", 2)
        self.assertEqual(entry, "Boss's Orders (2x)")
        self.assertEqual(split_card_entry(entry), ("Boss's Orders", 2))


if __name__ == '__main__':
    unittest.main()
