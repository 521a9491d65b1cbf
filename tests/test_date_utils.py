"""
Unit tests for day and week keys.
"""

import unittest

from matchlog.utils.date_utils import get_day_key, get_previous_week, get_week_key


class TestDateKeys(unittest.TestCase):

    def test_day_key(self):
        self.assertEqual(get_day_key("2025-03-03T10:00:00+00:00"), "2025-03-03")
        self.assertEqual(get_day_key("2025-03-03T10:00:00Z"), "2025-03-03")
        self.assertEqual(get_day_key(None), "Unknown")

    def test_week_key(self):
        self.assertEqual(get_week_key("2025-03-03T10:00:00+00:00"), "2025-W10")
        self.assertEqual(get_week_key("not a date"), "Unknown")

    def test_previous_week(self):
        self.assertEqual(get_previous_week("2025-W11"), "2025-W10")
        self.assertEqual(get_previous_week("2025-W01"), "2024-W52")
        self.assertEqual(get_previous_week("2021-W01"), "2020-W53")
        self.assertEqual(get_previous_week("Unknown"), "Unknown")


if __name__ == '__main__':
    unittest.main()
