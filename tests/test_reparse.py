"""
Unit tests for the bulk re-parse.
"""

import unittest
from unittest.mock import Mock

from matchlog.parser.match_log import MatchLogParser
from matchlog.storage import db
from matchlog.storage.reparse import reparse_all
from sample_logs import BASIC_LOG, FULL_LOG


class TestReparseAll(unittest.TestCase):
    """Test cases for reparse_all."""

    def setUp(self):
        """Set up test fixtures."""
        self.conn = db.connect(":memory:")
        db.init_db(self.conn)
        parser = MatchLogParser()
        self.full = db.insert_match(self.conn, parser.parse(FULL_LOG), full_log=FULL_LOG)
        self.basic = db.insert_match(self.conn, parser.parse(BASIC_LOG), full_log=BASIC_LOG)

    def tearDown(self):
        self.conn.close()

    def test_fresh_store_is_unchanged(self):
        summary = reparse_all(self.conn)

        self.assertEqual(summary.total, 2)
        self.assertEqual(summary.updated, 0)
        self.assertEqual(summary.unchanged, 2)
        self.assertEqual(summary.errors, 0)

    def test_restores_edited_fields(self):
        db.update_match(self.conn, self.full.id, {"player1_pokemon": [], "win_condition": "Deck out"})

        summary = reparse_all(self.conn)

        self.assertEqual(summary.updated, 1)
        self.assertEqual(summary.updated_ids, [self.full.id])
        restored = db.get_match(self.conn, self.full.id)
        self.assertEqual(restored.player1_pokemon, self.full.player1_pokemon)
        self.assertEqual(restored.win_condition, self.full.win_condition)
        self.assertEqual(restored.full_log, FULL_LOG)

    def test_idempotent(self):
        db.update_match(self.conn, self.basic.id, {"player2_cards": ["Nest Ball (9x)"]})

        first = reparse_all(self.conn)
        second = reparse_all(self.conn)

        self.assertEqual(first.updated, 1)
        self.assertEqual(second.updated, 0)
        self.assertEqual(second.unchanged, 2)

    def test_failures_are_counted(self):
        parser = Mock()
        parser.parse.side_effect = RuntimeError("boom")

        with self.assertLogs("matchlog.storage.reparse", level="ERROR"):
            summary = reparse_all(self.conn, parser)

        self.assertEqual(summary.errors, 2)
        self.assertEqual(summary.updated, 0)
        self.assertEqual(db.get_match(self.conn, self.full.id).player1_pokemon, self.full.player1_pokemon)

    def test_summary_dict(self):
        self.assertEqual(reparse_all(self.conn).to_dict(), {
            "total": 2,
            "updated": 0,
            "unchanged": 2,
            "errors": 0,
            "updated_ids": [],
        })


if __name__ == '__main__':
    unittest.main()
