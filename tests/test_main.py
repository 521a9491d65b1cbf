"""
Tests for the command line interface and settings.
"""

import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from matchlog.config import Settings
from matchlog.main import main
from sample_logs import FULL_LOG, LEGAL_DECK


class TestSettings(unittest.TestCase):
    """Test cases for Settings.from_env."""

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings.from_env(dotenv=False)
        self.assertEqual(settings, Settings())

    def test_overrides(self):
        env = {
            "MATCHLOG_DB": "/tmp/other.sqlite",
            "POKEMONTCG_API_KEY": "secret",
            "CARD_LOOKUP_ENABLED": "false",
            "CARD_LOOKUP_BATCH_SIZE": "8",
            "MATCHLOG_LOG_LEVEL": "debug",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env(dotenv=False)

        self.assertEqual(settings.db_path, "/tmp/other.sqlite")
        self.assertEqual(settings.api_key, "secret")
        self.assertFalse(settings.card_lookup_enabled)
        self.assertEqual(settings.lookup_batch_size, 8)
        self.assertEqual(settings.log_level, "DEBUG")


class TestCli(unittest.TestCase):
    """Test cases for the CLI subcommands."""

    def setUp(self):
        """Set up a scratch directory and environment."""
        self.tmp = tempfile.TemporaryDirectory()
        root = Path(self.tmp.name)
        self.log_path = root / "game.txt"
        self.log_path.write_text(FULL_LOG, encoding="utf-8")
        self.deck_path = root / "deck.txt"
        self.deck_path.write_text(LEGAL_DECK, encoding="utf-8")
        self.env = patch.dict(os.environ, {
            "MATCHLOG_DB": str(root / "matches.sqlite"),
            "CARD_LOOKUP_ENABLED": "0",
        })
        self.env.start()

    def tearDown(self):
        self.env.stop()
        self.tmp.cleanup()

    def _run(self, *argv):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(list(argv))
        return code, out.getvalue()

    def test_parse_json(self):
        code, out = self._run("parse", str(self.log_path), "--json")

        self.assertEqual(code, 0)
        data = json.loads(out)
        self.assertEqual(data["match"]["winner"], "Alice")
        self.assertEqual(data["match"]["win_condition"], "Concede")

    def test_store_then_stats(self):
        code, _out = self._run("parse", str(self.log_path), "--store")
        self.assertEqual(code, 0)

        code, out = self._run("stats", "--json")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["overview"]["total_matches"], 1)

        code, out = self._run("stats", "--player", "Alice")
        self.assertIn("100.0% win rate", out)

    def test_stats_without_matches(self):
        code, _out = self._run("stats")
        self.assertEqual(code, 1)

    def test_reparse(self):
        self._run("parse", str(self.log_path), "--store")
        code, out = self._run("reparse")

        self.assertEqual(code, 0)
        self.assertIn("Unchanged: 1", out)

    def test_validate_deck(self):
        code, out = self._run("validate-deck", str(self.deck_path))
        self.assertEqual(code, 0)
        self.assertIn("Cards: 60", out)

        self.deck_path.write_text(LEGAL_DECK.replace("10 Basic", "9 Basic"), encoding="utf-8")
        code, out = self._run("validate-deck", str(self.deck_path))
        self.assertEqual(code, 1)
        self.assertIn("exactly 60", out)


if __name__ == '__main__':
    unittest.main()
