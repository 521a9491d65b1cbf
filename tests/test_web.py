"""
Tests for the Flask JSON API.
"""

import os
import tempfile
import unittest

from matchlog.config import Settings
from matchlog.web import app as web
from sample_logs import BASIC_LOG, FULL_LOG, LEGAL_DECK


class TestWebApi(unittest.TestCase):
    """Test cases for the API routes."""

    def setUp(self):
        """Set up a fresh store per test."""
        self.tmp = tempfile.TemporaryDirectory()
        settings = Settings(
            db_path=os.path.join(self.tmp.name, "matches.sqlite"),
            card_lookup_enabled=False,
        )
        web.data_manager.configure(settings)
        web.app.config["TESTING"] = True
        self.client = web.app.test_client()

    def tearDown(self):
        web.data_manager.close()
        self.tmp.cleanup()

    def _upload(self, log=FULL_LOG, **extra):
        resp = self.client.post("/api/matches", json={"log": log, **extra})
        self.assertEqual(resp.status_code, 201)
        return resp.get_json()["match"]

    def test_health(self):
        self.assertEqual(self.client.get("/api/health").get_json(), {"status": "ok"})

    def test_parse(self):
        resp = self.client.post("/api/parse", json={"log": BASIC_LOG})
        data = resp.get_json()

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(data["match"]["player1"], "Alice")
        self.assertEqual(data["match"]["player1_total_damage"], 120)
        self.assertTrue(data["confidence"]["fully_parsed"])
        self.assertEqual(self.client.get("/api/matches").get_json()["total"], 0)

    def test_parse_requires_log(self):
        self.assertEqual(self.client.post("/api/parse", json={}).status_code, 400)
        self.assertEqual(self.client.post("/api/parse", json={"log": "  "}).status_code, 400)

    def test_create_and_list(self):
        match = self._upload(title="Finals", tags=["league"])

        self.assertEqual(match["title"], "Finals")
        self.assertEqual(match["tags"], ["league"])
        listing = self.client.get("/api/matches").get_json()
        self.assertEqual(listing["total"], 1)
        self.assertEqual(listing["matches"][0]["id"], match["id"])

    def test_list_filters(self):
        self._upload(FULL_LOG)
        self._upload(BASIC_LOG)

        self.assertEqual(self.client.get("/api/matches?pokemon=Gardevoir").get_json()["total"], 1)
        self.assertEqual(self.client.get("/api/matches?win_condition=Concede").get_json()["total"], 1)
        self.assertEqual(self.client.get("/api/matches?player=Carol").get_json()["total"], 0)

    def test_get_update_delete(self):
        match = self._upload()
        url = f"/api/matches/{match['id']}"

        self.assertEqual(self.client.get(url).get_json()["winner"], "Alice")

        resp = self.client.put(url, json={"notes": "good game"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["notes"], "good game")

        self.assertEqual(self.client.delete(url).status_code, 200)
        self.assertEqual(self.client.get(url).status_code, 404)
        self.assertEqual(self.client.delete(url).status_code, 404)

    def test_update_errors(self):
        match = self._upload()
        url = f"/api/matches/{match['id']}"

        self.assertEqual(self.client.put(url, json={"winner": "Bob"}).status_code, 400)
        self.assertEqual(self.client.put(url, json={}).status_code, 400)
        self.assertEqual(self.client.put("/api/matches/missing", json={"notes": "x"}).status_code, 404)

    def test_deck_export(self):
        match = self._upload()
        data = self.client.get(f"/api/matches/{match['id']}/deck-export").get_json()

        self.assertIn("2 Gardevoir ex", data["Alice"].splitlines())
        self.assertIn("3 Pidgey", data["Bob"].splitlines())
        self.assertEqual(self.client.get("/api/matches/missing/deck-export").status_code, 404)

    def test_stats(self):
        self._upload()
        data = self.client.get("/api/stats").get_json()

        self.assertEqual(data["overview"]["total_matches"], 1)
        self.assertEqual(data["overview"]["max_damage_record"], 190)
        self.assertEqual(data["players"][0]["player_name"], "Alice")

    def test_stats_empty(self):
        data = self.client.get("/api/stats").get_json()
        self.assertEqual(data["insights"], ["No matches recorded yet."])

    def test_card_analysis(self):
        self._upload()
        self._upload()
        data = self.client.get("/api/card-analysis").get_json()

        self.assertEqual(set(data), {"cards", "composition", "recommendations"})
        self.assertIn("Nest Ball", [c["name"] for c in data["cards"]])

    def test_classify_card(self):
        data = self.client.get("/api/cards/classify/Metallic%20Signal").get_json()

        self.assertEqual(data["category"], "Ability")
        self.assertTrue(data["is_non_card_artifact"])

    def test_lookup_disabled(self):
        self.assertEqual(self.client.get("/api/cards/lookup/Nest%20Ball").status_code, 404)

    def test_validate_deck(self):
        data = self.client.post("/api/decks/validate", json={"deck_list": LEGAL_DECK}).get_json()
        self.assertTrue(data["is_valid"])
        self.assertEqual(data["deck"]["total_cards"], 60)

        short = LEGAL_DECK.replace("2 Super Rod PAL 188", "1 Super Rod PAL 188")
        data = self.client.post("/api/decks/validate", json={"deck_list": short}).get_json()
        self.assertFalse(data["is_valid"])

        self.assertEqual(self.client.post("/api/decks/validate", json={}).status_code, 400)

    def test_reparse(self):
        match = self._upload()
        self.client.put(f"/api/matches/{match['id']}", json={"player1_pokemon": []})

        data = self.client.post("/api/admin/reparse-matches").get_json()

        self.assertEqual(data["updated"], 1)
        restored = self.client.get(f"/api/matches/{match['id']}").get_json()
        self.assertEqual(restored["player1_pokemon"], match["player1_pokemon"])


if __name__ == '__main__':
    unittest.main()
