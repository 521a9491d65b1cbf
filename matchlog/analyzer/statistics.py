"""
Aggregate statistics over stored matches.

StatsAggregator is a pure function of the records it is given (plus the card
lookup cache when a lookup is supplied). The report layout is:

    {"overview": {...}, "players": [...], "insights": [...]}
"""
from __future__ import annotations

import logging
import re
from collections import Counter, defaultdict
from typing import Any, Iterable, Optional

from .classifier import (
    ACE_SPEC,
    BASIC,
    ENERGY,
    ITEM,
    POKEMON,
    STADIUM,
    SUPPORTER,
    TOOL,
    TRAINER,
    CardClassifier,
)
from ..parser.models import WIN_CONCEDE, WIN_CONDITIONS, MatchRecord
from ..parser.names import clean_name, split_card_entry
from ..utils.date_utils import get_day_key, get_previous_week, get_week_key

__all__ = ["StatsAggregator", "aggregate"]

logger = logging.getLogger(__name__)

TURN_BUCKETS = (
    (1, 5, "1-5"),
    (6, 10, "6-10"),
    (11, 15, "11-15"),
    (16, 20, "16-20"),
    (21, 30, "21-30"),
    (31, None, "31+"),
)

_FULL_ATTACK_RE = re.compile(r"(.+?)'s (.+?) used (.+?)(?: on (.+?))? for (\d+) damage", re.IGNORECASE)
_DAMAGE_BREAKDOWN_RE = re.compile(r"^\s*•\s*.*?:\s*(\d+)\s*damage", re.IGNORECASE)


def _rate(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _category_bucket(classification) -> Optional[str]:
    """Map a classification to one of the top-card-per-category buckets."""
    if classification.category == POKEMON:
        return "pokemon"
    if classification.category == ENERGY:
        return None if classification.sub_category == BASIC else "energy"
    if classification.category == TRAINER:
        return {
            ITEM: "item",
            ACE_SPEC: "item",
            TOOL: "tool",
            SUPPORTER: "supporter",
            STADIUM: "stadium",
        }.get(classification.sub_category)
    return None


class StatsAggregator:
    """Computes player rankings and usage statistics from parsed matches."""

    def __init__(self, records: Iterable[MatchRecord], classifier: Optional[CardClassifier] = None,
                 lookup=None):
        """
        Args:
            records: Parsed (usually stored) matches
            classifier: Card classifier, defaults to the built-in tables
            lookup: Optional CardLookup used for card enrichment and type dominance
        """
        self.records = list(records)
        self.classifier = classifier or CardClassifier()
        self.lookup = lookup

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    #  Players
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def get_win_rate(self, player: str) -> float:
        """Win percentage for a player; 0.0 when the player never appears."""
        total = wins = 0
        for record in self.records:
            if player in (record.player1, record.player2):
                total += 1
                if record.winner == player:
                    wins += 1
        return _rate(wins, total)

    def player_stats(self) -> list[dict]:
        """Per-player totals, sorted by wins."""
        players: dict[str, dict[str, Any]] = {}

        for record in self.records:
            sides = (
                (record.player1, record.player1_pokemon, record.player1_cards, record.player1_prizes),
                (record.player2, record.player2_pokemon, record.player2_cards, record.player2_prizes),
            )
            for name, pokemon, cards, prizes in sides:
                stats = players.setdefault(name, {
                    "wins": 0,
                    "total": 0,
                    "turns": 0,
                    "prizes": 0,
                    "pokemon": Counter(),
                    "cards": Counter(),
                })
                stats["total"] += 1
                stats["turns"] += record.turns
                stats["prizes"] += prizes
                if record.winner == name:
                    stats["wins"] += 1
                stats["pokemon"].update(dict.fromkeys(pokemon, 1))
                for entry in cards:
                    card, count = split_card_entry(entry)
                    if card:
                        stats["cards"][card] += count

        results = []
        for name, stats in players.items():
            total = stats["total"]
            top_pokemon = stats["pokemon"].most_common(1)
            top_card = stats["cards"].most_common(1)
            results.append({
                "player_name": name,
                "total_matches": total,
                "wins": stats["wins"],
                "losses": total - stats["wins"],
                "win_rate": _rate(stats["wins"], total),
                "avg_turns": round(stats["turns"] / total, 2) if total else 0,
                "total_prizes": stats["prizes"],
                "avg_prizes": round(stats["prizes"] / total, 2) if total else 0,
                "pokemon_used": list(stats["pokemon"]),
                "most_used_pokemon": (
                    {"name": top_pokemon[0][0], "count": top_pokemon[0][1]} if top_pokemon else None
                ),
                "cards_used": list(stats["cards"]),
                "most_used_card": (
                    {"name": top_card[0][0], "count": top_card[0][1]} if top_card else None
                ),
                "card_play_frequency": [
                    {
                        "name": card,
                        "count": count,
                        "avg_per_match": round(count / total, 2) if total else 0,
                    }
                    for card, count in stats["cards"].most_common(10)
                ],
            })

        return sorted(results, key=lambda p: p["wins"], reverse=True)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    #  Pokemon and cards
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def pokemon_usage(self, limit: int = 20) -> list[dict]:
        usage: dict[str, dict[str, int]] = defaultdict(lambda: {"count": 0, "wins": 0})

        for record in self.records:
            for player in (record.player1, record.player2):
                for pokemon in dict.fromkeys(record.pokemon_for(player)):
                    usage[pokemon]["count"] += 1
                    if record.winner == player:
                        usage[pokemon]["wins"] += 1

        ranked = sorted(usage.items(), key=lambda item: item[1]["count"], reverse=True)
        return [
            {"name": name, "count": data["count"], "win_rate": _rate(data["wins"], data["count"])}
            for name, data in ranked[:limit]
        ]

    def _card_counts(self) -> dict[str, dict[str, Any]]:
        """Appearances, copies, wins and distinct matches per cleaned card name."""
        usage: dict[str, dict[str, Any]] = defaultdict(lambda: {
            "count": 0, "copies": 0, "wins": 0, "matches": set(),
        })

        for index, record in enumerate(self.records):
            for player in (record.player1, record.player2):
                for entry in record.cards_for(player):
                    name, copies = split_card_entry(entry)
                    if len(name) <= 2 or self.classifier.is_non_card_artifact(name):
                        continue
                    data = usage[name]
                    data["count"] += 1
                    data["copies"] += copies
                    data["matches"].add(index)
                    if record.winner == player:
                        data["wins"] += 1
        return usage

    def card_usage(self, limit: int = 20) -> list[dict]:
        usage = self._card_counts()
        total_matches = len(self.records)
        ranked = sorted(usage.items(), key=lambda item: item[1]["count"], reverse=True)[:limit]

        results = [
            {
                "name": name,
                "count": data["count"],
                "win_rate": _rate(data["wins"], data["count"]),
                "avg_per_match": round(data["copies"] / total_matches, 2) if total_matches else 0,
                "matches_seen": len(data["matches"]),
            }
            for name, data in ranked
        ]

        if self.lookup is not None and results:
            infos = self.lookup.lookup_many([r["name"] for r in results])
            for entry in results:
                info = infos.get(entry["name"])
                if info is not None:
                    entry.update({
                        "card_type": info.category,
                        "pokemon_type": info.pokemon_type,
                        "trainer_category": info.trainer_category,
                        "image_url": info.image_url,
                        "card_id": info.card_id,
                    })
        return results

    def top_cards(self, limit: int = 3) -> list[dict]:
        usage = self._card_counts()
        ranked = sorted(usage.items(), key=lambda item: item[1]["count"], reverse=True)
        return [{"name": name, "count": data["count"]} for name, data in ranked[:limit]]

    def top_cards_by_category(self) -> dict[str, Optional[dict]]:
        """Most used card in each of pokemon/item/tool/supporter/energy/stadium."""
        buckets: dict[str, Counter] = {
            key: Counter() for key in ("pokemon", "item", "tool", "supporter", "energy", "stadium")
        }

        for name, data in self._card_counts().items():
            bucket = _category_bucket(self.classifier.heuristic_classification(name, permissive=True))
            if bucket:
                buckets[bucket][name] = data["count"]

        result = {}
        for key, counter in buckets.items():
            top = counter.most_common(1)
            result[key] = {"name": top[0][0], "count": top[0][1]} if top else None
        return result

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    #  Match outcomes
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def first_player_advantage(self) -> dict:
        known = [r for r in self.records if r.first_player and r.first_player.strip()]
        first_wins = sum(1 for r in known if r.winner == r.first_player)
        total = len(known)
        return {
            "total_matches": total,
            "first_player_wins": first_wins,
            "first_player_win_rate": _rate(first_wins, total),
            "second_player_wins": total - first_wins,
            "second_player_win_rate": _rate(total - first_wins, total),
        }

    def win_condition_breakdown(self) -> dict[str, dict]:
        counts = Counter(r.win_condition for r in self.records)
        total = len(self.records)
        return {
            condition: {"count": counts.get(condition, 0), "percentage": _rate(counts.get(condition, 0), total)}
            for condition in WIN_CONDITIONS
        }

    def turn_distribution(self) -> list[dict]:
        distribution = []
        for low, high, label in TURN_BUCKETS:
            count = sum(
                1 for r in self.records
                if r.turns >= low and (high is None or r.turns <= high)
            )
            distribution.append({"range": label, "count": count})
        return distribution

    def _match_summary(self, record: MatchRecord) -> dict:
        return {
            "id": getattr(record, "id", None),
            "player1": record.player1,
            "player2": record.player2,
            "winner": record.winner,
            "turns": record.turns,
        }

    def shortest_match(self) -> Optional[dict]:
        if not self.records:
            return None
        return self._match_summary(min(self.records, key=lambda r: r.turns))

    def longest_match(self) -> Optional[dict]:
        if not self.records:
            return None
        return self._match_summary(max(self.records, key=lambda r: r.turns))

    def matches_per_day(self) -> list[dict]:
        counts = Counter(get_day_key(getattr(r, "uploaded_at", None)) for r in self.records)
        counts.pop("Unknown", None)
        return [{"date": day, "count": counts[day]} for day in sorted(counts)]

    def matches_per_week(self) -> list[dict]:
        counts = Counter(get_week_key(getattr(r, "uploaded_at", None)) for r in self.records)
        counts.pop("Unknown", None)
        return [{"week": week, "count": counts[week]} for week in sorted(counts)]

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    #  Attacks and damage
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def damage_record(self) -> dict:
        """
        Scan raw logs for the single biggest hit.

        Stored attack events seed the record; matches without a raw log
        count their attack usage from those events instead.

        Bullet breakdown lines ("   • 3 selected Energy: 150 damage") are
        attributed to the attack named on the closest preceding attack line.
        """
        record = {"max_damage": 0, "pokemon": "", "attack": ""}
        attack_usage: dict[str, dict[str, int]] = defaultdict(lambda: {"count": 0, "total_damage": 0})

        for match in self.records:
            for attack in match.attacks_used:
                if attack.damage > record["max_damage"]:
                    record.update(max_damage=attack.damage, pokemon=attack.pokemon, attack=attack.attack)

            log = getattr(match, "full_log", "") or ""
            if not log:
                for attack in match.attacks_used:
                    attack_usage[attack.attack]["count"] += 1
                    attack_usage[attack.attack]["total_damage"] += attack.damage
                continue

            current_attack = ""
            current_pokemon = ""
            for line in log.splitlines():
                full = _FULL_ATTACK_RE.search(line)
                if full:
                    current_pokemon = clean_name(full.group(2))
                    current_attack = full.group(3).strip()
                    damage = int(full.group(5))
                elif current_attack:
                    breakdown = _DAMAGE_BREAKDOWN_RE.match(line)
                    if not breakdown:
                        continue
                    damage = int(breakdown.group(1))
                else:
                    continue

                attack_usage[current_attack]["count"] += 1
                attack_usage[current_attack]["total_damage"] += damage
                if damage > record["max_damage"]:
                    record.update(max_damage=damage, pokemon=current_pokemon, attack=current_attack)

        record["attack_usage"] = [
            {"attack": name, **data}
            for name, data in sorted(attack_usage.items(), key=lambda item: item[1]["count"], reverse=True)
        ]
        return record

    def top_attacks(self, min_uses: int = 2, limit: int = 10) -> list[dict]:
        stats: dict[str, dict[str, int]] = defaultdict(lambda: {"count": 0, "total_damage": 0})
        for record in self.records:
            for attack in record.attacks_used:
                key = f"{attack.pokemon} - {attack.attack}"
                stats[key]["count"] += 1
                stats[key]["total_damage"] += attack.damage

        ranked = [
            {
                "name": name,
                "count": data["count"],
                "total_damage": data["total_damage"],
                "avg_damage": round(data["total_damage"] / data["count"], 2),
            }
            for name, data in stats.items()
            if data["count"] >= min_uses
        ]
        ranked.sort(key=lambda a: a["avg_damage"], reverse=True)
        return ranked[:limit]

    def type_dominance(self) -> list[dict]:
        """Per elemental type usage, win rate and damage. Empty without a lookup."""
        if self.lookup is None:
            return []

        names = {p for r in self.records for p in r.player1_pokemon + r.player2_pokemon}
        infos = self.lookup.lookup_many(sorted(names))
        usage: dict[str, dict[str, int]] = defaultdict(
            lambda: {"count": 0, "wins": 0, "total_damage": 0, "attacks": 0}
        )

        for record in self.records:
            winner_pokemon = record.pokemon_for(record.winner)
            for pokemon in record.player1_pokemon + record.player2_pokemon:
                info = infos.get(pokemon)
                pokemon_type = (info.pokemon_type if info else None) or "Colorless"
                stats = usage[pokemon_type]
                stats["count"] += 1
                if pokemon in winner_pokemon:
                    stats["wins"] += 1
                for attack in record.attacks_used:
                    if attack.pokemon == pokemon:
                        stats["total_damage"] += attack.damage
                        stats["attacks"] += 1

        results = []
        for pokemon_type, stats in usage.items():
            win_rate = _rate(stats["wins"], stats["count"])
            if win_rate >= 60:
                effectiveness = "High"
            elif win_rate >= 40:
                effectiveness = "Medium"
            else:
                effectiveness = "Low"
            results.append({
                "type": pokemon_type,
                "count": stats["count"],
                "win_rate": win_rate,
                "total_damage": stats["total_damage"],
                "avg_damage_per_use": round(stats["total_damage"] / stats["count"], 2),
                "attacks_count": stats["attacks"],
                "effectiveness": effectiveness,
            })
        return sorted(results, key=lambda t: t["total_damage"], reverse=True)

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    #  Report
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    def overview(self) -> dict:
        total = len(self.records)
        total_turns = sum(r.turns for r in self.records)
        total_prizes = sum(r.player1_prizes + r.player2_prizes for r in self.records)
        total_damage = sum(r.player1_total_damage + r.player2_total_damage for r in self.records)
        total_attacks = sum(len(r.attacks_used) for r in self.records)
        win_conditions = self.win_condition_breakdown()
        damage = self.damage_record()

        return {
            "total_matches": total,
            "total_turns": total_turns,
            "avg_turns": round(total_turns / total, 2) if total else 0,
            "avg_prizes_per_match": round(total_prizes / total, 2) if total else 0,
            "total_damage_dealt": total_damage,
            "avg_damage_per_match": round(total_damage / total) if total else 0,
            "total_attacks": total_attacks,
            "avg_attacks_per_match": round(total_attacks / total, 1) if total else 0,
            "max_damage_record": damage["max_damage"],
            "record_pokemon_name": damage["pokemon"],
            "record_attack_name": damage["attack"],
            "attack_usage": damage["attack_usage"],
            "top_attacks": self.top_attacks(),
            "shortest_match": self.shortest_match(),
            "longest_match": self.longest_match(),
            "conceded_matches": win_conditions[WIN_CONCEDE]["count"],
            "conceded_percentage": win_conditions[WIN_CONCEDE]["percentage"],
            "win_conditions": win_conditions,
            "top3_cards": self.top_cards(3),
            "top_cards_by_category": self.top_cards_by_category(),
            "pokemon_usage_stats": self.pokemon_usage(),
            "card_usage_stats": self.card_usage(),
            "type_dominance": self.type_dominance(),
            "matches_per_day": self.matches_per_day(),
            "matches_per_week": self.matches_per_week(),
            "turn_distribution": self.turn_distribution(),
            "first_player_advantage": self.first_player_advantage(),
        }

    def insights(self, overview: dict, players: list[dict]) -> list[str]:
        if not overview["total_matches"]:
            return ["No matches recorded yet."]

        insights = [
            f"Analyzed {overview['total_matches']} matches across {len(players)} players.",
        ]

        avg_turns = overview["avg_turns"]
        if avg_turns < 8:
            insights.append("Matches tend to be short, pointing to aggressive or lopsided matchups.")
        elif avg_turns > 15:
            insights.append("Matches tend to run long, suggesting slower control strategies.")

        conceded = overview["conceded_percentage"]
        if conceded > 30:
            insights.append("A high share of matches end in a concession, which may signal an unbalanced meta.")
        elif conceded < 10:
            insights.append("Few matches end in a concession; most games are played to the end.")

        if players:
            top = players[0]
            if top["win_rate"] > 70:
                insights.append(f"{top['player_name']} dominates with a {top['win_rate']:.1f}% win rate.")
            active = [p for p in players if p["total_matches"] >= 5]
            if len(active) > 1:
                avg_rate = sum(p["win_rate"] for p in active) / len(active)
                state = "unbalanced" if avg_rate > 60 else "balanced"
                insights.append(f"The meta looks {state} among active players.")

        pokemon = overview["pokemon_usage_stats"]
        if pokemon:
            insights.append(f"{pokemon[0]['name']} is the most used Pokémon with {pokemon[0]['count']} appearances.")
            dominant = [p["name"] for p in pokemon if p["win_rate"] > 70 and p["count"] >= 3]
            if dominant:
                insights.append(f"Dominant Pokémon: {', '.join(dominant)}")

        cards = overview["card_usage_stats"]
        if cards:
            insights.append(f"{cards[0]['name']} is the most used card with {cards[0]['count']} appearances.")
            strong = [c for c in cards if c["win_rate"] > 75 and c["count"] >= 5]
            if strong:
                listed = ", ".join(f"{c['name']} ({c['win_rate']:.1f}%)" for c in strong[:3])
                insights.append(f"High-impact cards: {listed}")

        advantage = overview["first_player_advantage"]
        if advantage["total_matches"] >= 5:
            rate = advantage["first_player_win_rate"]
            if rate > 60:
                insights.append(f"Going first is a clear advantage ({rate:.1f}% wins).")
            elif rate < 40:
                insights.append(f"Going second is favored ({100 - rate:.1f}% wins).")
            elif 45 <= rate <= 55:
                insights.append(f"Turn order is balanced ({rate:.1f}% vs {100 - rate:.1f}%).")

        weeks = overview["matches_per_week"]
        if len(weeks) >= 2 and weeks[-2]["week"] == get_previous_week(weeks[-1]["week"]):
            current, previous = weeks[-1]["count"], weeks[-2]["count"]
            if current > previous:
                insights.append(f"Activity is up this week: {current} matches vs {previous} last week.")
            elif current < previous:
                insights.append(f"Activity is down this week: {current} matches vs {previous} last week.")

        return insights

    def aggregate(self) -> dict:
        logger.debug("Aggregating statistics over %d matches", len(self.records))
        overview = self.overview()
        players = self.player_stats()
        overview["most_active_players"] = players[:10]
        return {
            "overview": overview,
            "players": players,
            "insights": self.insights(overview, players),
        }


def aggregate(records: Iterable[MatchRecord], classifier: Optional[CardClassifier] = None,
              lookup=None) -> dict:
    """Build the full statistics report for a set of matches."""
    return StatsAggregator(records, classifier=classifier, lookup=lookup).aggregate()
