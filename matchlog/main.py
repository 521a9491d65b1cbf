"""
CLI entry point for the PTCG match log analyzer.
"""
import argparse
import json
import sys
from pathlib import Path

from .config import Settings, configure_logging


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="PTCG Match Log Analyzer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m matchlog.main parse game.txt --store   # Parse and store a match log
  python -m matchlog.main stats                    # Show statistics summary
  python -m matchlog.main validate-deck deck.txt   # Check a deck list
  python -m matchlog.main web                      # Start the JSON API
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Parse a match log file")
    parse_parser.add_argument("file", type=str, help="Match log text file ('-' for stdin)")
    parse_parser.add_argument(
        "--store", "-s",
        action="store_true",
        help="Store the parsed match in the database"
    )
    parse_parser.add_argument("--title", "-t", type=str, help="Title for the stored match")
    parse_parser.add_argument("--json", action="store_true", help="Print the parsed record as JSON")

    # Stats command
    stats_parser = subparsers.add_parser("stats", help="Show statistics over stored matches")
    stats_parser.add_argument("--json", action="store_true", help="Print the full report as JSON")
    stats_parser.add_argument(
        "--player", "-p",
        type=str,
        help="Show the win rate for one player"
    )

    # Cards command
    cards_parser = subparsers.add_parser("cards", help="Show card effectiveness analysis")
    cards_parser.add_argument("--json", action="store_true", help="Print the full analysis as JSON")
    cards_parser.add_argument(
        "--limit", "-l",
        type=int,
        default=15,
        help="Number of cards to list (default: 15)"
    )

    # Reparse command
    subparsers.add_parser("reparse", help="Re-parse every stored match log")

    # Validate deck command
    deck_parser = subparsers.add_parser("validate-deck", help="Validate a deck list file")
    deck_parser.add_argument("file", type=str, help="Deck list text file ('-' for stdin)")

    # Web command
    web_parser = subparsers.add_parser("web", help="Start the JSON API server")
    web_parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)"
    )
    web_parser.add_argument(
        "--port", "-p",
        type=int,
        default=5000,
        help="Port to bind to (default: 5000)"
    )
    web_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode"
    )

    args = parser.parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if args.command == "parse":
        return run_parse(args, settings)
    elif args.command == "stats":
        return run_stats(args, settings)
    elif args.command == "cards":
        return run_cards(args, settings)
    elif args.command == "reparse":
        return run_reparse(args, settings)
    elif args.command == "validate-deck":
        return run_validate_deck(args, settings)
    elif args.command == "web":
        return run_web(args, settings)
    else:
        parser.print_help()
        return 0


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def _open_store(settings: Settings):
    from .storage import db

    conn = db.connect(settings.db_path)
    db.init_db(conn)
    return conn


def _build_lookup(settings: Settings):
    from .utils.card_db import CardLookup

    return CardLookup.from_settings(settings)


def run_parse(args, settings: Settings) -> int:
    """Parse one match log and optionally store it."""
    from .parser.match_log import MatchLogParser

    log_text = _read_text(args.file)
    record, flags = MatchLogParser().parse_with_confidence(log_text)

    if args.json:
        print(json.dumps({"match": record.to_dict(), "confidence": flags.to_dict()},
                         ensure_ascii=False, indent=2))
    else:
        print(f"\n📋 {record.player1} vs {record.player2}")
        print("=" * 50)
        print(f"   Winner: {record.winner} ({record.win_condition})")
        print(f"   First player: {record.first_player or 'Unknown'}")
        print(f"   Turns: {record.turns}")
        print(f"   Damage: {record.player1_total_damage} / {record.player2_total_damage}")
        print(f"   Prizes: {record.player1_prizes} / {record.player2_prizes}")
        for player, pokemon in ((record.player1, record.player1_pokemon),
                                (record.player2, record.player2_pokemon)):
            print(f"\n🎴 {player}: {', '.join(pokemon) or '-'}")
        if not flags.fully_parsed:
            missing = [k for k, v in flags.to_dict().items() if k != "fully_parsed" and not v]
            print(f"\n⚠️ Defaulted fields: {', '.join(missing)}")

    if args.store:
        from .storage import db

        conn = _open_store(settings)
        stored = db.insert_match(conn, record, full_log=log_text, title=args.title)
        conn.close()
        print(f"\n✅ Stored as {stored.id}")
    return 0


def run_stats(args, settings: Settings) -> int:
    """Print the statistics summary."""
    from .analyzer.statistics import StatsAggregator
    from .storage import db

    conn = _open_store(settings)
    matches = db.get_all_matches(conn)
    conn.close()

    if not matches:
        print("❌ No matches stored. Run 'parse --store' first.")
        return 1

    aggregator = StatsAggregator(matches, lookup=_build_lookup(settings))

    if args.player:
        print(f"{args.player}: {aggregator.get_win_rate(args.player):.1f}% win rate")
        return 0

    report = aggregator.aggregate()
    if args.json:
        print(json.dumps(report, ensure_ascii=False, indent=2))
        return 0

    overview = report["overview"]
    print(f"\n📊 Match Statistics")
    print("=" * 50)
    print(f"Total Matches: {overview['total_matches']}")
    print(f"Average Turns: {overview['avg_turns']}")
    if overview["max_damage_record"]:
        print(f"Damage Record: {overview['max_damage_record']} "
              f"({overview['record_pokemon_name']} - {overview['record_attack_name']})")

    print(f"\n🏆 Players by Wins:")
    for i, player in enumerate(report["players"][:10], 1):
        print(f"   {i:2}. {player['player_name']}")
        print(f"       {player['wins']}W / {player['losses']}L | Win rate: {player['win_rate']}%")

    print(f"\n🎴 Most Used Pokémon:")
    for p in overview["pokemon_usage_stats"][:10]:
        print(f"   {p['name']}: {p['count']} ({p['win_rate']}% wins)")

    print(f"\n💡 Insights:")
    for line in report["insights"]:
        print(f"   - {line}")
    return 0


def run_cards(args, settings: Settings) -> int:
    """Print card effectiveness and recommendations."""
    from .analyzer.cards import EnhancedCardAnalyzer
    from .storage import db

    conn = _open_store(settings)
    matches = db.get_all_matches(conn)
    conn.close()

    analyzer = EnhancedCardAnalyzer(matches, lookup=_build_lookup(settings))
    cards = analyzer.analyze_card_effectiveness()

    if args.json:
        print(json.dumps({
            "cards": cards,
            "composition": analyzer.analyze_deck_composition(),
            "recommendations": analyzer.generate_recommendations(cards),
        }, ensure_ascii=False, indent=2))
        return 0

    print(f"\n🃏 Card Effectiveness")
    print("=" * 50)
    for c in cards[:args.limit]:
        tier = c["effectiveness"] or "-"
        print(f"   {c['name']} ({c['card_type']}): {c['win_rate']}% over {c['count']} copies [{tier}]")

    recommendations = analyzer.generate_recommendations(cards)
    if recommendations:
        print(f"\n💡 Recommendations:")
        for line in recommendations:
            print(f"   - {line}")
    return 0


def run_reparse(args, settings: Settings) -> int:
    """Re-parse every stored match."""
    from .storage.reparse import reparse_all

    conn = _open_store(settings)
    summary = reparse_all(conn)
    conn.close()

    print(f"\n🔄 Re-parse complete")
    print(f"   Total: {summary.total}")
    print(f"   Updated: {summary.updated}")
    print(f"   Unchanged: {summary.unchanged}")
    print(f"   Errors: {summary.errors}")
    return 1 if summary.errors else 0


def run_validate_deck(args, settings: Settings) -> int:
    """Validate a deck list file."""
    from .parser.deck_list import parse_deck_list, validate_deck_list

    text = _read_text(args.file)
    deck = parse_deck_list(text)
    errors = validate_deck_list(text)

    print(f"Cards: {deck.total_cards} "
          f"(Pokémon {len(deck.pokemon_cards)} lines, Trainer {len(deck.trainer_cards)} lines, "
          f"Energy {len(deck.energy_cards)} lines)")
    if errors:
        print("❌ Invalid deck:")
        for error in errors:
            print(f"   - {error}")
        return 1
    print("✅ Deck is valid")
    return 0


def run_web(args, settings: Settings) -> int:
    """Run the JSON API."""
    from .web.app import data_manager, run

    data_manager.configure(settings)
    print(f"🌐 Starting API at http://{args.host}:{args.port}")
    run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    sys.exit(main())
