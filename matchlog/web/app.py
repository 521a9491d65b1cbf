"""
Flask JSON API for uploading and analyzing PTCG match logs.
"""
import logging
from dataclasses import asdict

from flask import Flask, jsonify, request

from ..analyzer.cards import EnhancedCardAnalyzer
from ..analyzer.statistics import StatsAggregator
from ..parser.deck_list import generate_deck_list_export, parse_deck_list, validate_deck_list
from ..storage import db
from ..storage.reparse import reparse_all
from .data_manager import DataManager


logger = logging.getLogger(__name__)

app = Flask(__name__)
data_manager = DataManager()


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _log_from_request():
    payload = request.get_json(silent=True) or {}
    log_text = payload.get("log")
    if not isinstance(log_text, str) or not log_text.strip():
        return payload, None
    return payload, log_text


@app.route("/api/health")
def api_health():
    return jsonify({"status": "ok"})


@app.route("/api/parse", methods=["POST"])
def api_parse():
    """Parse a pasted log without storing it."""
    _payload, log_text = _log_from_request()
    if log_text is None:
        return _error("Missing 'log' in request body", 400)

    record, flags = data_manager.parser.parse_with_confidence(log_text)
    return jsonify({"match": record.to_dict(), "confidence": flags.to_dict()})


@app.route("/api/matches", methods=["POST"])
def api_create_match():
    """Parse and store a match log."""
    payload, log_text = _log_from_request()
    if log_text is None:
        return _error("Missing 'log' in request body", 400)

    record, flags = data_manager.parser.parse_with_confidence(log_text)
    with data_manager.lock:
        stored = db.insert_match(
            data_manager.get_connection(),
            record,
            full_log=log_text,
            title=payload.get("title") or None,
            notes=payload.get("notes", ""),
            tags=payload.get("tags") or [],
            uploader=payload.get("uploader"),
        )
        data_manager.invalidate()

    logger.info("Stored match %s (%s vs %s)", stored.id, stored.player1, stored.player2)
    return jsonify({"match": stored.to_dict(), "confidence": flags.to_dict()}), 201


@app.route("/api/matches", methods=["GET"])
def api_list_matches():
    """List stored matches, optionally filtered."""
    filters = {
        "player": request.args.get("player"),
        "pokemon": request.args.get("pokemon"),
        "win_condition": request.args.get("win_condition"),
        "text": request.args.get("q"),
    }
    if any(filters.values()):
        with data_manager.lock:
            matches = db.search_matches(data_manager.get_connection(), **filters)
    else:
        matches = data_manager.get_matches()

    return jsonify({
        "matches": [m.to_dict() for m in matches],
        "total": len(matches),
    })


@app.route("/api/matches/<match_id>", methods=["GET"])
def api_get_match(match_id: str):
    with data_manager.lock:
        match = db.get_match(data_manager.get_connection(), match_id)
    if match is None:
        return _error("Match not found", 404)
    return jsonify(match.to_dict())


@app.route("/api/matches/<match_id>", methods=["PUT"])
def api_update_match(match_id: str):
    """Edit title, notes, tags, Pokemon lists, card lists or win condition."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict) or not payload:
        return _error("Missing fields to update", 400)

    try:
        with data_manager.lock:
            match = db.update_match(data_manager.get_connection(), match_id, payload)
            data_manager.invalidate()
    except ValueError as e:
        return _error(str(e), 400)

    if match is None:
        return _error("Match not found", 404)
    return jsonify(match.to_dict())


@app.route("/api/matches/<match_id>", methods=["DELETE"])
def api_delete_match(match_id: str):
    with data_manager.lock:
        deleted = db.delete_match(data_manager.get_connection(), match_id)
        data_manager.invalidate()
    if not deleted:
        return _error("Match not found", 404)
    return jsonify({"deleted": match_id})


@app.route("/api/matches/<match_id>/deck-export")
def api_deck_export(match_id: str):
    """Estimated deck lists for both players of a stored match."""
    with data_manager.lock:
        match = db.get_match(data_manager.get_connection(), match_id)
    if match is None:
        return _error("Match not found", 404)
    return jsonify({
        match.player1: generate_deck_list_export(match.player1_pokemon),
        match.player2: generate_deck_list_export(match.player2_pokemon),
    })


@app.route("/api/stats")
def api_stats():
    """Aggregate statistics across all stored matches."""
    matches = data_manager.get_matches()
    aggregator = StatsAggregator(matches, lookup=data_manager.get_lookup())
    return jsonify(aggregator.aggregate())


@app.route("/api/card-analysis")
def api_card_analysis():
    """Card effectiveness, deck composition and recommendations."""
    matches = data_manager.get_matches()
    analyzer = EnhancedCardAnalyzer(matches, lookup=data_manager.get_lookup())
    cards = analyzer.analyze_card_effectiveness()
    return jsonify({
        "cards": cards,
        "composition": analyzer.analyze_deck_composition(),
        "recommendations": analyzer.generate_recommendations(cards),
    })


@app.route("/api/cards/classify/<path:name>")
def api_classify_card(name: str):
    classifier = data_manager.parser.classifier
    heuristic = classifier.heuristic_classification(name)
    return jsonify({
        "name": name,
        "category": classifier.classify(name),
        "heuristic": asdict(heuristic),
        "is_non_card_artifact": classifier.is_non_card_artifact(name),
    })


@app.route("/api/cards/lookup/<path:name>")
def api_lookup_card(name: str):
    lookup = data_manager.get_lookup()
    if lookup is None:
        return _error("Card lookup is disabled", 404)
    info = lookup.lookup(name)
    if info is None:
        return _error("Card not found", 404)
    return jsonify(info.to_dict())


@app.route("/api/decks/validate", methods=["POST"])
def api_validate_deck():
    payload = request.get_json(silent=True) or {}
    deck_list = payload.get("deck_list")
    if not isinstance(deck_list, str) or not deck_list.strip():
        return _error("Missing 'deck_list' in request body", 400)

    errors = validate_deck_list(deck_list)
    return jsonify({
        "is_valid": not errors,
        "errors": errors,
        "deck": parse_deck_list(deck_list).to_dict(),
    })


@app.route("/api/admin/reparse-matches", methods=["POST"])
def api_reparse_matches():
    """Re-run the parser over every stored transcript."""
    with data_manager.lock:
        summary = reparse_all(data_manager.get_connection(), data_manager.parser)
        data_manager.invalidate()
    return jsonify(summary.to_dict())


def run(host: str = "127.0.0.1", port: int = 5000, debug: bool = True):
    """Run the Flask application."""
    app.run(host=host, port=port, debug=debug)


if __name__ == "__main__":
    run()
