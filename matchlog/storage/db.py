from __future__ import annotations

import json
import sqlite3
import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..parser.models import AttackEvent, MatchRecord, StoredMatch, match_title


SCHEMA_VERSION = 1

# List-valued columns, stored as JSON text
_JSON_FIELDS = (
    "tags",
    "player1_pokemon",
    "player2_pokemon",
    "player1_cards",
    "player2_cards",
    "attacks_used",
)

_RECORD_FIELDS = (
    "player1",
    "player2",
    "winner",
    "first_player",
    "turns",
    "player1_pokemon",
    "player2_pokemon",
    "player1_cards",
    "player2_cards",
    "player1_prizes",
    "player2_prizes",
    "player1_total_damage",
    "player2_total_damage",
    "attacks_used",
    "win_condition",
)

# Fields a user may change after upload
EDITABLE_FIELDS = frozenset([
    "title",
    "notes",
    "tags",
    "player1_pokemon",
    "player2_pokemon",
    "player1_cards",
    "player2_cards",
    "win_condition",
])

# Fields the maintenance re-parse overwrites
REPARSED_FIELDS = ("player1_pokemon", "player2_pokemon", "player1_cards", "player2_cards", "win_condition")


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


def connect(db_path: str | Path) -> sqlite3.Connection:
    db_path = str(db_path)
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS meta (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS matches (
            id TEXT PRIMARY KEY,
            title TEXT NOT NULL,
            notes TEXT NOT NULL DEFAULT '',
            tags TEXT NOT NULL DEFAULT '[]',
            uploader TEXT,
            player1 TEXT NOT NULL,
            player2 TEXT NOT NULL,
            winner TEXT NOT NULL,
            first_player TEXT,
            turns INTEGER NOT NULL DEFAULT 1,
            player1_pokemon TEXT NOT NULL DEFAULT '[]',
            player2_pokemon TEXT NOT NULL DEFAULT '[]',
            player1_cards TEXT NOT NULL DEFAULT '[]',
            player2_cards TEXT NOT NULL DEFAULT '[]',
            player1_prizes INTEGER NOT NULL DEFAULT 0,
            player2_prizes INTEGER NOT NULL DEFAULT 0,
            player1_total_damage INTEGER NOT NULL DEFAULT 0,
            player2_total_damage INTEGER NOT NULL DEFAULT 0,
            attacks_used TEXT NOT NULL DEFAULT '[]',
            win_condition TEXT NOT NULL,
            full_log TEXT NOT NULL,
            uploaded_at TEXT NOT NULL,
            file_size INTEGER NOT NULL DEFAULT 0
        );

        CREATE INDEX IF NOT EXISTS idx_matches_player1 ON matches(player1);
        CREATE INDEX IF NOT EXISTS idx_matches_player2 ON matches(player2);
        CREATE INDEX IF NOT EXISTS idx_matches_uploaded_at ON matches(uploaded_at);
        """
    )
    conn.execute(
        "INSERT OR REPLACE INTO meta(key, value) VALUES (?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()


def _row_to_match(row: sqlite3.Row) -> StoredMatch:
    data: dict[str, Any] = dict(row)
    for key in _JSON_FIELDS:
        data[key] = json.loads(data[key] or "[]")
    data["attacks_used"] = [AttackEvent.from_dict(a) for a in data["attacks_used"]]
    return StoredMatch(**data)


def _encode(key: str, value: Any) -> Any:
    if key == "attacks_used":
        return json.dumps([asdict(a) if isinstance(a, AttackEvent) else a for a in value], ensure_ascii=False)
    if key in _JSON_FIELDS:
        return json.dumps(list(value), ensure_ascii=False)
    return value


def insert_match(
    conn: sqlite3.Connection,
    record: MatchRecord,
    *,
    full_log: str,
    title: str | None = None,
    notes: str = "",
    tags: list[str] | None = None,
    uploader: str | None = None,
) -> StoredMatch:
    """Persist a parsed match together with its raw transcript."""
    match_id = str(uuid.uuid4())
    uploaded_at = _utc_now_iso()
    if title is None:
        title = match_title(record, int(datetime.now(timezone.utc).timestamp()))

    row: dict[str, Any] = {key: getattr(record, key) for key in _RECORD_FIELDS}
    row.update({
        "id": match_id,
        "title": title,
        "notes": notes,
        "tags": tags or [],
        "uploader": uploader,
        "full_log": full_log,
        "uploaded_at": uploaded_at,
        "file_size": len(full_log.encode("utf-8")),
    })

    columns = list(row)
    conn.execute(
        f"INSERT INTO matches({', '.join(columns)}) VALUES ({', '.join('?' for _ in columns)})",
        [_encode(key, row[key]) for key in columns],
    )
    conn.commit()
    return get_match(conn, match_id)


def get_match(conn: sqlite3.Connection, match_id: str) -> StoredMatch | None:
    row = conn.execute("SELECT * FROM matches WHERE id = ?", (match_id,)).fetchone()
    return _row_to_match(row) if row else None


def get_all_matches(conn: sqlite3.Connection) -> list[StoredMatch]:
    rows = conn.execute("SELECT * FROM matches ORDER BY uploaded_at DESC, rowid DESC").fetchall()
    return [_row_to_match(row) for row in rows]


def search_matches(
    conn: sqlite3.Connection,
    *,
    player: str | None = None,
    pokemon: str | None = None,
    win_condition: str | None = None,
    text: str | None = None,
) -> list[StoredMatch]:
    """
    Filter stored matches.

    Args:
        player: Exact player name on either side
        pokemon: Substring of any Pokemon in either list
        win_condition: Exact win condition
        text: Substring of the title, notes or player names
    """
    clauses: list[str] = []
    params: list[Any] = []
    if player:
        clauses.append("(player1 = ? OR player2 = ?)")
        params.extend([player, player])
    if pokemon:
        clauses.append("(player1_pokemon LIKE ? OR player2_pokemon LIKE ?)")
        params.extend([f"%{pokemon}%", f"%{pokemon}%"])
    if win_condition:
        clauses.append("win_condition = ?")
        params.append(win_condition)
    if text:
        clauses.append("(title LIKE ? OR notes LIKE ? OR player1 LIKE ? OR player2 LIKE ?)")
        params.extend([f"%{text}%"] * 4)

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    rows = conn.execute(
        f"SELECT * FROM matches {where} ORDER BY uploaded_at DESC, rowid DESC", params
    ).fetchall()
    return [_row_to_match(row) for row in rows]


def update_match(conn: sqlite3.Connection, match_id: str, fields: dict[str, Any]) -> StoredMatch | None:
    """
    Apply an edit to a stored match.

    Raises:
        ValueError: If a field outside EDITABLE_FIELDS is given
    """
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Fields not editable: {', '.join(sorted(unknown))}")
    if not fields:
        return get_match(conn, match_id)

    assignments = ", ".join(f"{key} = ?" for key in fields)
    params = [_encode(key, value) for key, value in fields.items()]
    cur = conn.execute(f"UPDATE matches SET {assignments} WHERE id = ?", [*params, match_id])
    conn.commit()
    if cur.rowcount == 0:
        return None
    return get_match(conn, match_id)


def write_reparsed_fields(conn: sqlite3.Connection, match_id: str, record: MatchRecord) -> None:
    """Overwrite the derived fields of one match without committing."""
    assignments = ", ".join(f"{key} = ?" for key in REPARSED_FIELDS)
    params = [_encode(key, getattr(record, key)) for key in REPARSED_FIELDS]
    conn.execute(f"UPDATE matches SET {assignments} WHERE id = ?", [*params, match_id])


def delete_match(conn: sqlite3.Connection, match_id: str) -> bool:
    cur = conn.execute("DELETE FROM matches WHERE id = ?", (match_id,))
    conn.commit()
    return cur.rowcount > 0
