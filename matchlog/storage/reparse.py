"""
Bulk re-parse of stored transcripts.

Re-runs the match log parser over every stored full_log and overwrites the
derived Pokemon lists, card lists and win condition. The transcript itself is
never modified, so running this twice with the same parser is a no-op the
second time.
"""
import logging
import sqlite3
from dataclasses import asdict, dataclass, field
from typing import Optional

from ..parser.match_log import MatchLogParser
from .db import REPARSED_FIELDS, get_all_matches, write_reparsed_fields


logger = logging.getLogger(__name__)


@dataclass
class ReparseSummary:
    total: int = 0
    updated: int = 0
    unchanged: int = 0
    errors: int = 0
    updated_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def reparse_all(conn: sqlite3.Connection, parser: Optional[MatchLogParser] = None) -> ReparseSummary:
    """
    Re-parse every stored match.

    A failure on one record is logged and counted; the batch continues.
    """
    parser = parser or MatchLogParser()
    summary = ReparseSummary()

    for match in get_all_matches(conn):
        summary.total += 1
        try:
            fresh = parser.parse(match.full_log)
            if all(getattr(fresh, key) == getattr(match, key) for key in REPARSED_FIELDS):
                summary.unchanged += 1
                continue
            write_reparsed_fields(conn, match.id, fresh)
            summary.updated += 1
            summary.updated_ids.append(match.id)
        except Exception:
            logger.exception("Re-parse failed for match %s", match.id)
            summary.errors += 1

    conn.commit()
    logger.info(
        "Re-parse finished: %d total, %d updated, %d unchanged, %d errors",
        summary.total, summary.updated, summary.unchanged, summary.errors,
    )
    return summary
