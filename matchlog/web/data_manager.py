"""
Data manager for caching and efficient data access.
"""
import logging
import sqlite3
import threading
import time
from typing import Optional, List

from ..config import Settings
from ..parser.match_log import MatchLogParser
from ..parser.models import StoredMatch
from ..storage import db
from ..utils.card_db import CardLookup


logger = logging.getLogger(__name__)


class DataManager:
    _instance = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(DataManager, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, settings: Optional[Settings] = None):
        if self._initialized:
            return

        self.settings = settings or Settings.from_env()
        self.parser = MatchLogParser()
        self.lock = threading.RLock()
        self._conn: Optional[sqlite3.Connection] = None
        self._lookup: Optional[CardLookup] = None
        self._lookup_built = False
        self._matches: Optional[List[StoredMatch]] = None
        self._last_loaded: float = 0
        self._cache_ttl = 300  # 5 minutes

        self._initialized = True

    def configure(self, settings: Settings, lookup: Optional[CardLookup] = None):
        """Swap settings (and optionally the lookup), dropping connections and caches."""
        with self.lock:
            self.close()
            self.settings = settings
            self._lookup = lookup
            self._lookup_built = lookup is not None

    def get_connection(self) -> sqlite3.Connection:
        """Get or create the shared sqlite connection."""
        with self.lock:
            if self._conn is None:
                self._conn = db.connect(self.settings.db_path)
                db.init_db(self._conn)
                logger.info("Opened match store at %s", self.settings.db_path)
            return self._conn

    def get_lookup(self) -> Optional[CardLookup]:
        """Get or create the shared card lookup; None when disabled."""
        with self.lock:
            if not self._lookup_built:
                self._lookup = CardLookup.from_settings(self.settings)
                self._lookup_built = True
            return self._lookup

    def get_matches(self, force_refresh: bool = False) -> List[StoredMatch]:
        """Get cached matches, reloading if necessary."""
        current_time = time.time()
        with self.lock:
            if self._matches is None or force_refresh or (current_time - self._last_loaded > self._cache_ttl):
                logger.debug("Loading matches from store (force=%s)", force_refresh)
                self._matches = db.get_all_matches(self.get_connection())
                self._last_loaded = current_time
            return self._matches

    def invalidate(self):
        with self.lock:
            self._matches = None

    def close(self):
        with self.lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None
            self._matches = None
