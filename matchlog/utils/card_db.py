"""
Card metadata lookup against the Pokemon TCG API.

Results are cached in memory per normalized name. Lookups never raise: any
network or decoding failure is logged and reported as None so callers can
fall back to name heuristics.
"""
from __future__ import annotations

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional

import requests

from ..analyzer.classifier import ENERGY, POKEMON, TRAINER, UNKNOWN
from ..parser.names import clean_name


logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.pokemontcg.io/v2"
DEFAULT_HEADERS = {
    "User-Agent": "ptcg-match-log/1.0",
    "Accept": "application/json",
}
DEFAULT_TIMEOUT_S = 10
DEFAULT_RETRIES = 3
DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY_S = 0.2
_RETRY_STATUS = {429, 500, 502, 503, 504}

_SUPERTYPES = {"Pokémon": POKEMON, "Pokemon": POKEMON, "Trainer": TRAINER, "Energy": ENERGY}
_TRAINER_CATEGORIES = {"Item", "Supporter", "Stadium", "Pokémon Tool", "ACE SPEC"}

_FUZZY_SUFFIX_RE = re.compile(r"\s+(?:ex|gx|v|vmax|vstar)$", re.IGNORECASE)
_FUZZY_NUMBER_RE = re.compile(r"\s+\d+$")


@dataclass(frozen=True)
class CardInfo:
    name: str
    category: str = UNKNOWN  # Pokemon, Trainer or Energy
    pokemon_type: Optional[str] = None
    trainer_category: Optional[str] = None
    energy_type: Optional[str] = None
    image_url: Optional[str] = None
    large_image_url: Optional[str] = None
    card_id: Optional[str] = None

    @classmethod
    def from_api(cls, card: dict[str, Any]) -> "CardInfo":
        supertype = _SUPERTYPES.get(card.get("supertype", ""), UNKNOWN)
        subtypes = card.get("subtypes") or []
        images = card.get("images") or {}

        pokemon_type = None
        trainer_category = None
        energy_type = None
        if supertype == POKEMON:
            pokemon_type = (card.get("types") or ["Colorless"])[0]
        elif supertype == TRAINER:
            if subtypes and subtypes[0] in _TRAINER_CATEGORIES:
                trainer_category = subtypes[0]
        elif supertype == ENERGY:
            energy_type = subtypes[0] if subtypes else "Basic"

        return cls(
            name=card.get("name", ""),
            category=supertype,
            pokemon_type=pokemon_type,
            trainer_category=trainer_category,
            energy_type=energy_type,
            image_url=images.get("small"),
            large_image_url=images.get("large"),
            card_id=card.get("id"),
        )

    def to_dict(self) -> dict:
        return asdict(self)


class RateLimiter:
    def __init__(self, min_interval_s: float) -> None:
        self._min_interval_s = max(0.0, float(min_interval_s))
        self._lock = threading.Lock()
        self._next_ok_at = 0.0

    def wait(self) -> None:
        if self._min_interval_s <= 0:
            return
        with self._lock:
            now = time.monotonic()
            if now < self._next_ok_at:
                time.sleep(self._next_ok_at - now)
            self._next_ok_at = max(self._next_ok_at, now) + self._min_interval_s


def build_session(api_key: Optional[str] = None) -> requests.Session:
    s = requests.Session()
    s.headers.update(DEFAULT_HEADERS)
    if api_key:
        s.headers["X-Api-Key"] = api_key
    return s


def _request_with_retry(
    session: requests.Session,
    limiter: RateLimiter,
    method: str,
    url: str,
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    retries: int = DEFAULT_RETRIES,
    backoff_s: float = 0.5,
    **kwargs: Any,
) -> requests.Response:
    last_exc: Exception | None = None
    for attempt in range(max(1, int(retries))):
        limiter.wait()
        try:
            resp = session.request(method, url, timeout=timeout_s, **kwargs)
            if resp.status_code in _RETRY_STATUS:
                if attempt >= retries - 1:
                    resp.raise_for_status()
                time.sleep(backoff_s * (2**attempt))
                continue
            resp.raise_for_status()
            return resp
        except (requests.RequestException, OSError) as e:
            last_exc = e
            if attempt >= retries - 1:
                raise
            time.sleep(backoff_s * (2**attempt))
            continue
    if last_exc:
        raise last_exc
    raise RuntimeError("request failed without exception")


def fuzzy_name(name: str) -> str:
    """Drop a rank suffix and a trailing number: "Gardevoir ex" -> "Gardevoir"."""
    return _FUZZY_NUMBER_RE.sub("", _FUZZY_SUFFIX_RE.sub("", name)).strip()


class CardLookup:
    """Cached, batched client for card metadata."""

    def __init__(
        self,
        api_base: str = DEFAULT_API_BASE,
        api_key: Optional[str] = None,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay_s: float = DEFAULT_BATCH_DELAY_S,
        session: Optional[requests.Session] = None,
        retries: int = DEFAULT_RETRIES,
        min_interval_s: float = 0.0,
    ):
        self.api_base = api_base.rstrip("/")
        self.timeout_s = timeout_s
        self.batch_size = max(1, int(batch_size))
        self.batch_delay_s = max(0.0, float(batch_delay_s))
        self.retries = retries
        self.session = session or build_session(api_key)
        self.limiter = RateLimiter(min_interval_s)
        self._cache: dict[str, Optional[CardInfo]] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings) -> Optional["CardLookup"]:
        """Build a lookup from Settings, or None when lookups are disabled."""
        if not settings.card_lookup_enabled:
            return None
        return cls(
            api_base=settings.api_base,
            api_key=settings.api_key,
            timeout_s=settings.lookup_timeout_s,
            batch_size=settings.lookup_batch_size,
            batch_delay_s=settings.lookup_batch_delay_s,
        )

    @staticmethod
    def normalize(name: str) -> str:
        return clean_name(name).lower()

    def cached(self, name: str) -> bool:
        with self._lock:
            return self.normalize(name) in self._cache

    def lookup(self, name: str) -> Optional[CardInfo]:
        """
        Look up one card by name.

        Returns:
            CardInfo, or None when the card is unknown or the service failed
        """
        query = clean_name(name)
        if not query:
            return None
        key = query.lower()

        with self._lock:
            if key in self._cache:
                return self._cache[key]

        try:
            info = self._search(query)
            if info is None:
                fuzzy = fuzzy_name(query)
                if fuzzy and fuzzy != query:
                    info = self._search(fuzzy)
        except (requests.RequestException, ValueError) as e:
            logger.warning("Card lookup failed for %r: %s", query, e)
            return None

        with self._lock:
            self._cache[key] = info
        return info

    def lookup_many(self, names: Iterable[str]) -> dict[str, Optional[CardInfo]]:
        """
        Look up many names, batch by batch.

        Each batch runs concurrently; batch_delay_s separates batches.
        """
        unique = list(dict.fromkeys(n for n in names if isinstance(n, str) and n))
        results: dict[str, Optional[CardInfo]] = {}

        for start in range(0, len(unique), self.batch_size):
            batch = unique[start:start + self.batch_size]
            with ThreadPoolExecutor(max_workers=len(batch)) as executor:
                for name, info in zip(batch, executor.map(self.lookup, batch)):
                    results[name] = info
            if self.batch_delay_s and start + self.batch_size < len(unique):
                time.sleep(self.batch_delay_s)

        return results

    def _search(self, name: str) -> Optional[CardInfo]:
        resp = _request_with_retry(
            self.session,
            self.limiter,
            "GET",
            f"{self.api_base}/cards",
            timeout_s=self.timeout_s,
            retries=self.retries,
            params={"q": f'name:"{name}"', "pageSize": 1},
        )
        data = resp.json().get("data") or []
        if not data:
            return None
        return CardInfo.from_api(data[0])
