"""
Runtime settings from environment variables.

A .env file in the working directory is loaded first when present.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


DEFAULT_DB_PATH = "data/matches.sqlite"
DEFAULT_API_BASE = "https://api.pokemontcg.io/v2"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    db_path: str = DEFAULT_DB_PATH
    api_base: str = DEFAULT_API_BASE
    api_key: Optional[str] = None
    lookup_timeout_s: float = 10.0
    lookup_batch_size: int = 5
    lookup_batch_delay_s: float = 0.2
    card_lookup_enabled: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv()
        return cls(
            db_path=os.environ.get("MATCHLOG_DB", DEFAULT_DB_PATH),
            api_base=os.environ.get("POKEMONTCG_API_BASE", DEFAULT_API_BASE),
            api_key=os.environ.get("POKEMONTCG_API_KEY") or None,
            lookup_timeout_s=float(os.environ.get("CARD_LOOKUP_TIMEOUT", "10")),
            lookup_batch_size=int(os.environ.get("CARD_LOOKUP_BATCH_SIZE", "5")),
            lookup_batch_delay_s=float(os.environ.get("CARD_LOOKUP_BATCH_DELAY", "0.2")),
            card_lookup_enabled=_env_bool("CARD_LOOKUP_ENABLED", True),
            log_level=os.environ.get("MATCHLOG_LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
