"""Environment-driven settings and logging setup."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .crossref import DEFAULT_USER_AGENT

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    crossref_mailto: str = ""
    crossref_user_agent: str = DEFAULT_USER_AGENT
    crossref_timeout: float = 10.0
    max_concurrent: int = 3
    pacing_delay: float = 0.3
    log_level: str = "WARNING"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    return value if value >= 0 else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


def load_settings() -> Settings:
    """Read settings from the environment, loading a ``.env`` file first."""
    load_dotenv()
    return Settings(
        crossref_mailto=os.getenv("CROSSREF_MAILTO", ""),
        crossref_user_agent=os.getenv("CROSSREF_USER_AGENT") or DEFAULT_USER_AGENT,
        crossref_timeout=_env_float("CROSSREF_TIMEOUT", 10.0),
        max_concurrent=_env_int("ENRICHMENT_MAX_CONCURRENT", 3),
        pacing_delay=_env_float("ENRICHMENT_PACING_DELAY", 0.3),
        log_level=os.getenv("CITATION_CHECKER_LOG_LEVEL", "WARNING").upper(),
    )


def configure_logging(level: str = "WARNING") -> None:
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(level=numeric, format=LOG_FORMAT)
