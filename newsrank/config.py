"""Centralized runtime configuration.

Values are read once from the environment at import time. Modules import
the constants they need (``from newsrank import config``) so tests can patch
them with ``monkeypatch.setattr``.
"""

from __future__ import annotations

import logging
import os

logger = logging.getLogger(__name__)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %s", name, raw, default)
        return default


def _parse_ranking_overrides(raw: str | None) -> dict[str, str]:
    """Parse ``source=policy`` pairs separated by commas."""
    overrides: dict[str, str] = {}
    if not raw:
        return overrides
    for chunk in raw.split(","):
        if "=" not in chunk:
            continue
        source, policy = chunk.split("=", 1)
        source = source.strip().lower()
        policy = policy.strip().lower()
        if source and policy:
            overrides[source] = policy
    return overrides


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/newsrank.db")

CRAWL_DAYS = _env_int("CRAWL_DAYS", 7)
MAX_CRAWL_DAYS = _env_int("MAX_CRAWL_DAYS", 365)
ENGAGEMENT_BATCH_SIZE = _env_int("ENGAGEMENT_BATCH_SIZE", 10)
SITEMAP_BATCH_SIZE = _env_int("SITEMAP_BATCH_SIZE", 10)
ENGAGEMENT_MAX_PAGES = _env_int("ENGAGEMENT_MAX_PAGES", 20)
METADATA_CHUNK_SIZE = _env_int("METADATA_CHUNK_SIZE", 100)
TOP_N = _env_int("TOP_N", 10)

HTTP_TIMEOUT = float(_env_int("HTTP_TIMEOUT", 30))
USER_AGENT = os.getenv(
    "CRAWLER_USER_AGENT",
    "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# e.g. NEWSRANK_RANKING="vnexpress=engagement,tuoitre=reactions"
RANKING_OVERRIDES = _parse_ranking_overrides(os.getenv("NEWSRANK_RANKING"))

API_HOST = os.getenv("API_HOST", "127.0.0.1")
API_PORT = _env_int("PORT", 3000)
