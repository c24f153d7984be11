"""Capability interface shared by the per-site adapters, plus helpers.

Adapters are stateless. They build requests, parse documents and page
through comment endpoints; they never cache or rank. Site breakage (format
changes) surfaces as :class:`ParseFailure` or :class:`TransportFailure` and
is absorbed by the caller that owns the unit of work.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from typing import Any, Protocol

import httpx
from bs4 import BeautifulSoup

from ..errors import ParseFailure, TransportFailure
from ..progress import ProgressPlan
from ..types import (
    ArticleRecord,
    EngagementPage,
    SitemapEntry,
    SitemapRequest,
)

logger = logging.getLogger(__name__)

RANK_BY_REACTIONS = "reactions"
RANK_BY_ENGAGEMENT = "engagement"  # reactions + comments
RANKING_POLICIES = (RANK_BY_REACTIONS, RANK_BY_ENGAGEMENT)

_CDATA_RE = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)


class SourceAdapter(Protocol):
    name: str
    ranking: str
    progress: ProgressPlan
    metadata_chunk_size: int
    headers: Mapping[str, str]

    def sitemap_requests_for(self, day: date) -> list[SitemapRequest]: ...

    def parse_sitemap(
        self, raw: bytes | str, request: SitemapRequest
    ) -> list[SitemapEntry]: ...

    def extract_article_id(self, url: str) -> str | None: ...

    def published_on(self, entry: SitemapEntry, article_id: str) -> date | None: ...

    async def fetch_metadata(
        self,
        client: httpx.AsyncClient,
        article_ids: Sequence[str],
        hints: Mapping[str, SitemapEntry],
    ) -> list[ArticleRecord]: ...

    async def fetch_engagement_page(
        self,
        client: httpx.AsyncClient,
        article: ArticleRecord,
        page_index: int,
    ) -> EngagementPage: ...


def month_start(day: date) -> date:
    return day.replace(day=1)


def coerce_count(value: Any) -> int:
    """Non-negative int from a JSON counter; junk counts as zero."""
    try:
        return max(0, int(value or 0))
    except (TypeError, ValueError):
        return 0


def match_article_id(pattern: re.Pattern[str], url: str) -> str | None:
    match = pattern.search(url or "")
    return match.group(1) if match else None


def date_from_article_id(article_id: str | None) -> date | None:
    """Read the ``YYYYMMDD`` prefix some sites embed in article ids."""
    if not article_id or len(article_id) < 8 or not article_id[:8].isdigit():
        return None
    try:
        return datetime.strptime(article_id[:8], "%Y%m%d").date()
    except ValueError:
        return None


def _local_name(tag) -> str:
    name = tag.name or ""
    return name.rsplit(":", 1)[-1]


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    text = _CDATA_RE.sub(r"\1", value).strip()
    return text or None


def parse_urlset(raw: bytes | str, listed_on: date | None = None) -> list[dict]:
    """Parse a ``<urlset>`` sitemap into ``{"url", "title", "listed_on"}`` dicts.

    Entries without ``<loc>`` are dropped. ``title`` comes from the first
    nested ``*:title`` element (image or news extension) when present.
    """
    if isinstance(raw, bytes):
        raw = raw.strip()
    else:
        raw = (raw or "").strip()
    if not raw:
        raise ParseFailure("empty sitemap document")

    soup = BeautifulSoup(raw, "xml")
    urlset = next(
        (tag for tag in soup.find_all(True) if _local_name(tag) == "urlset"), None
    )
    if urlset is None:
        raise ParseFailure("sitemap document has no <urlset> element")

    entries: list[dict] = []
    for node in urlset.find_all(True, recursive=False):
        if _local_name(node) != "url":
            continue
        loc = next(
            (c for c in node.find_all(True, recursive=False) if _local_name(c) == "loc"),
            None,
        )
        url = _clean_text(loc.get_text()) if loc is not None else None
        if not url:
            continue
        title_tag = next(
            (c for c in node.find_all(True) if _local_name(c) == "title"), None
        )
        title = _clean_text(title_tag.get_text()) if title_tag is not None else None
        entries.append({"url": url, "title": title, "listed_on": listed_on})
    return entries


async def get_response(
    client: httpx.AsyncClient,
    url: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> httpx.Response:
    try:
        response = await client.get(url, params=params, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise TransportFailure(
            url, f"HTTP {exc.response.status_code}", exc.response.status_code
        ) from exc
    except httpx.HTTPError as exc:
        raise TransportFailure(url, f"{type(exc).__name__}: {exc}") from exc
    return response


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    params: Mapping[str, Any] | None = None,
    headers: Mapping[str, str] | None = None,
) -> Any:
    response = await get_response(client, url, params=params, headers=headers)
    try:
        return response.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseFailure(f"invalid JSON from {url}: {exc}") from exc


async def fetch_sitemap(
    adapter: SourceAdapter,
    client: httpx.AsyncClient,
    request: SitemapRequest,
) -> list[SitemapEntry]:
    response = await get_response(
        client, request.url, params=request.params or None, headers=adapter.headers
    )
    return adapter.parse_sitemap(response.content, request)
