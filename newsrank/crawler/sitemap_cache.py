"""Month-granularity sitemap cache.

Past months are immutable at the source, so their sitemap entries are
fetched once and served from the store afterwards. The current month is
still being appended to and is always fetched fresh: it is never read from
or written to the store.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Collection, Iterable
from datetime import date

import httpx

from newsrank import config
from newsrank.models.database import KeyedStore

from .adapters.base import SourceAdapter, fetch_sitemap, month_start
from .errors import CrawlError
from .types import SitemapEntry, SitemapRequest

logger = logging.getLogger(__name__)

CONFLICT_KEYS = ("source", "month_start")


def distinct_months(days: Iterable[date]) -> list[date]:
    """First day seen for each calendar month, in input order.

    The day passed for a month decides what the adapter fetches for it, so
    callers resolve each ``(source, month)`` at most once per run.
    """
    seen: set[date] = set()
    representatives: list[date] = []
    for day in days:
        month = month_start(day)
        if month in seen:
            continue
        seen.add(month)
        representatives.append(day)
    return representatives


class SitemapCache:
    def __init__(
        self,
        store: KeyedStore,
        client: httpx.AsyncClient,
        today: Callable[[], date] = date.today,
        batch_size: int | None = None,
    ):
        self._store = store
        self._client = client
        self._today = today
        self._batch_size = max(1, batch_size or config.SITEMAP_BATCH_SIZE)

    async def resolve(
        self,
        adapter: SourceAdapter,
        day: date,
        window: Collection[date] | None = None,
    ) -> list[SitemapEntry]:
        """Sitemap entries for ``day``'s month.

        ``window`` narrows the uncached current-month fetch to the day-scoped
        sitemaps it covers; past months are always fetched whole so the
        cached copy is complete.
        """
        month = month_start(day)
        if month == month_start(self._today()):
            logger.debug(
                "%s: %s is the current month; bypassing sitemap cache",
                adapter.name,
                month.strftime("%Y-%m"),
            )
            month_requests = adapter.sitemap_requests_for(day)
            if window is not None:
                wanted = set(window)
                month_requests = [
                    request
                    for request in month_requests
                    if request.day is None or request.day in wanted
                ]
            entries = await self._fetch_month(adapter, day, month_requests)
            return entries if entries is not None else []

        cached = self._store.find_one(source=adapter.name, month_start=month)
        if cached is not None:
            logger.debug(
                "%s: sitemap cache hit for %s", adapter.name, month.strftime("%Y-%m")
            )
            return [SitemapEntry.from_dict(item) for item in cached.get("urls") or []]

        entries = await self._fetch_month(
            adapter, day, adapter.sitemap_requests_for(day)
        )
        if entries is None:
            return []

        self._store.upsert(
            {
                "source": adapter.name,
                "month_start": month,
                "urls": [entry.to_dict() for entry in entries],
            },
            CONFLICT_KEYS,
        )
        logger.info(
            "%s: cached %d sitemap entries for %s",
            adapter.name,
            len(entries),
            month.strftime("%Y-%m"),
        )
        return entries

    async def _fetch_month(
        self,
        adapter: SourceAdapter,
        day: date,
        month_requests: list[SitemapRequest],
    ) -> list[SitemapEntry] | None:
        """Fetch ``month_requests`` for ``day``'s month in batches.

        Returns None when any request fails so the month is not cached.
        """
        entries: list[SitemapEntry] = []
        for start in range(0, len(month_requests), self._batch_size):
            batch = month_requests[start : start + self._batch_size]
            results = await asyncio.gather(
                *(fetch_sitemap(adapter, self._client, request) for request in batch),
                return_exceptions=True,
            )
            for request, result in zip(batch, results):
                if isinstance(result, CrawlError):
                    logger.error(
                        "Error fetching sitemap for %s (%s): %s",
                        day.strftime("%Y-%m"),
                        adapter.name,
                        result,
                    )
                    return None
                if isinstance(result, BaseException):
                    raise result
                entries.extend(result)
        return entries
