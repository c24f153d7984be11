"""Crawl orchestration: sitemaps -> filter -> metadata -> engagement -> rank.

A run moves through the phases strictly in order and runs each once:

    Idle -> SitemapPhase -> FilterPhase -> MetadataPhase
         -> EngagementPhase -> RankPhase -> Done

Failures of individual months, metadata chunks or articles degrade to empty
or zero results inside the owning component; a run only aborts before I/O
(unknown source, invalid arguments).
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Any

import httpx

from newsrank import config
from newsrank.models.database import DatabaseManager, KeyedStore

from .adapters import RANK_BY_ENGAGEMENT, RANKING_POLICIES, SourceAdapter, get_adapter
from .catalog import ArticleCatalog
from .engagement import EngagementAggregator
from .http import create_http_client
from .progress import ProgressReporter
from .sitemap_cache import SitemapCache, distinct_months
from .types import (
    ArticleRecord,
    CrawlerResult,
    ProgressCallback,
    ScoredArticle,
    SitemapEntry,
)

logger = logging.getLogger(__name__)

# A snapshot never holds more than this many articles
MAX_TOP_N = 10


class CrawlState(enum.Enum):
    IDLE = "idle"
    SITEMAP = "sitemap"
    FILTER = "filter"
    METADATA = "metadata"
    ENGAGEMENT = "engagement"
    RANK = "rank"
    DONE = "done"


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the ``DateTime`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def crawl_window(days: int, today: date) -> list[date]:
    """``days`` consecutive days ending yesterday, most recent first."""
    return [today - timedelta(days=offset) for offset in range(1, days + 1)]


def ranking_key(policy: str) -> Callable[[ScoredArticle], int]:
    if policy == RANK_BY_ENGAGEMENT:
        return lambda scored: scored.engagement.reactions + scored.engagement.comments
    return lambda scored: scored.engagement.reactions


def rank_articles(
    scored: Sequence[ScoredArticle], policy: str, top_n: int
) -> list[ScoredArticle]:
    """Sort descending by the policy key and truncate.

    ``sorted`` is stable, so equal keys keep their input order.
    """
    return sorted(scored, key=ranking_key(policy), reverse=True)[:top_n]


def latest_snapshot(store: KeyedStore, source: str) -> dict[str, Any] | None:
    row = store.find_one(source=source)
    if row is None:
        return None
    return {"results": row.get("results") or [], "updatedAt": row.get("updated_at")}


class CrawlPipeline:
    """One source's crawl run wired to explicitly injected collaborators."""

    def __init__(
        self,
        adapter: SourceAdapter,
        client: httpx.AsyncClient,
        sitemap_store: KeyedStore,
        article_store: KeyedStore,
        snapshot_store: KeyedStore,
        *,
        today: Callable[[], date] = date.today,
        now: Callable[[], datetime] = utcnow,
        batch_size: int | None = None,
        max_pages: int | None = None,
        top_n: int | None = None,
        ranking: str | None = None,
    ):
        self.adapter = adapter
        self.ranking = (
            ranking
            or config.RANKING_OVERRIDES.get(adapter.name)
            or adapter.ranking
        )
        if self.ranking not in RANKING_POLICIES:
            raise ValueError(
                f"Unknown ranking policy {self.ranking!r} for {adapter.name}"
            )
        self.batch_size = max(1, batch_size or config.ENGAGEMENT_BATCH_SIZE)
        requested_top_n = top_n if top_n is not None else config.TOP_N
        self.top_n = max(0, min(requested_top_n, MAX_TOP_N))
        self._today = today
        self._now = now
        self._snapshot_store = snapshot_store
        self.sitemaps = SitemapCache(sitemap_store, client, today=today)
        self.catalog = ArticleCatalog(article_store, client)
        self.engagement = EngagementAggregator(client, max_pages=max_pages)
        self.state = CrawlState.IDLE

    async def crawl(
        self, days: int, on_progress: ProgressCallback | None = None
    ) -> list[CrawlerResult]:
        if isinstance(days, bool) or not isinstance(days, int) or days < 1:
            raise ValueError(f"days must be a positive integer, got {days!r}")
        if days > config.MAX_CRAWL_DAYS:
            raise ValueError(
                f"days must be at most {config.MAX_CRAWL_DAYS}, got {days}"
            )

        progress = ProgressReporter(on_progress)
        plan = self.adapter.progress
        window = crawl_window(days, self._today())

        self.state = CrawlState.SITEMAP
        progress(plan.sitemap, "Fetching article URLs from sitemaps...")
        entries = await self._collect_sitemaps(window)

        self.state = CrawlState.FILTER
        progress(plan.filter, "Filtering articles by date...")
        article_ids, hints = self._filter_to_window(entries, window)
        logger.info(
            "%s: %d of %d sitemap entries fall in the %d-day window",
            self.adapter.name,
            len(article_ids),
            len(entries),
            days,
        )

        self.state = CrawlState.METADATA
        progress(plan.metadata, "Fetching article details...")

        def on_chunk(completed: int, total: int) -> None:
            span = plan.engagement - plan.metadata
            progress(
                plan.metadata + (completed * span) // max(total, 1),
                f"Resolved article details batch {completed}/{total}...",
            )

        articles = await self.catalog.resolve(
            self.adapter, article_ids, hints, on_chunk=on_chunk
        )

        self.state = CrawlState.ENGAGEMENT
        progress(plan.engagement, "Fetching article reactions...")
        scored = await self._measure_all(articles, progress)

        self.state = CrawlState.RANK
        top = rank_articles(scored, self.ranking, self.top_n)
        results = [item.to_result() for item in top]

        self._snapshot_store.upsert(
            {
                "source": self.adapter.name,
                "results": results,
                "updated_at": self._now(),
            },
            ("source",),
        )
        self.state = CrawlState.DONE
        progress.done()
        logger.info(
            "%s: crawl finished with %d ranked article(s) out of %d measured",
            self.adapter.name,
            len(results),
            len(scored),
        )
        return results

    async def _collect_sitemaps(self, window: list[date]) -> list[SitemapEntry]:
        months = distinct_months(window)
        per_month = await asyncio.gather(
            *(self.sitemaps.resolve(self.adapter, day, window) for day in months)
        )
        return [entry for entries in per_month for entry in entries]

    def _filter_to_window(
        self, entries: list[SitemapEntry], window: list[date]
    ) -> tuple[list[str], dict[str, SitemapEntry]]:
        wanted_days = set(window)
        article_ids: list[str] = []
        hints: dict[str, SitemapEntry] = {}
        for entry in entries:
            article_id = self.adapter.extract_article_id(entry.url)
            if not article_id or article_id in hints:
                continue
            if self.adapter.published_on(entry, article_id) not in wanted_days:
                continue
            article_ids.append(article_id)
            hints[article_id] = entry
        return article_ids, hints

    async def _measure_all(
        self, articles: list[ArticleRecord], progress: ProgressReporter
    ) -> list[ScoredArticle]:
        plan = self.adapter.progress
        total_batches = (len(articles) + self.batch_size - 1) // self.batch_size
        scored: list[ScoredArticle] = []

        for index, start in enumerate(range(0, len(articles), self.batch_size), 1):
            batch = articles[start : start + self.batch_size]
            samples = await asyncio.gather(
                *(self.engagement.measure(self.adapter, article) for article in batch)
            )
            scored.extend(
                ScoredArticle(article=article, engagement=sample)
                for article, sample in zip(batch, samples)
            )
            progress(
                plan.engagement_progress(index, total_batches),
                f"Processing articles {start + 1}-{start + len(batch)}...",
            )
        return scored


async def run_crawl(
    source: str,
    days: int,
    on_progress: ProgressCallback | None = None,
    *,
    db: DatabaseManager,
    client: httpx.AsyncClient | None = None,
) -> list[CrawlerResult]:
    """Crawl one source against the database-backed stores.

    The source is validated before any client is created or request is made.
    """
    adapter = get_adapter(source)
    owns_client = client is None
    http_client = client or create_http_client()
    try:
        pipeline = CrawlPipeline(
            adapter,
            http_client,
            sitemap_store=db.sitemaps,
            article_store=db.articles,
            snapshot_store=db.crawl_results,
        )
        return await pipeline.crawl(days, on_progress)
    finally:
        if owns_client:
            await http_client.aclose()
