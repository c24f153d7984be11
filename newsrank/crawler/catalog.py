"""Permanent cache of resolved article metadata."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

import httpx

from newsrank.models.database import KeyedStore

from .adapters.base import SourceAdapter
from .errors import CrawlError
from .types import ArticleRecord, SitemapEntry

logger = logging.getLogger(__name__)

CONFLICT_KEYS = ("source", "article_id")


class ArticleCatalog:
    """Resolve article ids to title/url/type, fetching each id at most once.

    Records are write-once: an id already in the store is never refetched.
    Ids in a failed chunk stay uncached and are retried on the next run.
    """

    def __init__(self, store: KeyedStore, client: httpx.AsyncClient):
        self._store = store
        self._client = client

    async def resolve(
        self,
        adapter: SourceAdapter,
        article_ids: Iterable[str],
        hints: Mapping[str, SitemapEntry] | None = None,
        on_chunk: Callable[[int, int], None] | None = None,
    ) -> list[ArticleRecord]:
        ids = list(dict.fromkeys(article_ids))
        if not ids:
            return []

        existing = {
            str(row["article_id"])
            for row in self._store.find(source=adapter.name, article_id=ids)
        }
        missing = [article_id for article_id in ids if article_id not in existing]
        logger.info(
            "%s: %d article(s) cached, %d to resolve",
            adapter.name,
            len(existing),
            len(missing),
        )

        if missing:
            resolved = await self._fetch_missing(adapter, missing, hints or {}, on_chunk)
            if resolved:
                self._store.upsert(
                    [record.to_row(adapter.name) for record in resolved.values()],
                    CONFLICT_KEYS,
                )

        rows = self._store.find(source=adapter.name, article_id=ids)
        by_id = {str(row["article_id"]): ArticleRecord.from_row(row) for row in rows}
        return [by_id[article_id] for article_id in ids if article_id in by_id]

    async def _fetch_missing(
        self,
        adapter: SourceAdapter,
        missing: list[str],
        hints: Mapping[str, SitemapEntry],
        on_chunk: Callable[[int, int], None] | None,
    ) -> dict[str, ArticleRecord]:
        chunk_size = max(1, adapter.metadata_chunk_size)
        wanted = set(missing)
        total_chunks = (len(missing) + chunk_size - 1) // chunk_size
        resolved: dict[str, ArticleRecord] = {}

        for index, start in enumerate(range(0, len(missing), chunk_size), start=1):
            chunk = missing[start : start + chunk_size]
            try:
                records = await adapter.fetch_metadata(self._client, chunk, hints)
            except CrawlError as exc:
                logger.error(
                    "Error fetching article details for %s ids %d-%d: %s",
                    adapter.name,
                    start + 1,
                    start + len(chunk),
                    exc,
                )
                records = []
            for record in records:
                # Last write wins for ids repeated within one pass
                if record.article_id in wanted:
                    resolved[record.article_id] = record
            if on_chunk is not None:
                on_chunk(index, total_chunks)
        return resolved
