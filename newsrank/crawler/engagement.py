"""Paginated engagement measurement. Never cached."""

from __future__ import annotations

import logging

import httpx

from newsrank import config

from .adapters.base import SourceAdapter
from .errors import CrawlError
from .types import ArticleRecord, EngagementSample

logger = logging.getLogger(__name__)

# Hard ceiling on comment pages per article, whatever the configuration says
MAX_PAGES = 20


class EngagementAggregator:
    def __init__(self, client: httpx.AsyncClient, max_pages: int | None = None):
        self._client = client
        requested = max_pages or config.ENGAGEMENT_MAX_PAGES
        self.max_pages = min(MAX_PAGES, max(1, requested))

    async def measure(
        self, adapter: SourceAdapter, article: ArticleRecord
    ) -> EngagementSample:
        """Sum reactions and count comments across comment pages.

        Paging stops on a short page or after ``max_pages`` pages; the cap is
        an accepted undercount for very popular articles. Any failure zeroes
        this article only.
        """
        reactions = 0
        comments = 0
        try:
            for page_index in range(self.max_pages):
                page = await adapter.fetch_engagement_page(
                    self._client, article, page_index
                )
                reactions += sum(page.items)
                comments += len(page.items)
                if len(page.items) < page.page_size:
                    break
        except CrawlError as exc:
            logger.warning(
                "Error fetching comments for %s article %s: %s",
                adapter.name,
                article.article_id,
                exc,
            )
            return EngagementSample()
        return EngagementSample(reactions=reactions, comments=comments)
