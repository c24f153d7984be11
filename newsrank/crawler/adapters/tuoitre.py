"""Tuoi Tre adapter.

Tuoi Tre publishes one static sitemap per month whose entries carry the
article title in an ``image:title`` block, so no metadata endpoint is
needed. Article ids start with the ``YYYYMMDD`` publish date. Comments are
paged by 1-based page index and every named reaction kind is counted.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping, Sequence
from datetime import date

import httpx

from newsrank import config

from ..errors import ParseFailure
from ..progress import ProgressPlan
from ..types import ArticleRecord, EngagementPage, SitemapEntry, SitemapRequest
from .base import (
    RANK_BY_ENGAGEMENT,
    coerce_count,
    date_from_article_id,
    get_json,
    match_article_id,
    parse_urlset,
)

logger = logging.getLogger(__name__)

SITEMAP_URL = "https://tuoitre.vn/StaticSitemaps/sitemaps-{year}-{month:02d}.xml"
COMMENTS_URL = "https://id.tuoitre.vn/api/getlist-comment.api"
COMMENT_PAGE_SIZE = 100
ARTICLE_TYPE = 1

_ARTICLE_ID_RE = re.compile(r"(\d+)\.htm$")


def _comment_reactions(comment) -> int:
    if not isinstance(comment, dict):
        return 0
    reactions = comment.get("reactions")
    if not isinstance(reactions, dict):
        return 0
    return sum(coerce_count(value) for value in reactions.values())


class TuoiTreAdapter:
    name = "tuoitre"
    ranking = RANK_BY_ENGAGEMENT
    progress = ProgressPlan(
        sitemap=5, filter=15, metadata=20, engagement=25, engagement_end=95
    )

    def __init__(self, metadata_chunk_size: int | None = None):
        self.metadata_chunk_size = metadata_chunk_size or config.METADATA_CHUNK_SIZE
        self.headers = {"User-Agent": config.USER_AGENT}

    def sitemap_requests_for(self, day: date) -> list[SitemapRequest]:
        return [SitemapRequest(url=SITEMAP_URL.format(year=day.year, month=day.month))]

    def parse_sitemap(
        self, raw: bytes | str, request: SitemapRequest
    ) -> list[SitemapEntry]:
        entries: list[SitemapEntry] = []
        skipped = 0
        for item in parse_urlset(raw):
            # The title lives only in the sitemap; an untitled entry is unusable
            if not item["title"]:
                skipped += 1
                continue
            entries.append(SitemapEntry(url=item["url"], title=item["title"]))
        if skipped:
            logger.debug("Dropped %d untitled entries from %s", skipped, request.url)
        return entries

    def extract_article_id(self, url: str) -> str | None:
        return match_article_id(_ARTICLE_ID_RE, url)

    def published_on(self, entry: SitemapEntry, article_id: str) -> date | None:
        return date_from_article_id(article_id)

    async def fetch_metadata(
        self,
        client: httpx.AsyncClient,
        article_ids: Sequence[str],
        hints: Mapping[str, SitemapEntry],
    ) -> list[ArticleRecord]:
        records: list[ArticleRecord] = []
        for article_id in article_ids:
            entry = hints.get(article_id)
            if entry is None or not entry.title:
                continue
            records.append(
                ArticleRecord(
                    article_id=article_id,
                    title=entry.title,
                    url=entry.url,
                    type=ARTICLE_TYPE,
                )
            )
        return records

    async def fetch_engagement_page(
        self,
        client: httpx.AsyncClient,
        article: ArticleRecord,
        page_index: int,
    ) -> EngagementPage:
        payload = await get_json(
            client,
            COMMENTS_URL,
            params={
                "pageindex": page_index + 1,
                "pagesize": COMMENT_PAGE_SIZE,
                "objId": article.article_id,
                "objType": article.type,
                "sort": 2,
            },
            headers=self.headers,
        )
        if not isinstance(payload, dict):
            raise ParseFailure(f"comment response for {article.article_id} is not an object")
        raw_data = payload.get("Data")
        if not raw_data:
            return EngagementPage(items=[], page_size=COMMENT_PAGE_SIZE)
        try:
            comments = json.loads(raw_data) if isinstance(raw_data, str) else raw_data
        except json.JSONDecodeError as exc:
            raise ParseFailure(
                f"comment Data for {article.article_id} is not JSON: {exc}"
            ) from exc
        if not isinstance(comments, list):
            raise ParseFailure(f"comment Data for {article.article_id} is not a list")
        return EngagementPage(
            items=[_comment_reactions(comment) for comment in comments],
            page_size=COMMENT_PAGE_SIZE,
        )
