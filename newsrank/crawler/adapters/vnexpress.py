"""VnExpress adapter.

VnExpress publishes one sitemap per day, resolves titles through a batch
metadata endpoint and pages comments by offset, counting ``userlike`` per
comment. Article ids carry no date, so entries are dated by the day of the
sitemap that listed them.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from datetime import date, timedelta

import httpx

from newsrank import config

from ..errors import ParseFailure
from ..progress import ProgressPlan
from ..types import ArticleRecord, EngagementPage, SitemapEntry, SitemapRequest
from .base import (
    RANK_BY_REACTIONS,
    coerce_count,
    get_json,
    match_article_id,
    parse_urlset,
)

SITEMAP_URL = "https://vnexpress.net/articles-{year}-sitemap.xml"
METADATA_URL = "https://gw.vnexpress.net/ar/get_basic"
COMMENTS_URL = "https://usi-saas.vnexpress.net/index/get"
SITE_ID = 1000000
COMMENT_PAGE_SIZE = 100

_ARTICLE_ID_RE = re.compile(r"(\d+)\.html$")


class VnExpressAdapter:
    name = "vnexpress"
    ranking = RANK_BY_REACTIONS
    progress = ProgressPlan(
        sitemap=5, filter=15, metadata=20, engagement=50, engagement_end=95
    )

    def __init__(self, metadata_chunk_size: int | None = None):
        self.metadata_chunk_size = metadata_chunk_size or config.METADATA_CHUNK_SIZE
        self.headers = {
            "User-Agent": config.USER_AGENT,
            "Referer": "https://vnexpress.net/",
            "Origin": "https://vnexpress.net",
        }

    def sitemap_requests_for(self, day: date) -> list[SitemapRequest]:
        """Every daily sitemap from the first of ``day``'s month through ``day``."""
        day_requests: list[SitemapRequest] = []
        current = day.replace(day=1)
        while current <= day:
            day_requests.append(
                SitemapRequest(
                    url=SITEMAP_URL.format(year=current.year),
                    params={"m": current.month, "d": current.day},
                    day=current,
                )
            )
            current += timedelta(days=1)
        return day_requests

    def parse_sitemap(
        self, raw: bytes | str, request: SitemapRequest
    ) -> list[SitemapEntry]:
        return [
            SitemapEntry(url=item["url"], title=item["title"], listed_on=request.day)
            for item in parse_urlset(raw, request.day)
        ]

    def extract_article_id(self, url: str) -> str | None:
        return match_article_id(_ARTICLE_ID_RE, url)

    def published_on(self, entry: SitemapEntry, article_id: str) -> date | None:
        return entry.listed_on

    async def fetch_metadata(
        self,
        client: httpx.AsyncClient,
        article_ids: Sequence[str],
        hints: Mapping[str, SitemapEntry],
    ) -> list[ArticleRecord]:
        payload = await get_json(
            client,
            METADATA_URL,
            params={
                "article_id": ",".join(article_ids),
                "data_select": "title,share_url,article_type,publish_time",
            },
            headers=self.headers,
        )
        items = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(items, list):
            raise ParseFailure("get_basic response has no data list")

        records: list[ArticleRecord] = []
        for item in items:
            if not isinstance(item, dict):
                continue
            article_id = item.get("article_id")
            title = item.get("title")
            url = item.get("share_url")
            if article_id is None or not title or not url:
                continue
            try:
                article_type = int(item.get("article_type") or 1)
            except (TypeError, ValueError):
                article_type = 1
            records.append(
                ArticleRecord(
                    article_id=str(article_id),
                    title=str(title),
                    url=str(url),
                    type=article_type,
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
                "offset": page_index * COMMENT_PAGE_SIZE,
                "limit": COMMENT_PAGE_SIZE,
                "frommobile": 0,
                "sort_by": "like",
                "is_onload": 1,
                "objectid": article.article_id,
                "objecttype": article.type,
                "siteid": SITE_ID,
            },
            headers=self.headers,
        )
        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise ParseFailure(f"comment response for {article.article_id} has no data")
        items = data.get("items") or []
        if not isinstance(items, list):
            raise ParseFailure(f"comment items for {article.article_id} are not a list")
        likes = [
            coerce_count(item.get("userlike")) if isinstance(item, dict) else 0
            for item in items
        ]
        return EngagementPage(items=likes, page_size=COMMENT_PAGE_SIZE)
