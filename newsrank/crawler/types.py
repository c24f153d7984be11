"""Value types shared by the adapters, caches and the pipeline."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date
from typing import Any, TypedDict


class CrawlerResult(TypedDict):
    title: str
    url: str
    reactions: int
    comments: int


ProgressCallback = Callable[[int, str | None], None]


@dataclass(frozen=True)
class SitemapRequest:
    """One GET against a sitemap document."""

    url: str
    params: dict[str, Any] = field(default_factory=dict)
    # Day covered by a day-scoped sitemap; None for month-wide documents
    day: date | None = None


@dataclass(frozen=True)
class SitemapEntry:
    url: str
    title: str | None = None
    # Day of the sitemap the entry was listed in, when the site scopes by day
    listed_on: date | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "date": self.listed_on.isoformat() if self.listed_on else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SitemapEntry:
        raw_date = data.get("date")
        return cls(
            url=str(data["url"]),
            title=data.get("title"),
            listed_on=date.fromisoformat(raw_date) if raw_date else None,
        )


@dataclass(frozen=True)
class ArticleRecord:
    article_id: str
    title: str
    url: str
    type: int = 1

    def to_row(self, source: str) -> dict[str, Any]:
        return {
            "source": source,
            "article_id": self.article_id,
            "title": self.title,
            "url": self.url,
            "type": self.type,
        }

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ArticleRecord:
        return cls(
            article_id=str(row["article_id"]),
            title=row["title"],
            url=row["url"],
            type=int(row.get("type") or 1),
        )


@dataclass(frozen=True)
class EngagementPage:
    """One page of a comment endpoint: reaction value per comment."""

    items: list[int]
    page_size: int


@dataclass(frozen=True)
class EngagementSample:
    reactions: int = 0
    comments: int = 0


@dataclass
class ScoredArticle:
    article: ArticleRecord
    engagement: EngagementSample

    def to_result(self) -> CrawlerResult:
        return {
            "title": self.article.title,
            "url": self.article.url,
            "reactions": self.engagement.reactions,
            "comments": self.engagement.comments,
        }
