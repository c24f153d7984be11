"""SQLAlchemy database models for the newsrank crawler."""

import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    text,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base: Any = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class CachedSitemap(Base):
    """Sitemap entries seen for one source and one past calendar month."""

    __tablename__ = "cached_sitemaps"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    source = Column(String, nullable=False, index=True)
    # Always the first day of the month
    month_start: Mapped[date] = mapped_column(Date, nullable=False)
    # Ordered list of {"url", "title", "date"} dicts
    urls: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at = Column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("source", "month_start", name="uq_cached_sitemaps_month"),
    )


class CachedArticle(Base):
    """Resolved, stable article metadata keyed by the site's article id."""

    __tablename__ = "cached_articles"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    source = Column(String, nullable=False, index=True)
    article_id = Column(String, nullable=False)
    title = Column(Text, nullable=False)
    url = Column(String, nullable=False)
    type = Column(Integer, nullable=False, default=1)  # site category code
    created_at = Column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )

    __table_args__ = (
        UniqueConstraint("source", "article_id", name="uq_cached_articles_id"),
    )


class CrawlResult(Base):
    """Latest ranked top-N list for a source. One row per source."""

    __tablename__ = "crawl_results"

    id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid.uuid4())
    )
    source = Column(String, nullable=False, unique=True)
    results: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at = Column(
        DateTime, nullable=False, server_default=text("CURRENT_TIMESTAMP")
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )


# Database utilities


def create_database_engine(database_url: str = "sqlite:///data/newsrank.db"):
    """Create SQLAlchemy engine with proper configuration."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            connect_args={"check_same_thread": False, "timeout": 30},
            echo=False,
        )
    else:
        engine = create_engine(
            database_url,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            echo=False,
        )

    return engine


def create_tables(engine):
    """Create all tables in the database."""
    Base.metadata.create_all(engine)
