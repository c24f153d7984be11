"""Sitemap-driven crawl pipeline that ranks articles by reader engagement."""

from .adapters import available_sources, get_adapter
from .catalog import ArticleCatalog
from .engagement import EngagementAggregator
from .errors import CrawlError, ParseFailure, TransportFailure, UnknownSourceError
from .pipeline import CrawlPipeline, CrawlState, latest_snapshot, run_crawl
from .sitemap_cache import SitemapCache

__all__ = [
    "ArticleCatalog",
    "CrawlError",
    "CrawlPipeline",
    "CrawlState",
    "EngagementAggregator",
    "ParseFailure",
    "SitemapCache",
    "TransportFailure",
    "UnknownSourceError",
    "available_sources",
    "get_adapter",
    "latest_snapshot",
    "run_crawl",
]
