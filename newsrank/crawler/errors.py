"""Failure taxonomy for the crawl pipeline.

``TransportFailure`` and ``ParseFailure`` are raised by adapters and caught
by the component that owns the unit of work (month, metadata chunk, article),
which degrades that unit to an empty/zero result. ``UnknownSourceError`` is
the only fatal condition and is raised before any I/O starts.
"""


class CrawlError(Exception):
    """Base class for crawler errors."""

    pass


class TransportFailure(CrawlError):
    """Network error or non-success HTTP status from a source."""

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"{reason} ({url})")


class ParseFailure(CrawlError):
    """Malformed sitemap XML or JSON payload."""

    pass


class UnknownSourceError(CrawlError, ValueError):
    """Raised when a source identifier has no registered adapter."""

    def __init__(self, source: str):
        self.source = source
        super().__init__(f"Invalid source: {source}")
