"""Phase-weighted progress reporting."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .types import ProgressCallback

logger = logging.getLogger(__name__)

DONE_MESSAGE = "Done!"


@dataclass(frozen=True)
class ProgressPlan:
    """Start percentage of each crawl phase.

    Engagement progress interpolates linearly from ``engagement`` to
    ``engagement_end`` as batches complete. Values are advisory only.
    """

    sitemap: int = 5
    filter: int = 15
    metadata: int = 20
    engagement: int = 50
    engagement_end: int = 95
    done: int = 100

    def engagement_progress(self, completed_batches: int, total_batches: int) -> int:
        if total_batches <= 0:
            return self.engagement_end
        span = self.engagement_end - self.engagement
        return self.engagement + (completed_batches * span) // total_batches


class ProgressReporter:
    """Forward progress to a sink, clamped to 0-100 and never decreasing."""

    def __init__(self, sink: ProgressCallback | None):
        self._sink = sink
        self.last = 0

    def __call__(self, progress: int, message: str | None = None) -> None:
        value = max(self.last, min(100, max(0, int(progress))))
        self.last = value
        logger.debug("progress %d%% %s", value, message or "")
        if self._sink is not None:
            self._sink(value, message)

    def done(self) -> None:
        self(100, DONE_MESSAGE)
