"""Source adapter registry.

Adding a site means writing one adapter class and registering it here.
"""

from __future__ import annotations

from ..errors import UnknownSourceError
from .base import (
    RANK_BY_ENGAGEMENT,
    RANK_BY_REACTIONS,
    RANKING_POLICIES,
    SourceAdapter,
    fetch_sitemap,
)
from .tuoitre import TuoiTreAdapter
from .vnexpress import VnExpressAdapter

ADAPTERS: dict[str, type] = {
    VnExpressAdapter.name: VnExpressAdapter,
    TuoiTreAdapter.name: TuoiTreAdapter,
}


def available_sources() -> list[str]:
    return sorted(ADAPTERS)


def get_adapter(source: str) -> SourceAdapter:
    """Return the adapter for ``source`` or raise :class:`UnknownSourceError`."""
    adapter_cls = ADAPTERS.get((source or "").strip().lower())
    if adapter_cls is None:
        raise UnknownSourceError(source)
    return adapter_cls()


__all__ = [
    "ADAPTERS",
    "RANK_BY_ENGAGEMENT",
    "RANK_BY_REACTIONS",
    "RANKING_POLICIES",
    "SourceAdapter",
    "TuoiTreAdapter",
    "VnExpressAdapter",
    "available_sources",
    "fetch_sitemap",
    "get_adapter",
]
