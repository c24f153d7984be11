"""Shared async HTTP client construction."""

from __future__ import annotations

import logging

import httpx

from newsrank import config

logger = logging.getLogger(__name__)


def create_http_client(
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Build the client every adapter request goes through.

    Adapters add their own Referer/Origin headers per request; the client
    carries the crawler's User-Agent identity and timeout.
    """
    client_timeout = timeout if timeout is not None else config.HTTP_TIMEOUT
    logger.debug("Creating HTTP client (timeout=%ss)", client_timeout)
    return httpx.AsyncClient(
        headers={"User-Agent": config.USER_AGENT},
        timeout=client_timeout,
        follow_redirects=True,
        transport=transport,
    )
