"""Process-wide resources for the API: one DatabaseManager, one HTTP client.

Both are created in the lifespan handler and hung off ``app.state``; route
handlers reach them through the ``get_*`` dependencies below. Anything a
test has already placed on ``app.state`` is reused instead of replaced.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI, Request
from sqlalchemy import text

from newsrank import config
from newsrank.crawler.http import create_http_client
from newsrank.models.database import DatabaseManager

logger = logging.getLogger(__name__)


async def startup_resources(app: FastAPI) -> None:
    """Attach ``db_manager`` and ``http_client`` to ``app.state``.

    A database that cannot be opened leaves ``db_manager`` as None; the
    endpoints that need it answer 503 instead of the app failing to boot.
    """
    if getattr(app.state, "db_manager", None) is None:
        try:
            app.state.db_manager = DatabaseManager(config.DATABASE_URL)
            logger.info("Database ready at %s", config.DATABASE_URL.split("@")[-1])
        except Exception as exc:
            logger.exception("Could not open database", exc_info=exc)
            app.state.db_manager = None
    else:
        logger.info("Using injected DatabaseManager")

    if getattr(app.state, "http_client", None) is None:
        app.state.http_client = create_http_client()
    else:
        logger.info("Using injected HTTP client")

    app.state.ready = True


async def shutdown_resources(app: FastAPI) -> None:
    """Release whatever startup created; one failing close does not stop the rest."""
    db_manager = getattr(app.state, "db_manager", None)
    if db_manager is not None:
        try:
            db_manager.close()
        except Exception as exc:
            logger.exception("Error closing database", exc_info=exc)

    http_client = getattr(app.state, "http_client", None)
    if http_client is not None:
        try:
            await http_client.aclose()
        except Exception as exc:
            logger.exception("Error closing HTTP client", exc_info=exc)

    app.state.ready = False
    logger.info("API resources released")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await startup_resources(app)
    try:
        yield
    finally:
        await shutdown_resources(app)


# Route dependencies; tests swap these through app.dependency_overrides


def get_db_manager(request: Request) -> DatabaseManager | None:
    return getattr(request.app.state, "db_manager", None)


def get_http_client(request: Request) -> httpx.AsyncClient | None:
    return getattr(request.app.state, "http_client", None)


def check_db_health(db_manager: DatabaseManager | None) -> tuple[bool, str]:
    """Run ``SELECT 1`` against the configured database."""
    if db_manager is None:
        return False, "Database not initialized"
    try:
        with db_manager.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as exc:
        return False, f"Database error: {exc}"
    return True, "ok"
