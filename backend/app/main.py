"""HTTP API: stored rankings and streamed crawl runs."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

import httpx
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from backend.app.lifecycle import (
    check_db_health,
    get_db_manager,
    get_http_client,
    lifespan,
)
from newsrank import config
from newsrank.crawler import (
    UnknownSourceError,
    available_sources,
    get_adapter,
    latest_snapshot,
    run_crawl,
)
from newsrank.models.database import DatabaseManager

logger = logging.getLogger(__name__)

app = FastAPI(title="newsrank", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Crawls whose client disconnected keep running until they persist
_detached_crawls: set[asyncio.Task] = set()


class CrawlRequest(BaseModel):
    source: str
    days: int | None = None


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/ready")
async def readiness_check(db: DatabaseManager | None = Depends(get_db_manager)):
    healthy, detail = check_db_health(db)
    if not healthy:
        return JSONResponse(
            status_code=503, content={"status": "not ready", "detail": detail}
        )
    return {"status": "ready"}


@app.get("/api/sources")
async def list_sources():
    return {"sources": available_sources()}


@app.get("/api/results/{source}")
def get_results(source: str, db: DatabaseManager | None = Depends(get_db_manager)):
    try:
        adapter = get_adapter(source)
    except UnknownSourceError as exc:
        return _error(400, str(exc))
    if db is None:
        return _error(503, "Database unavailable")

    try:
        snapshot = latest_snapshot(db.crawl_results, adapter.name)
    except Exception:
        logger.exception("Error fetching results for %s", adapter.name)
        return _error(500, "Failed to fetch results")

    if snapshot is None:
        return _error(404, "No results found")
    updated_at = snapshot["updatedAt"]
    return {
        "results": snapshot["results"],
        "updatedAt": (
            updated_at.isoformat() if isinstance(updated_at, datetime) else updated_at
        ),
    }


async def crawl_events(
    source: str,
    days: int,
    db: DatabaseManager,
    client: httpx.AsyncClient | None,
) -> AsyncIterator[str]:
    """Yield one SSE event per progress update, then the final results."""
    queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

    def on_progress(progress: int, message: str | None = None) -> None:
        queue.put_nowait({"progress": progress, "message": message})

    task = asyncio.create_task(run_crawl(source, days, on_progress, db=db, client=client))
    try:
        while True:
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait(
                {getter, task}, return_when=asyncio.FIRST_COMPLETED
            )
            if getter in done:
                yield _sse(getter.result())
                continue
            getter.cancel()
            break

        while not queue.empty():
            yield _sse(queue.get_nowait())

        try:
            results = task.result()
        except Exception:
            logger.exception("Error during crawl of %s", source)
            yield _sse({"error": "Crawling failed"})
            return
        yield _sse({"completed": True, "results": results})
    finally:
        if not task.done():
            _detached_crawls.add(task)
            task.add_done_callback(_detached_crawls.discard)


@app.post("/api/crawl")
async def start_crawl(
    body: CrawlRequest,
    db: DatabaseManager | None = Depends(get_db_manager),
    client: httpx.AsyncClient | None = Depends(get_http_client),
):
    try:
        adapter = get_adapter(body.source)
    except UnknownSourceError as exc:
        return _error(400, str(exc))
    days = body.days if body.days is not None else config.CRAWL_DAYS
    if days < 1 or days > config.MAX_CRAWL_DAYS:
        return _error(400, f"days must be between 1 and {config.MAX_CRAWL_DAYS}")
    if db is None:
        return _error(503, "Database unavailable")

    return StreamingResponse(
        crawl_events(adapter.name, days, db, client),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


def main():
    """Run the API server."""
    import uvicorn

    uvicorn.run(
        "backend.app.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
    )


if __name__ == "__main__":
    main()
