from __future__ import annotations

import logging

import pytest

from newsrank.crawler.catalog import ArticleCatalog
from newsrank.crawler.types import ArticleRecord
from tests.helpers.fakes import FakeAdapter, InMemoryStore


def _cached_row(article_id: str, title: str = "Cached") -> dict:
    return {
        "id": f"row-{article_id}",
        "source": "fake",
        "article_id": article_id,
        "title": f"{title} {article_id}",
        "url": f"https://fake.test/story-{article_id}.htm",
        "type": 1,
    }


@pytest.mark.asyncio
async def test_fully_cached_ids_make_no_metadata_requests():
    store = InMemoryStore([_cached_row("2"), _cached_row("1")])
    adapter = FakeAdapter()
    catalog = ArticleCatalog(store, client=None)

    records = await catalog.resolve(adapter, ["1", "2"])

    assert adapter.metadata_calls == []
    assert [r.article_id for r in records] == ["1", "2"]
    assert records[0].title == "Cached 1"
    assert "upsert" not in store.call_names()


@pytest.mark.asyncio
async def test_only_missing_ids_are_fetched_and_persisted():
    store = InMemoryStore([_cached_row("1")])
    adapter = FakeAdapter()
    catalog = ArticleCatalog(store, client=None)

    records = await catalog.resolve(adapter, ["1", "2", "3", "2"])

    assert adapter.metadata_calls == [["2", "3"]]
    assert [r.article_id for r in records] == ["1", "2", "3"]
    assert records[0].title == "Cached 1"
    assert records[1].title == "Article 2"
    assert sorted(row["article_id"] for row in store.rows) == ["1", "2", "3"]


@pytest.mark.asyncio
async def test_failed_chunk_is_skipped_and_retried_next_run(caplog):
    store = InMemoryStore()
    adapter = FakeAdapter(metadata_chunk_size=2, failing_chunks={1})
    catalog = ArticleCatalog(store, client=None)
    chunks = []

    with caplog.at_level(logging.ERROR):
        records = await catalog.resolve(
            adapter,
            ["1", "2", "3", "4", "5"],
            on_chunk=lambda index, total: chunks.append((index, total)),
        )

    assert adapter.metadata_calls == [["1", "2"], ["3", "4"], ["5"]]
    assert [r.article_id for r in records] == ["1", "2", "5"]
    assert chunks == [(1, 3), (2, 3), (3, 3)]
    assert "ids 3-4" in caplog.text

    retry = FakeAdapter(metadata_chunk_size=2)
    records = await catalog.resolve(retry, ["1", "2", "3", "4", "5"])

    assert retry.metadata_calls == [["3", "4"]]
    assert [r.article_id for r in records] == ["1", "2", "3", "4", "5"]


@pytest.mark.asyncio
async def test_last_write_wins_and_unrequested_ids_are_ignored():
    extra = [
        ArticleRecord(article_id="1", title="Updated 1", url="https://fake.test/1"),
        ArticleRecord(article_id="99", title="Stray", url="https://fake.test/99"),
    ]
    store = InMemoryStore()
    adapter = FakeAdapter(extra_metadata={0: extra})
    catalog = ArticleCatalog(store, client=None)

    records = await catalog.resolve(adapter, ["1", "2"])

    assert [(r.article_id, r.title) for r in records] == [
        ("1", "Updated 1"),
        ("2", "Article 2"),
    ]
    assert {row["article_id"] for row in store.rows} == {"1", "2"}


@pytest.mark.asyncio
async def test_cached_records_are_never_overwritten():
    store = InMemoryStore([_cached_row("1", title="Original")])
    adapter = FakeAdapter()
    catalog = ArticleCatalog(store, client=None)

    await catalog.resolve(adapter, ["1"])
    records = await catalog.resolve(adapter, ["1"])

    assert records[0].title == "Original 1"
    assert adapter.metadata_calls == []


@pytest.mark.asyncio
async def test_empty_id_list_touches_nothing():
    store = InMemoryStore()
    adapter = FakeAdapter()

    records = await ArticleCatalog(store, client=None).resolve(adapter, [])

    assert records == []
    assert store.calls == []
