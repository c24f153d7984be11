"""DatabaseManager and SQLAlchemyStore coverage tests."""

import contextlib
import os
import tempfile
from datetime import date, datetime

from sqlalchemy import inspect

from newsrank.models import CachedArticle
from newsrank.models.database import DatabaseManager, SQLAlchemyStore


@contextlib.contextmanager
def temporary_database():
    """Yield a temporary SQLite database URL and remove it afterwards."""

    fd, path = tempfile.mkstemp(prefix="test_db_manager_", suffix=".db")
    os.close(fd)
    db_url = f"sqlite:///{path}"
    try:
        yield db_url, path
    finally:
        if os.path.exists(path):
            os.remove(path)


def test_database_manager_creates_tables():
    with temporary_database() as (db_url, _):
        with DatabaseManager(db_url) as db:
            tables = set(inspect(db.engine).get_table_names())

    assert {"cached_sitemaps", "cached_articles", "crawl_results"} <= tables


def test_database_manager_creates_missing_sqlite_directory(tmp_path):
    db_path = tmp_path / "nested" / "dir" / "newsrank.db"

    with DatabaseManager(f"sqlite:///{db_path}") as db:
        db.crawl_results.find()

    assert db_path.exists()


def test_sitemap_upsert_roundtrips_json_and_dates(db_manager):
    store = db_manager.sitemaps
    urls = [{"url": "https://tuoitre.vn/a-1.htm", "title": "A", "date": None}]

    store.upsert(
        {"source": "tuoitre", "month_start": date(2024, 2, 1), "urls": urls},
        ("source", "month_start"),
    )
    row = store.find_one(source="tuoitre", month_start=date(2024, 2, 1))

    assert row["urls"] == urls
    assert row["month_start"] == date(2024, 2, 1)
    assert row["created_at"] is not None
    assert store.find_one(source="tuoitre", month_start=date(2024, 1, 1)) is None


def test_upsert_updates_in_place_and_keeps_identity(db_manager):
    store = db_manager.crawl_results
    first_time = datetime(2024, 3, 1, 9, 0)
    second_time = datetime(2024, 3, 2, 9, 0)

    store.upsert(
        {"source": "vnexpress", "results": [{"title": "old"}], "updated_at": first_time},
        ("source",),
    )
    original = store.find_one(source="vnexpress")
    store.upsert(
        {"source": "vnexpress", "results": [{"title": "new"}], "updated_at": second_time},
        ("source",),
    )

    rows = store.find(source="vnexpress")
    assert len(rows) == 1
    assert rows[0]["id"] == original["id"]
    assert rows[0]["results"] == [{"title": "new"}]
    assert rows[0]["updated_at"] == second_time


def test_find_treats_sequences_as_membership(db_manager):
    store = db_manager.articles
    store.upsert(
        [
            {"source": "vnexpress", "article_id": str(i), "title": f"T{i}",
             "url": f"https://vnexpress.net/t-{i}.html", "type": 1}
            for i in range(1, 5)
        ],
        ("source", "article_id"),
    )

    rows = store.find(source="vnexpress", article_id=["2", "4", "9"])

    assert sorted(row["article_id"] for row in rows) == ["2", "4"]
    assert store.find(source="tuoitre", article_id=["2"]) == []


def test_upsert_of_empty_batch_is_a_no_op(db_manager):
    assert db_manager.articles.upsert([], ("source", "article_id")) == 0
    assert db_manager.articles.find() == []


def test_portable_upsert_matches_dialect_upsert(db_manager):
    store = SQLAlchemyStore(db_manager, CachedArticle)
    row = {
        "source": "tuoitre",
        "article_id": "20240115000001",
        "title": "First",
        "url": "https://tuoitre.vn/a-20240115000001.htm",
        "type": 1,
    }

    store._upsert_portable([dict(row, id="fixed-id")], ("source", "article_id"))
    store._upsert_portable(
        [dict(row, id="other-id", title="Second")], ("source", "article_id")
    )

    [stored] = store.find(source="tuoitre")
    assert stored["id"] == "fixed-id"
    assert stored["title"] == "Second"
