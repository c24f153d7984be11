"""Database manager and keyed cache stores.

The crawl pipeline never issues raw queries. Everything it needs from
persistence goes through the small :class:`KeyedStore` contract: look up one
record by its natural key, list records matching simple equality/IN filters,
and upsert records on a unique key. :class:`SQLAlchemyStore` implements that
contract over one ORM model; tests substitute an in-memory fake.
"""

from __future__ import annotations

import logging
import os
import uuid
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy import and_, select
from sqlalchemy.dialects import postgresql, sqlite

from newsrank.models import (
    CachedArticle,
    CachedSitemap,
    CrawlResult,
    create_database_engine,
    create_tables,
)

logger = logging.getLogger(__name__)

# Columns never overwritten by an upsert
_IMMUTABLE_COLUMNS = frozenset({"id", "created_at"})


class KeyedStore(Protocol):
    """Persistence contract consumed by the caches and the pipeline."""

    def find_one(self, **key: Any) -> dict[str, Any] | None: ...

    def find(self, **filters: Any) -> list[dict[str, Any]]: ...

    def upsert(
        self,
        records: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        conflict_keys: Sequence[str],
    ) -> int: ...


def _ensure_sqlite_directory(database_url: str) -> None:
    prefix = "sqlite:///"
    if not database_url.startswith(prefix):
        return
    path = database_url[len(prefix):]
    if not path or path.startswith(":memory"):
        return
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)


class DatabaseManager:
    """Owns the engine; creates tables on first use."""

    def __init__(self, database_url: str | None = None):
        if database_url is None:
            from newsrank import config

            database_url = config.DATABASE_URL
        self.database_url = database_url
        _ensure_sqlite_directory(database_url)
        self.engine = create_database_engine(database_url)
        create_tables(self.engine)

    def store_for(self, model) -> SQLAlchemyStore:
        return SQLAlchemyStore(self, model)

    @property
    def sitemaps(self) -> SQLAlchemyStore:
        return self.store_for(CachedSitemap)

    @property
    def articles(self) -> SQLAlchemyStore:
        return self.store_for(CachedArticle)

    @property
    def crawl_results(self) -> SQLAlchemyStore:
        return self.store_for(CrawlResult)

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self) -> DatabaseManager:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class SQLAlchemyStore:
    """:class:`KeyedStore` backed by one SQLAlchemy model's table."""

    def __init__(self, db: DatabaseManager, model):
        self._db = db
        self.model = model
        self.table = model.__table__

    def _where(self, filters: Mapping[str, Any]):
        clauses = []
        for name, value in filters.items():
            column = self.table.c[name]
            if isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(column.in_(list(value)))
            else:
                clauses.append(column == value)
        return and_(*clauses) if clauses else None

    def find(self, **filters: Any) -> list[dict[str, Any]]:
        stmt = select(self.table)
        where = self._where(filters)
        if where is not None:
            stmt = stmt.where(where)
        with self._db.engine.connect() as conn:
            return [dict(row._mapping) for row in conn.execute(stmt)]

    def find_one(self, **key: Any) -> dict[str, Any] | None:
        rows = self.find(**key)
        return rows[0] if rows else None

    def upsert(
        self,
        records: Mapping[str, Any] | Sequence[Mapping[str, Any]],
        conflict_keys: Sequence[str],
    ) -> int:
        if isinstance(records, Mapping):
            batch = [dict(records)]
        else:
            batch = [dict(record) for record in records]
        if not batch:
            return 0

        for row in batch:
            row.setdefault("id", str(uuid.uuid4()))

        dialect = self._db.engine.dialect.name
        if dialect == "sqlite":
            insert_fn = sqlite.insert
        elif dialect == "postgresql":
            insert_fn = postgresql.insert
        else:
            return self._upsert_portable(batch, conflict_keys)

        stmt = insert_fn(self.table)
        update_columns = {
            name: stmt.excluded[name]
            for name in batch[0]
            if name not in conflict_keys and name not in _IMMUTABLE_COLUMNS
        }
        if update_columns:
            stmt = stmt.on_conflict_do_update(
                index_elements=list(conflict_keys), set_=update_columns
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=list(conflict_keys))

        with self._db.engine.begin() as conn:
            conn.execute(stmt, batch)
        logger.debug("Upserted %d row(s) into %s", len(batch), self.table.name)
        return len(batch)

    def _upsert_portable(
        self, batch: list[dict[str, Any]], conflict_keys: Sequence[str]
    ) -> int:
        with self._db.engine.begin() as conn:
            for row in batch:
                key = {name: row[name] for name in conflict_keys}
                where = self._where(key)
                existing = conn.execute(select(self.table.c.id).where(where)).first()
                if existing is None:
                    conn.execute(self.table.insert().values(**row))
                    continue
                values = {
                    name: value
                    for name, value in row.items()
                    if name not in conflict_keys and name not in _IMMUTABLE_COLUMNS
                }
                if values:
                    conn.execute(self.table.update().where(where).values(**values))
        return len(batch)
