"""Pytest-wide fixtures and hooks for newsrank tests."""

from __future__ import annotations

import os
import tempfile

import pytest

# Force tests onto a throwaway SQLite file
# Set BEFORE any imports of newsrank.config so the default is never used
if "DATABASE_URL" not in os.environ:
    test_db_path = os.path.join(tempfile.gettempdir(), "test_newsrank.db")
    os.environ["DATABASE_URL"] = f"sqlite:///{test_db_path}"
# Ranking overrides from a developer shell would change expected orderings
os.environ.pop("NEWSRANK_RANKING", None)

from newsrank.models.database import DatabaseManager  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def cleanup_test_database():
    """Remove the shared SQLite test database after the session."""
    yield
    test_db_path = os.path.join(tempfile.gettempdir(), "test_newsrank.db")
    if os.path.exists(test_db_path):
        os.remove(test_db_path)


@pytest.fixture
def db_manager(tmp_path):
    """DatabaseManager bound to a fresh SQLite file for one test."""
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'newsrank.db'}")
    try:
        yield manager
    finally:
        manager.close()
