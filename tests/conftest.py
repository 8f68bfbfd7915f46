"""Pytest configuration for test isolation.

The database client keeps one shared engine per process and refuses to rebind
it to a different URL. Every test builds its own SQLite file, so the engine is
reset around each test, and ``DATABASE_URL`` is cleared so nothing falls back
to a developer database from the environment or a ``.env`` file.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Make sure the workspace `packages/` and `libs/db/src` dirs are importable
_ROOT = Path(__file__).resolve().parents[1]
_PATHS = [_ROOT / "packages", _ROOT / "libs" / "db" / "src", _ROOT]
sys.path[:0] = [str(p) for p in _PATHS if str(p) not in sys.path]

from ledger_db.client import reset_engine  # noqa: E402


@pytest.fixture(autouse=True)
def _isolate_database(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    reset_engine()
    yield
    reset_engine()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    from tests.helpers.db import bootstrap_sqlite_db

    return bootstrap_sqlite_db(tmp_path / "ledger.db")


@pytest.fixture
def session(db_url: str):
    from ledger_db.client import get_session

    s = get_session(database_url=db_url)
    try:
        yield s
    finally:
        s.close()
