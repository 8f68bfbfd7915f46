from __future__ import annotations

from pathlib import Path

import pytest
from ledger_db.client import get_engine, reset_engine, resolve_database_url, session_scope
from sqlalchemy import text

from tests.helpers.db import sqlite_url


def test_missing_database_url_names_both_sources() -> None:
    with pytest.raises(RuntimeError, match="DATABASE_URL or pass --database-url"):
        get_engine()


def test_explicit_url_wins_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///from-env.db")
    assert resolve_database_url() == "sqlite:///from-env.db"
    assert resolve_database_url("sqlite:///explicit.db") == "sqlite:///explicit.db"


def test_engine_is_bound_once_until_reset(tmp_path: Path) -> None:
    first = sqlite_url(tmp_path / "a.db")
    second = sqlite_url(tmp_path / "b.db")

    engine = get_engine(database_url=first)
    assert get_engine(database_url=first) is engine
    with pytest.raises(RuntimeError, match="reset_engine"):
        get_engine(database_url=second)

    reset_engine()
    assert get_engine(database_url=second) is not engine


def test_sqlite_connections_enforce_foreign_keys(tmp_path: Path) -> None:
    with session_scope(database_url=sqlite_url(tmp_path / "fk.db")) as session:
        assert session.execute(text("PRAGMA foreign_keys")).scalar() == 1
