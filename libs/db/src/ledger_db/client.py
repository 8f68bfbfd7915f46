"""Engine and session helpers for the property ledger database.

The ledger keeps a single engine per process, bound to ``DATABASE_URL`` (or
the CLI's ``--database-url``). Report queries and rule commands run inside
``session_scope``; the recurring posting engine commits one rule-month at a
time on the session it is handed.

SQLite needs ``PRAGMA foreign_keys=ON`` on every connection, otherwise the
``ON DELETE CASCADE`` from rules to postings and the ``ON DELETE SET NULL``
from categories to rules are silently ignored.

Usage
-----
from ledger_db.client import session_scope

with session_scope(database_url="sqlite:///ledger.db") as session:
    post_for_month(session, property_id, "2024-03")
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

_ENGINE: Engine | None = None
_SESSION_MAKER: sessionmaker[Session] | None = None
_BOUND_URL: str | None = None


def resolve_database_url(override: str | None = None) -> str:
    """Explicit URL first, then ``DATABASE_URL``."""

    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "no ledger database configured; set DATABASE_URL or pass --database-url"
        )
    return url


def _enable_sqlite_foreign_keys(dbapi_conn, _record) -> None:  # pragma: no cover - driver hook
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def _build_engine(url: str) -> Engine:
    engine = create_engine(url, pool_pre_ping=True)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def get_engine(*, database_url: str | None = None) -> Engine:
    """Return the process-wide ledger engine, building it on first use.

    Asking for a different URL once an engine exists is an error; call
    :func:`reset_engine` to re-target the process.
    """

    global _ENGINE, _SESSION_MAKER, _BOUND_URL
    url = resolve_database_url(database_url)
    if _ENGINE is not None:
        if url != _BOUND_URL:
            raise RuntimeError(
                f"ledger engine is bound to {_BOUND_URL!r}; reset_engine() before using {url!r}"
            )
        return _ENGINE

    _ENGINE = _build_engine(url)
    _SESSION_MAKER = sessionmaker(bind=_ENGINE, expire_on_commit=False, class_=Session)
    _BOUND_URL = url
    return _ENGINE


def reset_engine() -> None:
    """Dispose the shared engine so the next call can bind another database."""

    global _ENGINE, _SESSION_MAKER, _BOUND_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
    _BOUND_URL = None


def get_session(*, database_url: str | None = None) -> Session:
    get_engine(database_url=database_url)
    assert _SESSION_MAKER is not None  # bound by get_engine
    return _SESSION_MAKER()


@contextmanager
def session_scope(*, database_url: str | None = None) -> Iterator[Session]:
    """Commit on success, roll back on error, always close."""

    session = get_session(database_url=database_url)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "get_engine",
    "get_session",
    "reset_engine",
    "resolve_database_url",
    "session_scope",
]
