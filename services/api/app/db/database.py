from __future__ import annotations

import os

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None
_SESSIONMAKER: sessionmaker | None = None

# Seconds a SQLite writer waits on a locked database before failing. Concurrent captures
# for the same gateway order must queue and then hit the UNIQUE constraint, not time out.
_SQLITE_BUSY_TIMEOUT = 15


def database_url() -> str:
    # Local-only default. Production must provide DATABASE_URL explicitly.
    return os.getenv("DATABASE_URL", "sqlite+pysqlite:///.local/ceviche.db")


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": _SQLITE_BUSY_TIMEOUT}
    return {}


def get_engine() -> Engine:
    """Return a cached SQLAlchemy engine.

    The cache is keyed on DATABASE_URL so tests can point at a fresh database per test.
    """

    global _ENGINE, _ENGINE_URL, _SESSIONMAKER

    url = database_url()
    if _ENGINE is not None and _ENGINE_URL == url:
        return _ENGINE

    _ENGINE = create_engine(
        url,
        future=True,
        connect_args=_connect_args(url),
        pool_pre_ping=not url.startswith("sqlite"),
    )
    _ENGINE_URL = url
    _SESSIONMAKER = sessionmaker(bind=_ENGINE, class_=Session, autocommit=False, autoflush=False)
    return _ENGINE


def db_session() -> Session:
    get_engine()
    assert _SESSIONMAKER is not None
    return _SESSIONMAKER()
