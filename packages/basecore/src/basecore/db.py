"""
Database access for basecore consumers.

The engine and sessionmaker are built on first use from DATABASE_URL, so
importing this module never opens a connection. Model metadata lives with
the package that owns the tables (e.g. autodiscount_core.persistence).
"""

import functools
from collections.abc import Iterator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from basecore.settings import get_settings


def engine_options(database_url: str) -> dict[str, Any]:
    """
    Engine keyword arguments for a database URL.

    SQLite connections are shared between the timer thread, API worker
    threads and the event loop, so same-thread checking is turned off.
    Server databases get connection liveness checks.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


@functools.lru_cache()
def get_engine() -> Engine:
    """Get SQLAlchemy engine (cached)."""
    database_url = get_settings().DATABASE_URL
    return create_engine(database_url, echo=False, **engine_options(database_url))


@functools.lru_cache()
def get_sessionmaker() -> sessionmaker:
    """
    Get SQLAlchemy sessionmaker (cached).

    expire_on_commit is off so records loaded before a per-item commit
    stay readable for the rest of a sweep.
    """
    return sessionmaker(autoflush=False, expire_on_commit=False, bind=get_engine())


def get_db() -> Iterator[Session]:
    """
    Dependency generator for FastAPI (and the CLI) to get a database session.

    The session is closed after use; committing is up to the caller.
    """
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
