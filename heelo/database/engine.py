"""
heelo.database.engine — Database Connection, Sessions & Atomic Inserts
=======================================================================

Every service function is **synchronous** and takes an :class:`Engine`.
The FastAPI layer calls them from sync route handlers, which Starlette
already runs on its worker threadpool.

The one primitive every "exactly one row" rule depends on lives here:
:func:`insert_or_get`.  It never reads before writing.  It INSERTs under a
SAVEPOINT and lets the unique constraint pick the winner; the loser rolls
back only its savepoint and re-reads the winning row.

Usage::

    from heelo.database.engine import create_db_engine, get_session, init_db

    engine = create_db_engine()          # reads DATABASE_URL from .env
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    with get_session(engine) as session:   # commit on success, rollback on error
        ...
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from heelo.database.models import Base
from heelo.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_INSERT_ATTEMPTS = 3


def utcnow() -> datetime:
    """Timezone-aware "now" used for every application-stamped timestamp."""
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine() -> Engine:
    """Build a SQLAlchemy :class:`Engine` from the ``DATABASE_URL`` env var.

    Raises
    ------
    RuntimeError
        If ``DATABASE_URL`` is not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    engine = create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine, reference_data: dict[str, list[str]] | None = None) -> None:
    """Create all tables and seed clan-family reference data.

    Safe to call on every startup.  In production the schema is managed
    by Alembic (``alembic upgrade head``); ``create_all`` is the dev/test
    safety net.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")

    if reference_data:
        from heelo.database.seed import seed_reference_data

        seed_reference_data(engine, reference_data)


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that auto-commits on success and rolls back
    on exception.

    Objects stay loaded after commit (``expire_on_commit=False``) so
    services can return them to callers outside the session.
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Atomic insert-if-absent
# ---------------------------------------------------------------------------
def insert_or_get(
    session: Session,
    row: T,
    lookup: Callable[[Session], T | None],
    *,
    attempts: int = DEFAULT_INSERT_ATTEMPTS,
) -> tuple[T, bool]:
    """Insert *row* unless a row with the same natural key already exists.

    Returns ``(row, True)`` when this call inserted it, or
    ``(existing, False)`` when a unique constraint rejected the insert and
    *lookup* found the row that won.

    Raises
    ------
    ConflictError
        If every attempt collided but *lookup* never saw the winner
        (e.g. it was rolled back, or the isolation level hides it).
    """
    for attempt in range(1, attempts + 1):
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(row)
                session.flush()
            return row, True
        except IntegrityError:
            # Only the savepoint was rolled back; the outer txn is alive.
            existing = lookup(session)
            if existing is not None:
                return existing, False
            logger.warning(
                "Insert of %s collided but no winner is visible (attempt %d/%d)",
                type(row).__name__, attempt, attempts,
            )
    raise ConflictError(
        f"Could not insert or find {type(row).__name__} after {attempts} attempts"
    )
