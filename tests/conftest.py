"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import Engine, create_engine, event, select

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import Session

from heelo.config import HeeloConfig
from heelo.database.models import Base, ClanFamily, Profile, Subclan
from heelo.database.seed import seed_reference_data
from heelo.services import profile_service

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


def _enable_sqlite_transactions(engine: Engine, begin: str = "BEGIN") -> Engine:
    """Let SQLAlchemy, not pysqlite, emit BEGIN.

    pysqlite's own transaction handling breaks SAVEPOINT; this is the
    recipe from the SQLAlchemy SQLite dialect docs.  ``BEGIN IMMEDIATE``
    takes the write lock up front so concurrent writers queue instead of
    failing with "database is locked" mid-transaction.
    """

    @event.listens_for(engine, "connect")
    def _no_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql(begin)

    return engine


# ---------------------------------------------------------------------------
# Engines
# ---------------------------------------------------------------------------
@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all Heelo tables.

    JSONB columns are transparently mapped to TEXT for SQLite compatibility.
    Uses StaticPool so all threads share the same in-memory database
    (FastAPI's TestClient runs sync routes on a worker thread).
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    _enable_sqlite_transactions(engine)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """A file-backed SQLite engine for tests that race real threads.

    Every connection is independent, so concurrent callers behave like
    separate processes sharing one store.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'heelo.db'}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    _enable_sqlite_transactions(engine, "BEGIN IMMEDIATE")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def cfg() -> HeeloConfig:
    return HeeloConfig()


# ---------------------------------------------------------------------------
# Reference data & profile factory
# ---------------------------------------------------------------------------
CATALOGUE = {
    "Darod": ["Majeerteen", "Ogaden"],
    "Hawiye": ["Abgaal", "Habar Gidir"],
}

PHOTOS = ["photos/a.jpg", "photos/b.jpg", "photos/c.jpg", "photos/d.jpg"]


def clan_ids(engine: Engine) -> dict:
    """Seed :data:`CATALOGUE` and return name → id.

    Families are keyed by name, subclans by ``(family, subclan)``.
    """
    seed_reference_data(engine, CATALOGUE)
    ids: dict = {}
    with Session(engine) as session:
        for family in session.scalars(select(ClanFamily)):
            ids[family.name] = family.id
        for sub in session.scalars(select(Subclan).join(ClanFamily)):
            ids[(sub.clan_family.name, sub.name)] = sub.id
    return ids


def make_profile(
    engine: Engine,
    name: str = "Amina",
    *,
    age: int = 25,
    gender: str = "female",
    complete: bool = True,
    bio: str | None = "Coffee, books and long walks.",
    family: str = "Darod",
    subclan: str = "Majeerteen",
    location_category: str = "diaspora",
    location_value: str = "United Kingdom",
) -> Profile:
    """Create a profile.  With ``complete=True`` it passes the discovery bar."""
    profile, _ = profile_service.get_or_create_profile(
        engine,
        identity_id=f"idp|{uuid.uuid4().hex}",
        display_name=name,
        age=age,
    )
    if not complete:
        if bio is None:
            return profile
        return profile_service.update_profile(
            engine, profile.id, actor_id=profile.id, bio=bio
        )

    ids = clan_ids(engine)
    return profile_service.update_profile(
        engine,
        profile.id,
        actor_id=profile.id,
        gender=gender,
        bio=bio,
        photo_refs=list(PHOTOS),
        location_category=location_category,
        location_value=location_value,
        clan_family_id=ids[family],
        subclan_id=ids[(family, subclan)],
    )


def run_concurrently(calls: list[Callable[[], object]]) -> list[object]:
    """Start every call at the same instant on its own thread.

    Returns results in call order; re-raises the first exception.
    """
    barrier = threading.Barrier(len(calls))

    def _go(fn):
        barrier.wait()
        return fn()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        futures = [pool.submit(_go, fn) for fn in calls]
        return [f.result() for f in futures]


@pytest.fixture
def client(db_engine: Engine, cfg: HeeloConfig):
    """Create a FastAPI TestClient wired to the in-memory engine.

    The lifespan hook is not run (no ``with`` block), so no
    ``DATABASE_URL`` is needed.
    """
    from fastapi.testclient import TestClient

    from heelo.api.deps import get_config, get_engine, get_sink
    from heelo.api.main import app
    from heelo.services.notification_service import MemorySink

    sink = MemorySink()
    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: cfg
    app.dependency_overrides[get_sink] = lambda: sink
    test_client = TestClient(app, raise_server_exceptions=False)
    test_client.sink = sink
    yield test_client
    app.dependency_overrides.clear()
