"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of skillbridge.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from unittest.mock import MagicMock  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively; render it as TEXT and let
# SQLAlchemy's JSON processing handle (de)serialization.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from skillbridge.database.models import Base, Profile  # noqa: E402
from skillbridge.database.seed import seed_default_badges, seed_default_settings  # noqa: E402
from skillbridge.engine.cache import ConfigCache  # noqa: E402

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


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all SkillBridge tables, settings and badges.

    Uses StaticPool so every session (and the API's worker threads) share
    the same in-memory database.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    seed_default_settings(engine)
    seed_default_badges(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def cache(db_engine: Engine) -> ConfigCache:
    """A real ConfigCache loaded from the seeded test database."""
    config_cache = ConfigCache(db_engine)
    config_cache.load_all()
    return config_cache


@pytest.fixture
def mock_cache():
    """A mock ConfigCache that always returns the caller's default."""
    mocked = MagicMock(spec=ConfigCache)
    mocked.get_int.side_effect = lambda key, default=0: default
    mocked.get_setting.side_effect = lambda key, default=None: default
    mocked.get_active_badges.return_value = []
    return mocked


def add_profile(engine: Engine, user_id: str, **fields) -> Profile:
    """Insert a profile directly (no setup badges).  Returns a detached row."""
    fields.setdefault("display_name", user_id.title())
    with Session(engine, expire_on_commit=False) as session:
        profile = Profile(user_id=user_id, **fields)
        session.add(profile)
        session.commit()
        return profile


def get_profile(engine: Engine, user_id: str) -> Profile:
    with Session(engine) as session:
        profile = session.get(Profile, user_id)
        session.expunge(profile)
        return profile


def make_token(sub: str, **claims) -> str:
    """Create a bearer JWT for *sub* with any extra *claims*."""
    import jwt

    from skillbridge.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub, **claims}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth(sub: str, **claims) -> dict:
    return {"Authorization": f"Bearer {make_token(sub, **claims)}"}
