"""
tests/test_database.py — Session Helper, Seeding & Async Bridge Tests
=======================================================================
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from conftest import add_profile
from skillbridge.database.engine import create_db_engine, get_session, init_db, run_db
from skillbridge.database.models import Badge, Profile, Setting
from skillbridge.errors import NotFound
from skillbridge.services import profile_service


class TestGetSession:
    def test_commits_on_success(self, db_engine):
        with get_session(db_engine) as session:
            session.add(Profile(user_id="alice", display_name="Alice"))
        with Session(db_engine) as session:
            assert session.get(Profile, "alice") is not None

    def test_rolls_back_on_error(self, db_engine):
        with pytest.raises(RuntimeError), get_session(db_engine) as session:
            session.add(Profile(user_id="alice", display_name="Alice"))
            session.flush()
            raise RuntimeError("boom")
        with Session(db_engine) as session:
            assert session.get(Profile, "alice") is None

    def test_rows_usable_after_close(self, db_engine):
        add_profile(db_engine, "alice", role="Design")
        with get_session(db_engine) as session:
            profile = session.get(Profile, "alice")
        assert profile.role == "Design"


class TestInitDb:
    def test_seeding_is_idempotent(self, db_engine):
        init_db(db_engine)
        init_db(db_engine)
        with Session(db_engine) as session:
            assert session.scalar(select(func.count()).select_from(Badge)) == 5
            assert session.get(Setting, "streak.bonus_threshold") is not None

    def test_missing_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError):
            create_db_engine()


class TestRunDb:
    def test_runs_sync_function_off_loop(self, db_engine):
        add_profile(db_engine, "alice")
        profile = asyncio.run(run_db(profile_service.get_profile, db_engine, "alice"))
        assert profile.user_id == "alice"

    def test_propagates_errors(self, db_engine):
        with pytest.raises(NotFound):
            asyncio.run(run_db(profile_service.get_profile, db_engine, "ghost"))
