"""
tests/test_profile_service.py — Profile Setup, Editing & Reconciliation
=========================================================================
"""

from __future__ import annotations

import logging
from unittest.mock import MagicMock

import pytest
from sqlalchemy import update
from sqlalchemy.orm import Session

from conftest import add_profile, get_profile
from skillbridge.database.engine import get_session
from skillbridge.database.models import Profile
from skillbridge.errors import NotAuthorized, NotFound, ValidationError
from skillbridge.services import (
    connection_service,
    profile_service,
    reconciliation_service,
)


class TestCreateProfile:
    def test_setup_badges_granted(self, db_engine, cache):
        profile, grants = profile_service.create_profile(
            db_engine, cache, "alice",
            display_name="  Alice  ",
            skills=["SQL", "Python", "Figma", "Excel", "Go"],
            can_teach="Python basics",
        )
        assert profile.display_name == "Alice"
        assert sorted(g.badge_id for g in grants) == ["code_wizard", "knowledge_sharer"]

    def test_minimal_profile_earns_nothing(self, db_engine, cache):
        _, grants = profile_service.create_profile(
            db_engine, cache, "bob", display_name="Bob",
        )
        assert grants == []
        assert get_profile(db_engine, "bob").skills == []

    def test_duplicate_profile(self, db_engine, cache):
        profile_service.create_profile(db_engine, cache, "bob", display_name="Bob")
        with pytest.raises(ValidationError):
            profile_service.create_profile(db_engine, cache, "bob", display_name="Bob")

    def test_concurrent_insert_is_validation_error(self, db_engine, cache, monkeypatch):
        add_profile(db_engine, "bob", role="Design")
        # Existence check misses the committed row, as a racing insert would
        monkeypatch.setattr(Session, "get", lambda self, *args, **kwargs: None)
        with pytest.raises(ValidationError, match="already exists"):
            profile_service.create_profile(db_engine, cache, "bob", display_name="Bob")
        monkeypatch.undo()
        assert get_profile(db_engine, "bob").role == "Design"

    @pytest.mark.parametrize("kwargs", [
        {"display_name": "   "},
        {"display_name": "Bob", "skills": "SQL"},
        {"display_name": "Bob", "skills": ["SQL", ""]},
    ])
    def test_invalid_fields(self, db_engine, cache, kwargs):
        with pytest.raises(ValidationError):
            profile_service.create_profile(db_engine, cache, "bob", **kwargs)


class TestUpdateProfile:
    def test_owner_updates(self, db_engine):
        add_profile(db_engine, "alice")
        updated = profile_service.update_profile(
            db_engine, "alice", "alice", role="Design", skills=["Figma"], is_visible=False,
        )
        assert updated.role == "Design"
        assert updated.skills == ["Figma"]
        assert profile_service.list_visible_profiles(db_engine) == []

    def test_other_user_cannot_edit(self, db_engine):
        add_profile(db_engine, "alice")
        with pytest.raises(NotAuthorized):
            profile_service.update_profile(db_engine, "bob", "alice", role="Hacker")

    def test_counters_not_editable(self, db_engine):
        add_profile(db_engine, "alice")
        with pytest.raises(ValidationError):
            profile_service.update_profile(db_engine, "alice", "alice", total_points=9999)
        assert get_profile(db_engine, "alice").total_points == 0

    def test_is_visible_must_be_bool(self, db_engine):
        add_profile(db_engine, "alice")
        with pytest.raises(ValidationError):
            profile_service.update_profile(db_engine, "alice", "alice", is_visible="no")

    def test_missing_profile(self, db_engine):
        with pytest.raises(NotFound):
            profile_service.get_profile(db_engine, "ghost")


class TestReconciliation:
    def test_clean_run(self, db_engine, cache, caplog):
        add_profile(db_engine, "alice")
        add_profile(db_engine, "bob")
        req = connection_service.create_request(db_engine, "alice", "bob", sink=MagicMock())
        connection_service.accept_request(db_engine, cache, req.id, "bob")

        with caplog.at_level(logging.INFO):
            result = reconciliation_service.reconcile_points(db_engine)
        assert result["checked"] == 2
        assert result["corrected"] == 0
        assert "all 2 profiles match" in caplog.text

    def test_drift_corrected(self, db_engine, cache):
        add_profile(db_engine, "alice")
        add_profile(db_engine, "bob")
        req = connection_service.create_request(db_engine, "alice", "bob", sink=MagicMock())
        connection_service.accept_request(db_engine, cache, req.id, "bob")

        with get_session(db_engine) as session:
            session.execute(
                update(Profile)
                .where(Profile.user_id == "alice")
                .values(total_points=500, connection_count=0)
            )

        result = reconciliation_service.reconcile_points(db_engine)
        assert result["corrected"] == 2
        assert {(c["field"], c["diff"]) for c in result["corrections"]} == {
            ("total_points", -490),
            ("connection_count", 1),
        }
        alice = get_profile(db_engine, "alice")
        assert (alice.total_points, alice.connection_count) == (10, 1)
