"""
tests/test_match_service.py — Suggestion Generation & Actions
===============================================================
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select, update
from sqlalchemy.orm import Session

from conftest import add_profile
from skillbridge.database.engine import get_session
from skillbridge.database.models import (
    ConnectionType,
    MatchSuggestion,
    Profile,
    SuggestionStatus,
)
from skillbridge.errors import DuplicateRequest, NotAuthorized, NotFound, StaleState, ValidationError
from skillbridge.services import connection_service, match_service

MARCH = datetime(2026, 3, 10, tzinfo=UTC)
APRIL = datetime(2026, 4, 2, tzinfo=UTC)


@pytest.fixture
def scenario(db_engine):
    add_profile(
        db_engine, "alice", role="Engineering", skills=["SQL", "Figma"],
        learning_now="Public speaking",
    )
    add_profile(
        db_engine, "bob", role="Design", skills=["SQL", "Excel"],
        can_teach="Public speaking basics",
    )
    # Exactly 20: not eligible
    add_profile(db_engine, "carol", role="Engineering", skills=["SQL"])
    add_profile(db_engine, "dave", role="Sales", skills=["Go"], is_visible=False)
    return db_engine


def _pending(engine, user_id: str) -> list[MatchSuggestion]:
    with Session(engine) as session:
        return list(session.scalars(
            select(MatchSuggestion).where(
                MatchSuggestion.user_id == user_id,
                MatchSuggestion.status == SuggestionStatus.PENDING.value,
            )
        ).all())


class TestGenerate:
    def test_scenario_suggests_bob_at_70(self, scenario, cache):
        suggestions = match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        assert [(s.candidate_id, s.score) for s in suggestions] == [("bob", 70)]
        assert suggestions[0].cycle == "2026-03"
        assert suggestions[0].reasons == [
            "Shared 1 skills in common",
            "Has complementary skills you could learn",
            "Perfect learning match opportunity",
            "Cross-department networking opportunity",
        ]

    def test_hidden_profiles_never_suggested(self, scenario, cache):
        ids = {s.candidate_id for s in match_service.generate_matches(scenario, cache, "bob")}
        assert "dave" not in ids
        assert "bob" not in ids

    def test_regeneration_replaces_pending(self, scenario, cache):
        match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        assert len(_pending(scenario, "alice")) == 1

    def test_active_connection_excluded(self, scenario, cache):
        connection_service.create_request(scenario, "bob", "alice", sink=MagicMock())
        assert match_service.generate_matches(scenario, cache, "alice", now=MARCH) == []

    def test_dismissed_excluded_until_next_cycle(self, scenario, cache):
        [suggestion] = match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        match_service.dismiss_suggestion(scenario, "alice", suggestion.id)

        assert match_service.generate_matches(scenario, cache, "alice", now=MARCH) == []
        again = match_service.generate_matches(scenario, cache, "alice", now=APRIL)
        assert [s.candidate_id for s in again] == ["bob"]

    def test_limit_from_settings(self, db_engine, mock_cache):
        add_profile(db_engine, "s", skills=["X"])
        for i in range(8):
            add_profile(db_engine, f"c{i}", skills=["X", f"Y{i}"])
        suggestions = match_service.generate_matches(db_engine, mock_cache, "s")
        assert [s.candidate_id for s in suggestions] == ["c0", "c1", "c2", "c3", "c4"]

    def test_unknown_user(self, db_engine, cache):
        with pytest.raises(NotFound):
            match_service.generate_matches(db_engine, cache, "ghost")

    def test_malformed_candidate_skipped(self, scenario, cache, caplog):
        with get_session(scenario) as session:
            session.execute(
                update(Profile).where(Profile.user_id == "carol").values(skills="SQL,Excel")
            )
        with caplog.at_level(logging.WARNING, logger="skillbridge.services.match_service"):
            suggestions = match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        assert [(s.candidate_id, s.score) for s in suggestions] == [("bob", 70)]
        assert "Skipping candidate carol" in caplog.text


class TestListAndActions:
    def test_list_includes_candidate_details(self, scenario, cache):
        match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        [view] = match_service.list_matches(scenario, "alice")
        assert view.candidate_id == "bob"
        assert view.display_name == "Bob"
        assert view.role == "Design"
        assert view.skills == ["SQL", "Excel"]
        assert view.score == 70

    def test_missing_candidate_skipped(self, scenario):
        with get_session(scenario) as session:
            session.add(MatchSuggestion(
                user_id="alice", candidate_id="ghost", score=50, reasons=[], cycle="2026-03",
            ))
        assert match_service.list_matches(scenario, "alice") == []

    def test_connect_sends_skill_match_request(self, scenario, cache):
        [suggestion] = match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        sink = MagicMock()
        request = match_service.connect_suggestion(
            scenario, "alice", suggestion.id, message="hi", sink=sink,
        )
        assert request.connection_type == ConnectionType.SKILL_MATCH.value
        assert (request.requester_id, request.target_id) == ("alice", "bob")
        assert sink.emit.call_args.args[0].recipient_id == "bob"

        [connected] = match_service.list_matches(
            scenario, "alice", status=SuggestionStatus.CONNECTED.value,
        )
        assert connected.candidate_id == "bob"

    def test_connect_twice_is_stale(self, scenario, cache):
        [suggestion] = match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        match_service.connect_suggestion(scenario, "alice", suggestion.id, sink=MagicMock())
        with pytest.raises(StaleState):
            match_service.dismiss_suggestion(scenario, "alice", suggestion.id)

    def test_connect_rolls_back_on_duplicate(self, scenario, cache):
        [suggestion] = match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        connection_service.create_request(scenario, "bob", "alice", sink=MagicMock())
        with pytest.raises(DuplicateRequest):
            match_service.connect_suggestion(scenario, "alice", suggestion.id, sink=MagicMock())
        assert [s.id for s in _pending(scenario, "alice")] == [suggestion.id]

    def test_only_owner_can_act(self, scenario, cache):
        [suggestion] = match_service.generate_matches(scenario, cache, "alice", now=MARCH)
        with pytest.raises(NotAuthorized):
            match_service.dismiss_suggestion(scenario, "bob", suggestion.id)

    def test_missing_suggestion(self, scenario):
        with pytest.raises(NotFound):
            match_service.dismiss_suggestion(scenario, "alice", 12345)


class TestPreview:
    def test_preview_does_not_persist(self, scenario):
        result = match_service.preview_score(scenario, "alice", "bob")
        assert result.value == 70
        assert _pending(scenario, "alice") == []

    def test_preview_self(self, scenario):
        with pytest.raises(ValidationError):
            match_service.preview_score(scenario, "alice", "alice")

    def test_cycle_format(self):
        assert match_service.current_cycle(APRIL) == "2026-04"
