"""
tests/test_activity_service.py — Meetups, Swaps, Icebreakers & Endorsements
=============================================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import add_profile, get_profile
from skillbridge.database.models import ActionKind, ActivityEvent, BadgeGrant
from skillbridge.errors import NotAuthorized, NotFound, ValidationError
from skillbridge.services import activity_service

ISSUED = datetime(2026, 3, 2, 12, 30, 15, 250000, tzinfo=UTC)


@pytest.fixture
def pair(db_engine):
    add_profile(db_engine, "alice", skills=["SQL", "Figma"])
    add_profile(db_engine, "bob", skills=["Excel"])
    return db_engine


def _events(engine, user_id: str) -> list[ActivityEvent]:
    with Session(engine) as session:
        return list(session.scalars(
            select(ActivityEvent)
            .where(ActivityEvent.user_id == user_id)
            .order_by(ActivityEvent.id)
        ).all())


# ===========================================================================
# Meetup codes
# ===========================================================================
class TestMeetupCode:
    def test_round_trip(self):
        code = activity_service.meetup_code("alice", now=ISSUED)
        assert code == f"skillbridge://meet/alice/{int(ISSUED.timestamp() * 1000)}"
        owner, issued_at = activity_service.parse_meetup_code(code)
        assert owner == "alice"
        assert issued_at == ISSUED

    @pytest.mark.parametrize("code", [
        "",
        "skillbridge://meet/alice",
        "skillbridge://meet/alice/abc",
        "otherapp://meet/alice/123",
        "skillbridge://greet/alice/123",
    ])
    def test_malformed_codes(self, code):
        with pytest.raises(ValidationError):
            activity_service.parse_meetup_code(code)

    def test_custom_scheme(self):
        code = activity_service.meetup_code("bob", scheme="acme", now=ISSUED)
        assert activity_service.parse_meetup_code(code, scheme="acme")[0] == "bob"


class TestLogMeetup:
    def test_both_users_credited(self, pair, cache):
        code = activity_service.meetup_code("bob", now=ISSUED)
        rows = activity_service.log_meetup(pair, cache, "alice", code, location="Lobby")
        assert sorted(r.user_id for r in rows) == ["alice", "bob"]
        assert get_profile(pair, "alice").total_points == 10
        assert get_profile(pair, "bob").total_points == 10
        assert _events(pair, "alice")[0].metadata_["partner_id"] == "bob"

    def test_same_code_scanned_twice(self, pair, cache):
        code = activity_service.meetup_code("bob", now=ISSUED)
        activity_service.log_meetup(pair, cache, "alice", code)
        assert activity_service.log_meetup(pair, cache, "alice", code) == []
        assert get_profile(pair, "alice").total_points == 10

    def test_fresh_code_counts_again(self, pair, cache):
        activity_service.log_meetup(
            pair, cache, "alice", activity_service.meetup_code("bob", now=ISSUED),
        )
        activity_service.log_meetup(
            pair, cache, "alice",
            activity_service.meetup_code("bob", now=ISSUED + timedelta(minutes=5)),
        )
        assert get_profile(pair, "bob").total_points == 20

    def test_self_scan_rejected(self, pair, cache):
        code = activity_service.meetup_code("alice", now=ISSUED)
        with pytest.raises(ValidationError):
            activity_service.log_meetup(pair, cache, "alice", code)

    def test_unknown_owner(self, pair, cache):
        code = activity_service.meetup_code("ghost", now=ISSUED)
        with pytest.raises(NotFound):
            activity_service.log_meetup(pair, cache, "alice", code)

    def test_qr_hunter_after_five(self, db_engine, cache):
        add_profile(db_engine, "alice")
        for i in range(5):
            add_profile(db_engine, f"p{i}")
            code = activity_service.meetup_code(f"p{i}", now=ISSUED)
            activity_service.log_meetup(db_engine, cache, "alice", code)
        with Session(db_engine) as session:
            assert session.get(BadgeGrant, ("alice", "qr_hunter")) is not None


# ===========================================================================
# Skill swaps & icebreakers
# ===========================================================================
class TestSkillSwaps:
    def _swap(self, engine, cache, n: int):
        return activity_service.log_skill_swap(
            engine, cache, "alice",
            teacher_id="alice", learner_id="bob",
            skill_taught=f"SQL {n}", skill_learned="Excel", rating=5,
        )

    def test_teacher_earns_points(self, pair, cache):
        swap = self._swap(pair, cache, 1)
        assert swap.id is not None
        assert get_profile(pair, "alice").total_points == 15
        assert get_profile(pair, "bob").total_points == 0
        assert [s.id for s in activity_service.list_skill_swaps(pair, "bob")] == [swap.id]

    def test_knowledge_exchanger_on_third(self, pair, cache):
        for n in range(3):
            self._swap(pair, cache, n)
        with Session(pair) as session:
            assert session.get(BadgeGrant, ("alice", "knowledge_exchanger")) is not None

    def test_outsider_cannot_log(self, pair, cache):
        add_profile(pair, "carol")
        with pytest.raises(NotAuthorized):
            activity_service.log_skill_swap(
                pair, cache, "carol", teacher_id="alice", learner_id="bob",
                skill_taught="SQL", skill_learned="Excel",
            )

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_bounds(self, pair, cache, rating):
        with pytest.raises(ValidationError):
            activity_service.log_skill_swap(
                pair, cache, "bob", teacher_id="alice", learner_id="bob",
                skill_taught="SQL", skill_learned="Excel", rating=rating,
            )


class TestIcebreaker:
    def test_complete_icebreaker(self, pair, cache):
        event = activity_service.complete_icebreaker(
            pair, cache, "alice", "Favourite tool?", partner_id="bob",
        )
        assert event.kind == ActionKind.ICEBREAKER.value
        assert get_profile(pair, "alice").total_points == 5

    def test_blank_prompt(self, pair, cache):
        with pytest.raises(ValidationError):
            activity_service.complete_icebreaker(pair, cache, "alice", "  ")


# ===========================================================================
# Endorsements
# ===========================================================================
class TestEndorsements:
    def test_endorse_credits_both_and_notifies(self, pair, cache):
        sink = MagicMock()
        endorsement = activity_service.endorse_skill(
            pair, cache, "bob", "alice", "SQL", "Great at joins", sink=sink,
        )
        assert endorsement.skill_id == "SQL"
        assert get_profile(pair, "bob").total_points == 5
        assert get_profile(pair, "alice").total_points == 10
        assert sink.emit.call_args.args[0].recipient_id == "alice"
        assert [e.id for e in activity_service.list_endorsements(pair, "alice")] == [
            endorsement.id,
        ]

    def test_duplicate_endorsement(self, pair, cache):
        activity_service.endorse_skill(pair, cache, "bob", "alice", "SQL", "Nice", sink=MagicMock())
        with pytest.raises(ValidationError):
            activity_service.endorse_skill(
                pair, cache, "bob", "alice", "SQL", "Again", sink=MagicMock(),
            )
        assert get_profile(pair, "alice").total_points == 10

    @pytest.mark.parametrize("endorser, endorsed, skill, message", [
        ("alice", "alice", "SQL", "me"),
        ("bob", "alice", "Go", "not listed"),
        ("bob", "alice", "SQL", "   "),
    ])
    def test_invalid_endorsements(self, pair, cache, endorser, endorsed, skill, message):
        with pytest.raises(ValidationError):
            activity_service.endorse_skill(
                pair, cache, endorser, endorsed, skill, message, sink=MagicMock(),
            )
