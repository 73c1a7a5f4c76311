"""
tests/test_ledger_service.py — Ledger, Streak & Badge Pipeline Tests
======================================================================

Service-level tests for ledger_service / streak_service / badge_service:
idempotent appends, point totals, streak persistence, streak bonuses and
idempotent badge evaluation.

Uses an in-memory SQLite database via the shared conftest fixtures.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from conftest import add_profile, get_profile
from skillbridge.database.engine import get_session
from skillbridge.database.models import (
    ActionKind,
    ActivityEvent,
    BadgeGrant,
    SkillSwap,
    StreakStateRecord,
)
from skillbridge.engine.events import LedgerEvent
from skillbridge.errors import NotFound, ValidationError
from skillbridge.services import badge_service, ledger_service, streak_service

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=UTC)


def _event(user_id: str, kind: ActionKind, points: int, **kwargs) -> LedgerEvent:
    return LedgerEvent(user_id=user_id, kind=kind, points=points, **kwargs)


def _count(engine, model, *where) -> int:
    with Session(engine) as session:
        return session.scalar(select(func.count()).select_from(model).where(*where))


# ===========================================================================
# append_event
# ===========================================================================
class TestAppendEvent:
    def test_append_credits_points(self, db_engine):
        add_profile(db_engine, "alice")
        with get_session(db_engine) as session:
            row = ledger_service.append_event(session, _event("alice", ActionKind.MEET, 10))
            assert row is not None
        assert get_profile(db_engine, "alice").total_points == 10

    def test_duplicate_source_key_ignored(self, db_engine):
        add_profile(db_engine, "alice")
        event = _event("alice", ActionKind.SWAP, 15, source_key="swap:1")
        with get_session(db_engine) as session:
            assert ledger_service.append_event(session, event) is not None
        with get_session(db_engine) as session:
            assert ledger_service.append_event(session, event) is None

        assert get_profile(db_engine, "alice").total_points == 15
        assert _count(db_engine, ActivityEvent, ActivityEvent.user_id == "alice") == 1

    def test_negative_points_rejected(self, db_engine):
        add_profile(db_engine, "alice")
        with pytest.raises(ValidationError), get_session(db_engine) as session:
            ledger_service.append_event(session, _event("alice", ActionKind.MEET, -5))

    def test_unknown_user(self, db_engine):
        with pytest.raises(NotFound), get_session(db_engine) as session:
            ledger_service.append_event(session, _event("ghost", ActionKind.MEET, 10))

    def test_total_matches_ledger_sum(self, db_engine):
        add_profile(db_engine, "alice")
        with get_session(db_engine) as session:
            for kind, pts in [(ActionKind.MEET, 10), (ActionKind.ICEBREAKER, 5),
                              (ActionKind.SWAP, 15)]:
                ledger_service.append_event(session, _event("alice", kind, pts))
        with Session(db_engine) as session:
            assert session.scalar(
                select(func.sum(ActivityEvent.points)).where(ActivityEvent.user_id == "alice")
            ) == 30
        assert get_profile(db_engine, "alice").total_points == 30

    def test_make_event_uses_configured_points(self, cache):
        assert ledger_service.make_event("u", ActionKind.TEACH_SESSION, cache).points == 20
        assert ledger_service.make_event("u", ActionKind.STREAK_BONUS, cache).points == 50


# ===========================================================================
# Streaks
# ===========================================================================
class TestStreakService:
    def test_replay_persists_snapshot(self, db_engine, cache):
        add_profile(db_engine, "alice")
        with get_session(db_engine) as session:
            for day in (0, 5, 20):
                ledger_service.append_event(session, _event(
                    "alice", ActionKind.CONNECT, 10, timestamp=T0 + timedelta(days=day),
                ))
            state = streak_service.recompute_streak(
                session, cache, "alice", T0 + timedelta(days=20),
            )
        assert (state.current_streak, state.best_streak) == (1, 2)

        with Session(db_engine) as session:
            record = session.get(StreakStateRecord, "alice")
            assert record.current_streak == 1
            assert record.best_streak == 2

    def test_read_lapses_without_writes(self, db_engine, cache):
        add_profile(db_engine, "alice")
        with get_session(db_engine) as session:
            ledger_service.append_event(session, _event(
                "alice", ActionKind.CONNECT, 10, timestamp=T0,
            ))
        state = streak_service.get_streak(db_engine, cache, "alice", T0 + timedelta(days=9))
        assert state.current_streak == 0
        assert state.best_streak == 1

    def test_only_connect_events_count(self, db_engine, cache):
        add_profile(db_engine, "alice")
        with get_session(db_engine) as session:
            ledger_service.append_event(session, _event(
                "alice", ActionKind.MEET, 10, timestamp=T0,
            ))
        assert streak_service.get_streak(db_engine, cache, "alice", T0).current_streak == 0


# ===========================================================================
# record_activity pipeline
# ===========================================================================
class TestRecordActivity:
    def _connect_on(self, engine, cache, day: int):
        ts = T0 + timedelta(days=day)
        with get_session(engine) as session:
            return ledger_service.record_activity(
                session, cache,
                _event("alice", ActionKind.CONNECT, 10,
                       source_key=f"connect:test:{day}", timestamp=ts),
                now=ts,
            )

    def test_streak_bonus_awarded_once(self, db_engine, cache):
        add_profile(db_engine, "alice")
        for day in range(7):
            self._connect_on(db_engine, cache, day)

        bonuses = _count(
            db_engine, ActivityEvent,
            ActivityEvent.user_id == "alice",
            ActivityEvent.kind == ActionKind.STREAK_BONUS.value,
        )
        assert bonuses == 1
        assert get_profile(db_engine, "alice").total_points == 7 * 10 + 50

        # Extending the streak and re-running never re-awards the same crossing
        self._connect_on(db_engine, cache, 7)
        with get_session(db_engine) as session:
            state = streak_service.recompute_streak(
                session, cache, "alice", T0 + timedelta(days=7),
            )
            ledger_service.emit_streak_bonuses(session, cache, "alice", state)
        assert get_profile(db_engine, "alice").total_points == 8 * 10 + 50

    def test_streak_master_granted_at_seven(self, db_engine, cache):
        add_profile(db_engine, "alice")
        for day in range(7):
            self._connect_on(db_engine, cache, day)
        assert _count(
            db_engine, BadgeGrant,
            BadgeGrant.user_id == "alice", BadgeGrant.badge_id == "streak_master",
        ) == 1

    def test_duplicate_event_skips_pipeline(self, db_engine, cache):
        add_profile(db_engine, "alice")
        assert self._connect_on(db_engine, cache, 0) is not None
        assert self._connect_on(db_engine, cache, 0) is None
        assert get_profile(db_engine, "alice").total_points == 10


# ===========================================================================
# Badge evaluation
# ===========================================================================
class TestBadgeService:
    def _add_swaps(self, engine, teacher: str, learner: str, n: int):
        with get_session(engine) as session:
            for i in range(n):
                session.add(SkillSwap(
                    teacher_id=teacher, learner_id=learner,
                    skill_taught=f"skill{i}", skill_learned="x",
                ))

    def test_evaluate_is_idempotent(self, db_engine, cache):
        add_profile(db_engine, "alice")
        add_profile(db_engine, "bob")
        self._add_swaps(db_engine, "alice", "bob", 3)

        with get_session(db_engine) as session:
            first = badge_service.evaluate_badges(session, cache, "alice")
        with get_session(db_engine) as session:
            second = badge_service.evaluate_badges(session, cache, "alice")

        assert [g.badge_id for g in first] == ["knowledge_exchanger"]
        assert second == []

    def test_qr_hunter_after_five_meets(self, db_engine, cache):
        add_profile(db_engine, "alice")
        with get_session(db_engine) as session:
            for _ in range(5):
                ledger_service.append_event(session, _event("alice", ActionKind.MEET, 10))
            grants = badge_service.evaluate_badges(session, cache, "alice")
        assert [g.badge_id for g in grants] == ["qr_hunter"]

    def test_setup_badges_only_in_creation_mode(self, db_engine, cache):
        add_profile(
            db_engine, "alice", can_teach="SQL", skills=["a", "b", "c", "d", "e"],
        )
        with get_session(db_engine) as session:
            assert badge_service.evaluate_badges(session, cache, "alice") == []
            grants = badge_service.evaluate_badges(
                session, cache, "alice", at_profile_creation=True,
            )
        assert sorted(g.badge_id for g in grants) == ["code_wizard", "knowledge_sharer"]

    def test_grant_badge_twice(self, db_engine):
        add_profile(db_engine, "alice")
        with get_session(db_engine) as session:
            assert badge_service.grant_badge(session, "alice", "qr_hunter") is not None
            assert badge_service.grant_badge(session, "alice", "qr_hunter") is None

    def test_manual_award_and_listing(self, db_engine):
        add_profile(db_engine, "alice")
        assert badge_service.award_manual_badge(db_engine, "alice", "streak_master") is not None
        assert badge_service.award_manual_badge(db_engine, "alice", "streak_master") is None
        badges = badge_service.list_user_badges(db_engine, "alice")
        assert [badge.id for _, badge in badges] == ["streak_master"]

    def test_manual_award_unknown_badge(self, db_engine):
        add_profile(db_engine, "alice")
        with pytest.raises(NotFound):
            badge_service.award_manual_badge(db_engine, "alice", "nope")
