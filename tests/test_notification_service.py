"""
tests/test_notification_service.py — Notification Sink & Inbox Tests
======================================================================
"""

from __future__ import annotations

import pytest

from conftest import add_profile
from skillbridge.database.models import NotificationType
from skillbridge.errors import NotAuthorized, NotFound
from skillbridge.services.notification_service import (
    DatabaseNotificationSink,
    NotificationRequest,
    emit_all,
    list_notifications,
    mark_read,
)


def _request(recipient: str, title: str = "Hello") -> NotificationRequest:
    return NotificationRequest(
        recipient_id=recipient,
        type=NotificationType.SKILL_ENDORSEMENT,
        title=title,
        message="msg",
        payload={"k": 1},
    )


@pytest.fixture
def inbox(db_engine):
    add_profile(db_engine, "alice")
    add_profile(db_engine, "bob")
    emit_all(DatabaseNotificationSink(db_engine), [
        _request("alice", "first"),
        _request("alice", "second"),
        _request("bob"),
    ])
    return db_engine


class TestInbox:
    def test_newest_first(self, inbox):
        titles = [n.title for n in list_notifications(inbox, "alice")]
        assert titles == ["second", "first"]

    def test_payload_round_trips(self, inbox):
        [n] = list_notifications(inbox, "bob")
        assert n.payload == {"k": 1}
        assert n.type == "skill_endorsement"

    def test_mark_read_and_unread_filter(self, inbox):
        newest = list_notifications(inbox, "alice")[0]
        assert mark_read(inbox, "alice", newest.id).is_read is True
        assert [n.title for n in list_notifications(inbox, "alice", unread_only=True)] == [
            "first",
        ]

    def test_only_recipient_marks_read(self, inbox):
        [n] = list_notifications(inbox, "bob")
        with pytest.raises(NotAuthorized):
            mark_read(inbox, "alice", n.id)

    def test_missing_notification(self, inbox):
        with pytest.raises(NotFound):
            mark_read(inbox, "alice", 9999)
