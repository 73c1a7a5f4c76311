"""
skillbridge.services.notification_service — Notification Requests
====================================================================

The engine never delivers notifications itself.  It hands a
:class:`NotificationRequest` to a :class:`NotificationSink` after the
triggering transaction has committed.  The default sink persists the
request to the ``notifications`` table, where the UI picks it up.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import select

from skillbridge.database.engine import get_session
from skillbridge.database.models import Notification, NotificationType
from skillbridge.errors import NotAuthorized, NotFound

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class NotificationRequest:
    recipient_id: str
    type: NotificationType
    title: str
    message: str
    payload: dict = field(default_factory=dict)


class NotificationSink(Protocol):
    def emit(self, request: NotificationRequest) -> None: ...


class DatabaseNotificationSink:
    """Persist notification requests to the ``notifications`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def emit(self, request: NotificationRequest) -> None:
        with get_session(self._engine) as session:
            session.add(Notification(
                recipient_id=request.recipient_id,
                type=request.type.value,
                title=request.title,
                message=request.message,
                payload=request.payload,
            ))
        logger.info(
            "Notification %s queued for %s", request.type.value, request.recipient_id,
        )


def emit_all(sink: NotificationSink, requests: list[NotificationRequest]) -> None:
    for request in requests:
        sink.emit(request)


def list_notifications(
    engine: Engine, user_id: str, *, unread_only: bool = False, limit: int = 50,
) -> list[Notification]:
    with get_session(engine) as session:
        q = select(Notification).where(Notification.recipient_id == user_id)
        if unread_only:
            q = q.where(Notification.is_read.is_(False))
        q = q.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        return list(session.scalars(q).all())


def mark_read(engine: Engine, user_id: str, notification_id: int) -> Notification:
    """Mark one notification as read.  Only its recipient may do so."""
    with get_session(engine) as session:
        notification = session.get(Notification, notification_id)
        if notification is None:
            raise NotFound(f"notification {notification_id} not found", user_id)
        if notification.recipient_id != user_id:
            raise NotAuthorized("cannot modify another user's notification", user_id)
        notification.is_read = True
        return notification
