"""
skillbridge.services.connection_service — Connection Request Lifecycle
========================================================================

Create, accept and decline connection requests.

Guards:
- ``active_pair_key`` is UNIQUE, so two racing creates for the same pair
  (either direction) leave exactly one row; the loser gets DuplicateRequest.
- Accept/decline apply a compare-and-set ``UPDATE … WHERE status =
  'pending'``.  A miss re-reads the row once and retries once if it is
  still pending; otherwise the caller gets StaleState.

Accepting credits both parties a ``connect`` event and bumps both
``connection_count`` values in the same transaction.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skillbridge.constants import utcnow
from skillbridge.database.engine import get_session
from skillbridge.database.models import (
    ActionKind,
    ConnectionRequest,
    ConnectionStatus,
    ConnectionType,
    NotificationType,
    Profile,
)
from skillbridge.engine.connections import check_create, pair_key, resolve_transition
from skillbridge.errors import DuplicateRequest, NotFound, StaleState
from skillbridge.services import ledger_service
from skillbridge.services.notification_service import (
    DatabaseNotificationSink,
    NotificationRequest,
    NotificationSink,
    emit_all,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from skillbridge.engine.cache import ConfigCache

logger = logging.getLogger(__name__)

CAS_ATTEMPTS = 2


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------
def open_request(
    session: Session,
    requester_id: str,
    target_id: str,
    *,
    message: str | None = None,
    connection_type: ConnectionType = ConnectionType.DIRECT,
) -> tuple[ConnectionRequest, NotificationRequest]:
    """Insert a pending request inside *session*.

    Returns the row plus the notification to emit once committed.
    """
    check_create(requester_id, target_id)

    requester = session.get(Profile, requester_id)
    if requester is None:
        raise NotFound(f"profile {requester_id} not found", requester_id)
    if session.get(Profile, target_id) is None:
        raise NotFound(f"profile {target_id} not found", requester_id)

    key = pair_key(requester_id, target_id)
    existing = session.scalar(
        select(ConnectionRequest).where(ConnectionRequest.active_pair_key == key)
    )
    if existing is not None:
        raise DuplicateRequest(
            f"an active connection request already exists (status={existing.status})",
            requester_id,
        )

    request = ConnectionRequest(
        requester_id=requester_id,
        target_id=target_id,
        status=ConnectionStatus.PENDING.value,
        connection_type=connection_type.value,
        message=message,
        active_pair_key=key,
    )
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(request)
            session.flush()
    except IntegrityError:
        raise DuplicateRequest(
            "an active connection request already exists", requester_id,
        ) from None

    logger.info(
        "Connection request %d created: %s -> %s (%s)",
        request.id, requester_id, target_id, connection_type.value,
    )
    notification = NotificationRequest(
        recipient_id=target_id,
        type=NotificationType.CONNECTION_REQUEST,
        title="New connection request",
        message=f"{requester.display_name} wants to connect with you",
        payload={"request_id": request.id, "requester_id": requester_id},
    )
    return request, notification


def create_request(
    engine: Engine,
    requester_id: str,
    target_id: str,
    *,
    message: str | None = None,
    connection_type: ConnectionType = ConnectionType.DIRECT,
    sink: NotificationSink | None = None,
) -> ConnectionRequest:
    with get_session(engine) as session:
        request, notification = open_request(
            session, requester_id, target_id,
            message=message, connection_type=connection_type,
        )
    emit_all(sink or DatabaseNotificationSink(engine), [notification])
    return request


# ---------------------------------------------------------------------------
# Accept / decline
# ---------------------------------------------------------------------------
def _reload(session: Session, request_id: int) -> ConnectionRequest | None:
    return session.scalar(
        select(ConnectionRequest)
        .where(ConnectionRequest.id == request_id)
        .execution_options(populate_existing=True)
    )


def _transition(
    session: Session, request_id: int, actor_id: str, action: str,
) -> ConnectionRequest:
    """Apply *action* with compare-and-set, retrying once on a miss."""
    for attempt in range(1, CAS_ATTEMPTS + 1):
        request = _reload(session, request_id)
        if request is None:
            raise NotFound(f"connection request {request_id} not found", actor_id)

        new_status = resolve_transition(
            action,
            current_status=request.status,
            target_id=request.target_id,
            actor_id=actor_id,
        )
        values: dict = {"status": new_status.value, "updated_at": utcnow()}
        if new_status == ConnectionStatus.DECLINED:
            values["active_pair_key"] = None

        result = session.execute(
            update(ConnectionRequest)
            .where(
                ConnectionRequest.id == request_id,
                ConnectionRequest.status == ConnectionStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            session.refresh(request)
            logger.info(
                "Connection request %d %s by %s", request_id, new_status.value, actor_id,
            )
            return request

        logger.info(
            "Connection request %d CAS miss on %s (attempt %d)",
            request_id, action, attempt,
        )

    raise StaleState(f"connection request {request_id} was already handled", actor_id)


def _credit_connection(
    session: Session,
    cache: ConfigCache,
    request: ConnectionRequest,
    now: datetime | None = None,
) -> None:
    parties = (request.requester_id, request.target_id)
    session.execute(
        update(Profile)
        .where(Profile.user_id.in_(parties))
        .values(connection_count=Profile.connection_count + 1)
        .execution_options(synchronize_session=False)
    )
    for user_id in parties:
        partner = parties[1] if user_id == parties[0] else parties[0]
        ledger_service.record_activity(
            session,
            cache,
            ledger_service.make_event(
                user_id,
                ActionKind.CONNECT,
                cache,
                metadata={"request_id": request.id, "partner_id": partner},
                source_key=f"connect:{request.id}:{user_id}",
                timestamp=now,
            ),
            now=now,
        )


def accept_request(
    engine: Engine,
    cache: ConfigCache,
    request_id: int,
    actor_id: str,
    *,
    now: datetime | None = None,
) -> ConnectionRequest:
    """Accept a pending request.  Only its target may accept."""
    with get_session(engine) as session:
        request = _transition(session, request_id, actor_id, "accept")
        _credit_connection(session, cache, request, now)
        return request


def decline_request(engine: Engine, request_id: int, actor_id: str) -> ConnectionRequest:
    """Decline a pending request.  No ledger entry; the pair may request again."""
    with get_session(engine) as session:
        return _transition(session, request_id, actor_id, "decline")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_incoming(
    engine: Engine, user_id: str, *, status: str = ConnectionStatus.PENDING.value,
) -> list[ConnectionRequest]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(ConnectionRequest)
            .where(
                ConnectionRequest.target_id == user_id,
                ConnectionRequest.status == status,
            )
            .order_by(ConnectionRequest.created_at.desc(), ConnectionRequest.id.desc())
        ).all())


def list_outgoing(
    engine: Engine, user_id: str, *, status: str = ConnectionStatus.PENDING.value,
) -> list[ConnectionRequest]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(ConnectionRequest)
            .where(
                ConnectionRequest.requester_id == user_id,
                ConnectionRequest.status == status,
            )
            .order_by(ConnectionRequest.created_at.desc(), ConnectionRequest.id.desc())
        ).all())


def active_partner_ids(session: Session, user_id: str) -> set[str]:
    """Users with a pending or accepted request involving *user_id*."""
    rows = session.execute(
        select(ConnectionRequest.requester_id, ConnectionRequest.target_id)
        .where(
            ConnectionRequest.active_pair_key.is_not(None),
            or_(
                ConnectionRequest.requester_id == user_id,
                ConnectionRequest.target_id == user_id,
            ),
        )
    ).all()
    return {
        row.target_id if row.requester_id == user_id else row.requester_id
        for row in rows
    }


def list_connections(engine: Engine, user_id: str) -> list[Profile]:
    """Profiles of everyone *user_id* is connected to."""
    with get_session(engine) as session:
        rows = session.execute(
            select(ConnectionRequest.requester_id, ConnectionRequest.target_id)
            .where(
                ConnectionRequest.status == ConnectionStatus.ACCEPTED.value,
                or_(
                    ConnectionRequest.requester_id == user_id,
                    ConnectionRequest.target_id == user_id,
                ),
            )
            .order_by(ConnectionRequest.updated_at.desc())
        ).all()
        partner_ids = [
            row.target_id if row.requester_id == user_id else row.requester_id
            for row in rows
        ]
        profiles = {
            p.user_id: p
            for p in session.scalars(
                select(Profile).where(Profile.user_id.in_(partner_ids))
            ).all()
        }
        return [profiles[pid] for pid in partner_ids if pid in profiles]
