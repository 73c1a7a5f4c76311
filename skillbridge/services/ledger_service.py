"""
skillbridge.services.ledger_service — Ledger Append & Derived-State Pipeline
==============================================================================

Every point-earning action goes through :func:`record_activity`:

1. Append the event to ``activity_events`` (idempotent on ``source_key``)
2. Add its points to ``profiles.total_points`` in the same transaction
3. For ``connect`` events, replay the streak and append any streak bonuses
4. Re-evaluate the user's badges

Point totals are updated with ``UPDATE … SET total_points = total_points
+ :n`` so concurrent appends for the same user never lose an increment.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skillbridge.database.engine import get_session
from skillbridge.database.models import ActionKind, ActivityEvent, Profile
from skillbridge.engine.events import LedgerEvent, points_for
from skillbridge.engine.streaks import StreakState
from skillbridge.errors import NotFound, ValidationError
from skillbridge.services import badge_service, streak_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from skillbridge.engine.cache import ConfigCache

logger = logging.getLogger(__name__)


def make_event(
    user_id: str,
    kind: ActionKind,
    cache: ConfigCache | None = None,
    *,
    metadata: dict | None = None,
    source_key: str | None = None,
    timestamp: datetime | None = None,
) -> LedgerEvent:
    """Build a LedgerEvent worth the configured points for *kind*."""
    kwargs = {}
    if timestamp is not None:
        kwargs["timestamp"] = timestamp
    return LedgerEvent(
        user_id=user_id,
        kind=kind,
        points=points_for(kind, cache),
        metadata=metadata or {},
        source_key=source_key,
        **kwargs,
    )


def append_event(session: Session, event: LedgerEvent) -> ActivityEvent | None:
    """Persist *event* and credit its points.

    Returns the new row, or None when an event with the same
    ``source_key`` was already recorded.

    Raises
    ------
    ValidationError
        Negative point value.
    NotFound
        No profile exists for the event's user.
    """
    if event.points < 0:
        raise ValidationError("ledger points must be non-negative", event.user_id)
    if session.get(Profile, event.user_id) is None:
        raise NotFound(f"profile {event.user_id} not found", event.user_id)

    row = ActivityEvent(
        user_id=event.user_id,
        kind=event.kind.value,
        points=event.points,
        metadata_=event.metadata,
        source_key=event.source_key,
        timestamp=event.timestamp,
    )
    if event.source_key is not None:
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(row)
                session.flush()
        except IntegrityError:
            logger.debug("Duplicate ledger event skipped: %s", event.source_key)
            return None
    else:
        session.add(row)
        session.flush()

    session.execute(
        update(Profile)
        .where(Profile.user_id == event.user_id)
        .values(total_points=Profile.total_points + event.points)
        .execution_options(synchronize_session=False)
    )

    logger.info(
        "Ledger +%d %s for %s", event.points, event.kind.value, event.user_id,
    )
    return row


def emit_streak_bonuses(
    session: Session,
    cache: ConfigCache,
    user_id: str,
    state: StreakState,
) -> list[ActivityEvent]:
    """Append one bonus per threshold crossing not yet rewarded."""
    appended: list[ActivityEvent] = []
    for crossing in range(1, state.bonus_crossings + 1):
        row = append_event(session, make_event(
            user_id,
            ActionKind.STREAK_BONUS,
            cache,
            metadata={"crossing": crossing, "streak": state.current_streak},
            source_key=f"streak_bonus:{user_id}:{crossing}",
        ))
        if row is not None:
            appended.append(row)
    return appended


def record_activity(
    session: Session,
    cache: ConfigCache,
    event: LedgerEvent,
    *,
    now: datetime | None = None,
) -> ActivityEvent | None:
    """Append *event* and re-derive the user's streak and badges.

    Returns None (and touches nothing else) for a duplicate ``source_key``.
    """
    row = append_event(session, event)
    if row is None:
        return None

    if event.kind == ActionKind.CONNECT:
        state = streak_service.recompute_streak(session, cache, event.user_id, now)
        emit_streak_bonuses(session, cache, event.user_id, state)

    badge_service.evaluate_badges(session, cache, event.user_id, now=now)
    return row


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_events(
    engine: Engine, user_id: str, *, kind: str | None = None, limit: int = 50,
) -> list[ActivityEvent]:
    with get_session(engine) as session:
        q = select(ActivityEvent).where(ActivityEvent.user_id == user_id)
        if kind:
            q = q.where(ActivityEvent.kind == kind)
        q = q.order_by(ActivityEvent.timestamp.desc(), ActivityEvent.id.desc()).limit(limit)
        return list(session.scalars(q).all())

