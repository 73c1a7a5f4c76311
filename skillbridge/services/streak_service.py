"""
skillbridge.services.streak_service — Streak Derivation & Persistence
=======================================================================

The streak is never incremented in place.  Each time a ``connect`` event
lands, the user's full connect history is replayed through
:func:`~skillbridge.engine.streaks.replay_streak` and the snapshot in
``streak_states`` is overwritten.  Reads replay again at the current time
so a lapsed streak shows 0 even if nothing was written since.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from skillbridge.constants import utcnow
from skillbridge.database.engine import get_session
from skillbridge.database.models import ActionKind, ActivityEvent, StreakStateRecord
from skillbridge.engine.streaks import (
    DEFAULT_BONUS_THRESHOLD,
    DEFAULT_WINDOW_DAYS,
    StreakState,
    replay_streak,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from skillbridge.engine.cache import ConfigCache

logger = logging.getLogger(__name__)


def connect_timestamps(session: Session, user_id: str) -> list[datetime]:
    """All ``connect`` event timestamps for *user_id*, oldest first."""
    return list(session.scalars(
        select(ActivityEvent.timestamp)
        .where(
            ActivityEvent.user_id == user_id,
            ActivityEvent.kind == ActionKind.CONNECT.value,
        )
        .order_by(ActivityEvent.timestamp, ActivityEvent.id)
    ).all())


def derive_streak(
    session: Session,
    cache: ConfigCache,
    user_id: str,
    now: datetime | None = None,
) -> StreakState:
    """Replay the user's connect events at *now* without writing anything."""
    return replay_streak(
        connect_timestamps(session, user_id),
        now or utcnow(),
        window_days=cache.get_int("streak.window_days", DEFAULT_WINDOW_DAYS),
        bonus_threshold=cache.get_int("streak.bonus_threshold", DEFAULT_BONUS_THRESHOLD),
    )


def recompute_streak(
    session: Session,
    cache: ConfigCache,
    user_id: str,
    now: datetime | None = None,
) -> StreakState:
    """Replay and overwrite the stored snapshot for *user_id*."""
    state = derive_streak(session, cache, user_id, now)

    record = session.get(StreakStateRecord, user_id)
    if record is None:
        record = StreakStateRecord(user_id=user_id)
        session.add(record)
    record.current_streak = state.current_streak
    record.best_streak = state.best_streak
    record.last_connection_at = state.last_connection_at
    record.updated_at = utcnow()
    session.flush()

    logger.debug(
        "Streak recomputed for %s: current=%d best=%d",
        user_id, state.current_streak, state.best_streak,
    )
    return state


def get_streak(
    engine: Engine,
    cache: ConfigCache,
    user_id: str,
    now: datetime | None = None,
) -> StreakState:
    with get_session(engine) as session:
        return derive_streak(session, cache, user_id, now)
