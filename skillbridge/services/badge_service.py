"""
skillbridge.services.badge_service — Badge Evaluation & Granting
==================================================================

Builds a :class:`~skillbridge.engine.badges.BadgeContext` from the ledger,
skill swaps, streak and profile, runs the trigger registry, and inserts a
grant for each newly earned badge.

Granting is grant-then-skip: the composite primary key on
``badge_grants`` rejects a second grant, which is treated as already
handled.  Badges are never revoked.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skillbridge.database.engine import get_session
from skillbridge.database.models import (
    ActivityEvent,
    Badge,
    BadgeGrant,
    Profile,
    SkillSwap,
)
from skillbridge.engine.badges import VALID_PROFILE_FIELDS, BadgeContext, check_badges
from skillbridge.errors import NotFound, ValidationError
from skillbridge.services.streak_service import derive_streak

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from skillbridge.engine.cache import ConfigCache

logger = logging.getLogger(__name__)


def get_granted_badge_ids(session: Session, user_id: str) -> set[str]:
    rows = session.scalars(
        select(BadgeGrant.badge_id).where(BadgeGrant.user_id == user_id)
    ).all()
    return set(rows)


def _event_counts(session: Session, user_id: str) -> dict[str, int]:
    rows = session.execute(
        select(ActivityEvent.kind, func.count().label("cnt"))
        .where(ActivityEvent.user_id == user_id)
        .group_by(ActivityEvent.kind)
    ).all()
    return {row.kind: row.cnt for row in rows}


def _swaps_taught(session: Session, user_id: str) -> int:
    return session.scalar(
        select(func.count()).select_from(SkillSwap).where(SkillSwap.teacher_id == user_id)
    ) or 0


def build_context(
    session: Session,
    cache: ConfigCache,
    profile: Profile,
    *,
    at_profile_creation: bool = False,
    now: datetime | None = None,
) -> BadgeContext:
    streak = derive_streak(session, cache, profile.user_id, now)
    return BadgeContext(
        event_counts=_event_counts(session, profile.user_id),
        swaps_taught=_swaps_taught(session, profile.user_id),
        current_streak=streak.current_streak,
        best_streak=streak.best_streak,
        connection_count=profile.connection_count,
        total_points=profile.total_points,
        skill_count=len(profile.skills or []),
        profile_fields={
            name: getattr(profile, name) or "" for name in VALID_PROFILE_FIELDS
        },
        at_profile_creation=at_profile_creation,
    )


def grant_badge(session: Session, user_id: str, badge_id: str) -> BadgeGrant | None:
    """Insert one grant inside a SAVEPOINT.  Returns None if it already existed."""
    if session.get(BadgeGrant, (user_id, badge_id)) is not None:
        return None
    grant = BadgeGrant(user_id=user_id, badge_id=badge_id)
    try:
        with session.begin_nested():
            session.add(grant)
            session.flush()
    except IntegrityError:
        logger.debug("Badge %s already granted to %s", badge_id, user_id)
        return None
    logger.info("Badge granted: user=%s badge=%s", user_id, badge_id)
    return grant


def evaluate_badges(
    session: Session,
    cache: ConfigCache,
    user_id: str,
    *,
    at_profile_creation: bool = False,
    now: datetime | None = None,
) -> list[BadgeGrant]:
    """Grant every active badge *user_id* now qualifies for.

    Safe to call any number of times; already-held badges are skipped.
    """
    profile = session.get(Profile, user_id)
    if profile is None:
        raise NotFound(f"profile {user_id} not found", user_id)
    session.flush()
    session.refresh(profile)

    ctx = build_context(
        session, cache, profile, at_profile_creation=at_profile_creation, now=now,
    )
    earned = check_badges(
        cache.get_active_badges(), ctx, get_granted_badge_ids(session, user_id),
    )

    grants: list[BadgeGrant] = []
    for badge_id in earned:
        grant = grant_badge(session, user_id, badge_id)
        if grant is not None:
            grants.append(grant)
    return grants


def award_manual_badge(engine: Engine, user_id: str, badge_id: str) -> BadgeGrant | None:
    """Grant a badge by hand (admin action).  Returns None if already held."""
    with get_session(engine) as session:
        if session.get(Profile, user_id) is None:
            raise NotFound(f"profile {user_id} not found", user_id)
        badge = session.get(Badge, badge_id)
        if badge is None:
            raise NotFound(f"badge {badge_id} not found", user_id)
        if not badge.active:
            raise ValidationError(f"badge {badge_id} is inactive", user_id)
        return grant_badge(session, user_id, badge_id)


def set_badge_active(
    engine: Engine, cache: ConfigCache, badge_id: str, active: bool,
) -> Badge:
    """Enable or retire a badge definition and reload the cached catalogue.

    Retiring a badge stops new grants; existing grants are kept.
    """
    with get_session(engine) as session:
        badge = session.get(Badge, badge_id)
        if badge is None:
            raise NotFound(f"badge {badge_id} not found")
        badge.active = active

    cache.handle_notify("badges")
    logger.info("Badge %s %s", badge_id, "activated" if active else "retired")
    return badge


def list_user_badges(engine: Engine, user_id: str) -> list[tuple[BadgeGrant, Badge]]:
    with get_session(engine) as session:
        rows = session.execute(
            select(BadgeGrant, Badge)
            .join(Badge, Badge.id == BadgeGrant.badge_id)
            .where(BadgeGrant.user_id == user_id)
            .order_by(Badge.sort_order, Badge.id)
        ).all()
        return [(row[0], row[1]) for row in rows]
