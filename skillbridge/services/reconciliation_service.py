"""
skillbridge.services.reconciliation_service — Point & Counter Reconciliation
==============================================================================

Maintenance job that checks the denormalized profile counters against
their ground truth and corrects drift if found.

How it works:
    1. ``SUM(points)`` from ``activity_events`` per user is the true
       ``total_points``.
    2. The number of accepted requests a user is party to is the true
       ``connection_count``.
    3. Mismatched profiles are overwritten with the true values.
    4. All corrections are logged for audit.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, func, select, union_all

from skillbridge.constants import utcnow
from skillbridge.database.engine import get_session
from skillbridge.database.models import (
    ActivityEvent,
    ConnectionRequest,
    ConnectionStatus,
    Profile,
)

logger = logging.getLogger(__name__)


def reconcile_points(engine: Engine) -> dict:
    """Fix drifted ``total_points`` and ``connection_count`` values.

    Returns ``{"checked": N, "corrected": M, "corrections": [...]}``.
    """
    corrections: list[dict] = []

    with get_session(engine) as session:
        points_truth: dict[str, int] = {
            row.user_id: row.actual
            for row in session.execute(
                select(ActivityEvent.user_id, func.sum(ActivityEvent.points).label("actual"))
                .group_by(ActivityEvent.user_id)
            ).all()
        }

        accepted = ConnectionStatus.ACCEPTED.value
        parties = union_all(
            select(ConnectionRequest.requester_id.label("user_id"))
            .where(ConnectionRequest.status == accepted),
            select(ConnectionRequest.target_id.label("user_id"))
            .where(ConnectionRequest.status == accepted),
        ).subquery()
        connections_truth: dict[str, int] = {
            row.user_id: row.actual
            for row in session.execute(
                select(parties.c.user_id, func.count().label("actual"))
                .group_by(parties.c.user_id)
            ).all()
        }

        profiles = session.scalars(select(Profile).order_by(Profile.user_id)).all()
        for profile in profiles:
            for field_name, truth in (
                ("total_points", points_truth),
                ("connection_count", connections_truth),
            ):
                stored = getattr(profile, field_name)
                actual = truth.get(profile.user_id, 0)
                if stored != actual:
                    corrections.append({
                        "user_id": profile.user_id,
                        "field": field_name,
                        "stored": stored,
                        "actual": actual,
                        "diff": actual - stored,
                    })
                    setattr(profile, field_name, actual)

        checked = len(profiles)

    if corrections:
        logger.warning(
            "Point reconciliation: corrected %d values across %d profiles: %s",
            len(corrections), checked, corrections,
        )
    else:
        logger.info("Point reconciliation: all %d profiles match", checked)

    return {
        "checked": checked,
        "corrected": len(corrections),
        "corrections": corrections,
        "timestamp": utcnow().isoformat(),
    }
