"""
skillbridge.services.group_service — Monthly Networking Groups
================================================================

Once a month every visible member is placed into a small networking group
(see :mod:`skillbridge.engine.groups` for the planning rules).  Groups are
keyed by calendar month (``YYYY-MM``):

- Formation is idempotent per month: if groups already exist for the
  month they are returned unchanged.
- A member belongs to at most one group per month, enforced by the
  ``(user_id, month_year)`` unique constraint.  A concurrent formation
  that loses the race returns the winner's groups.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from skillbridge.constants import month_key
from skillbridge.database.engine import get_session
from skillbridge.database.models import GroupMember, MonthlyGroup, Profile
from skillbridge.engine.groups import plan_groups
from skillbridge.errors import NotFound

if TYPE_CHECKING:
    from sqlalchemy import Engine
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GroupView:
    group_id: int
    month_year: str
    name: str
    group_type: str
    meeting_time: str | None
    meeting_location: str | None
    member_ids: list[str] = field(default_factory=list)


def _groups_for_month(session: Session, month: str) -> list[GroupView]:
    groups = session.scalars(
        select(MonthlyGroup)
        .where(MonthlyGroup.month_year == month)
        .order_by(MonthlyGroup.id)
    ).all()
    members: dict[int, list[str]] = defaultdict(list)
    for group_id, user_id in session.execute(
        select(GroupMember.group_id, GroupMember.user_id)
        .where(GroupMember.month_year == month)
        .order_by(GroupMember.group_id, GroupMember.user_id)
    ).all():
        members[group_id].append(user_id)
    return [
        GroupView(
            group_id=g.id,
            month_year=g.month_year,
            name=g.group_name,
            group_type=g.group_type,
            meeting_time=g.meeting_time,
            meeting_location=g.meeting_location,
            member_ids=members[g.id],
        )
        for g in groups
    ]


def form_monthly_groups(engine: Engine, *, now: datetime | None = None) -> list[GroupView]:
    """Form this month's groups from the visible members, once per month."""
    month = month_key(now)
    with get_session(engine) as session:
        existing = _groups_for_month(session, month)
        if existing:
            logger.info("Monthly groups for %s already formed (%d groups)", month, len(existing))
            return existing

        candidates = session.scalars(
            select(Profile.user_id)
            .where(Profile.is_visible.is_(True))
            .order_by(Profile.created_at, Profile.user_id)
        ).all()
        plans = plan_groups(list(candidates), seed=month)

        try:
            with session.begin_nested():   # SAVEPOINT
                for plan in plans:
                    session.add(MonthlyGroup(
                        month_year=month,
                        group_name=plan.name,
                        group_type=plan.group_type.value,
                        meeting_time=plan.meeting_time,
                        meeting_location=plan.meeting_location,
                        members=[
                            GroupMember(user_id=user_id, month_year=month)
                            for user_id in plan.member_ids
                        ],
                    ))
                session.flush()
        except IntegrityError:
            logger.info("Monthly groups for %s were formed concurrently", month)
            return _groups_for_month(session, month)

        groups = _groups_for_month(session, month)
        placed = sum(len(g.member_ids) for g in groups)
        logger.info(
            "Formed %d monthly groups for %s: %d of %d members placed",
            len(groups), month, placed, len(candidates),
        )
        return groups


def list_groups(engine: Engine, *, month: str | None = None) -> list[GroupView]:
    with get_session(engine) as session:
        return _groups_for_month(session, month or month_key())


def get_current_group(
    engine: Engine, user_id: str, *, now: datetime | None = None,
) -> tuple[GroupView, list[Profile]] | None:
    """The caller's group for this month and its members' profiles, or None."""
    month = month_key(now)
    with get_session(engine) as session:
        if session.get(Profile, user_id) is None:
            raise NotFound(f"profile {user_id} not found", user_id)
        group_id = session.scalar(
            select(GroupMember.group_id).where(
                GroupMember.user_id == user_id,
                GroupMember.month_year == month,
            )
        )
        if group_id is None:
            return None

        view = next(g for g in _groups_for_month(session, month) if g.group_id == group_id)
        profiles = session.scalars(
            select(Profile)
            .join(GroupMember, GroupMember.user_id == Profile.user_id)
            .where(GroupMember.group_id == group_id)
            .order_by(Profile.display_name, Profile.user_id)
        ).all()
        return view, list(profiles)
