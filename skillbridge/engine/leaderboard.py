"""
skillbridge.engine.leaderboard — Department Leaderboard Aggregation
=====================================================================

Pure read-time aggregation over a snapshot of profiles.  Profiles are any
objects exposing ``user_id``, ``display_name``, ``role`` and
``total_points``.  All sorts are stable, so ties keep input order.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from skillbridge.constants import UNKNOWN_DEPARTMENT

TOP_MEMBERS = 3


@dataclass(frozen=True, slots=True)
class TeamMember:
    user_id: str
    display_name: str
    total_points: int


@dataclass(frozen=True, slots=True)
class TeamStats:
    department: str
    total_points: int
    member_count: int
    avg_points: int
    top_members: list[TeamMember] = field(default_factory=list)


def department_of(profile: Any) -> str:
    role = (getattr(profile, "role", None) or "").strip()
    return role or UNKNOWN_DEPARTMENT


def _points(profile: Any) -> int:
    return getattr(profile, "total_points", 0) or 0


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _group(profiles: Sequence[Any]) -> dict[str, list[Any]]:
    groups: dict[str, list[Any]] = {}
    for profile in profiles:
        groups.setdefault(department_of(profile), []).append(profile)
    return groups


def aggregate_teams(profiles: Sequence[Any]) -> list[TeamStats]:
    """Group *profiles* by department and rank the groups by total points."""
    stats: list[TeamStats] = []
    for department, members in _group(profiles).items():
        total = sum(_points(m) for m in members)
        ranked = sorted(members, key=_points, reverse=True)[:TOP_MEMBERS]
        stats.append(TeamStats(
            department=department,
            total_points=total,
            member_count=len(members),
            avg_points=_round_half_up(total / len(members)),
            top_members=[
                TeamMember(
                    user_id=m.user_id,
                    display_name=m.display_name,
                    total_points=_points(m),
                )
                for m in ranked
            ],
        ))

    stats.sort(key=lambda s: s.total_points, reverse=True)
    return stats


def rank_in_department(profiles: Sequence[Any], user_id: str) -> int:
    """1-based rank of *user_id* within its own department, 0 if absent."""
    subject = next((p for p in profiles if p.user_id == user_id), None)
    if subject is None:
        return 0
    department = department_of(subject)
    members = [p for p in profiles if department_of(p) == department]
    members.sort(key=_points, reverse=True)
    for position, member in enumerate(members, start=1):
        if member.user_id == user_id:
            return position
    return 0
