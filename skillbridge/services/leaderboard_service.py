"""
skillbridge.services.leaderboard_service — Team Leaderboard Reads
===================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from sqlalchemy import select

from skillbridge.database.engine import get_session
from skillbridge.database.models import Profile
from skillbridge.engine.leaderboard import TeamStats, aggregate_teams, rank_in_department

if TYPE_CHECKING:
    from sqlalchemy import Engine


@dataclass(frozen=True, slots=True)
class LeaderboardView:
    teams: list[TeamStats] = field(default_factory=list)
    user_rank: int = 0


def team_leaderboard(engine: Engine, user_id: str | None = None) -> LeaderboardView:
    """Aggregate visible profiles by department.

    ``user_rank`` is the caller's position inside their own department,
    or 0 when no caller is given or the caller is hidden.
    """
    with get_session(engine) as session:
        profiles = session.scalars(
            select(Profile)
            .where(Profile.is_visible.is_(True))
            .order_by(Profile.created_at, Profile.user_id)
        ).all()

    return LeaderboardView(
        teams=aggregate_teams(profiles),
        user_rank=rank_in_department(profiles, user_id) if user_id else 0,
    )
