"""
skillbridge.api.routes.engagement — Ledger, streak, badges, leaderboard & notifications
=========================================================================================
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Query

from skillbridge.api.deps import CacheDep, CurrentUser, EngineDep
from skillbridge.constants import RANK_BADGES, streak_emoji
from skillbridge.services import (
    badge_service,
    leaderboard_service,
    ledger_service,
    notification_service,
    streak_service,
)

router = APIRouter(tags=["engagement"])


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------
@router.get("/me/events")
def list_my_events(
    user_id: CurrentUser,
    engine: EngineDep,
    kind: str | None = None,
    limit: int = Query(50, ge=1, le=200),
):
    events = ledger_service.list_events(engine, user_id, kind=kind, limit=limit)
    return {
        "events": [
            {
                "id": e.id,
                "kind": e.kind,
                "points": e.points,
                "metadata": e.metadata_ or {},
                "timestamp": e.timestamp.isoformat() if e.timestamp else None,
            }
            for e in events
        ]
    }


@router.get("/me/streak")
def get_my_streak(user_id: CurrentUser, engine: EngineDep, cache: CacheDep):
    state = streak_service.get_streak(engine, cache, user_id)
    return {
        "current_streak": state.current_streak,
        "best_streak": state.best_streak,
        "days_until_break": state.days_until_break,
        "last_connection_at": (
            state.last_connection_at.isoformat() if state.last_connection_at else None
        ),
        "emoji": streak_emoji(state.current_streak),
    }


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------
@router.get("/badges")
def list_badge_catalogue(cache: CacheDep):
    return {
        "badges": [
            {
                "id": b.id,
                "name": b.name,
                "icon": b.icon,
                "description": b.description,
            }
            for b in cache.get_active_badges()
        ]
    }


@router.get("/me/badges")
def list_my_badges(user_id: CurrentUser, engine: EngineDep):
    return {
        "badges": [
            {
                "id": badge.id,
                "name": badge.name,
                "icon": badge.icon,
                "granted_at": grant.granted_at.isoformat() if grant.granted_at else None,
            }
            for grant, badge in badge_service.list_user_badges(engine, user_id)
        ]
    }


# ---------------------------------------------------------------------------
# Leaderboard
# ---------------------------------------------------------------------------
@router.get("/leaderboard/teams")
def team_leaderboard(user_id: CurrentUser, engine: EngineDep):
    view = leaderboard_service.team_leaderboard(engine, user_id)
    teams = []
    for position, team in enumerate(view.teams):
        entry = asdict(team)
        entry["rank"] = position + 1
        entry["medal"] = RANK_BADGES[position] if position < len(RANK_BADGES) else None
        teams.append(entry)
    return {"teams": teams, "user_rank": view.user_rank}


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
@router.get("/notifications")
def list_notifications(user_id: CurrentUser, engine: EngineDep, unread_only: bool = False):
    return {
        "notifications": [
            {
                "id": n.id,
                "type": n.type,
                "title": n.title,
                "message": n.message,
                "payload": n.payload or {},
                "is_read": n.is_read,
                "created_at": n.created_at.isoformat() if n.created_at else None,
            }
            for n in notification_service.list_notifications(
                engine, user_id, unread_only=unread_only,
            )
        ]
    }


@router.post("/notifications/{notification_id}/read")
def mark_notification_read(notification_id: int, user_id: CurrentUser, engine: EngineDep):
    n = notification_service.mark_read(engine, user_id, notification_id)
    return {"id": n.id, "is_read": n.is_read}
