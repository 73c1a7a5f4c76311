"""
skillbridge.api.routes.groups — Monthly networking groups
===========================================================
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Query

from skillbridge.api.deps import CurrentUser, EngineDep
from skillbridge.services import group_service

router = APIRouter(prefix="/groups", tags=["groups"])


@router.get("/me")
def get_my_group(user_id: CurrentUser, engine: EngineDep):
    current = group_service.get_current_group(engine, user_id)
    if current is None:
        return {"group": None}
    group, members = current
    return {
        "group": {
            **asdict(group),
            "members": [
                {"user_id": p.user_id, "display_name": p.display_name, "role": p.role}
                for p in members
            ],
        },
    }


@router.get("")
def list_groups(
    user_id: CurrentUser,
    engine: EngineDep,
    month: str | None = Query(None, pattern=r"^\d{4}-\d{2}$"),
):
    return {"groups": [asdict(g) for g in group_service.list_groups(engine, month=month)]}
