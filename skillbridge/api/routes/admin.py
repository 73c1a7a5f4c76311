"""
skillbridge.api.routes.admin — Admin & maintenance endpoints (JWT-protected)
==============================================================================

Every route requires a bearer JWT carrying ``is_admin``.  Settings and
badge edits reload the in-memory cache as part of the request.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from skillbridge.api.deps import AdminUser, CacheDep, EngineDep
from skillbridge.services import (
    badge_service,
    group_service,
    reconciliation_service,
    settings_service,
)

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SettingUpdate(BaseModel):
    key: str
    value: Any
    category: str | None = None
    description: str | None = None


class BadgeUpdate(BaseModel):
    active: bool


class ManualBadgeAward(BaseModel):
    user_id: str
    badge_id: str


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
@router.get("/settings")
def get_all_settings(admin: AdminUser, engine: EngineDep):
    rows = settings_service.get_all_settings(engine)
    return {
        "settings": [
            {
                "key": r.key,
                "value": json.loads(r.value_json) if r.value_json else None,
                "category": r.category,
                "description": r.description,
                "updated_at": r.updated_at.isoformat() if r.updated_at else None,
            }
            for r in rows
        ],
    }


@router.put("/settings")
def update_settings(
    body: list[SettingUpdate], admin: AdminUser, engine: EngineDep, cache: CacheDep,
):
    items = [
        {
            "key": s.key,
            "value": s.value,
            **({"category": s.category} if s.category else {}),
            **({"description": s.description} if s.description is not None else {}),
        }
        for s in body
    ]
    count = settings_service.bulk_upsert(engine, cache, items, actor_id=str(admin.get("sub")))
    return {"updated": count}


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------
@router.patch("/badges/{badge_id}")
def update_badge(
    badge_id: str, body: BadgeUpdate, admin: AdminUser, engine: EngineDep, cache: CacheDep,
):
    badge = badge_service.set_badge_active(engine, cache, badge_id, body.active)
    return {"id": badge.id, "name": badge.name, "active": badge.active}


@router.post("/awards/badge")
def award_badge(body: ManualBadgeAward, admin: AdminUser, engine: EngineDep):
    grant = badge_service.award_manual_badge(engine, body.user_id, body.badge_id)
    logger.info(
        "Admin %s awarded %s to %s (%s)",
        admin.get("sub"), body.badge_id, body.user_id, "new" if grant else "already held",
    )
    return {
        "user_id": body.user_id,
        "badge_id": body.badge_id,
        "granted": grant is not None,
    }


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@router.post("/reconcile")
def reconcile(admin: AdminUser, engine: EngineDep):
    logger.info("Point reconciliation requested by admin %s", admin.get("sub"))
    return reconciliation_service.reconcile_points(engine)


@router.post("/groups/monthly")
def form_monthly_groups(admin: AdminUser, engine: EngineDep):
    groups = group_service.form_monthly_groups(engine)
    return {"groups": [asdict(g) for g in groups]}
