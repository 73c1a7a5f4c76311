"""
skillbridge.api.routes.profiles — Profile setup, reads & edits
================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from skillbridge.api.deps import CacheDep, CurrentUser, EngineDep
from skillbridge.database.models import Profile
from skillbridge.services import profile_service

router = APIRouter(prefix="/profiles", tags=["profiles"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ProfileCreate(BaseModel):
    display_name: str
    role: str | None = None
    bio: str | None = None
    skills: list[str] = Field(default_factory=list)
    working_styles: list[str] = Field(default_factory=list)
    learning_now: str | None = None
    can_teach: str | None = None


class ProfileUpdate(BaseModel):
    display_name: str | None = None
    role: str | None = None
    bio: str | None = None
    skills: list[str] | None = None
    working_styles: list[str] | None = None
    learning_now: str | None = None
    can_teach: str | None = None
    is_visible: bool | None = None


def profile_dict(p: Profile) -> dict:
    return {
        "user_id": p.user_id,
        "display_name": p.display_name,
        "role": p.role,
        "bio": p.bio,
        "skills": list(p.skills or []),
        "working_styles": list(p.working_styles or []),
        "learning_now": p.learning_now,
        "can_teach": p.can_teach,
        "total_points": p.total_points,
        "connection_count": p.connection_count,
        "is_visible": p.is_visible,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.post("", status_code=201)
def create_profile(
    body: ProfileCreate, user_id: CurrentUser, engine: EngineDep, cache: CacheDep,
):
    """Set up the caller's profile; returns any badges earned during setup."""
    profile, grants = profile_service.create_profile(
        engine, cache, user_id, **body.model_dump(),
    )
    return {
        "profile": profile_dict(profile),
        "badges_earned": [g.badge_id for g in grants],
    }


@router.get("")
def list_profiles(engine: EngineDep, limit: int = Query(100, ge=1, le=500)):
    return {
        "profiles": [
            profile_dict(p)
            for p in profile_service.list_visible_profiles(engine, limit=limit)
        ]
    }


@router.get("/me")
def get_my_profile(user_id: CurrentUser, engine: EngineDep):
    return profile_dict(profile_service.get_profile(engine, user_id))


@router.patch("/me")
def update_my_profile(body: ProfileUpdate, user_id: CurrentUser, engine: EngineDep):
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    return profile_dict(profile_service.update_profile(engine, user_id, user_id, **changes))


@router.get("/{profile_id}")
def get_profile(profile_id: str, engine: EngineDep, user_id: CurrentUser):
    return profile_dict(profile_service.get_profile(engine, profile_id))
