"""
skillbridge.services.profile_service — Profile Setup & Editing
================================================================
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from skillbridge.database.engine import get_session
from skillbridge.database.models import BadgeGrant, Profile
from skillbridge.engine.matching import MatchProfile
from skillbridge.errors import NotAuthorized, NotFound, ValidationError
from skillbridge.services import badge_service

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from skillbridge.engine.cache import ConfigCache

logger = logging.getLogger(__name__)

# Fields an owner may change; points and counters are engine-managed
EDITABLE_FIELDS: frozenset[str] = frozenset({
    "display_name",
    "role",
    "bio",
    "skills",
    "working_styles",
    "learning_now",
    "can_teach",
    "is_visible",
})


def _validated(user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Validate list and text fields by building a scorer snapshot."""
    snapshot = MatchProfile.from_mapping({"user_id": user_id, **fields})
    cleaned = dict(fields)
    if "skills" in fields:
        cleaned["skills"] = list(snapshot.skills)
    if "working_styles" in fields:
        cleaned["working_styles"] = list(snapshot.working_styles)
    if "display_name" in fields:
        name = (fields["display_name"] or "").strip()
        if not name:
            raise ValidationError("display_name is required", user_id)
        cleaned["display_name"] = name
    if "is_visible" in fields and not isinstance(fields["is_visible"], bool):
        raise ValidationError("is_visible must be a boolean", user_id)
    return cleaned


def create_profile(
    engine: Engine,
    cache: ConfigCache,
    user_id: str,
    *,
    display_name: str,
    role: str | None = None,
    bio: str | None = None,
    skills: list[str] | None = None,
    working_styles: list[str] | None = None,
    learning_now: str | None = None,
    can_teach: str | None = None,
) -> tuple[Profile, list[BadgeGrant]]:
    """Create a profile and grant any profile-setup badges it earns."""
    if not user_id:
        raise ValidationError("user_id is required")
    fields = _validated(user_id, {
        "display_name": display_name,
        "role": role,
        "bio": bio,
        "skills": skills or [],
        "working_styles": working_styles or [],
        "learning_now": learning_now,
        "can_teach": can_teach,
    })

    with get_session(engine) as session:
        if session.get(Profile, user_id) is not None:
            raise ValidationError(f"profile {user_id} already exists", user_id)
        profile = Profile(user_id=user_id, **fields)
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(profile)
                session.flush()
        except IntegrityError:
            raise ValidationError(f"profile {user_id} already exists", user_id) from None

        grants = badge_service.evaluate_badges(
            session, cache, user_id, at_profile_creation=True,
        )
        logger.info(
            "Profile created: %s (%d skills, %d setup badges)",
            user_id, len(profile.skills), len(grants),
        )
        return profile, grants


def get_profile(engine: Engine, user_id: str) -> Profile:
    with get_session(engine) as session:
        profile = session.get(Profile, user_id)
        if profile is None:
            raise NotFound(f"profile {user_id} not found", user_id)
        return profile


def update_profile(
    engine: Engine, actor_id: str, user_id: str, **changes: Any,
) -> Profile:
    """Apply *changes* to *user_id*'s profile.  Only the owner may edit."""
    if actor_id != user_id:
        raise NotAuthorized("cannot edit another user's profile", actor_id)
    unknown = set(changes) - EDITABLE_FIELDS
    if unknown:
        raise ValidationError(f"fields not editable: {', '.join(sorted(unknown))}", actor_id)

    cleaned = _validated(user_id, changes)
    with get_session(engine) as session:
        profile = session.get(Profile, user_id)
        if profile is None:
            raise NotFound(f"profile {user_id} not found", user_id)
        for key, value in cleaned.items():
            setattr(profile, key, value)
        session.flush()
        logger.info("Profile updated: %s (%s)", user_id, ", ".join(sorted(cleaned)))
        return profile


def list_visible_profiles(engine: Engine, *, limit: int | None = None) -> list[Profile]:
    with get_session(engine) as session:
        q = (
            select(Profile)
            .where(Profile.is_visible.is_(True))
            .order_by(Profile.created_at, Profile.user_id)
        )
        if limit is not None:
            q = q.limit(limit)
        return list(session.scalars(q).all())
