"""
skillbridge.api.routes.activities — Meetups, swaps, icebreakers, endorsements & learning
==========================================================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field

from skillbridge.api.deps import CacheDep, ConfigDep, CurrentUser, EngineDep
from skillbridge.database.models import LearningSession
from skillbridge.services import activity_service, learning_service

router = APIRouter(tags=["activities"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class MeetupScan(BaseModel):
    code: str
    location: str | None = None


class SwapCreate(BaseModel):
    teacher_id: str
    learner_id: str
    skill_taught: str
    skill_learned: str
    notes: str | None = None
    rating: int | None = Field(default=None, ge=1, le=5)


class IcebreakerDone(BaseModel):
    prompt: str
    partner_id: str | None = None


class EndorsementCreate(BaseModel):
    endorsed_id: str
    skill_id: str
    message: str


class LearningRequest(BaseModel):
    teacher_id: str
    skill_topic: str
    session_type: str = "virtual"
    scheduled_at: datetime | None = None
    duration_minutes: int = 15
    notes: str | None = None


def _session_dict(s: LearningSession) -> dict:
    return {
        "id": s.id,
        "teacher_id": s.teacher_id,
        "learner_id": s.learner_id,
        "skill_topic": s.skill_topic,
        "session_type": s.session_type,
        "scheduled_at": s.scheduled_at.isoformat() if s.scheduled_at else None,
        "duration_minutes": s.duration_minutes,
        "status": s.status,
    }


# ---------------------------------------------------------------------------
# QR meetups
# ---------------------------------------------------------------------------
@router.get("/meetups/code")
def get_meetup_code(user_id: CurrentUser, cfg: ConfigDep):
    return {"code": activity_service.meetup_code(user_id, scheme=cfg.meetup_scheme)}


@router.post("/meetups", status_code=201)
def log_meetup(
    body: MeetupScan, user_id: CurrentUser, engine: EngineDep, cache: CacheDep, cfg: ConfigDep,
):
    rows = activity_service.log_meetup(
        engine, cache, user_id, body.code,
        scheme=cfg.meetup_scheme, location=body.location,
    )
    return {"credited": [{"user_id": r.user_id, "points": r.points} for r in rows]}


# ---------------------------------------------------------------------------
# Skill swaps
# ---------------------------------------------------------------------------
@router.post("/swaps", status_code=201)
def log_swap(body: SwapCreate, user_id: CurrentUser, engine: EngineDep, cache: CacheDep):
    swap = activity_service.log_skill_swap(engine, cache, user_id, **body.model_dump())
    return {"id": swap.id, "teacher_id": swap.teacher_id, "learner_id": swap.learner_id}


@router.get("/swaps")
def list_swaps(user_id: CurrentUser, engine: EngineDep):
    return {
        "swaps": [
            {
                "id": s.id,
                "teacher_id": s.teacher_id,
                "learner_id": s.learner_id,
                "skill_taught": s.skill_taught,
                "skill_learned": s.skill_learned,
                "rating": s.rating,
            }
            for s in activity_service.list_skill_swaps(engine, user_id)
        ]
    }


# ---------------------------------------------------------------------------
# Icebreakers
# ---------------------------------------------------------------------------
@router.post("/icebreakers", status_code=201)
def complete_icebreaker(
    body: IcebreakerDone, user_id: CurrentUser, engine: EngineDep, cache: CacheDep,
):
    event = activity_service.complete_icebreaker(
        engine, cache, user_id, body.prompt, partner_id=body.partner_id,
    )
    return {"id": event.id, "points": event.points}


# ---------------------------------------------------------------------------
# Endorsements
# ---------------------------------------------------------------------------
@router.post("/endorsements", status_code=201)
def endorse(body: EndorsementCreate, user_id: CurrentUser, engine: EngineDep, cache: CacheDep):
    e = activity_service.endorse_skill(
        engine, cache, user_id, body.endorsed_id, body.skill_id, body.message,
    )
    return {"id": e.id, "endorsed_id": e.endorsed_id, "skill_id": e.skill_id}


@router.get("/endorsements/{profile_id}")
def list_endorsements(profile_id: str, user_id: CurrentUser, engine: EngineDep):
    return {
        "endorsements": [
            {
                "id": e.id,
                "endorser_id": e.endorser_id,
                "skill_id": e.skill_id,
                "message": e.message,
            }
            for e in activity_service.list_endorsements(engine, profile_id)
        ]
    }


# ---------------------------------------------------------------------------
# Learning sessions
# ---------------------------------------------------------------------------
@router.post("/learning-sessions", status_code=201)
def request_learning_session(body: LearningRequest, user_id: CurrentUser, engine: EngineDep):
    s = learning_service.request_session(
        engine, user_id, body.teacher_id, body.skill_topic,
        session_type=body.session_type,
        scheduled_at=body.scheduled_at,
        duration_minutes=body.duration_minutes,
        notes=body.notes,
    )
    return _session_dict(s)


@router.get("/learning-sessions")
def list_learning_sessions(user_id: CurrentUser, engine: EngineDep, status: str | None = None):
    return {
        "sessions": [
            _session_dict(s)
            for s in learning_service.list_sessions(engine, user_id, status=status)
        ]
    }


@router.post("/learning-sessions/{session_id}/confirm")
def confirm_learning_session(session_id: int, user_id: CurrentUser, engine: EngineDep):
    return _session_dict(learning_service.confirm_session(engine, user_id, session_id))


@router.post("/learning-sessions/{session_id}/cancel")
def cancel_learning_session(session_id: int, user_id: CurrentUser, engine: EngineDep):
    return _session_dict(learning_service.cancel_session(engine, user_id, session_id))


@router.post("/learning-sessions/{session_id}/complete")
def complete_learning_session(
    session_id: int, user_id: CurrentUser, engine: EngineDep, cache: CacheDep,
):
    return _session_dict(learning_service.complete_session(engine, cache, user_id, session_id))
