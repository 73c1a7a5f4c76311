"""
skillbridge.api.routes.matches — Match suggestions
====================================================
"""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter
from pydantic import BaseModel

from skillbridge.api.deps import CacheDep, CurrentUser, EngineDep
from skillbridge.services import match_service

router = APIRouter(prefix="/matches", tags=["matches"])


class ConnectBody(BaseModel):
    message: str | None = None


@router.post("/generate")
def generate_matches(user_id: CurrentUser, engine: EngineDep, cache: CacheDep):
    """Regenerate the caller's suggestions and return the new list."""
    match_service.generate_matches(engine, cache, user_id)
    return {"matches": [asdict(v) for v in match_service.list_matches(engine, user_id)]}


@router.get("")
def list_matches(user_id: CurrentUser, engine: EngineDep, status: str = "pending"):
    return {
        "matches": [
            asdict(v) for v in match_service.list_matches(engine, user_id, status=status)
        ]
    }


@router.get("/preview/{candidate_id}")
def preview_match(candidate_id: str, user_id: CurrentUser, engine: EngineDep):
    result = match_service.preview_score(engine, user_id, candidate_id)
    return {"candidate_id": candidate_id, "score": result.value, "reasons": result.reasons}


@router.post("/{suggestion_id}/connect", status_code=201)
def connect_match(
    suggestion_id: int, user_id: CurrentUser, engine: EngineDep, body: ConnectBody | None = None,
):
    request = match_service.connect_suggestion(
        engine, user_id, suggestion_id, message=body.message if body else None,
    )
    return {"request_id": request.id, "status": request.status}


@router.post("/{suggestion_id}/dismiss")
def dismiss_match(suggestion_id: int, user_id: CurrentUser, engine: EngineDep):
    suggestion = match_service.dismiss_suggestion(engine, user_id, suggestion_id)
    return {"suggestion_id": suggestion.id, "status": suggestion.status}
