"""
skillbridge.api.routes.connections — Connection request lifecycle
===================================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from skillbridge.api.deps import CacheDep, CurrentUser, EngineDep
from skillbridge.database.models import ConnectionRequest
from skillbridge.services import connection_service

router = APIRouter(prefix="/connections", tags=["connections"])


class ConnectionCreate(BaseModel):
    target_id: str
    message: str | None = None


def _request_dict(r: ConnectionRequest) -> dict:
    return {
        "id": r.id,
        "requester_id": r.requester_id,
        "target_id": r.target_id,
        "status": r.status,
        "connection_type": r.connection_type,
        "message": r.message,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


@router.post("/requests", status_code=201)
def create_request(body: ConnectionCreate, user_id: CurrentUser, engine: EngineDep):
    request = connection_service.create_request(
        engine, user_id, body.target_id, message=body.message,
    )
    return _request_dict(request)


@router.get("/requests/incoming")
def list_incoming(user_id: CurrentUser, engine: EngineDep, status: str = "pending"):
    return {
        "requests": [
            _request_dict(r)
            for r in connection_service.list_incoming(engine, user_id, status=status)
        ]
    }


@router.get("/requests/outgoing")
def list_outgoing(user_id: CurrentUser, engine: EngineDep, status: str = "pending"):
    return {
        "requests": [
            _request_dict(r)
            for r in connection_service.list_outgoing(engine, user_id, status=status)
        ]
    }


@router.post("/requests/{request_id}/accept")
def accept_request(request_id: int, user_id: CurrentUser, engine: EngineDep, cache: CacheDep):
    return _request_dict(connection_service.accept_request(engine, cache, request_id, user_id))


@router.post("/requests/{request_id}/decline")
def decline_request(request_id: int, user_id: CurrentUser, engine: EngineDep):
    return _request_dict(connection_service.decline_request(engine, request_id, user_id))


@router.get("")
def list_connections(user_id: CurrentUser, engine: EngineDep):
    return {
        "connections": [
            {
                "user_id": p.user_id,
                "display_name": p.display_name,
                "role": p.role,
                "skills": list(p.skills or []),
            }
            for p in connection_service.list_connections(engine, user_id)
        ]
    }
