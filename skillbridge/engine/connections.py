"""
skillbridge.engine.connections — Connection Request State Machine
===================================================================

Pure transition rules for connection requests::

    pending ──accept──▶ accepted   (terminal)
       └────decline──▶ declined   (terminal, pair may request again)

Only the target of a request may accept or decline it.  The service layer
applies transitions with a compare-and-set on the current status.
"""

from __future__ import annotations

from skillbridge.database.models import ConnectionStatus
from skillbridge.errors import NotAuthorized, StaleState, ValidationError

ACTIVE_STATUSES: frozenset[str] = frozenset({
    ConnectionStatus.PENDING.value,
    ConnectionStatus.ACCEPTED.value,
})

# action → (required current status, resulting status)
TRANSITIONS: dict[str, tuple[ConnectionStatus, ConnectionStatus]] = {
    "accept": (ConnectionStatus.PENDING, ConnectionStatus.ACCEPTED),
    "decline": (ConnectionStatus.PENDING, ConnectionStatus.DECLINED),
}


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for the pair {user_a, user_b}."""
    first, second = sorted((user_a, user_b))
    return f"{first}:{second}"


def check_create(requester_id: str, target_id: str) -> None:
    if not requester_id or not target_id:
        raise ValidationError("requester and target are required")
    if requester_id == target_id:
        raise ValidationError("cannot send a connection request to yourself", requester_id)


def resolve_transition(
    action: str,
    *,
    current_status: str,
    target_id: str,
    actor_id: str,
) -> ConnectionStatus:
    """Validate *action* by *actor_id* and return the status to move to.

    Raises
    ------
    ValidationError
        Unknown action.
    NotAuthorized
        Actor is not the request's target.
    StaleState
        The request has already left ``pending``.
    """
    if action not in TRANSITIONS:
        raise ValidationError(f"unknown connection action: {action!r}")
    if actor_id != target_id:
        raise NotAuthorized("only the recipient can respond to a connection request", actor_id)
    required, result = TRANSITIONS[action]
    if current_status != required:
        raise StaleState(f"connection request already {current_status}", actor_id)
    return result
