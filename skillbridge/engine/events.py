"""
skillbridge.engine.events — LedgerEvent and base point values
==============================================================

The universal envelope for point-earning actions.  Every user action is
normalized into a LedgerEvent before the ledger service persists it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from skillbridge.constants import utcnow
from skillbridge.database.models import ActionKind

if TYPE_CHECKING:
    from skillbridge.engine.cache import ConfigCache

__all__ = ["BASE_POINTS", "LedgerEvent", "points_for"]

# ---------------------------------------------------------------------------
# Base points per action kind (overridable via ``points.<kind>`` settings)
# ---------------------------------------------------------------------------
BASE_POINTS: dict[ActionKind, int] = {
    ActionKind.CONNECT: 10,
    ActionKind.MEET: 10,
    ActionKind.SWAP: 15,
    ActionKind.ICEBREAKER: 5,
    ActionKind.TEACH_SESSION: 20,
    ActionKind.COMPLETE_LEARNING: 15,
    ActionKind.ENDORSE_SKILL: 5,
    ActionKind.RECEIVE_ENDORSEMENT: 10,
    ActionKind.STREAK_BONUS: 50,
}


def points_for(kind: ActionKind, cache: ConfigCache | None = None) -> int:
    """Point value for *kind*, read from settings with the table as fallback."""
    default = BASE_POINTS[kind]
    if cache is None:
        return default
    return cache.get_int(f"points.{kind.value}", default)


# ---------------------------------------------------------------------------
# LedgerEvent: the universal event envelope
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LedgerEvent:
    """Normalized point-earning action.

    ``source_key`` is an optional natural key; the ledger ignores a second
    event carrying the same key.
    """

    user_id: str
    kind: ActionKind
    points: int
    metadata: dict = field(default_factory=dict)
    source_key: str | None = None
    timestamp: datetime = field(default_factory=utcnow)
