"""
skillbridge.engine.badges — Badge Trigger Pipeline
====================================================

Handler-registry implementation for badge predicates.  Each BadgeTrigger
maps to a pure handler that receives the badge's ``trigger_config`` and a
BadgeContext snapshot of the user's derived state.

Any predicate whose config carries ``"at_creation": true`` only fires
during the profile-setup evaluation.

This module is pure calculation — no database I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from skillbridge.database.models import BadgeTrigger

logger = logging.getLogger(__name__)

# Profile fields a profile_field trigger may inspect
VALID_PROFILE_FIELDS: set[str] = {"bio", "can_teach", "learning_now", "role"}


# ---------------------------------------------------------------------------
# Badge Context: passed to every trigger handler
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class BadgeContext:
    """Snapshot of user state passed to trigger handlers.

    Parameters
    ----------
    event_counts : Mapping of ledger kind → number of events for the user.
    swaps_taught : Skill swaps in which the user was the teacher.
    current_streak : Current connection streak (after re-derivation).
    best_streak : Best connection streak observed.
    connection_count : Accepted connections.
    total_points : Ledger total.
    skill_count : Skills listed on the profile.
    profile_fields : Text fields of the profile (e.g. ``{"can_teach": "SQL"}``).
    at_profile_creation : True only for the evaluation run by profile setup.
    """

    event_counts: dict[str, int] = field(default_factory=dict)
    swaps_taught: int = 0
    current_streak: int = 0
    best_streak: int = 0
    connection_count: int = 0
    total_points: int = 0
    skill_count: int = 0
    profile_fields: dict[str, str] = field(default_factory=dict)
    at_profile_creation: bool = False


# ---------------------------------------------------------------------------
# Trigger handlers: pure functions (config, ctx) → bool
# ---------------------------------------------------------------------------

def _check_event_count(config: dict, ctx: BadgeContext) -> bool:
    """Fires when the user has at least N ledger events of a kind.

    Config: {"kind": "meet", "count": 5}
    """
    kind = config.get("kind", "")
    count = config.get("count")
    if count is None or not kind:
        return False
    return ctx.event_counts.get(kind, 0) >= count


def _check_swaps_taught(config: dict, ctx: BadgeContext) -> bool:
    """Config: {"count": 3}"""
    count = config.get("count")
    if count is None:
        return False
    return ctx.swaps_taught >= count


def _check_streak_reached(config: dict, ctx: BadgeContext) -> bool:
    """Fires on the *current* streak, not the best one.

    Config: {"value": 7}
    """
    value = config.get("value")
    if value is None:
        return False
    return ctx.current_streak >= value


def _check_profile_field(config: dict, ctx: BadgeContext) -> bool:
    """Fires when a profile text field is non-empty.

    Config: {"field": "can_teach"}
    """
    field_name = config.get("field", "")
    if field_name not in VALID_PROFILE_FIELDS:
        return False
    return bool((ctx.profile_fields.get(field_name) or "").strip())


def _check_skill_count(config: dict, ctx: BadgeContext) -> bool:
    """Config: {"value": 5}"""
    value = config.get("value")
    if value is None:
        return False
    return ctx.skill_count >= value


def _check_points_milestone(config: dict, ctx: BadgeContext) -> bool:
    """Config: {"value": 500}"""
    value = config.get("value")
    if value is None:
        return False
    return ctx.total_points >= value


def _check_connection_count(config: dict, ctx: BadgeContext) -> bool:
    """Config: {"value": 10}"""
    value = config.get("value")
    if value is None:
        return False
    return ctx.connection_count >= value


# ---------------------------------------------------------------------------
# Handler registry
# ---------------------------------------------------------------------------
TRIGGER_HANDLERS: dict[str, Callable[[dict, BadgeContext], bool]] = {
    BadgeTrigger.EVENT_COUNT: _check_event_count,
    BadgeTrigger.SWAPS_TAUGHT: _check_swaps_taught,
    BadgeTrigger.STREAK_REACHED: _check_streak_reached,
    BadgeTrigger.PROFILE_FIELD: _check_profile_field,
    BadgeTrigger.SKILL_COUNT: _check_skill_count,
    BadgeTrigger.POINTS_MILESTONE: _check_points_milestone,
    BadgeTrigger.CONNECTION_COUNT: _check_connection_count,
    # BadgeTrigger.MANUAL intentionally omitted: never auto-granted
}


# ---------------------------------------------------------------------------
# Main check function
# ---------------------------------------------------------------------------
def check_badges(
    definitions: Iterable[Any],
    ctx: BadgeContext,
    already_granted: set[str],
) -> list[str]:
    """Return the ids of badges newly earned by the user.

    Parameters
    ----------
    definitions : Active badge definitions (objects with ``id``, ``name``,
        ``trigger_type`` and ``trigger_config``).
    ctx : BadgeContext with current user state.
    already_granted : Badge ids the user already holds.
    """
    newly_earned: list[str] = []

    for badge in definitions:
        if badge.id in already_granted:
            continue

        handler = TRIGGER_HANDLERS.get(badge.trigger_type)
        if handler is None:
            continue

        config = badge.trigger_config or {}
        if config.get("at_creation") and not ctx.at_profile_creation:
            continue

        if handler(config, ctx):
            newly_earned.append(badge.id)
            logger.info("Badge triggered: %s (id=%s)", badge.name, badge.id)

    return newly_earned
