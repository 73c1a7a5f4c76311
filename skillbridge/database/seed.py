"""
skillbridge.database.seed — Default Settings & Badge Seeder
============================================================

Baseline gameplay tuning and the badge catalogue, seeded on startup so the
engine is immediately usable.

Idempotent — only inserts keys that don't already exist.  Values edited
later by admins are never overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from skillbridge.database.models import Badge, BadgeTrigger, Setting

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default settings catalogue
# ---------------------------------------------------------------------------
DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    "points.connect": (10, "points", "Points per accepted connection (both parties)"),
    "points.meet": (10, "points", "Points per logged QR meetup (both parties)"),
    "points.swap": (15, "points", "Points for teaching in a skill swap"),
    "points.icebreaker": (5, "points", "Points per completed conversation starter"),
    "points.teach_session": (20, "points", "Points for teaching a learning session"),
    "points.complete_learning": (15, "points", "Points for completing a learning session"),
    "points.endorse_skill": (5, "points", "Points for endorsing a colleague's skill"),
    "points.receive_endorsement": (10, "points", "Points for receiving an endorsement"),
    "points.streak_bonus": (50, "points", "Bonus when a connection streak reaches the threshold"),
    "streak.window_days": (7, "streak", "Max days between connections to keep a streak"),
    "streak.bonus_threshold": (7, "streak", "Streak length that earns the streak bonus"),
    "matching.min_score": (20, "matching", "Raw score a candidate must exceed to be suggested"),
    "matching.max_suggestions": (5, "matching", "Suggestions kept per generation"),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


# ---------------------------------------------------------------------------
# Default badge catalogue
# ---------------------------------------------------------------------------
DEFAULT_BADGES: list[dict] = [
    {
        "id": "knowledge_exchanger",
        "name": "Knowledge Exchanger",
        "icon": "\U0001f504",
        "description": "Taught in three skill swaps",
        "trigger_type": BadgeTrigger.SWAPS_TAUGHT.value,
        "trigger_config": {"count": 3},
    },
    {
        "id": "qr_hunter",
        "name": "QR Hunter",
        "icon": "\U0001f4f1",
        "description": "Logged five in-person meetups",
        "trigger_type": BadgeTrigger.EVENT_COUNT.value,
        "trigger_config": {"kind": "meet", "count": 5},
    },
    {
        "id": "streak_master",
        "name": "Streak Master",
        "icon": "\U0001f525",
        "description": "Kept a connection streak of seven",
        "trigger_type": BadgeTrigger.STREAK_REACHED.value,
        "trigger_config": {"value": 7},
    },
    {
        "id": "knowledge_sharer",
        "name": "Knowledge Sharer",
        "icon": "\U0001f393",
        "description": "Offered to teach something during profile setup",
        "trigger_type": BadgeTrigger.PROFILE_FIELD.value,
        "trigger_config": {"field": "can_teach", "at_creation": True},
    },
    {
        "id": "code_wizard",
        "name": "Code Wizard",
        "icon": "\U0001f9d9",
        "description": "Joined with five or more skills",
        "trigger_type": BadgeTrigger.SKILL_COUNT.value,
        "trigger_config": {"value": 5, "at_creation": True},
    },
]


# ---------------------------------------------------------------------------
# Seeders
# ---------------------------------------------------------------------------
def seed_default_settings(engine: Engine) -> None:
    """Insert default settings that don't yet exist."""
    session = Session(engine)
    inserted = 0
    try:
        for key, (value, category, desc) in DEFAULT_SETTINGS.items():
            if session.get(Setting, key) is None:
                session.add(Setting(
                    key=key,
                    value_json=json.dumps(value),
                    category=category,
                    description=desc,
                ))
                inserted += 1
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if inserted:
        logger.info("Seeded %d default settings.", inserted)


def seed_default_badges(engine: Engine) -> None:
    """Insert badge definitions that don't yet exist."""
    with Session(engine) as session:
        inserted = 0
        for order, spec in enumerate(DEFAULT_BADGES):
            if session.get(Badge, spec["id"]) is None:
                session.add(Badge(sort_order=order, **spec))
                inserted += 1
        session.commit()

    if inserted:
        logger.info("Seeded %d default badges.", inserted)
