"""
skillbridge.services.settings_service — Settings CRUD & Cache Reload
======================================================================

Read/write access to the ``settings`` table.  Every write reloads the
settings slice of :class:`~skillbridge.engine.cache.ConfigCache` once the
transaction has committed, so new point values apply to the next ledger
append.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from skillbridge.database.engine import get_session
from skillbridge.database.models import Setting
from skillbridge.errors import ValidationError

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from skillbridge.engine.cache import ConfigCache

logger = logging.getLogger(__name__)


def get_all_settings(engine: Engine) -> list[Setting]:
    """Fetch every setting row, ordered by category then key."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(Setting).order_by(Setting.category, Setting.key)
        ).all())


def bulk_upsert(
    engine: Engine,
    cache: ConfigCache,
    settings: list[dict[str, Any]],
    *,
    actor_id: str | None = None,
) -> int:
    """Upsert many settings at once and reload the cache.

    Each dict should have at least ``key`` and ``value``.
    Optional: ``category``, ``description``.

    Returns the number of rows touched.
    """
    for item in settings:
        if not str(item.get("key") or "").strip():
            raise ValidationError("setting key is required", actor_id)

    with get_session(engine) as session:
        for item in settings:
            key = item["key"].strip()
            value_json = json.dumps(item["value"])
            existing = session.get(Setting, key)
            if existing:
                existing.value_json = value_json
                if "category" in item:
                    existing.category = item["category"]
                if "description" in item:
                    existing.description = item["description"]
            else:
                session.add(Setting(
                    key=key,
                    value_json=value_json,
                    category=item.get("category") or "general",
                    description=item.get("description"),
                ))

    cache.handle_notify("settings")
    logger.info(
        "Settings updated by %s: %s", actor_id or "system", [s["key"] for s in settings],
    )
    return len(settings)
