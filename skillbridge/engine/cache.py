"""
skillbridge.engine.cache — In-Memory Settings & Badge Cache
=============================================================

Gameplay settings and active badge definitions are read on every ledger
append, so they are cached in memory.  Admin edits call
:meth:`ConfigCache.handle_notify` with the changed table name to reload
just that slice.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from skillbridge.database.models import Badge, Setting

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)


class ConfigCache:
    """Thread-safe in-memory cache for settings and badge definitions.

    Usage:
        cache = ConfigCache(engine)
        cache.load_all()

        window = cache.get_int("streak.window_days", 7)
        badges = cache.get_active_badges()
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        self._lock = threading.Lock()

        # key → parsed JSON value
        self._settings: dict[str, Any] = {}
        # ordered by sort_order
        self._badges: list[Badge] = []

    # -------------------------------------------------------------------
    # Cache loading
    # -------------------------------------------------------------------
    def load_all(self) -> None:
        """Load every cached slice from the DB.  Call on startup."""
        self._load_settings()
        self._load_badges()
        logger.info(
            "ConfigCache loaded: %d settings, %d active badges",
            len(self._settings), len(self._badges),
        )

    def _load_settings(self) -> None:
        with Session(self._engine) as session:
            rows = session.scalars(select(Setting)).all()
            parsed: dict[str, Any] = {}
            for row in rows:
                try:
                    parsed[row.key] = json.loads(row.value_json)
                except (json.JSONDecodeError, TypeError):
                    parsed[row.key] = row.value_json

        with self._lock:
            self._settings = parsed

    def _load_badges(self) -> None:
        with Session(self._engine) as session:
            badges = session.scalars(
                select(Badge)
                .where(Badge.active.is_(True))
                .order_by(Badge.sort_order, Badge.id)
            ).all()
            for badge in badges:
                session.expunge(badge)

        with self._lock:
            self._badges = list(badges)

    def handle_notify(self, table_name: str) -> None:
        """Reload the slice backing *table_name*; unknown tables are ignored."""
        loaders = {
            "settings": self._load_settings,
            "badges": self._load_badges,
        }
        loader = loaders.get(table_name)
        if loader is None:
            logger.debug("Ignoring cache notify for table %r", table_name)
            return
        loader()
        logger.info("ConfigCache reloaded %s", table_name)

    # -------------------------------------------------------------------
    # Cache reads (thread-safe)
    # -------------------------------------------------------------------
    def get_active_badges(self) -> list[Badge]:
        with self._lock:
            return list(self._badges)

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Return the parsed JSON value for *key*, or *default*."""
        with self._lock:
            return self._settings.get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        val = self.get_setting(key)
        if val is None:
            return default
        try:
            return int(val)
        except (TypeError, ValueError):
            return default

