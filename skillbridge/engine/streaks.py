"""
skillbridge.engine.streaks — Connection Streak Replay
======================================================

Pure calculation: derive a streak snapshot by replaying connection
timestamps in ascending order.  No database I/O.

A connection within ``window`` of the previous one extends the streak;
a longer gap restarts it at 1.  If more than ``window`` has passed since
the last connection at ``now``, the current streak has lapsed to 0 while
the best streak is kept.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

from skillbridge.constants import as_utc

DEFAULT_WINDOW_DAYS = 7
DEFAULT_BONUS_THRESHOLD = 7


@dataclass(frozen=True, slots=True)
class StreakState:
    """Derived streak snapshot.

    ``bonus_crossings`` counts how many times the replay climbed to the
    bonus threshold; each crossing is worth exactly one streak bonus.
    """

    current_streak: int = 0
    best_streak: int = 0
    last_connection_at: datetime | None = None
    days_until_break: int = 0
    bonus_crossings: int = 0


def replay_streak(
    timestamps: Iterable[datetime],
    now: datetime,
    *,
    window_days: int = DEFAULT_WINDOW_DAYS,
    bonus_threshold: int = DEFAULT_BONUS_THRESHOLD,
) -> StreakState:
    """Replay connection *timestamps* (ascending) and return the streak at *now*."""
    window = timedelta(days=window_days)
    now = as_utc(now)

    current = 0
    best = 0
    crossings = 0
    last: datetime | None = None

    for ts in timestamps:
        ts = as_utc(ts)
        previous = current
        if last is None or ts - last <= window:
            current += 1
        else:
            current = 1
        if previous < bonus_threshold <= current:
            crossings += 1
        best = max(best, current)
        last = ts

    days_until_break = 0
    if last is not None:
        if now - last > window:
            current = 0
        days_since = max(0, (now - last).days)
        days_until_break = max(0, window_days - days_since)

    return StreakState(
        current_streak=current,
        best_streak=best,
        last_connection_at=last,
        days_until_break=days_until_break,
        bonus_crossings=crossings,
    )
