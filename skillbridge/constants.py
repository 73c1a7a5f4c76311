"""
skillbridge.constants — Shared Constants & Helpers
====================================================

Single source of truth for presentation constants and time handling.
Import from here instead of duplicating in services and routes.
"""

from __future__ import annotations

from datetime import UTC, datetime

# ---------------------------------------------------------------------------
# Leaderboard presentation
# ---------------------------------------------------------------------------
UNKNOWN_DEPARTMENT = "Unknown Department"

RANK_BADGES: list[str] = ["\U0001f947", "\U0001f948", "\U0001f949"]  # 🥇🥈🥉

# Streak flair tiers, highest first: (minimum streak, emoji)
STREAK_TIERS: list[tuple[int, str]] = [
    (30, "\U0001f525\U0001f525\U0001f525"),
    (14, "\U0001f525\U0001f525"),
    (7, "\U0001f525"),
    (0, "\U0001f4ab"),
]


def streak_emoji(streak: int) -> str:
    """Flair shown next to a streak counter."""
    for minimum, emoji in STREAK_TIERS:
        if streak >= minimum:
            return emoji
    return STREAK_TIERS[-1][1]


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------
def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round-trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def month_key(value: datetime | None = None) -> str:
    """Calendar-month key (``YYYY-MM``) shared by match cycles and monthly groups."""
    return as_utc(value or utcnow()).strftime("%Y-%m")
