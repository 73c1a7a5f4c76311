"""
SkillBridge — Workplace Networking Engagement & Matching Engine
================================================================
Matches colleagues by skills and learning goals, runs the connection
request lifecycle, and turns networking activity into points, streaks,
badges and team leaderboards.

Package layout::

    skillbridge/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Shared constants + time helpers
    ├── errors.py          # Engagement error taxonomy
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default settings + badge catalogue
    ├── engine/
    │   ├── events.py      # LedgerEvent dataclass + base point values
    │   ├── matching.py    # Match scorer (pure)
    │   ├── streaks.py     # Streak replay (pure)
    │   ├── badges.py      # Badge trigger registry (pure)
    │   ├── leaderboard.py # Department aggregation (pure)
    │   ├── connections.py # Connection request state machine rules
    │   └── cache.py       # In-memory settings + badge cache
    ├── services/
    │   ├── ledger_service.py     # Ledger append + derived-state pipeline
    │   ├── streak_service.py     # Streak persistence + bonus emission
    │   ├── badge_service.py      # Guarded badge granting
    │   ├── connection_service.py # Connection lifecycle with CAS
    │   ├── match_service.py      # Suggestion generation + actions
    │   ├── leaderboard_service.py
    │   ├── profile_service.py
    │   ├── activity_service.py   # Meetups, swaps, icebreakers, endorsements
    │   ├── learning_service.py   # Learning sessions
    │   ├── notification_service.py
    │   └── reconciliation_service.py
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # Dependency injection (engine, cache, caller)
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
