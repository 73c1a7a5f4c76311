"""
skillbridge.database.models — SQLAlchemy 2.0 Data Models
=========================================================

Tables:
- profiles            — Member profiles (identity-bound, never hard-deleted)
- connection_requests — Directed connection proposals (pending/accepted/declined)
- activity_events     — Append-only point ledger with idempotent insert
- streak_states       — Derived connection-streak snapshot per user
- badges              — Badge definitions with declarative triggers
- badge_grants        — Earned badges, unique per (user, badge)
- match_suggestions   — Generated match suggestions
- notifications       — Notification requests for the external sink
- skill_swaps         — Logged teach/learn swaps
- learning_sessions   — Requested micro-learning sessions
- skill_endorsements  — Peer endorsements of profile skills
- monthly_groups      — Monthly networking groups keyed by YYYY-MM
- group_members       — Group membership, one group per user per month
- settings            — Admin-configurable key-value store

List-valued columns (skills, working styles, reasons) are JSON arrays at
rest and plain Python lists in code.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from skillbridge.constants import utcnow


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all SkillBridge ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ActionKind(enum.StrEnum):
    """All point-earning actions recorded in the ledger."""
    CONNECT = "connect"
    MEET = "meet"
    SWAP = "swap"
    ICEBREAKER = "icebreaker"
    TEACH_SESSION = "teach_session"
    COMPLETE_LEARNING = "complete_learning"
    ENDORSE_SKILL = "endorse_skill"
    RECEIVE_ENDORSEMENT = "receive_endorsement"
    STREAK_BONUS = "streak_bonus"


class ConnectionStatus(enum.StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class ConnectionType(enum.StrEnum):
    DIRECT = "direct"
    SKILL_MATCH = "skill_match"


class SuggestionStatus(enum.StrEnum):
    PENDING = "pending"
    CONNECTED = "connected"
    DISMISSED = "dismissed"


class SessionStatus(enum.StrEnum):
    REQUESTED = "requested"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BadgeTrigger(enum.StrEnum):
    """Defines what condition causes a badge to be granted."""
    EVENT_COUNT = "event_count"
    SWAPS_TAUGHT = "swaps_taught"
    STREAK_REACHED = "streak_reached"
    PROFILE_FIELD = "profile_field"
    SKILL_COUNT = "skill_count"
    POINTS_MILESTONE = "points_milestone"
    CONNECTION_COUNT = "connection_count"
    MANUAL = "manual"


class NotificationType(enum.StrEnum):
    CONNECTION_REQUEST = "connection_request"
    SKILL_ENDORSEMENT = "skill_endorsement"
    LEARNING_REQUEST = "learning_request"


class GroupType(enum.StrEnum):
    """How a monthly networking group meets."""
    CAFETERIA = "cafeteria"
    VIDEO = "video"
    SKILL_SHARING = "skill_sharing"


# ---------------------------------------------------------------------------
# Profiles: one row per member
# ---------------------------------------------------------------------------
class Profile(Base):
    __tablename__ = "profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[str | None] = mapped_column(String(100), default=None)
    bio: Mapped[str | None] = mapped_column(Text, default=None)
    skills: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    working_styles: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    learning_now: Mapped[str | None] = mapped_column(Text, default=None)
    can_teach: Mapped[str | None] = mapped_column(Text, default=None)
    total_points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    connection_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    badge_grants: Mapped[list[BadgeGrant]] = relationship(back_populates="profile")

    __table_args__ = (
        Index("ix_profiles_role_points", "role", "total_points"),
        Index("ix_profiles_visible", "is_visible"),
    )

    def __repr__(self) -> str:
        return f"<Profile user={self.user_id} name={self.display_name!r} pts={self.total_points}>"


# ---------------------------------------------------------------------------
# ConnectionRequest: directed proposal between two members
# ---------------------------------------------------------------------------
class ConnectionRequest(Base):
    """A connection proposal.

    ``active_pair_key`` holds the unordered pair key while the request is
    pending or accepted and is cleared on decline; its UNIQUE constraint
    keeps at most one active request per pair even under racing inserts.
    """
    __tablename__ = "connection_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    requester_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    target_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ConnectionStatus.PENDING.value
    )
    connection_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ConnectionType.DIRECT.value
    )
    message: Mapped[str | None] = mapped_column(Text, default=None)
    active_pair_key: Mapped[str | None] = mapped_column(
        String(140), nullable=True, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        Index("ix_conn_requests_requester_status", "requester_id", "status"),
        Index("ix_conn_requests_target_status", "target_id", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<ConnectionRequest id={self.id} {self.requester_id}->{self.target_id} "
            f"status={self.status}>"
        )


# ---------------------------------------------------------------------------
# ActivityEvent: append-only point ledger
# ---------------------------------------------------------------------------
class ActivityEvent(Base):
    __tablename__ = "activity_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    kind: Mapped[str] = mapped_column(String(30), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    # Natural key for idempotent inserts (e.g. streak bonuses)
    source_key: Mapped[str | None] = mapped_column(String(150), nullable=True, unique=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_activity_events_user_time", "user_id", "timestamp"),
        Index("ix_activity_events_user_kind_time", "user_id", "kind", "timestamp"),
    )

    def __repr__(self) -> str:
        return f"<ActivityEvent id={self.id} user={self.user_id} kind={self.kind} pts={self.points}>"


# ---------------------------------------------------------------------------
# StreakStateRecord: derived snapshot, always a replay of connect events
# ---------------------------------------------------------------------------
class StreakStateRecord(Base):
    __tablename__ = "streak_states"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), primary_key=True
    )
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    best_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_connection_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return (
            f"<StreakStateRecord user={self.user_id} "
            f"current={self.current_streak} best={self.best_streak}>"
        )


# ---------------------------------------------------------------------------
# Badge: definition with a declarative trigger
# ---------------------------------------------------------------------------
class Badge(Base):
    __tablename__ = "badges"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    icon: Mapped[str | None] = mapped_column(String(20), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    trigger_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=BadgeTrigger.MANUAL.value
    )
    trigger_config: Mapped[dict | None] = mapped_column(JSONB, default=dict)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    grants: Mapped[list[BadgeGrant]] = relationship(back_populates="badge")

    def __repr__(self) -> str:
        return f"<Badge id={self.id!r} name={self.name!r}>"


# ---------------------------------------------------------------------------
# BadgeGrant: earned badges
# ---------------------------------------------------------------------------
class BadgeGrant(Base):
    __tablename__ = "badge_grants"

    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), primary_key=True
    )
    badge_id: Mapped[str] = mapped_column(
        String(50), ForeignKey("badges.id"), primary_key=True
    )
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    profile: Mapped[Profile] = relationship(back_populates="badge_grants")
    badge: Mapped[Badge] = relationship(back_populates="grants")

    def __repr__(self) -> str:
        return f"<BadgeGrant user={self.user_id} badge={self.badge_id}>"


# ---------------------------------------------------------------------------
# MatchSuggestion: ephemeral, regenerated on demand
# ---------------------------------------------------------------------------
class MatchSuggestion(Base):
    __tablename__ = "match_suggestions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    candidate_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    score: Mapped[int] = mapped_column(Integer, nullable=False)
    reasons: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SuggestionStatus.PENDING.value
    )
    # Generation cycle key (calendar month, "YYYY-MM")
    cycle: Mapped[str] = mapped_column(String(7), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        Index("ix_match_suggestions_user_status_score", "user_id", "status", "score"),
    )

    def __repr__(self) -> str:
        return (
            f"<MatchSuggestion id={self.id} {self.user_id}->{self.candidate_id} "
            f"score={self.score} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# Notification: requests handed to the external delivery sink
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False)
    type: Mapped[str] = mapped_column(String(40), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    payload: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    is_read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        Index("ix_notifications_recipient_time", "recipient_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Notification id={self.id} to={self.recipient_id} type={self.type}>"


# ---------------------------------------------------------------------------
# SkillSwap: one logged teach/learn exchange
# ---------------------------------------------------------------------------
class SkillSwap(Base):
    __tablename__ = "skill_swaps"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    teacher_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    learner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    skill_taught: Mapped[str] = mapped_column(String(100), nullable=False)
    skill_learned: Mapped[str] = mapped_column(String(100), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    rating: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        Index("ix_skill_swaps_teacher", "teacher_id"),
    )

    def __repr__(self) -> str:
        return f"<SkillSwap id={self.id} teacher={self.teacher_id} learner={self.learner_id}>"


# ---------------------------------------------------------------------------
# LearningSession: requested micro-learning session
# ---------------------------------------------------------------------------
class LearningSession(Base):
    __tablename__ = "learning_sessions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    teacher_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    learner_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    skill_topic: Mapped[str] = mapped_column(String(200), nullable=False)
    session_type: Mapped[str] = mapped_column(String(20), nullable=False, default="virtual")
    scheduled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SessionStatus.REQUESTED.value
    )
    notes: Mapped[str | None] = mapped_column(Text, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        Index("ix_learning_sessions_teacher_status", "teacher_id", "status"),
        Index("ix_learning_sessions_learner_status", "learner_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<LearningSession id={self.id} topic={self.skill_topic!r} status={self.status}>"


# ---------------------------------------------------------------------------
# SkillEndorsement: peer endorsement of a listed skill
# ---------------------------------------------------------------------------
class SkillEndorsement(Base):
    __tablename__ = "skill_endorsements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    endorser_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    endorsed_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), nullable=False
    )
    skill_id: Mapped[str] = mapped_column(String(100), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    __table_args__ = (
        UniqueConstraint(
            "endorser_id", "endorsed_id", "skill_id",
            name="uq_endorsements_endorser_endorsed_skill",
        ),
        Index("ix_endorsements_endorsed", "endorsed_id"),
    )

    def __repr__(self) -> str:
        return f"<SkillEndorsement {self.endorser_id}->{self.endorsed_id} skill={self.skill_id}>"


# ---------------------------------------------------------------------------
# MonthlyGroup: networking group formed for one calendar month
# ---------------------------------------------------------------------------
class MonthlyGroup(Base):
    __tablename__ = "monthly_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    month_year: Mapped[str] = mapped_column(String(7), nullable=False)
    group_name: Mapped[str] = mapped_column(String(100), nullable=False)
    group_type: Mapped[str] = mapped_column(String(20), nullable=False)
    meeting_time: Mapped[str | None] = mapped_column(String(50), default=None)
    meeting_location: Mapped[str | None] = mapped_column(String(100), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    members: Mapped[list[GroupMember]] = relationship(back_populates="group")

    __table_args__ = (
        UniqueConstraint("month_year", "group_name", name="uq_monthly_groups_month_name"),
        Index("ix_monthly_groups_month", "month_year"),
    )

    def __repr__(self) -> str:
        return f"<MonthlyGroup id={self.id} {self.month_year} {self.group_name!r}>"


# ---------------------------------------------------------------------------
# GroupMember: one row per (group, user); a user joins one group per month
# ---------------------------------------------------------------------------
class GroupMember(Base):
    __tablename__ = "group_members"

    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("monthly_groups.id"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("profiles.user_id"), primary_key=True
    )
    # Copied from the group so the one-group-per-month rule is a constraint
    month_year: Mapped[str] = mapped_column(String(7), nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member")
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )

    group: Mapped[MonthlyGroup] = relationship(back_populates="members")

    __table_args__ = (
        UniqueConstraint("user_id", "month_year", name="uq_group_members_user_month"),
    )

    def __repr__(self) -> str:
        return f"<GroupMember group={self.group_id} user={self.user_id}>"


# ---------------------------------------------------------------------------
# Setting: admin-configurable key-value store
# ---------------------------------------------------------------------------
class Setting(Base):
    """Key-value configuration store.

    Gameplay tuning knobs (point values, streak window, match threshold)
    live here so admins can adjust values without redeploying.  Values are
    stored as JSON strings; typed accessors live in
    :class:`~skillbridge.engine.cache.ConfigCache`.
    """
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_settings_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r} category={self.category!r}>"
