"""Initial engagement & matching schema

Revision ID: 5c2e8d14a7b3
Revises:
Create Date: 2026-10-19 09:12:31.504118

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5c2e8d14a7b3'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _ts(name: str, nullable: bool = True) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def upgrade() -> None:
    # --- profiles ---
    op.create_table(
        "profiles",
        sa.Column("user_id", sa.String(64), primary_key=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("role", sa.String(100), nullable=True),
        sa.Column("bio", sa.Text, nullable=True),
        sa.Column("skills", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("working_styles", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("learning_now", sa.Text, nullable=True),
        sa.Column("can_teach", sa.Text, nullable=True),
        sa.Column("total_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("connection_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_visible", sa.Boolean, nullable=False, server_default=sa.true()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_profiles_role_points", "profiles", ["role", "total_points"])
    op.create_index("ix_profiles_visible", "profiles", ["is_visible"])

    # --- connection_requests ---
    op.create_table(
        "connection_requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("requester_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("target_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("connection_type", sa.String(20), nullable=False, server_default="direct"),
        sa.Column("message", sa.Text, nullable=True),
        # One active (pending/accepted) request per unordered pair
        sa.Column("active_pair_key", sa.String(140), nullable=True, unique=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index(
        "ix_conn_requests_requester_status", "connection_requests", ["requester_id", "status"],
    )
    op.create_index(
        "ix_conn_requests_target_status", "connection_requests", ["target_id", "status"],
    )

    # --- activity_events ---
    op.create_table(
        "activity_events",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("kind", sa.String(30), nullable=False),
        sa.Column("points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.Column("source_key", sa.String(150), nullable=True, unique=True),
        _ts("timestamp", nullable=False),
    )
    op.create_index("ix_activity_events_user_time", "activity_events", ["user_id", "timestamp"])
    op.create_index(
        "ix_activity_events_user_kind_time", "activity_events", ["user_id", "kind", "timestamp"],
    )

    # --- streak_states ---
    op.create_table(
        "streak_states",
        sa.Column("user_id", sa.String(64), sa.ForeignKey("profiles.user_id"), primary_key=True),
        sa.Column("current_streak", sa.Integer, nullable=False, server_default="0"),
        sa.Column("best_streak", sa.Integer, nullable=False, server_default="0"),
        _ts("last_connection_at"),
        _ts("updated_at"),
    )

    # --- badges / badge_grants ---
    op.create_table(
        "badges",
        sa.Column("id", sa.String(50), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("icon", sa.String(20), nullable=True),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("trigger_type", sa.String(30), nullable=False, server_default="manual"),
        sa.Column("trigger_config", postgresql.JSONB, nullable=True),
        sa.Column("active", sa.Boolean, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer, server_default="0"),
    )
    op.create_table(
        "badge_grants",
        sa.Column("user_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("badge_id", sa.String(50), sa.ForeignKey("badges.id"), nullable=False),
        _ts("granted_at"),
        sa.PrimaryKeyConstraint("user_id", "badge_id"),
    )

    # --- match_suggestions ---
    op.create_table(
        "match_suggestions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("candidate_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("score", sa.Integer, nullable=False),
        sa.Column("reasons", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("cycle", sa.String(7), nullable=False),
        _ts("created_at"),
    )
    op.create_index(
        "ix_match_suggestions_user_status_score",
        "match_suggestions", ["user_id", "status", "score"],
    )

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("recipient_id", sa.String(64), nullable=False),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("payload", postgresql.JSONB, nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        _ts("created_at"),
    )
    op.create_index(
        "ix_notifications_recipient_time", "notifications", ["recipient_id", "created_at"],
    )

    # --- skill_swaps ---
    op.create_table(
        "skill_swaps",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("teacher_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("learner_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("skill_taught", sa.String(100), nullable=False),
        sa.Column("skill_learned", sa.String(100), nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("rating", sa.Integer, nullable=True),
        _ts("created_at"),
    )
    op.create_index("ix_skill_swaps_teacher", "skill_swaps", ["teacher_id"])

    # --- learning_sessions ---
    op.create_table(
        "learning_sessions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("teacher_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("learner_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("skill_topic", sa.String(200), nullable=False),
        sa.Column("session_type", sa.String(20), nullable=False, server_default="virtual"),
        _ts("scheduled_at"),
        sa.Column("duration_minutes", sa.Integer, nullable=False, server_default="15"),
        sa.Column("status", sa.String(20), nullable=False, server_default="requested"),
        sa.Column("notes", sa.Text, nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index(
        "ix_learning_sessions_teacher_status", "learning_sessions", ["teacher_id", "status"],
    )
    op.create_index(
        "ix_learning_sessions_learner_status", "learning_sessions", ["learner_id", "status"],
    )

    # --- skill_endorsements ---
    op.create_table(
        "skill_endorsements",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("endorser_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("endorsed_id", sa.String(64), sa.ForeignKey("profiles.user_id"), nullable=False),
        sa.Column("skill_id", sa.String(100), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        _ts("created_at"),
        sa.UniqueConstraint(
            "endorser_id", "endorsed_id", "skill_id",
            name="uq_endorsements_endorser_endorsed_skill",
        ),
    )
    op.create_index("ix_endorsements_endorsed", "skill_endorsements", ["endorsed_id"])

    # --- settings ---
    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value_json", sa.Text, nullable=False),
        sa.Column("category", sa.String(50), nullable=False, server_default="general"),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_settings_category", "settings", ["category"])


def downgrade() -> None:
    for table in (
        "settings",
        "skill_endorsements",
        "learning_sessions",
        "skill_swaps",
        "notifications",
        "match_suggestions",
        "badge_grants",
        "badges",
        "streak_states",
        "activity_events",
        "connection_requests",
        "profiles",
    ):
        op.drop_table(table)
