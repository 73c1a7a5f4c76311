"""Monthly networking groups

Revision ID: 8a41f0c9d2e6
Revises: 5c2e8d14a7b3
Create Date: 2026-10-19 14:03:52.118204

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8a41f0c9d2e6'
down_revision: str | Sequence[str] | None = '5c2e8d14a7b3'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "monthly_groups",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("month_year", sa.String(7), nullable=False),
        sa.Column("group_name", sa.String(100), nullable=False),
        sa.Column("group_type", sa.String(20), nullable=False),
        sa.Column("meeting_time", sa.String(50), nullable=True),
        sa.Column("meeting_location", sa.String(100), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("month_year", "group_name", name="uq_monthly_groups_month_name"),
    )
    op.create_index("ix_monthly_groups_month", "monthly_groups", ["month_year"])

    op.create_table(
        "group_members",
        sa.Column(
            "group_id", sa.Integer, sa.ForeignKey("monthly_groups.id"), primary_key=True,
        ),
        sa.Column(
            "user_id", sa.String(64), sa.ForeignKey("profiles.user_id"), primary_key=True,
        ),
        sa.Column("month_year", sa.String(7), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="member"),
        sa.Column("joined_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("user_id", "month_year", name="uq_group_members_user_month"),
    )


def downgrade() -> None:
    op.drop_table("group_members")
    op.drop_index("ix_monthly_groups_month", table_name="monthly_groups")
    op.drop_table("monthly_groups")
