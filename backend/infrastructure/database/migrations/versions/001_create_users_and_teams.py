"""Create users, teams and team_members tables

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("display_name", sa.String(length=255), nullable=True),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("subscription_tier", sa.String(length=50), nullable=False, server_default="free"),
        sa.Column("subscription_expires", sa.DateTime(timezone=True), nullable=True),
        sa.Column("monthly_generations", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("projects_generated", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("usage_reset_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("current_team_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
        sa.CheckConstraint(
            "role IN ('user', 'pro_user', 'team_owner', 'team_admin', 'team_member', "
            "'moderator', 'admin', 'super_admin')",
            name="ck_users_role",
        ),
        sa.CheckConstraint(
            "subscription_tier IN ('free_trial', 'free', 'pro_monthly', 'pro_yearly', "
            "'team_monthly', 'team_yearly', 'enterprise', 'enterprise_trial', 'legacy', "
            "'suspended', 'churned')",
            name="ck_users_subscription_tier",
        ),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_current_team", "users", ["current_team_id"])
    op.create_index("ix_users_subscription", "users", ["subscription_tier", "subscription_expires"])

    op.create_table(
        "teams",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("avatar_url", sa.String(length=500), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column(
            "subscription_tier", sa.String(length=50), nullable=False, server_default="team_monthly"
        ),
        sa.Column("member_limit", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("project_limit", sa.Integer(), nullable=False, server_default="100"),
        sa.Column("monthly_generation_limit", sa.Integer(), nullable=False, server_default="500"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_teams_created_by", "teams", ["created_by"])
    # Slugs only need to be unique among live teams
    op.create_index(
        "uq_teams_slug_live",
        "teams",
        ["slug"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    op.create_table(
        "team_members",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("team_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("role", sa.String(length=50), nullable=False, server_default="member"),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="pending"),
        sa.Column("invited_email", sa.String(length=255), nullable=True),
        sa.Column("invitation_token", sa.String(length=255), nullable=True),
        sa.Column("invitation_message", sa.Text(), nullable=True),
        sa.Column("invitation_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("invited_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column(
            "invited_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("accepted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["team_id"], ["teams.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_by"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("invitation_token"),
        sa.CheckConstraint(
            "role IN ('owner', 'admin', 'member', 'guest')", name="ck_team_members_role"
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'suspended', 'removed')",
            name="ck_team_members_status",
        ),
    )
    op.create_index("ix_team_members_team_id", "team_members", ["team_id"])
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])
    op.create_index("ix_team_members_team_user", "team_members", ["team_id", "user_id"], unique=True)
    op.create_index("ix_team_members_team_status", "team_members", ["team_id", "status"])


def downgrade() -> None:
    op.drop_index("ix_team_members_team_status", table_name="team_members")
    op.drop_index("ix_team_members_team_user", table_name="team_members")
    op.drop_index("ix_team_members_user_id", table_name="team_members")
    op.drop_index("ix_team_members_team_id", table_name="team_members")
    op.drop_table("team_members")

    op.drop_index("uq_teams_slug_live", table_name="teams")
    op.drop_index("ix_teams_created_by", table_name="teams")
    op.drop_table("teams")

    op.drop_index("ix_users_subscription", table_name="users")
    op.drop_index("ix_users_current_team", table_name="users")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
