"""Create template_ratings table

Revision ID: 004
Revises: 003
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "004"
down_revision: str | None = "003"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "template_ratings",
        sa.Column("id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("template_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("review", sa.Text(), nullable=True),
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
        sa.ForeignKeyConstraint(["template_id"], ["templates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="ck_template_ratings_rating"),
    )
    op.create_index("ix_template_ratings_template_id", "template_ratings", ["template_id"])
    op.create_index("ix_template_ratings_user_id", "template_ratings", ["user_id"])
    op.create_index(
        "uq_template_ratings_template_user",
        "template_ratings",
        ["template_id", "user_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("uq_template_ratings_template_user", table_name="template_ratings")
    op.drop_index("ix_template_ratings_user_id", table_name="template_ratings")
    op.drop_index("ix_template_ratings_template_id", table_name="template_ratings")
    op.drop_table("template_ratings")
