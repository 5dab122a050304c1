"""
Team and multi-tenancy database models.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from core.domain.team import MemberStatus, TeamRole
from core.plans import TEAM_DEFAULTS

from .base import Base, SoftDeleteMixin, TimestampMixin, enum_check, utcnow


class Team(Base, TimestampMixin, SoftDeleteMixin):
    """Team/organization model for multi-tenancy."""

    __tablename__ = "teams"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Billing and limits (shared across all members)
    subscription_tier: Mapped[str] = mapped_column(
        String(50), default=TEAM_DEFAULTS["subscription_tier"], nullable=False
    )
    member_limit: Mapped[int] = mapped_column(
        Integer, default=TEAM_DEFAULTS["member_limit"], nullable=False
    )
    project_limit: Mapped[int] = mapped_column(
        Integer, default=TEAM_DEFAULTS["project_limit"], nullable=False
    )
    monthly_generation_limit: Mapped[int] = mapped_column(
        Integer, default=TEAM_DEFAULTS["monthly_generation_limit"], nullable=False
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        # Slugs are unique among live teams; this index is the final arbiter for races
        Index(
            "uq_teams_slug_live",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, name={self.name}, slug={self.slug})>"


class TeamMember(Base, TimestampMixin):
    """Membership row. Doubles as the invitation while status is pending.

    Pending and removed rows may be hard-deleted; nothing references them.
    """

    __tablename__ = "team_members"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Foreign keys
    team_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Null until an email-only invitation is accepted
    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    role: Mapped[str] = mapped_column(
        String(50), default=TeamRole.MEMBER.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(50), default=MemberStatus.PENDING.value, nullable=False
    )

    # Invitation tracking
    invited_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    invitation_token: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True, unique=True
    )
    invitation_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    invitation_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    invited_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    invited_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    accepted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        Index("ix_team_members_team_user", "team_id", "user_id", unique=True),
        Index("ix_team_members_team_status", "team_id", "status"),
        enum_check("role", TeamRole, "ck_team_members_role"),
        enum_check("status", MemberStatus, "ck_team_members_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<TeamMember(id={self.id}, team_id={self.team_id}, user_id={self.user_id}, "
            f"role={self.role}, status={self.status})>"
        )
