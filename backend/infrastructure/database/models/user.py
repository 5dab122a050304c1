"""
User database model.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from core.domain.user import SubscriptionTier, UserRole

from .base import Base, SoftDeleteMixin, TimestampMixin, enum_check


class User(Base, TimestampMixin, SoftDeleteMixin):
    """User account, provisioned on first authenticated request.

    Never hard-deleted; ``deleted_at`` keeps audit history intact.
    """

    __tablename__ = "users"

    # Primary key is the identity provider's subject id
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Basic info
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    display_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    role: Mapped[str] = mapped_column(
        String(50),
        default=UserRole.USER.value,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Subscription
    subscription_tier: Mapped[str] = mapped_column(
        String(50),
        default=SubscriptionTier.FREE.value,
        nullable=False,
    )
    subscription_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Usage counters, written by the generation quota service
    monthly_generations: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    projects_generated: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    usage_reset_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Team the UI opens by default. Plain column: teams reference users, not the reverse.
    current_team_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_users_current_team", "current_team_id"),
        Index("ix_users_subscription", "subscription_tier", "subscription_expires"),
        enum_check("role", UserRole, "ck_users_role"),
        enum_check("subscription_tier", SubscriptionTier, "ck_users_subscription_tier"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    @property
    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.role in (UserRole.ADMIN.value, UserRole.SUPER_ADMIN.value)
