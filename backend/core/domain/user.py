"""User domain entity."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Optional


class UserRole(StrEnum):
    """Platform-wide user roles."""

    USER = "user"
    PRO_USER = "pro_user"
    TEAM_OWNER = "team_owner"
    TEAM_ADMIN = "team_admin"
    TEAM_MEMBER = "team_member"
    MODERATOR = "moderator"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class SubscriptionTier(StrEnum):
    """Subscription tiers a user or team can hold."""

    FREE_TRIAL = "free_trial"
    FREE = "free"
    PRO_MONTHLY = "pro_monthly"
    PRO_YEARLY = "pro_yearly"
    TEAM_MONTHLY = "team_monthly"
    TEAM_YEARLY = "team_yearly"
    ENTERPRISE = "enterprise"
    ENTERPRISE_TRIAL = "enterprise_trial"
    LEGACY = "legacy"
    SUSPENDED = "suspended"
    CHURNED = "churned"


MODERATOR_ROLES = frozenset({UserRole.MODERATOR, UserRole.ADMIN, UserRole.SUPER_ADMIN})
ADMIN_ROLES = frozenset({UserRole.ADMIN, UserRole.SUPER_ADMIN})


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation, as seen by the access policies.

    Anonymous callers are represented by ``None`` rather than an Actor.
    """

    id: str
    role: str = UserRole.USER.value
    subscription_tier: str = SubscriptionTier.FREE.value
    subscription_expires: Optional[datetime] = None
    is_active: bool = True
    deleted_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "Actor":
        """Snapshot a persisted user row."""
        return cls(
            id=user.id,
            role=user.role,
            subscription_tier=user.subscription_tier,
            subscription_expires=user.subscription_expires,
            is_active=user.is_active,
            deleted_at=user.deleted_at,
        )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_moderator(self) -> bool:
        return self.role in MODERATOR_ROLES

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
