"""
Plan configuration for subscription tiers.

This module is the single source of truth for generation quotas and for
which tiers count as paid. It lives in core/ so both service and API layers
can import from it without creating circular dependencies.
"""

from datetime import UTC, datetime
from typing import Optional

from core.domain.user import SubscriptionTier

# Sentinel for "no monthly cap"
UNLIMITED = -1

# Scaffold generations allowed per calendar month, by user tier
GENERATION_LIMITS = {
    SubscriptionTier.FREE_TRIAL.value: 3,
    SubscriptionTier.FREE.value: 3,
    SubscriptionTier.PRO_MONTHLY.value: 50,
    SubscriptionTier.PRO_YEARLY.value: 50,
    SubscriptionTier.TEAM_MONTHLY.value: 100,
    SubscriptionTier.TEAM_YEARLY.value: 100,
    SubscriptionTier.ENTERPRISE.value: UNLIMITED,
    SubscriptionTier.ENTERPRISE_TRIAL.value: 100,
    SubscriptionTier.LEGACY.value: 3,
    SubscriptionTier.SUSPENDED.value: 0,
    SubscriptionTier.CHURNED.value: 3,
}

# Tiers that unlock premium templates and team creation
PREMIUM_TIERS = frozenset({
    SubscriptionTier.PRO_MONTHLY.value,
    SubscriptionTier.PRO_YEARLY.value,
    SubscriptionTier.TEAM_MONTHLY.value,
    SubscriptionTier.TEAM_YEARLY.value,
    SubscriptionTier.ENTERPRISE.value,
})

# Defaults applied to newly created teams
TEAM_DEFAULTS = {
    "subscription_tier": SubscriptionTier.TEAM_MONTHLY.value,
    "member_limit": 5,
    "project_limit": 100,
    "monthly_generation_limit": 500,
}


def get_generation_limit(tier: Optional[str]) -> int:
    """Monthly generation limit for a tier; unknown tiers get the free allowance."""
    return GENERATION_LIMITS.get(tier or "free", GENERATION_LIMITS[SubscriptionTier.FREE.value])


def is_premium_tier(tier: Optional[str], expires_at: Optional[datetime] = None, now: Optional[datetime] = None) -> bool:
    """True for a paid tier whose subscription has not lapsed.

    A missing expiry means the subscription is open-ended.
    """
    if tier not in PREMIUM_TIERS:
        return False
    if expires_at is None:
        return True
    now = now or datetime.now(UTC)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=UTC)
    return expires_at > now


def next_reset_date(now: Optional[datetime] = None) -> datetime:
    """First instant of the next calendar month, in UTC."""
    now = now or datetime.now(UTC)
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=UTC)
    return datetime(now.year, now.month + 1, 1, tzinfo=UTC)
