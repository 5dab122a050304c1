"""
Monthly scaffold-generation quota.

The quota check and the increment are a single conditional UPDATE, so two
concurrent requests for a user one generation short of the limit can never
both pass. The reserved slot is committed before the generator is called and
handed back if the generation does not complete.
"""

import logging
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import NotFoundError, QuotaExceededError
from core.plans import UNLIMITED, get_generation_limit, next_reset_date
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)


class GenerationQuotaService:
    """Reserve, release and reset a user's monthly generation allowance."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, user_id: str) -> User:
        # Counters are changed by bulk UPDATEs; reload over any cached instance
        result = await self.db.execute(
            select(User).where(User.id == user_id).execution_options(populate_existing=True)
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def reset_if_due(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """
        Zero the monthly counter once ``usage_reset_date`` has passed.

        A user without a reset date just gets one; their counter is left as is.
        The WHERE clause repeats the due check so concurrent resets collapse
        into one.

        Returns:
            True if the counter was reset
        """
        now = now or datetime.now(UTC)
        next_reset = next_reset_date(now)

        await self.db.execute(
            update(User)
            .where(User.id == user_id, User.usage_reset_date.is_(None))
            .values(usage_reset_date=next_reset)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id, User.usage_reset_date <= now)
            .values(monthly_generations=0, usage_reset_date=next_reset)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        reset = (result.rowcount or 0) > 0
        if reset:
            logger.info(f"Reset monthly generation usage for user {user_id}")
        return reset

    async def reserve(self, user_id: str, tier: Optional[str]) -> int:
        """
        Claim one generation slot, or raise QuotaExceededError.

        The claim is committed immediately; no lock is held afterwards.

        Returns:
            The tier's monthly limit
        """
        limit = get_generation_limit(tier)

        stmt = update(User).where(User.id == user_id)
        if limit != UNLIMITED:
            stmt = stmt.where(User.monthly_generations < limit)
        result = await self.db.execute(
            stmt.values(monthly_generations=User.monthly_generations + 1)
        )

        if result.rowcount != 1:
            await self.db.rollback()
            current = (await self._load(user_id)).monthly_generations
            logger.info(
                "Generation quota exhausted for user %s (%d/%d)",
                user_id,
                current,
                limit,
                extra={"user_id": user_id},
            )
            raise QuotaExceededError(
                limit=limit,
                current=current,
                message=f"Monthly generation limit of {limit} reached. Upgrade your plan for more.",
            )

        await self.db.commit()
        return limit

    async def release(self, user_id: str) -> None:
        """Hand back a slot claimed by ``reserve`` for a generation that did not complete."""
        await self.db.execute(
            update(User)
            .where(User.id == user_id, User.monthly_generations > 0)
            .values(monthly_generations=User.monthly_generations - 1)
        )
        await self.db.commit()
        logger.info(f"Released generation slot for user {user_id}")

    async def get_usage(self, user_id: str) -> dict:
        user = await self._load(user_id)
        limit = get_generation_limit(user.subscription_tier)
        return {
            "monthly_generations": user.monthly_generations,
            "projects_generated": user.projects_generated,
            "limit": limit,
            "remaining": None if limit == UNLIMITED else max(limit - user.monthly_generations, 0),
            "usage_reset_date": user.usage_reset_date,
        }
