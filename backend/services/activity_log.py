"""
Activity log service.

Every state-changing handler records exactly one entry through
``ActivityLogService.record`` before it commits, so the entry and the
mutation land in the same transaction.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.user import Actor
from core.policies import is_live_actor
from infrastructure.database.models.activity import ActivityLog
from services.memberships import get_active_memberships

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """Caller network details stored alongside audit entries."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ActivityLogService:
    """Append and read audit entries."""

    def __init__(self, db: AsyncSession, context: Optional[RequestContext] = None):
        self.db = db
        self.context = context or RequestContext()

    def record(
        self,
        *,
        user_id: Optional[str],
        action: str,
        resource_type: str,
        resource_id: Optional[str] = None,
        team_id: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> ActivityLog:
        """Stage an entry on the session. The caller commits it with its mutation."""
        entry = ActivityLog(
            user_id=user_id,
            team_id=team_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details or {},
            ip_address=(self.context.ip_address or None),
            user_agent=(self.context.user_agent or "")[:500] or None,
        )
        self.db.add(entry)
        logger.info(
            "activity %s on %s:%s",
            action,
            resource_type,
            resource_id,
            extra={"user_id": user_id, "team_id": team_id, "action": action},
        )
        return entry

    async def list_for_actor(
        self,
        actor: Actor,
        team_id: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[ActivityLog], int]:
        """
        Entries the actor may read, newest first, with the total before paging.

        The WHERE clause admits exactly what ``can_read_activity`` would, so
        count and paging run in SQL.
        """
        if not is_live_actor(actor):
            return [], 0

        query = select(ActivityLog)
        if not actor.is_admin:
            memberships = await get_active_memberships(self.db, actor.id)
            conditions = [ActivityLog.user_id == actor.id]
            if memberships:
                conditions.append(ActivityLog.team_id.in_(list(memberships)))
            query = query.where(or_(*conditions))
        if team_id:
            query = query.where(ActivityLog.team_id == team_id)
        if action:
            query = query.where(ActivityLog.action == action)

        counted = await self.db.execute(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), counted.scalar_one()


async def cleanup_old_activity_logs(db: AsyncSession, retention_days: int = 90) -> int:
    """
    Delete activity entries older than the retention window.

    Maintenance job only; request handlers never delete audit entries.

    Returns:
        Number of entries removed
    """
    cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    result = await db.execute(
        delete(ActivityLog)
        .where(ActivityLog.created_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    removed = result.rowcount or 0
    if removed:
        logger.info("Removed %d activity log entries older than %d days", removed, retention_days)
    return removed
