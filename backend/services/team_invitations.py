"""
Team invitation background maintenance.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.team import MemberStatus
from infrastructure.database.models.team import TeamMember

logger = logging.getLogger(__name__)


async def expire_old_invitations(db: AsyncSession) -> int:
    """
    Delete pending invitations whose expiry has passed.

    Only rows with an ``invitation_expires_at`` are candidates, so nothing
    happens while invitation expiry is not configured. Pending rows have no
    downstream references and are removed outright.

    Args:
        db: Database session

    Returns:
        Number of invitations deleted
    """
    result = await db.execute(
        delete(TeamMember).where(
            TeamMember.status == MemberStatus.PENDING.value,
            TeamMember.invitation_expires_at.is_not(None),
            TeamMember.invitation_expires_at < datetime.now(UTC),
        ).execution_options(synchronize_session=False)
    )
    expired_count = result.rowcount or 0

    if expired_count > 0:
        await db.commit()
        logger.info(f"Deleted {expired_count} expired team invitations")

    return expired_count
