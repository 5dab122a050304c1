"""
Lookups that resolve the membership and collaboration snapshots the access
policies need. Read-only; no authorization happens here.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.project import Collaboration, CollaboratorStatus
from core.domain.team import MemberStatus, Membership
from infrastructure.database.models.project import ProjectCollaborator
from infrastructure.database.models.team import TeamMember


async def get_membership(
    db: AsyncSession,
    team_id: Optional[str],
    user_id: Optional[str],
) -> Optional[Membership]:
    """The user's team_members row for a team, in any status."""
    if not team_id or not user_id:
        return None
    result = await db.execute(
        select(TeamMember).where(
            TeamMember.team_id == team_id,
            TeamMember.user_id == user_id,
        )
    )
    row = result.scalar_one_or_none()
    return Membership.from_row(row) if row else None


async def get_active_memberships(db: AsyncSession, user_id: str) -> dict[str, Membership]:
    """Active memberships of a user, keyed by team id."""
    result = await db.execute(
        select(TeamMember).where(
            TeamMember.user_id == user_id,
            TeamMember.status == MemberStatus.ACTIVE.value,
        )
    )
    return {row.team_id: Membership.from_row(row) for row in result.scalars().all()}


async def get_collaboration(
    db: AsyncSession,
    project_id: str,
    user_id: Optional[str],
) -> Optional[Collaboration]:
    if not user_id:
        return None
    result = await db.execute(
        select(ProjectCollaborator).where(
            ProjectCollaborator.project_id == project_id,
            ProjectCollaborator.user_id == user_id,
        )
    )
    row = result.scalar_one_or_none()
    return Collaboration.from_row(row) if row else None


async def get_active_collaborations(db: AsyncSession, user_id: str) -> dict[str, Collaboration]:
    """Active collaborator grants of a user, keyed by project id."""
    result = await db.execute(
        select(ProjectCollaborator).where(
            ProjectCollaborator.user_id == user_id,
            ProjectCollaborator.status == CollaboratorStatus.ACTIVE.value,
        )
    )
    return {row.project_id: Collaboration.from_row(row) for row in result.scalars().all()}
