"""
Team service: create, list, read, update and delete teams.

Membership changes (invitations, role/status updates, removal) live in
``services.team_members``.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.project import ProjectFacts
from core.domain.team import MemberStatus, Membership, TeamFacts, TeamRole
from core.domain.user import Actor
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.plans import TEAM_DEFAULTS
from core.policies import (
    can_create_team,
    can_delete_team,
    can_update_team,
    can_view_project,
    can_view_team,
    visible_members,
)
from core.slugs import slugify
from infrastructure.database.models.activity import ActivityAction, ResourceType
from infrastructure.database.models.project import Project
from infrastructure.database.models.team import Team, TeamMember
from infrastructure.database.models.user import User
from infrastructure.database.queries import next_numbered_slug
from services.activity_log import ActivityLogService, RequestContext
from services.memberships import get_membership

logger = logging.getLogger(__name__)

# Times an insert is retried after losing a slug race to a concurrent request
SLUG_RACE_RETRIES = 3

MIN_TEAM_NAME_LENGTH = 2


@dataclass
class TeamListing:
    team: Team
    role: str
    status: str
    accepted_at: Optional[datetime]
    member_count: int


@dataclass
class TeamDetail:
    team: Team
    membership: Membership
    members: list[tuple[TeamMember, Optional[User]]] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)
    member_count: int = 0


class TeamService:
    """Team lifecycle for one request."""

    def __init__(self, db: AsyncSession, context: Optional[RequestContext] = None):
        self.db = db
        self.activity = ActivityLogService(db, context)

    async def get_live_team(self, team_id: str) -> Optional[Team]:
        result = await self.db.execute(select(Team).where(Team.id == team_id, Team.live()))
        return result.scalar_one_or_none()

    async def count_active_members(self, team_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(TeamMember).where(
                TeamMember.team_id == team_id,
                TeamMember.status == MemberStatus.ACTIVE.value,
            )
        )
        return int(result.scalar() or 0)

    async def create_team(
        self,
        actor: Actor,
        name: str,
        slug: Optional[str] = None,
        description: Optional[str] = None,
        subscription_tier: Optional[str] = None,
    ) -> Team:
        """
        Create a team with the actor as its single active owner.

        Raises:
            ForbiddenError: actor has no paid tier
            ValidationError: name too short
            ConflictError: slug could not be allocated
        """
        if not can_create_team(actor):
            raise ForbiddenError("Team features require a Pro or Team subscription")

        name = (name or "").strip()
        if len(name) < MIN_TEAM_NAME_LENGTH:
            raise ValidationError("name", f"must be at least {MIN_TEAM_NAME_LENGTH} characters")

        base_slug = slugify(slug or name, fallback="team")
        description = (description or "").strip() or None

        for attempt in range(SLUG_RACE_RETRIES):
            candidate = await next_numbered_slug(self.db, Team, base_slug)
            try:
                team = await self._insert_team(actor, name, candidate, description, subscription_tier)
            except IntegrityError:
                await self.db.rollback()
                logger.warning("Team slug %s taken concurrently, retrying (attempt %d)", candidate, attempt + 1)
                continue
            logger.info("Team %s created by %s", team.id, actor.id, extra={"user_id": actor.id, "team_id": team.id})
            return team

        raise ConflictError("Could not allocate a unique team slug, please try another name")

    async def _insert_team(
        self,
        actor: Actor,
        name: str,
        slug: str,
        description: Optional[str],
        subscription_tier: Optional[str],
    ) -> Team:
        now = datetime.now(UTC)
        team = Team(
            name=name,
            slug=slug,
            description=description,
            created_by=actor.id,
            subscription_tier=subscription_tier or TEAM_DEFAULTS["subscription_tier"],
        )
        self.db.add(team)
        await self.db.flush()

        self.db.add(
            TeamMember(
                team_id=team.id,
                user_id=actor.id,
                role=TeamRole.OWNER.value,
                status=MemberStatus.ACTIVE.value,
                invited_at=now,
                accepted_at=now,
            )
        )
        await self.db.execute(
            update(User).where(User.id == actor.id).values(current_team_id=team.id)
        )
        self.activity.record(
            user_id=actor.id,
            team_id=team.id,
            action=ActivityAction.TEAM_CREATED.value,
            resource_type=ResourceType.TEAM.value,
            resource_id=team.id,
            details={"team_name": team.name, "team_slug": team.slug},
        )
        await self.db.commit()
        await self.db.refresh(team)
        return team

    async def list_user_teams(self, actor: Actor) -> list[TeamListing]:
        """Teams the actor is an active member of, most recently joined first."""
        result = await self.db.execute(
            select(Team, TeamMember)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .where(
                TeamMember.user_id == actor.id,
                TeamMember.status == MemberStatus.ACTIVE.value,
                Team.live(),
            )
            .order_by(TeamMember.accepted_at.desc())
        )
        rows = result.all()

        listings = []
        for team, member in rows:
            if not can_view_team(actor, TeamFacts.from_row(team), Membership.from_row(member)):
                continue
            listings.append(
                TeamListing(
                    team=team,
                    role=member.role,
                    status=member.status,
                    accepted_at=member.accepted_at,
                    member_count=await self.count_active_members(team.id),
                )
            )
        return listings

    async def get_team(self, actor: Actor, team_id: str) -> TeamDetail:
        """
        Team with its members and projects, as the actor may see them.

        Non-members get NotFoundError so team existence does not leak.
        """
        team = await self.get_live_team(team_id)
        membership = await get_membership(self.db, team_id, actor.id)
        if team is None or not can_view_team(actor, TeamFacts.from_row(team), membership):
            raise NotFoundError("Team not found")

        member_rows = await self.db.execute(
            select(TeamMember, User)
            .outerjoin(User, User.id == TeamMember.user_id)
            .where(
                TeamMember.team_id == team_id,
                TeamMember.status != MemberStatus.REMOVED.value,
            )
            .order_by(TeamMember.invited_at)
        )
        pairs = list(member_rows.all())
        allowed = {m.id for m in visible_members(actor, membership, (Membership.from_row(r) for r, _ in pairs))}
        members = [(row, user) for row, user in pairs if row.id in allowed]

        project_rows = await self.db.execute(
            select(Project)
            .where(Project.team_id == team_id, Project.live())
            .order_by(Project.created_at.desc())
        )
        projects = [
            p for p in project_rows.scalars().all()
            if can_view_project(actor, ProjectFacts.from_row(p), membership)
        ]

        return TeamDetail(
            team=team,
            membership=membership,
            members=members,
            projects=projects,
            member_count=sum(1 for row, _ in pairs if row.status == MemberStatus.ACTIVE.value),
        )

    async def update_team(
        self,
        actor: Actor,
        team_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        avatar_url: Optional[str] = None,
    ) -> Team:
        team = await self.get_live_team(team_id)
        membership = await get_membership(self.db, team_id, actor.id)
        facts = TeamFacts.from_row(team) if team else None
        if not can_view_team(actor, facts, membership):
            raise NotFoundError("Team not found")
        if not can_update_team(actor, facts, membership):
            raise ForbiddenError("Only team owners and admins can update the team")

        changes = {}
        if name is not None:
            name = name.strip()
            if len(name) < MIN_TEAM_NAME_LENGTH:
                raise ValidationError("name", f"must be at least {MIN_TEAM_NAME_LENGTH} characters")
            changes["name"] = name
        if description is not None:
            changes["description"] = description.strip() or None
        if avatar_url is not None:
            changes["avatar_url"] = avatar_url or None

        for key, value in changes.items():
            setattr(team, key, value)

        self.activity.record(
            user_id=actor.id,
            team_id=team.id,
            action=ActivityAction.TEAM_UPDATED.value,
            resource_type=ResourceType.TEAM.value,
            resource_id=team.id,
            details={"fields": sorted(changes)},
        )
        await self.db.commit()
        await self.db.refresh(team)
        return team

    async def delete_team(self, actor: Actor, team_id: str) -> None:
        """Soft-delete a team. Owner only."""
        team = await self.get_live_team(team_id)
        membership = await get_membership(self.db, team_id, actor.id)
        facts = TeamFacts.from_row(team) if team else None
        if not can_view_team(actor, facts, membership):
            raise NotFoundError("Team not found")
        if not can_delete_team(actor, facts, membership):
            raise ForbiddenError("Only the team owner can delete the team")

        team.deleted_at = datetime.now(UTC)
        team.is_active = False
        await self.db.execute(
            update(User).where(User.current_team_id == team_id).values(current_team_id=None)
        )
        self.activity.record(
            user_id=actor.id,
            team_id=team.id,
            action=ActivityAction.TEAM_DELETED.value,
            resource_type=ResourceType.TEAM.value,
            resource_id=team.id,
            details={"team_name": team.name, "team_slug": team.slug},
        )
        await self.db.commit()
        logger.info("Team %s deleted by %s", team_id, actor.id)
