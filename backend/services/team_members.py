"""
Team membership service: invitations, acceptance, role/status updates and removal.

A ``team_members`` row is both the invitation (status ``pending``) and the
membership once accepted. Exactly one row per team holds role ``owner`` with
status ``active``; every code path below preserves that.
"""

import logging
import re
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.team import (
    INVITABLE_ROLES,
    MEMBER_STATUS_TRANSITIONS,
    MemberStatus,
    Membership,
    TeamFacts,
    TeamRole,
)
from core.domain.user import Actor
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.policies import (
    can_accept_invitation,
    can_insert_team_member,
    can_leave_team,
    can_manage_team_member,
    can_view_team,
    visible_members,
)
from infrastructure.config.settings import settings
from infrastructure.database.models.activity import ActivityAction, ResourceType
from infrastructure.database.models.team import Team, TeamMember
from infrastructure.database.models.user import User
from services.activity_log import ActivityLogService, RequestContext
from services.memberships import get_membership

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def invitation_expired(member: TeamMember, now: Optional[datetime] = None) -> bool:
    expires_at = _as_utc(member.invitation_expires_at)
    return expires_at is not None and expires_at <= (now or datetime.now(UTC))


def build_invite_url(token: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/team/invite?token={token}"


@dataclass
class InvitationPreview:
    """What the accept page shows before the invitee signs in."""

    member: TeamMember
    team: Team
    inviter: Optional[User]


class TeamMemberService:
    """Membership mutations for one request."""

    def __init__(self, db: AsyncSession, context: Optional[RequestContext] = None):
        self.db = db
        self.activity = ActivityLogService(db, context)

    async def _live_team(self, team_id: str, lock: bool = False) -> Optional[Team]:
        query = select(Team).where(Team.id == team_id, Team.live())
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _member_row(self, team_id: str, member_id: str) -> Optional[TeamMember]:
        result = await self.db.execute(
            select(TeamMember).where(TeamMember.id == member_id, TeamMember.team_id == team_id)
        )
        return result.scalar_one_or_none()

    async def _count_active(self, team_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(TeamMember).where(
                TeamMember.team_id == team_id,
                TeamMember.status == MemberStatus.ACTIVE.value,
            )
        )
        return int(result.scalar() or 0)

    async def _viewable_team(self, actor: Actor, team_id: str) -> tuple[Team, Optional[Membership]]:
        team = await self._live_team(team_id)
        membership = await get_membership(self.db, team_id, actor.id)
        if team is None or not can_view_team(actor, TeamFacts.from_row(team), membership):
            raise NotFoundError("Team not found")
        return team, membership

    # ------------------------------------------------------------------
    # Invitations
    # ------------------------------------------------------------------

    async def invite_member(
        self,
        actor: Actor,
        team_id: str,
        email: str,
        role: str = TeamRole.MEMBER.value,
        message: Optional[str] = None,
    ) -> tuple[TeamMember, str]:
        """
        Create a pending membership and return it with the invite link.

        Raises:
            ValidationError: malformed email or a role that cannot be invited
            NotFoundError: team missing or actor not a member
            ForbiddenError: actor is not an active owner/admin
            ConflictError: the invitee is already a member or already invited
        """
        email = (email or "").strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("email", "must be a valid email address")
        if role not in INVITABLE_ROLES:
            raise ValidationError("role", f"must be one of {', '.join(sorted(INVITABLE_ROLES))}")

        team, membership = await self._viewable_team(actor, team_id)
        if not can_insert_team_member(actor, TeamFacts.from_row(team), membership, role):
            raise ForbiddenError("Only team owners and admins can invite members")

        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email, User.live())
        )
        invitee = result.scalar_one_or_none()

        existing: Optional[TeamMember] = None
        if invitee is not None:
            result = await self.db.execute(
                select(TeamMember).where(
                    TeamMember.team_id == team_id,
                    TeamMember.user_id == invitee.id,
                )
            )
            existing = result.scalar_one_or_none()
        if existing is None:
            result = await self.db.execute(
                select(TeamMember).where(
                    TeamMember.team_id == team_id,
                    func.lower(TeamMember.invited_email) == email,
                    TeamMember.status == MemberStatus.PENDING.value,
                )
            )
            existing = result.scalars().first()

        if existing is not None and existing.status != MemberStatus.REMOVED.value:
            if existing.status == MemberStatus.PENDING.value:
                raise ConflictError("An invitation is already pending for this email")
            raise ConflictError("User is already a member of this team")

        now = datetime.now(UTC)
        token = secrets.token_urlsafe(32)
        expires_at = None
        if settings.invitation_expiry_days:
            expires_at = now + timedelta(days=settings.invitation_expiry_days)

        # A removed row is reused; (team_id, user_id) is unique
        member = existing or TeamMember(team_id=team_id)
        member.user_id = invitee.id if invitee else None
        member.role = role
        member.status = MemberStatus.PENDING.value
        member.invited_email = email
        member.invitation_token = token
        member.invitation_message = (message or "").strip() or None
        member.invitation_expires_at = expires_at
        member.invited_by = actor.id
        member.invited_at = now
        member.accepted_at = None
        if existing is None:
            self.db.add(member)
        await self.db.flush()

        self.activity.record(
            user_id=actor.id,
            team_id=team_id,
            action=ActivityAction.MEMBER_INVITED.value,
            resource_type=ResourceType.TEAM_MEMBER.value,
            resource_id=member.id,
            details={"invited_email": email, "role": role},
        )
        await self.db.commit()
        await self.db.refresh(member)

        logger.info("Invited %s to team %s as %s", email, team_id, role, extra={"user_id": actor.id, "team_id": team_id})
        return member, build_invite_url(token)

    async def get_invitation(self, token: str) -> InvitationPreview:
        """Pending invitation by token. Open to anonymous callers."""
        result = await self.db.execute(
            select(TeamMember).where(
                TeamMember.invitation_token == token,
                TeamMember.status == MemberStatus.PENDING.value,
            )
        )
        member = result.scalar_one_or_none()
        if member is None or invitation_expired(member):
            raise NotFoundError("Invitation not found or expired")

        team = await self._live_team(member.team_id)
        if team is None:
            raise NotFoundError("Invitation not found or expired")

        inviter = None
        if member.invited_by:
            inviter = await self.db.get(User, member.invited_by)
        return InvitationPreview(member=member, team=team, inviter=inviter)

    async def accept_invitation(self, actor: Actor, token: str) -> TeamMember:
        """
        Flip a pending invitation to active for the actor.

        The token is single-use: it is cleared in the same conditional update
        that activates the row, so a second call finds nothing.

        Raises:
            NotFoundError: token unknown, already used or expired
            ForbiddenError: invitation names a different user
            ConflictError: team is at its member limit, or actor already belongs
        """
        actor_id = actor.id
        result = await self.db.execute(
            select(TeamMember).where(
                TeamMember.invitation_token == token,
                TeamMember.status == MemberStatus.PENDING.value,
            )
        )
        invitation = result.scalar_one_or_none()
        if invitation is None or invitation_expired(invitation):
            raise NotFoundError("Invitation not found or expired")
        if not can_accept_invitation(actor, Membership.from_row(invitation)):
            raise ForbiddenError("This invitation was sent to a different user")

        invitation_id = invitation.id
        team_id = invitation.team_id

        prior = await get_membership(self.db, team_id, actor_id)
        if prior is not None and prior.id != invitation_id:
            if prior.status != MemberStatus.REMOVED:
                raise ConflictError("You are already a member of this team")
            await self.db.execute(delete(TeamMember).where(TeamMember.id == prior.id))

        # Row lock serializes concurrent acceptances for the same team
        team = await self._live_team(team_id, lock=True)
        if team is None:
            raise NotFoundError("Invitation not found or expired")
        member_limit = team.member_limit
        if await self._count_active(team_id) >= member_limit:
            # Rollback expires every loaded row; only locals are read after it
            await self.db.rollback()
            raise ConflictError(f"Team has reached its member limit of {member_limit}")

        now = datetime.now(UTC)
        result = await self.db.execute(
            update(TeamMember)
            .where(
                TeamMember.id == invitation_id,
                TeamMember.status == MemberStatus.PENDING.value,
                TeamMember.invitation_token == token,
            )
            .values(
                status=MemberStatus.ACTIVE.value,
                user_id=actor_id,
                invitation_token=None,
                accepted_at=now,
                updated_at=now,
            )
        )
        if result.rowcount != 1:
            await self.db.rollback()
            raise NotFoundError("Invitation not found or expired")

        # First team wins; an existing designation is left alone
        await self.db.execute(
            update(User)
            .where(User.id == actor_id, User.current_team_id.is_(None))
            .values(current_team_id=team_id)
        )

        self.activity.record(
            user_id=actor_id,
            team_id=team_id,
            action=ActivityAction.INVITATION_ACCEPTED.value,
            resource_type=ResourceType.TEAM_MEMBER.value,
            resource_id=invitation_id,
            details={"team_name": team.name},
        )
        await self.db.commit()

        logger.info("User %s joined team %s", actor_id, team_id, extra={"user_id": actor_id, "team_id": team_id})
        member = await self.db.get(TeamMember, invitation_id)
        await self.db.refresh(member)
        return member

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    async def get_member(self, actor: Actor, team_id: str, member_id: str) -> tuple[TeamMember, Optional[User]]:
        _, membership = await self._viewable_team(actor, team_id)
        row = await self._member_row(team_id, member_id)
        if row is None or not visible_members(actor, membership, [Membership.from_row(row)]):
            raise NotFoundError("Member not found")
        user = await self.db.get(User, row.user_id) if row.user_id else None
        return row, user

    async def update_member(
        self,
        actor: Actor,
        team_id: str,
        member_id: str,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> TeamMember:
        """
        Change a member's role and/or status.

        Handing role ``owner`` to someone else is an ownership transfer that
        only the owner may make; the outgoing owner becomes admin. When the
        owner gives up the role themselves, the longest-standing active admin
        takes it over.
        """
        if role is not None and role not in {r.value for r in TeamRole}:
            raise ValidationError("role", f"unknown role '{role}'")
        if status is not None and status not in {s.value for s in MemberStatus}:
            raise ValidationError("status", f"unknown status '{status}'")

        _, membership = await self._viewable_team(actor, team_id)
        target = await self._member_row(team_id, member_id)
        if target is None:
            raise NotFoundError("Member not found")
        if not can_manage_team_member(actor, membership, Membership.from_row(target)):
            raise ForbiddenError("You cannot change this member")

        status_change = status is not None and status != target.status
        role_change = role is not None and role != target.role

        # All checks run before any row is touched
        if status_change:
            if target.role == TeamRole.OWNER.value:
                raise ConflictError("The team owner cannot be suspended or removed")
            if status not in MEMBER_STATUS_TRANSITIONS[MemberStatus(target.status)]:
                raise ValidationError("status", f"cannot change from {target.status} to {status}")
            if status == MemberStatus.ACTIVE.value:
                team = await self._live_team(team_id, lock=True)
                if await self._count_active(team_id) >= team.member_limit:
                    raise ConflictError(f"Team has reached its member limit of {team.member_limit}")

        outgoing_owner: Optional[TeamMember] = None
        successor: Optional[TeamMember] = None
        if role_change:
            if role == TeamRole.OWNER.value:
                if membership.role != TeamRole.OWNER:
                    raise ForbiddenError("Only the team owner can transfer ownership")
                if (status or target.status) != MemberStatus.ACTIVE.value:
                    raise ConflictError("Ownership can only be transferred to an active member")
                outgoing_owner = await self._member_row(team_id, membership.id)
            elif target.role == TeamRole.OWNER.value:
                successor = await self._successor_admin(team_id, exclude_id=target.id)
                if successor is None:
                    raise ConflictError("Promote another member to admin before giving up ownership")

        now = datetime.now(UTC)
        action = ActivityAction.MEMBER_UPDATED
        details: dict = {"previous_role": target.role, "previous_status": target.status}

        if status_change:
            if status == MemberStatus.REMOVED.value:
                target.invitation_token = None
                await self._clear_current_team(target.user_id, team_id)
            target.status = status

        if outgoing_owner is not None:
            outgoing_owner.role = TeamRole.ADMIN.value
            outgoing_owner.updated_at = now
            action = ActivityAction.OWNERSHIP_TRANSFERRED
            details["previous_owner_id"] = outgoing_owner.user_id
        if successor is not None:
            successor.role = TeamRole.OWNER.value
            successor.updated_at = now
            action = ActivityAction.OWNERSHIP_TRANSFERRED
            details["new_owner_id"] = successor.user_id
        if role_change:
            target.role = role

        target.updated_at = now
        self.activity.record(
            user_id=actor.id,
            team_id=team_id,
            action=action.value,
            resource_type=ResourceType.TEAM_MEMBER.value,
            resource_id=target.id,
            details={**details, "role": target.role, "status": target.status},
        )
        await self.db.commit()
        await self.db.refresh(target)
        return target

    async def _successor_admin(self, team_id: str, exclude_id: str) -> Optional[TeamMember]:
        result = await self.db.execute(
            select(TeamMember)
            .where(
                TeamMember.team_id == team_id,
                TeamMember.id != exclude_id,
                TeamMember.role == TeamRole.ADMIN.value,
                TeamMember.status == MemberStatus.ACTIVE.value,
            )
            .order_by(TeamMember.accepted_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _clear_current_team(self, user_id: Optional[str], team_id: str) -> None:
        if user_id:
            await self.db.execute(
                update(User)
                .where(User.id == user_id, User.current_team_id == team_id)
                .values(current_team_id=None)
            )

    async def remove_member(self, actor: Actor, team_id: str, member_id: str) -> None:
        """
        Remove a member, revoke an invitation, leave a team or decline an invite.

        Pending rows are deleted outright; anything else becomes ``removed``.
        """
        target = await self._member_row(team_id, member_id)
        if target is None or await self._live_team(team_id) is None:
            raise NotFoundError("Member not found")
        target_facts = Membership.from_row(target)

        leaving = target.user_id is not None and target.user_id == actor.id
        if leaving:
            if target.role == TeamRole.OWNER.value:
                raise ConflictError("The team owner must transfer ownership before leaving")
            if not can_leave_team(actor, target_facts):
                raise NotFoundError("Member not found")
        else:
            _, membership = await self._viewable_team(actor, team_id)
            if target.status == MemberStatus.REMOVED.value:
                raise NotFoundError("Member not found")
            if not can_manage_team_member(actor, membership, target_facts):
                raise ForbiddenError("You cannot remove this member")

        previous_status = target.status
        removed_user_id = target.user_id
        if previous_status == MemberStatus.PENDING.value:
            await self.db.delete(target)
        else:
            target.status = MemberStatus.REMOVED.value
            target.invitation_token = None
            target.updated_at = datetime.now(UTC)
        await self._clear_current_team(removed_user_id, team_id)

        self.activity.record(
            user_id=actor.id,
            team_id=team_id,
            action=ActivityAction.MEMBER_REMOVED.value,
            resource_type=ResourceType.TEAM_MEMBER.value,
            resource_id=member_id,
            details={"previous_status": previous_status, "self_removal": leaving},
        )
        await self.db.commit()
        logger.info("Member %s removed from team %s", member_id, team_id, extra={"user_id": actor.id, "team_id": team_id})
