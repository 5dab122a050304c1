"""
Access policies.

One predicate per (entity, operation) pair. Every predicate is a pure function
of the snapshots it is handed (actor, target entity, the actor's membership or
collaboration record) and returns a bool. Nothing here touches the database,
raises, or reads global state; a missing actor or entity is simply a deny.

Services resolve the snapshots, call exactly one predicate per decision, and
translate a deny into ``NotFoundError`` (when existence must not leak) or
``ForbiddenError``.
"""

from datetime import datetime
from typing import Iterable, Optional

from core.domain.activity import ActivityFacts
from core.domain.project import (
    EDITING_COLLABORATOR_ROLES,
    Collaboration,
    ProjectFacts,
    ProjectVisibility,
)
from core.domain.team import (
    INVITABLE_ROLES,
    MemberStatus,
    Membership,
    TeamFacts,
    TeamRole,
)
from core.domain.template import TemplateFacts, TemplateVisibility
from core.domain.user import Actor
from core.plans import is_premium_tier


# ---------------------------------------------------------------------------
# Actor helpers
# ---------------------------------------------------------------------------


def is_live_actor(actor: Optional[Actor]) -> bool:
    """An actor that exists, is active and has not been soft-deleted."""
    return actor is not None and actor.is_active and not actor.is_deleted


def has_premium_access(actor: Optional[Actor], now: Optional[datetime] = None) -> bool:
    """Paid tier with an unexpired subscription."""
    if not is_live_actor(actor):
        return False
    return is_premium_tier(actor.subscription_tier, actor.subscription_expires, now)


def _active_member_of(actor: Actor, membership: Optional[Membership], team_id: Optional[str]) -> bool:
    return (
        team_id is not None
        and membership is not None
        and membership.team_id == team_id
        and membership.user_id == actor.id
        and membership.status == MemberStatus.ACTIVE
    )


def _team_manager_of(actor: Actor, membership: Optional[Membership], team_id: Optional[str]) -> bool:
    return _active_member_of(actor, membership, team_id) and membership.role in (
        TeamRole.OWNER,
        TeamRole.ADMIN,
    )


def _active_collaborator_on(actor: Actor, collaboration: Optional[Collaboration], project_id: str) -> bool:
    return (
        collaboration is not None
        and collaboration.project_id == project_id
        and collaboration.user_id == actor.id
        and collaboration.is_active
    )


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def can_view_project(
    actor: Optional[Actor],
    project: Optional[ProjectFacts],
    membership: Optional[Membership] = None,
    collaboration: Optional[Collaboration] = None,
) -> bool:
    """
    Owner, active member of the project's team, active collaborator, or
    anyone at all when the project is public and flagged is_public.

    Deleted projects are invisible to everyone.
    """
    if project is None or project.deleted:
        return False
    if project.visibility == ProjectVisibility.PUBLIC and project.is_public:
        return True
    if not is_live_actor(actor):
        return False
    if project.owner_user_id == actor.id:
        return True
    if _active_member_of(actor, membership, project.team_id):
        return True
    return _active_collaborator_on(actor, collaboration, project.id)


def can_modify_project(
    actor: Optional[Actor],
    project: Optional[ProjectFacts],
    membership: Optional[Membership] = None,
    collaboration: Optional[Collaboration] = None,
) -> bool:
    """
    Update or delete: owner, team owner/admin, or collaborator with role
    owner/editor. Team member/guest and collaborator viewer/commenter only
    get read access.
    """
    if project is None or project.deleted or not is_live_actor(actor):
        return False
    if project.owner_user_id == actor.id:
        return True
    if _team_manager_of(actor, membership, project.team_id):
        return True
    return (
        _active_collaborator_on(actor, collaboration, project.id)
        and collaboration.role in EDITING_COLLABORATOR_ROLES
    )


def can_insert_project(
    actor: Optional[Actor],
    owner_user_id: Optional[str],
    team_id: Optional[str] = None,
    membership: Optional[Membership] = None,
) -> bool:
    """The new row must be owned by the actor, and any team must be one they belong to."""
    if not is_live_actor(actor) or owner_user_id != actor.id:
        return False
    if team_id is None:
        return True
    return _active_member_of(actor, membership, team_id)


def can_manage_collaborators(actor: Optional[Actor], project: Optional[ProjectFacts]) -> bool:
    """Only the project owner grants or revokes collaborator access."""
    return (
        project is not None
        and not project.deleted
        and is_live_actor(actor)
        and project.owner_user_id == actor.id
    )


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


def can_view_template(
    actor: Optional[Actor],
    template: Optional[TemplateFacts],
    membership: Optional[Membership] = None,
    now: Optional[datetime] = None,
) -> bool:
    """
    Creators always see their own live templates, approved or not.
    Moderators see every live template so they can review it.

    Everyone else needs an approved template plus the visibility rule:
    public and unlisted are open (unlisted is reachable by direct link),
    premium needs an unexpired paid tier, team needs active membership in
    the owning team. Private, deprecated and under_review stay with the
    creator.
    """
    if template is None or template.deleted:
        return False
    live = is_live_actor(actor)
    if live and (template.created_by == actor.id or actor.is_moderator):
        return True
    if not template.is_approved:
        return False
    if template.visibility in (TemplateVisibility.PUBLIC, TemplateVisibility.UNLISTED):
        return True
    if not live:
        return False
    if template.visibility == TemplateVisibility.PREMIUM:
        return has_premium_access(actor, now)
    if template.visibility == TemplateVisibility.TEAM:
        return _active_member_of(actor, membership, template.team_id)
    return False


def can_list_template(
    actor: Optional[Actor],
    template: Optional[TemplateFacts],
    membership: Optional[Membership] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Search results: viewable, and unlisted ones only for their creator."""
    if not can_view_template(actor, template, membership, now):
        return False
    if template.visibility == TemplateVisibility.UNLISTED:
        return is_live_actor(actor) and template.created_by == actor.id
    return True


def can_modify_template(
    actor: Optional[Actor],
    template: Optional[TemplateFacts],
    membership: Optional[Membership] = None,
) -> bool:
    """Creator, owner/admin of the owning team, or a moderator-level role."""
    if template is None or template.deleted or not is_live_actor(actor):
        return False
    if template.created_by == actor.id or actor.is_moderator:
        return True
    return _team_manager_of(actor, membership, template.team_id)


def can_insert_template(
    actor: Optional[Actor],
    created_by: Optional[str],
    team_id: Optional[str] = None,
    membership: Optional[Membership] = None,
) -> bool:
    if not is_live_actor(actor) or created_by != actor.id:
        return False
    if team_id is None:
        return True
    return _active_member_of(actor, membership, team_id)


def can_moderate_templates(actor: Optional[Actor]) -> bool:
    return is_live_actor(actor) and actor.is_moderator


# ---------------------------------------------------------------------------
# Teams and membership
# ---------------------------------------------------------------------------


def can_create_team(actor: Optional[Actor], now: Optional[datetime] = None) -> bool:
    """Team workspaces are a paid feature."""
    return has_premium_access(actor, now)


def can_view_team(actor: Optional[Actor], team: Optional[TeamFacts], membership: Optional[Membership]) -> bool:
    if team is None or team.deleted or not is_live_actor(actor):
        return False
    return _active_member_of(actor, membership, team.id)


def can_update_team(actor: Optional[Actor], team: Optional[TeamFacts], membership: Optional[Membership]) -> bool:
    if team is None or team.deleted or not is_live_actor(actor):
        return False
    return _team_manager_of(actor, membership, team.id)


def can_delete_team(actor: Optional[Actor], team: Optional[TeamFacts], membership: Optional[Membership]) -> bool:
    if team is None or team.deleted or not is_live_actor(actor):
        return False
    return _active_member_of(actor, membership, team.id) and membership.role == TeamRole.OWNER


def can_insert_team_member(
    actor: Optional[Actor],
    team: Optional[TeamFacts],
    membership: Optional[Membership],
    target_role: str,
) -> bool:
    """
    Invite: active owner/admin of an active team. Invitations never hand out
    the owner role; ownership only moves by transfer.
    """
    if team is None or team.deleted or not team.is_active or not is_live_actor(actor):
        return False
    if target_role not in INVITABLE_ROLES:
        return False
    return _team_manager_of(actor, membership, team.id)


def can_manage_team_member(
    actor: Optional[Actor],
    membership: Optional[Membership],
    target: Optional[Membership],
) -> bool:
    """
    Update or remove another member: active owner/admin of the target's team.
    An admin who is not the owner can never touch an owner row.
    """
    if target is None or not is_live_actor(actor):
        return False
    if not _team_manager_of(actor, membership, target.team_id):
        return False
    if target.role == TeamRole.OWNER and membership.role != TeamRole.OWNER:
        return False
    return True


def can_leave_team(actor: Optional[Actor], target: Optional[Membership]) -> bool:
    """A member may drop their own membership or decline their own invitation.

    Owners have to transfer ownership first.
    """
    if target is None or not is_live_actor(actor):
        return False
    return (
        target.user_id == actor.id
        and target.role != TeamRole.OWNER
        and target.status in (MemberStatus.PENDING, MemberStatus.ACTIVE, MemberStatus.SUSPENDED)
    )


def can_accept_invitation(actor: Optional[Actor], invitation: Optional[Membership]) -> bool:
    """Pending invitation whose target, if one was named, is the actor."""
    if invitation is None or not is_live_actor(actor):
        return False
    if invitation.status != MemberStatus.PENDING:
        return False
    return invitation.user_id is None or invitation.user_id == actor.id


def visible_members(
    actor: Optional[Actor],
    membership: Optional[Membership],
    members: Iterable[Membership],
) -> list[Membership]:
    """Member list as the actor may see it; guests only see themselves."""
    members = list(members)
    if actor is None or membership is None or not membership.is_active:
        return []
    if membership.role == TeamRole.GUEST:
        return [m for m in members if m.user_id == actor.id]
    return members


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


def can_read_activity(
    actor: Optional[Actor],
    entry: Optional[ActivityFacts],
    membership: Optional[Membership] = None,
) -> bool:
    """Own entries, entries of a team the actor actively belongs to, or any entry for admins."""
    if entry is None or not is_live_actor(actor):
        return False
    if actor.is_admin:
        return True
    if entry.user_id is not None and entry.user_id == actor.id:
        return True
    return _active_member_of(actor, membership, entry.team_id)
