"""
Team management API routes.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentActor, RequestCtx
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.project import ProjectResponse
from api.schemas.team import (
    InviteMemberRequest,
    InviteMemberResponse,
    TeamCreate,
    TeamDetailResponse,
    TeamListItem,
    TeamListResponse,
    TeamMemberResponse,
    TeamResponse,
    TeamUpdate,
    UpdateMemberRequest,
)
from api.schemas.user import UserSummary
from infrastructure.database.connection import get_db
from infrastructure.database.models.team import TeamMember
from infrastructure.database.models.user import User
from services.team_members import TeamMemberService
from services.teams import TeamService

router = APIRouter(prefix="/teams", tags=["Teams"])


def member_response(member: TeamMember, user: Optional[User] = None) -> TeamMemberResponse:
    response = TeamMemberResponse.model_validate(member)
    if user is not None:
        response.user = UserSummary.model_validate(user)
    return response


# =============================================================================
# Team CRUD
# =============================================================================

@router.post("", response_model=TeamResponse, status_code=status.HTTP_201_CREATED)
async def create_team(
    data: TeamCreate,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Create a new team.

    The caller becomes its only owner. Requires a Pro or Team subscription.
    """
    service = TeamService(db, ctx)
    return await service.create_team(
        actor,
        name=data.name,
        slug=data.slug,
        description=data.description,
        subscription_tier=data.subscription_tier.value if data.subscription_tier else None,
    )


@router.get("", response_model=TeamListResponse)
async def list_teams(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List the teams the caller actively belongs to."""
    listings = await TeamService(db).list_user_teams(actor)
    teams = [
        TeamListItem(
            **TeamResponse.model_validate(listing.team).model_dump(),
            role=listing.role,
            status=listing.status,
            accepted_at=listing.accepted_at,
            member_count=listing.member_count,
        )
        for listing in listings
    ]
    return TeamListResponse(teams=teams, total=len(teams))


@router.get("/{team_id}", response_model=TeamDetailResponse)
async def get_team(
    team_id: str,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Get a team with its members and projects.

    Guests only see their own row in the member list.
    """
    detail = await TeamService(db).get_team(actor, team_id)
    return TeamDetailResponse(
        **TeamResponse.model_validate(detail.team).model_dump(),
        current_user_role=detail.membership.role if detail.membership else None,
        member_count=detail.member_count,
        members=[member_response(row, user) for row, user in detail.members],
        projects=[ProjectResponse.model_validate(p) for p in detail.projects],
    )


@router.put("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: str,
    data: TeamUpdate,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update team name, description or avatar. Owner or admin only."""
    return await TeamService(db, ctx).update_team(
        actor,
        team_id,
        name=data.name,
        description=data.description,
        avatar_url=data.avatar_url,
    )


@router.delete("/{team_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_team(
    team_id: str,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a team. Owner only."""
    await TeamService(db, ctx).delete_team(actor, team_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Members
# =============================================================================

@router.post(
    "/{team_id}/invitations",
    response_model=InviteMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(get_rate_limit("invitations"))
async def invite_member(
    request: Request,
    team_id: str,
    data: InviteMemberRequest,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Invite someone to the team by email.

    Returns the pending membership and the link the invitee opens to accept.
    """
    member, invite_url = await TeamMemberService(db, ctx).invite_member(
        actor,
        team_id,
        email=data.email,
        role=data.role.value,
        message=data.message,
    )
    return InviteMemberResponse(member=member_response(member), invite_url=invite_url)


@router.get("/{team_id}/members/{member_id}", response_model=TeamMemberResponse)
async def get_member(
    team_id: str,
    member_id: str,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    row, user = await TeamMemberService(db).get_member(actor, team_id, member_id)
    return member_response(row, user)


@router.put("/{team_id}/members/{member_id}", response_model=TeamMemberResponse)
async def update_member(
    team_id: str,
    member_id: str,
    data: UpdateMemberRequest,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Change a member's role or status.

    Setting role ``owner`` on another member transfers ownership.
    """
    member = await TeamMemberService(db, ctx).update_member(
        actor,
        team_id,
        member_id,
        role=data.role.value if data.role else None,
        status=data.status.value if data.status else None,
    )
    return member_response(member)


@router.delete("/{team_id}/members/{member_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    team_id: str,
    member_id: str,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Remove a member, revoke a pending invitation, or leave the team.

    Members may remove their own row; the owner must hand over ownership first.
    """
    await TeamMemberService(db, ctx).remove_member(actor, team_id, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
