"""
Team invitation API routes.

Invitees open the link from their invitation, preview it without signing in,
then accept it once authenticated.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentActor, RequestCtx
from api.middleware.rate_limit import get_rate_limit, limiter
from api.routes.teams import member_response
from api.schemas.team import InvitationPreviewResponse, TeamMemberResponse
from api.schemas.user import UserSummary
from infrastructure.database.connection import get_db
from services.team_members import TeamMemberService

router = APIRouter(prefix="/invitations", tags=["Team Invitations"])


@router.get("/{token}", response_model=InvitationPreviewResponse)
@limiter.limit(get_rate_limit("invitations"))
async def get_invitation(
    request: Request,
    token: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Public invitation details for the accept page.

    Unknown, used and expired tokens all return 404.
    """
    preview = await TeamMemberService(db).get_invitation(token)
    return InvitationPreviewResponse(
        team_id=preview.team.id,
        team_name=preview.team.name,
        team_slug=preview.team.slug,
        team_avatar_url=preview.team.avatar_url,
        role=preview.member.role,
        invited_email=preview.member.invited_email,
        invitation_message=preview.member.invitation_message,
        invited_at=preview.member.invited_at,
        expires_at=preview.member.invitation_expires_at,
        inviter=UserSummary.model_validate(preview.inviter) if preview.inviter else None,
    )


@router.post("/{token}/accept", response_model=TeamMemberResponse)
@limiter.limit(get_rate_limit("invitations"))
async def accept_invitation(
    request: Request,
    token: str,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Accept a pending invitation as the invited user.

    The token is single use; a second accept returns 404.
    """
    member = await TeamMemberService(db, ctx).accept_invitation(actor, token)
    return member_response(member)
