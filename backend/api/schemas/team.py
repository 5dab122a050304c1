"""
Team and membership API schemas.
"""

import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from api.schemas.project import ProjectResponse
from api.schemas.user import UserSummary
from core.domain.team import MemberStatus, TeamRole
from core.domain.user import SubscriptionTier


# =============================================================================
# Team Schemas
# =============================================================================


class TeamCreate(BaseModel):
    """Schema for creating a new team."""

    name: str = Field(..., min_length=2, max_length=100, description="Team name")
    slug: Optional[str] = Field(
        None,
        min_length=2,
        max_length=100,
        description="URL-friendly team identifier (derived from the name if not provided)",
    )
    description: Optional[str] = Field(None, max_length=500, description="Team description")
    subscription_tier: Optional[SubscriptionTier] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: Optional[str]) -> Optional[str]:
        """Validate slug format (lowercase alphanumeric with hyphens)."""
        if v is None:
            return v
        if not re.match(r"^[a-z0-9-]+$", v):
            raise ValueError("Slug must contain only lowercase letters, numbers, and hyphens")
        if v.startswith("-") or v.endswith("-"):
            raise ValueError("Slug cannot start or end with a hyphen")
        if "--" in v:
            raise ValueError("Slug cannot contain consecutive hyphens")
        return v


class TeamUpdate(BaseModel):
    """Schema for updating a team."""

    name: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    avatar_url: Optional[str] = Field(None, max_length=500)


class TeamResponse(BaseModel):
    """Schema for team response."""

    id: str
    name: str
    slug: str
    description: Optional[str] = None
    avatar_url: Optional[str] = None
    created_by: Optional[str] = None

    # Limits
    subscription_tier: str
    member_limit: int
    project_limit: int
    monthly_generation_limit: int

    is_active: bool = True
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TeamListItem(TeamResponse):
    """Team as listed for one of its members."""

    role: str
    status: str
    accepted_at: Optional[datetime] = None
    member_count: int = 0


class TeamListResponse(BaseModel):
    teams: List[TeamListItem]
    total: int


# =============================================================================
# Member Schemas
# =============================================================================


class TeamMemberResponse(BaseModel):
    """Membership row, with the user when one is linked."""

    id: str
    team_id: str
    user_id: Optional[str] = None
    role: str
    status: str
    invited_email: Optional[str] = None
    invited_by: Optional[str] = None
    invited_at: Optional[datetime] = None
    accepted_at: Optional[datetime] = None
    invitation_expires_at: Optional[datetime] = None
    user: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)


class TeamDetailResponse(TeamResponse):
    """Team with the members and projects visible to the caller."""

    current_user_role: Optional[str] = None
    member_count: int
    members: List[TeamMemberResponse]
    projects: List[ProjectResponse]


class InviteMemberRequest(BaseModel):
    email: EmailStr
    role: TeamRole = TeamRole.MEMBER
    message: Optional[str] = Field(None, max_length=1000)


class InviteMemberResponse(BaseModel):
    member: TeamMemberResponse
    invite_url: str


class InvitationPreviewResponse(BaseModel):
    """What an invitee sees before accepting."""

    team_id: str
    team_name: str
    team_slug: str
    team_avatar_url: Optional[str] = None
    role: str
    invited_email: Optional[str] = None
    invitation_message: Optional[str] = None
    invited_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    inviter: Optional[UserSummary] = None


class UpdateMemberRequest(BaseModel):
    role: Optional[TeamRole] = None
    status: Optional[MemberStatus] = None
