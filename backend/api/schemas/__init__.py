"""
API request and response schemas.
"""

from .activity import ActivityLogListResponse, ActivityLogResponse
from .project import (
    CollaboratorCreate,
    CollaboratorListResponse,
    CollaboratorResponse,
    CollaboratorUpdate,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from .scaffold import GenerateScaffoldRequest, GenerateScaffoldResponse, ScaffoldResponse, UsageResponse
from .team import (
    InvitationPreviewResponse,
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
from .template import (
    TemplateApprovalRequest,
    TemplateCreate,
    TemplateResponse,
    TemplateSearchQuery,
    TemplateSearchResponse,
    TemplateUpdate,
)
from .user import UserResponse, UserSummary

__all__ = [
    "ActivityLogListResponse",
    "ActivityLogResponse",
    "CollaboratorCreate",
    "CollaboratorListResponse",
    "CollaboratorResponse",
    "CollaboratorUpdate",
    "ProjectCreate",
    "ProjectListResponse",
    "ProjectResponse",
    "ProjectUpdate",
    "GenerateScaffoldRequest",
    "GenerateScaffoldResponse",
    "ScaffoldResponse",
    "UsageResponse",
    "InvitationPreviewResponse",
    "InviteMemberRequest",
    "InviteMemberResponse",
    "TeamCreate",
    "TeamDetailResponse",
    "TeamListItem",
    "TeamListResponse",
    "TeamMemberResponse",
    "TeamResponse",
    "TeamUpdate",
    "UpdateMemberRequest",
    "TemplateApprovalRequest",
    "TemplateCreate",
    "TemplateResponse",
    "TemplateSearchQuery",
    "TemplateSearchResponse",
    "TemplateUpdate",
    "UserResponse",
    "UserSummary",
]
