"""
Project and collaborator API schemas.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from api.schemas.user import UserSummary
from core.domain.project import (
    AuthMethod,
    CollaboratorRole,
    CollaboratorStatus,
    ProjectStatus,
    ProjectVisibility,
    TechStack,
)


# =============================================================================
# Project Schemas
# =============================================================================


class ProjectCreate(BaseModel):
    """Schema for creating a new project."""

    name: str = Field(..., min_length=1, max_length=255, description="Project name")
    description: Optional[str] = Field(None, max_length=5000)
    frontend_stack: Optional[TechStack] = None
    backend_stack: Optional[TechStack] = None
    auth_method: Optional[AuthMethod] = None
    visibility: ProjectVisibility = ProjectVisibility.PRIVATE
    is_public: bool = False
    team_id: Optional[str] = None
    template_id: Optional[str] = None

    file_structure: Optional[dict[str, Any]] = None
    database_schema: Optional[List[Any]] = None
    api_endpoints: Optional[List[Any]] = None
    environment_variables: Optional[dict[str, Any]] = None
    dependencies: Optional[dict[str, Any]] = None
    deployment_config: Optional[dict[str, Any]] = None
    security_recommendations: Optional[List[Any]] = None


class ProjectUpdate(BaseModel):
    """Schema for updating a project. Only fields that are sent are changed."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    frontend_stack: Optional[TechStack] = None
    backend_stack: Optional[TechStack] = None
    auth_method: Optional[AuthMethod] = None
    visibility: Optional[ProjectVisibility] = None
    is_public: Optional[bool] = None
    status: Optional[ProjectStatus] = None

    file_structure: Optional[dict[str, Any]] = None
    database_schema: Optional[List[Any]] = None
    api_endpoints: Optional[List[Any]] = None
    environment_variables: Optional[dict[str, Any]] = None
    dependencies: Optional[dict[str, Any]] = None
    deployment_config: Optional[dict[str, Any]] = None
    security_recommendations: Optional[List[Any]] = None


class ProjectResponse(BaseModel):
    """Schema for project response."""

    id: str
    owner_user_id: str
    team_id: Optional[str] = None
    template_id: Optional[str] = None
    name: str
    slug: str
    description: Optional[str] = None

    frontend_stack: Optional[str] = None
    backend_stack: Optional[str] = None
    auth_method: Optional[str] = None
    visibility: str
    is_public: bool
    status: str

    file_structure: Optional[dict[str, Any]] = None
    database_schema: Optional[List[Any]] = None
    api_endpoints: Optional[List[Any]] = None
    environment_variables: Optional[dict[str, Any]] = None
    dependencies: Optional[dict[str, Any]] = None
    deployment_config: Optional[dict[str, Any]] = None
    security_recommendations: Optional[List[Any]] = None

    original_prompt: Optional[str] = None
    ai_model_used: Optional[str] = None
    generation_time_ms: Optional[int] = None

    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProjectListResponse(BaseModel):
    """Paginated list of projects."""

    projects: List[ProjectResponse]
    total: int
    limit: int
    offset: int


# =============================================================================
# Collaborator Schemas
# =============================================================================


class CollaboratorCreate(BaseModel):
    email: EmailStr
    role: CollaboratorRole = CollaboratorRole.VIEWER


class CollaboratorUpdate(BaseModel):
    role: Optional[CollaboratorRole] = None
    status: Optional[CollaboratorStatus] = None


class CollaboratorResponse(BaseModel):
    id: str
    project_id: str
    user_id: str
    role: str
    status: str
    invited_by: Optional[str] = None
    created_at: datetime
    user: Optional[UserSummary] = None

    model_config = ConfigDict(from_attributes=True)


class CollaboratorListResponse(BaseModel):
    collaborators: List[CollaboratorResponse]
    total: int
