"""
Scaffold generation API schemas.

The frontend talks to this endpoint in camelCase, so fields carry aliases.
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from adapters.ai.anthropic_adapter import MAX_APP_IDEA_LENGTH
from api.schemas.project import ProjectResponse
from core.domain.project import AuthMethod, TechStack


class GenerateScaffoldRequest(BaseModel):
    app_idea: str = Field(..., alias="appIdea", min_length=1, max_length=MAX_APP_IDEA_LENGTH)
    frontend_stack: TechStack = Field(..., alias="frontendStack")
    backend_stack: Optional[TechStack] = Field(None, alias="backendStack")
    auth_type: Optional[AuthMethod] = Field(None, alias="authType")
    template_id: Optional[str] = Field(None, alias="templateId")

    model_config = ConfigDict(populate_by_name=True)


class ScaffoldResponse(BaseModel):
    project_structure: dict[str, Any] = Field(..., serialization_alias="projectStructure")
    database_schema: List[Any] = Field(..., serialization_alias="databaseSchema")
    api_endpoints: List[Any] = Field(..., serialization_alias="apiEndpoints")
    environment_variables: dict[str, Any] = Field(..., serialization_alias="environmentVariables")
    dependencies: dict[str, Any]
    deployment_config: dict[str, Any] = Field(..., serialization_alias="deploymentConfig")
    security_recommendations: List[Any] = Field(..., serialization_alias="securityRecommendations")

    model_config = ConfigDict(from_attributes=True)


class GenerateScaffoldResponse(BaseModel):
    success: bool = True
    project: ProjectResponse
    scaffold: ScaffoldResponse
    generation_time: int = Field(..., serialization_alias="generationTime", description="Milliseconds")


class UsageResponse(BaseModel):
    """Caller's generation usage for the current period. ``limit`` -1 means unlimited."""

    monthly_generations: int
    projects_generated: int
    limit: int
    remaining: Optional[int] = None
    usage_reset_date: Optional[datetime] = None
