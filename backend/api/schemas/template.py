"""
Template marketplace API schemas.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from core.domain.project import AuthMethod, TechStack
from core.domain.template import TemplateCategory, TemplateVisibility


class TemplateCreate(BaseModel):
    """Schema for publishing a template. New templates wait for moderation."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    short_description: Optional[str] = Field(None, max_length=500)
    category: TemplateCategory
    tags: List[str] = Field(default_factory=list)
    frontend_stack: TechStack
    backend_stack: Optional[TechStack] = None
    auth_methods: List[AuthMethod] = Field(default_factory=list)
    file_structure: dict[str, Any] = Field(..., description="Directory tree the template starts from")
    database_schema: Optional[List[Any]] = None
    visibility: TemplateVisibility = TemplateVisibility.PRIVATE
    team_id: Optional[str] = None


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    short_description: Optional[str] = Field(None, max_length=500)
    category: Optional[TemplateCategory] = None
    tags: Optional[List[str]] = None
    frontend_stack: Optional[TechStack] = None
    backend_stack: Optional[TechStack] = None
    auth_methods: Optional[List[AuthMethod]] = None
    file_structure: Optional[dict[str, Any]] = None
    database_schema: Optional[List[Any]] = None
    visibility: Optional[TemplateVisibility] = None


class TemplateResponse(BaseModel):
    id: str
    created_by: str
    team_id: Optional[str] = None
    name: str
    slug: str
    description: str
    short_description: Optional[str] = None
    category: str
    tags: Optional[List[str]] = None
    frontend_stack: str
    backend_stack: Optional[str] = None
    auth_methods: Optional[List[str]] = None
    file_structure: dict[str, Any]
    database_schema: Optional[List[Any]] = None
    visibility: str
    is_approved: bool
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    usage_count: int = 0
    view_count: int = 0
    rating_average: float = 0.0
    rating_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    offset: int
    limit: int
    total: int


class TemplateFacets(BaseModel):
    """Distinct values across every template the caller may list."""

    categories: List[str]
    frontend_stacks: List[str]
    backend_stacks: List[str]


class TemplateSearchResponse(BaseModel):
    templates: List[TemplateResponse]
    pagination: Pagination
    facets: TemplateFacets


class TemplateSearchQuery(BaseModel):
    """Query-string filters for template search."""

    category: Optional[TemplateCategory] = None
    frontend_stack: Optional[TechStack] = None
    backend_stack: Optional[TechStack] = None
    tags: Optional[str] = Field(None, description="Comma-separated tags; any overlap matches")
    search: Optional[str] = Field(None, max_length=200)
    visibility: Optional[TemplateVisibility] = None
    sort_by: Literal["created_at", "usage_count", "rating_average", "view_count"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)


class TemplateApprovalRequest(BaseModel):
    approved: bool = True


class TemplateRatingRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)


class TemplateRatingResponse(BaseModel):
    id: str
    template_id: str
    user_id: str
    rating: int
    review: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class TemplateDetailResponse(TemplateResponse):
    """Template with its most recent ratings."""

    ratings: List[TemplateRatingResponse] = Field(default_factory=list)
