"""Template marketplace domain objects."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class TemplateVisibility(StrEnum):
    PUBLIC = "public"
    PREMIUM = "premium"
    TEAM = "team"
    PRIVATE = "private"
    UNLISTED = "unlisted"
    DEPRECATED = "deprecated"
    UNDER_REVIEW = "under_review"


class TemplateCategory(StrEnum):
    WEB_APP = "web_app"
    MOBILE_APP = "mobile_app"
    API_SERVICE = "api_service"
    FULLSTACK = "fullstack"
    LANDING_PAGE = "landing_page"
    DASHBOARD = "dashboard"
    ECOMMERCE = "ecommerce"
    BLOG = "blog"
    SAAS = "saas"
    MARKETPLACE = "marketplace"


@dataclass(frozen=True)
class TemplateFacts:
    """The parts of a template row the policies look at."""

    id: str
    created_by: str
    visibility: str = TemplateVisibility.PRIVATE.value
    is_approved: bool = False
    team_id: Optional[str] = None
    deleted: bool = False

    @classmethod
    def from_row(cls, row) -> "TemplateFacts":
        return cls(
            id=row.id,
            created_by=row.created_by,
            visibility=row.visibility,
            is_approved=row.is_approved,
            team_id=row.team_id,
            deleted=row.deleted_at is not None,
        )
