"""
Service layer for business logic.
"""

from services.activity_log import ActivityLogService, RequestContext, cleanup_old_activity_logs
from services.projects import ProjectService
from services.scaffold_generation import ScaffoldGenerationService
from services.team_invitations import expire_old_invitations
from services.team_members import TeamMemberService
from services.teams import TeamService
from services.templates import TemplateSearchParams, TemplateService
from services.usage_quota import GenerationQuotaService

__all__ = [
    "ActivityLogService",
    "RequestContext",
    "cleanup_old_activity_logs",
    "ProjectService",
    "ScaffoldGenerationService",
    "expire_old_invitations",
    "TeamMemberService",
    "TeamService",
    "TemplateSearchParams",
    "TemplateService",
    "GenerationQuotaService",
]
