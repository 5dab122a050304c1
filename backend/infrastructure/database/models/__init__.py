"""
Database models.
"""

from .activity import ActivityAction, ActivityLog, ResourceType
from .base import Base, SoftDeleteMixin, TimestampMixin
from .project import Project, ProjectCollaborator
from .team import Team, TeamMember
from .template import Template, TemplateRating
from .user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "User",
    "Team",
    "TeamMember",
    "Project",
    "ProjectCollaborator",
    "Template",
    "TemplateRating",
    "ActivityLog",
    "ActivityAction",
    "ResourceType",
]
