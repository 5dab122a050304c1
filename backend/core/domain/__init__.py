# Domain Entities
# Pure business objects with no external dependencies
from .activity import ActivityFacts
from .project import (
    AuthMethod,
    Collaboration,
    CollaboratorRole,
    CollaboratorStatus,
    ProjectFacts,
    ProjectStatus,
    ProjectVisibility,
    TechStack,
)
from .team import MemberStatus, Membership, TeamFacts, TeamRole
from .template import TemplateCategory, TemplateFacts, TemplateVisibility
from .user import Actor, SubscriptionTier, UserRole

__all__ = [
    "Actor",
    "ActivityFacts",
    "AuthMethod",
    "Collaboration",
    "CollaboratorRole",
    "CollaboratorStatus",
    "MemberStatus",
    "Membership",
    "ProjectFacts",
    "ProjectStatus",
    "ProjectVisibility",
    "SubscriptionTier",
    "TeamFacts",
    "TeamRole",
    "TechStack",
    "TemplateCategory",
    "TemplateFacts",
    "TemplateVisibility",
    "UserRole",
]
