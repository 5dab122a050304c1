"""Project domain objects and stack enumerations."""

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class TechStack(StrEnum):
    """Frontend/backend technologies a scaffold can target."""

    REACT_TYPESCRIPT = "react_typescript"
    REACT_JAVASCRIPT = "react_javascript"
    NEXTJS = "nextjs"
    VUE_TYPESCRIPT = "vue_typescript"
    VUE_JAVASCRIPT = "vue_javascript"
    ANGULAR = "angular"
    SVELTE = "svelte"
    NODEJS_EXPRESS = "nodejs_express"
    NODEJS_FASTIFY = "nodejs_fastify"
    SUPABASE = "supabase"
    FIREBASE = "firebase"
    PYTHON_FASTAPI = "python_fastapi"
    PYTHON_DJANGO = "python_django"
    GO_GIN = "go_gin"
    RUST_ACTIX = "rust_actix"


class AuthMethod(StrEnum):
    EMAIL_PASSWORD = "email_password"
    OAUTH_GOOGLE = "oauth_google"
    OAUTH_GITHUB = "oauth_github"
    OAUTH_DISCORD = "oauth_discord"
    MAGIC_LINK = "magic_link"
    CUSTOM_JWT = "custom_jwt"


class ProjectStatus(StrEnum):
    DRAFT = "draft"
    CONFIGURING = "configuring"
    GENERATING = "generating"
    GENERATED = "generated"
    FAILED = "failed"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    EXPORTING = "exporting"
    EXPORTED = "exported"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    ARCHIVED = "archived"


class ProjectVisibility(StrEnum):
    PRIVATE = "private"
    TEAM = "team"
    PUBLIC = "public"


class CollaboratorRole(StrEnum):
    OWNER = "owner"
    EDITOR = "editor"
    VIEWER = "viewer"
    COMMENTER = "commenter"


class CollaboratorStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    REMOVED = "removed"


EDITING_COLLABORATOR_ROLES = frozenset({CollaboratorRole.OWNER, CollaboratorRole.EDITOR})


@dataclass(frozen=True)
class ProjectFacts:
    """The parts of a project row the policies look at."""

    id: str
    owner_user_id: str
    team_id: Optional[str] = None
    visibility: str = ProjectVisibility.PRIVATE.value
    is_public: bool = False
    deleted: bool = False

    @classmethod
    def from_row(cls, row) -> "ProjectFacts":
        return cls(
            id=row.id,
            owner_user_id=row.owner_user_id,
            team_id=row.team_id,
            visibility=row.visibility,
            is_public=row.is_public,
            deleted=row.deleted_at is not None,
        )


@dataclass(frozen=True)
class Collaboration:
    """One project_collaborators row."""

    project_id: str
    user_id: str
    role: str
    status: str

    @classmethod
    def from_row(cls, row) -> "Collaboration":
        return cls(
            project_id=row.project_id,
            user_id=row.user_id,
            role=row.role,
            status=row.status,
        )

    @property
    def is_active(self) -> bool:
        return self.status == CollaboratorStatus.ACTIVE
