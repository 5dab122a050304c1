"""
Project and collaborator database models.
"""

from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from core.domain.project import (
    CollaboratorRole,
    CollaboratorStatus,
    ProjectStatus,
    ProjectVisibility,
)

from .base import Base, SoftDeleteMixin, TimestampMixin, enum_check


class Project(Base, TimestampMixin, SoftDeleteMixin):
    """A generated (or hand-authored) app scaffold owned by one user."""

    __tablename__ = "projects"

    # Primary key
    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    # Ownership
    owner_user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    team_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    template_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("templates.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Basic info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Stack selection
    frontend_stack: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    backend_stack: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    auth_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Access
    visibility: Mapped[str] = mapped_column(
        String(20), default=ProjectVisibility.PRIVATE.value, nullable=False
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ProjectStatus.DRAFT.value, nullable=False, index=True
    )

    # Scaffold output
    file_structure: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    database_schema: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    api_endpoints: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    environment_variables: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    dependencies: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    deployment_config: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    security_recommendations: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # Generation metadata
    original_prompt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_model_used: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    generation_time_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index(
            "uq_projects_owner_slug_live",
            "owner_user_id",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        enum_check("visibility", ProjectVisibility, "ck_projects_visibility"),
        enum_check("status", ProjectStatus, "ck_projects_status"),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, status={self.status})>"


class ProjectCollaborator(Base, TimestampMixin):
    """Per-project access grant, independent of team membership."""

    __tablename__ = "project_collaborators"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    project_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20), default=CollaboratorRole.VIEWER.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(20), default=CollaboratorStatus.ACTIVE.value, nullable=False
    )
    invited_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_project_collaborators_project_user", "project_id", "user_id", unique=True),
        enum_check("role", CollaboratorRole, "ck_project_collaborators_role"),
        enum_check("status", CollaboratorStatus, "ck_project_collaborators_status"),
    )

    def __repr__(self) -> str:
        return f"<ProjectCollaborator(project_id={self.project_id}, user_id={self.user_id}, role={self.role})>"
