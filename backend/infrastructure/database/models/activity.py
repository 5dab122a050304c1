"""
Activity log model (append-only audit trail).
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class ActivityAction(str, Enum):
    """Actions recorded in the activity log."""

    TEAM_CREATED = "team_created"
    TEAM_UPDATED = "team_updated"
    TEAM_DELETED = "team_deleted"
    MEMBER_INVITED = "member_invited"
    INVITATION_ACCEPTED = "invitation_accepted"
    MEMBER_UPDATED = "member_updated"
    MEMBER_REMOVED = "member_removed"
    OWNERSHIP_TRANSFERRED = "ownership_transferred"
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_DELETED = "project_deleted"
    COLLABORATOR_ADDED = "collaborator_added"
    COLLABORATOR_UPDATED = "collaborator_updated"
    COLLABORATOR_REMOVED = "collaborator_removed"
    TEMPLATE_CREATED = "template_created"
    TEMPLATE_UPDATED = "template_updated"
    TEMPLATE_DELETED = "template_deleted"
    TEMPLATE_APPROVED = "template_approved"
    TEMPLATE_VIEWED = "template_viewed"
    TEMPLATE_SEARCH = "template_search"
    TEMPLATE_RATED = "template_rated"
    SCAFFOLD_GENERATED = "scaffold_generated"


class ResourceType(str, Enum):
    TEAM = "team"
    TEAM_MEMBER = "team_member"
    PROJECT = "project"
    PROJECT_COLLABORATOR = "project_collaborator"
    TEMPLATE = "template"


class ActivityLog(Base):
    """One audit record. Request handlers only ever insert these."""

    __tablename__ = "activity_logs"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    user_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    team_id: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # Request tracking
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)  # IPv6 max length
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_activity_logs_team_created", "team_id", "created_at"),
        Index("ix_activity_logs_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ActivityLog(id={self.id}, action={self.action}, resource={self.resource_type}:{self.resource_id})>"
