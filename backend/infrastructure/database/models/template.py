"""
Template marketplace database model.
"""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from core.domain.template import TemplateVisibility

from .base import Base, SoftDeleteMixin, TimestampMixin, enum_check


class Template(Base, TimestampMixin, SoftDeleteMixin):
    """Reusable starting point for scaffold generation."""

    __tablename__ = "templates"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )

    created_by: Mapped[str] = mapped_column(
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

    # Listing
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    short_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    tags: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # Stack
    frontend_stack: Mapped[str] = mapped_column(String(50), nullable=False)
    backend_stack: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    auth_methods: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # Content
    file_structure: Mapped[dict] = mapped_column(JSON, nullable=False)
    database_schema: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    # Access and moderation
    visibility: Mapped[str] = mapped_column(
        String(20), default=TemplateVisibility.PRIVATE.value, nullable=False
    )
    is_approved: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    approved_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deleted_by: Mapped[Optional[str]] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Counters
    usage_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    rating_average: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    rating_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index(
            "uq_templates_slug_live",
            "slug",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index("ix_templates_visibility_approved", "visibility", "is_approved"),
        enum_check("visibility", TemplateVisibility, "ck_templates_visibility"),
    )

    def __repr__(self) -> str:
        return f"<Template(id={self.id}, slug={self.slug}, visibility={self.visibility})>"


class TemplateRating(Base, TimestampMixin):
    """One user's 1-5 star rating of a template, with an optional review.

    ``Template.rating_average`` and ``rating_count`` are recomputed from
    these rows whenever one is written.
    """

    __tablename__ = "template_ratings"

    id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    template_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("templates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        UUID(as_uuid=False),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("uq_template_ratings_template_user", "template_id", "user_id", unique=True),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_template_ratings_rating"),
    )

    def __repr__(self) -> str:
        return f"<TemplateRating(template_id={self.template_id}, user_id={self.user_id}, rating={self.rating})>"
