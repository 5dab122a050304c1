"""
Shared declarative base and column mixins.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from ..connection import Base


def utcnow() -> datetime:
    return datetime.now(UTC)


def enum_check(column: str, enum_cls: type[StrEnum], name: str) -> CheckConstraint:
    """CHECK constraint limiting a string column to the values of ``enum_cls``."""
    allowed = ", ".join(f"'{member.value}'" for member in enum_cls)
    return CheckConstraint(f"{column} IN ({allowed})", name=name)


class TimestampMixin:
    """Adds created_at / updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        nullable=False,
    )


class SoftDeleteMixin:
    """Rows are never physically removed; deleted_at tags them as gone.

    Queries go through ``live()`` so deleted rows drop out of every normal
    read path.
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @classmethod
    def live(cls):
        """WHERE clause matching rows that have not been soft-deleted."""
        return cls.deleted_at.is_(None)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


__all__ = ["Base", "TimestampMixin", "SoftDeleteMixin", "enum_check", "utcnow"]
