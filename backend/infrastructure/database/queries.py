"""
Query helpers shared by the services.
"""

from typing import Callable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError
from core.slugs import numbered_slug, random_suffix_slug

MAX_SLUG_ATTEMPTS = 50


def escape_like(value: str) -> str:
    """Escape LIKE wildcards for safe use in SQL LIKE/ILIKE patterns."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def next_numbered_slug(db: AsyncSession, model, base: str, *scope) -> str:
    """First of ``base``, ``base-1``, ``base-2``... not used by a live row.

    Reduces collisions only; the partial unique index on the table decides.
    """
    result = await db.execute(
        select(model.slug).where(
            or_(model.slug == base, model.slug.like(f"{escape_like(base)}-%", escape="\\")),
            model.live(),
            *scope,
        )
    )
    taken = set(result.scalars().all())
    for attempt in range(len(taken) + 1):
        candidate = numbered_slug(base, attempt)
        if candidate not in taken:
            return candidate
    raise ConflictError("Could not allocate a unique slug")


async def next_random_slug(db: AsyncSession, model, base: str, *scope) -> str:
    """``base`` if free among live rows, otherwise ``base-<8 hex>``."""
    return await _first_free(db, model, base, random_suffix_slug, *scope)


async def _first_free(db: AsyncSession, model, base: str, make: Callable[[str, int], str], *scope) -> str:
    for attempt in range(MAX_SLUG_ATTEMPTS):
        candidate = make(base, attempt)
        existing = await db.execute(
            select(model.id).where(model.slug == candidate, model.live(), *scope).limit(1)
        )
        if existing.scalar_one_or_none() is None:
            return candidate
    raise ConflictError("Could not allocate a unique slug")
