"""
Template marketplace service: search, read, create, update, delete and moderate.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.team import Membership
from core.domain.template import TemplateFacts, TemplateVisibility
from core.domain.user import Actor
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.policies import (
    can_insert_template,
    can_moderate_templates,
    can_modify_template,
    can_view_template,
    has_premium_access,
    is_live_actor,
)
from core.slugs import slugify
from infrastructure.database.models.activity import ActivityAction, ResourceType
from infrastructure.database.models.template import Template, TemplateRating
from infrastructure.database.queries import escape_like, next_numbered_slug
from services.activity_log import ActivityLogService, RequestContext
from services.memberships import get_active_memberships, get_membership

logger = logging.getLogger(__name__)

SLUG_RACE_RETRIES = 3

MIN_RATING = 1
MAX_RATING = 5

# Ratings returned alongside a template read
RECENT_RATINGS = 20

SORT_COLUMNS = {
    "created_at": Template.created_at,
    "usage_count": Template.usage_count,
    "rating_average": Template.rating_average,
    "view_count": Template.view_count,
}

REQUIRED_FIELDS = ("name", "description", "category", "frontend_stack", "file_structure")

# Columns CreateTemplate/UpdateTemplate may write
EDITABLE_FIELDS = (
    "name",
    "description",
    "short_description",
    "category",
    "tags",
    "frontend_stack",
    "backend_stack",
    "auth_methods",
    "file_structure",
    "database_schema",
    "visibility",
)


@dataclass
class TemplateSearchParams:
    category: Optional[str] = None
    frontend_stack: Optional[str] = None
    backend_stack: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    search: Optional[str] = None
    visibility: Optional[str] = None
    sort_by: str = "created_at"
    sort_order: str = "desc"
    limit: int = 20
    offset: int = 0


@dataclass
class TemplateSearchResult:
    templates: list[Template]
    total: int
    offset: int
    limit: int
    facets: dict[str, list[str]]


@dataclass
class TemplateDetail:
    template: Template
    ratings: list[TemplateRating] = field(default_factory=list)


class TemplateService:
    def __init__(self, db: AsyncSession, context: Optional[RequestContext] = None):
        self.db = db
        self.activity = ActivityLogService(db, context)

    async def _live_template(self, template_id: str, lock: bool = False) -> Optional[Template]:
        query = select(Template).where(Template.id == template_id, Template.live())
        if lock:
            query = query.with_for_update()
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _viewable(self, actor: Optional[Actor], template_id: str) -> tuple[Template, Optional[Membership]]:
        template = await self._live_template(template_id)
        membership = None
        if template is not None and actor is not None:
            membership = await get_membership(self.db, template.team_id, actor.id)
        if template is None or not can_view_template(actor, TemplateFacts.from_row(template), membership):
            raise NotFoundError("Template not found")
        return template, membership

    def _listable(self, actor: Optional[Actor], team_ids: list[str]):
        """
        WHERE clause matching the live templates ``can_list_template`` admits.

        Creators list their own templates in any state. Moderators list every
        template except other people's unlisted ones. Everyone else lists
        approved templates that are public, premium with paid access, or
        team-visible for a team they actively belong to.
        """
        if not is_live_actor(actor):
            return and_(
                Template.live(),
                Template.is_approved.is_(True),
                Template.visibility == TemplateVisibility.PUBLIC.value,
            )
        if actor.is_moderator:
            return and_(
                Template.live(),
                or_(
                    Template.created_by == actor.id,
                    Template.visibility != TemplateVisibility.UNLISTED.value,
                ),
            )

        open_to_actor = [Template.visibility == TemplateVisibility.PUBLIC.value]
        if has_premium_access(actor):
            open_to_actor.append(Template.visibility == TemplateVisibility.PREMIUM.value)
        if team_ids:
            open_to_actor.append(
                and_(
                    Template.visibility == TemplateVisibility.TEAM.value,
                    Template.team_id.in_(team_ids),
                )
            )
        return and_(
            Template.live(),
            or_(
                Template.created_by == actor.id,
                and_(Template.is_approved.is_(True), or_(*open_to_actor)),
            ),
        )

    async def search_templates(self, actor: Optional[Actor], params: TemplateSearchParams) -> TemplateSearchResult:
        """
        Templates the caller may list, with facet values over everything they may list.

        Unlisted templates only show up for their creator; everyone else
        reaches them by id. Paging happens in SQL unless a tag filter is
        given, since tag overlap on the JSON column is matched in Python.
        """
        memberships = await get_active_memberships(self.db, actor.id) if actor else {}
        listable = self._listable(actor, list(memberships))

        query = select(Template).where(listable)
        if params.category:
            query = query.where(Template.category == params.category)
        if params.frontend_stack:
            query = query.where(Template.frontend_stack == params.frontend_stack)
        if params.backend_stack:
            query = query.where(Template.backend_stack == params.backend_stack)
        if params.visibility:
            query = query.where(Template.visibility == params.visibility)
        if params.search:
            pattern = f"%{escape_like(params.search)}%"
            query = query.where(
                or_(
                    Template.name.ilike(pattern, escape="\\"),
                    Template.description.ilike(pattern, escape="\\"),
                )
            )

        column = SORT_COLUMNS.get(params.sort_by, Template.created_at)
        ordering = column.asc() if params.sort_order == "asc" else column.desc()
        ordered = query.order_by(ordering, Template.id)

        wanted_tags = {tag.strip().lower() for tag in params.tags if tag and tag.strip()}
        if wanted_tags:
            result = await self.db.execute(ordered)
            matches = [
                template
                for template in result.scalars().all()
                if wanted_tags & {str(t).lower() for t in (template.tags or [])}
            ]
            total = len(matches)
            page = matches[params.offset:params.offset + params.limit]
        else:
            counted = await self.db.execute(select(func.count()).select_from(query.subquery()))
            total = counted.scalar_one()
            result = await self.db.execute(ordered.limit(params.limit).offset(params.offset))
            page = list(result.scalars().all())

        facet_rows = await self.db.execute(
            select(Template.category, Template.frontend_stack, Template.backend_stack)
            .where(listable)
            .distinct()
        )
        rows = facet_rows.all()
        facets = {
            "categories": sorted({row.category for row in rows}),
            "frontend_stacks": sorted({row.frontend_stack for row in rows}),
            "backend_stacks": sorted({row.backend_stack for row in rows if row.backend_stack}),
        }

        if actor is not None:
            self.activity.record(
                user_id=actor.id,
                action=ActivityAction.TEMPLATE_SEARCH.value,
                resource_type=ResourceType.TEMPLATE.value,
                details={
                    "search_params": {
                        "category": params.category,
                        "frontend_stack": params.frontend_stack,
                        "backend_stack": params.backend_stack,
                        "tags": sorted(wanted_tags),
                        "search": params.search,
                        "visibility": params.visibility,
                    },
                    "results_count": len(page),
                },
            )
            await self.db.commit()

        return TemplateSearchResult(
            templates=page,
            total=total,
            offset=params.offset,
            limit=params.limit,
            facets=facets,
        )

    async def get_template(self, actor: Optional[Actor], template_id: str) -> TemplateDetail:
        """A viewable template with its most recent ratings. Each read bumps ``view_count``."""
        template, _ = await self._viewable(actor, template_id)

        await self.db.execute(
            update(Template)
            .where(Template.id == template.id)
            .values(view_count=Template.view_count + 1)
        )
        if actor is not None:
            self.activity.record(
                user_id=actor.id,
                team_id=template.team_id,
                action=ActivityAction.TEMPLATE_VIEWED.value,
                resource_type=ResourceType.TEMPLATE.value,
                resource_id=template.id,
                details={"template_name": template.name, "template_category": template.category},
            )
        await self.db.commit()
        await self.db.refresh(template)

        ratings = await self.db.execute(
            select(TemplateRating)
            .where(TemplateRating.template_id == template.id)
            .order_by(TemplateRating.updated_at.desc(), TemplateRating.id)
            .limit(RECENT_RATINGS)
        )
        return TemplateDetail(template=template, ratings=list(ratings.scalars().all()))

    async def rate_template(
        self, actor: Actor, template_id: str, rating: int, review: Optional[str] = None
    ) -> TemplateRating:
        """
        Rate a template, replacing any earlier rating by the same user.

        ``rating_average`` and ``rating_count`` on the template are recomputed
        from every rating in the same commit as the write.

        Raises:
            ValidationError: rating outside 1-5
            NotFoundError: template missing or not viewable by the actor
            ForbiddenError: the actor created the template
        """
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationError("rating", f"must be between {MIN_RATING} and {MAX_RATING}")
        template, _ = await self._viewable(actor, template_id)
        if template.created_by == actor.id:
            raise ForbiddenError("You cannot rate your own template")

        # Row lock serializes concurrent ratings so the aggregate sees every committed row
        await self._live_template(template.id, lock=True)
        review = (review.strip() or None) if review else None
        actor_id = actor.id

        result = await self.db.execute(
            select(TemplateRating).where(
                TemplateRating.template_id == template.id, TemplateRating.user_id == actor_id
            )
        )
        entry = result.scalar_one_or_none()
        previous = entry.rating if entry is not None else None
        if entry is None:
            entry = TemplateRating(template_id=template.id, user_id=actor_id, rating=rating, review=review)
            self.db.add(entry)
        else:
            entry.rating = rating
            entry.review = review

        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            raise ConflictError("Your rating was submitted twice at once, please retry")

        stats = await self.db.execute(
            select(func.avg(TemplateRating.rating), func.count(TemplateRating.id)).where(
                TemplateRating.template_id == template.id
            )
        )
        average, count = stats.one()
        template.rating_average = float(average or 0.0)
        template.rating_count = count

        self.activity.record(
            user_id=actor_id,
            team_id=template.team_id,
            action=ActivityAction.TEMPLATE_RATED.value,
            resource_type=ResourceType.TEMPLATE.value,
            resource_id=template.id,
            details={"rating": rating, "previous_rating": previous, "has_review": review is not None},
        )
        await self.db.commit()
        await self.db.refresh(entry)
        logger.info("Template %s rated %d by %s", template_id, rating, actor_id)
        return entry

    async def create_template(self, actor: Actor, data: dict[str, Any]) -> Template:
        """
        Create a template awaiting moderation.

        Raises:
            ValidationError: a required field is missing, or team visibility without a team
            ForbiddenError: team given that the actor does not actively belong to
        """
        for field_name in REQUIRED_FIELDS:
            if not data.get(field_name):
                raise ValidationError(field_name, "is required")

        team_id = data.get("team_id")
        visibility = data.get("visibility") or TemplateVisibility.PRIVATE.value
        if visibility == TemplateVisibility.TEAM.value and not team_id:
            raise ValidationError("team_id", "required when visibility is team")

        membership = await get_membership(self.db, team_id, actor.id)
        if not can_insert_template(actor, actor.id, team_id, membership):
            raise ForbiddenError("You can only add templates to teams you belong to")

        values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        values["name"] = values["name"].strip()
        values["visibility"] = visibility
        base_slug = slugify(values["name"], fallback="template")
        actor_id = actor.id

        for attempt in range(SLUG_RACE_RETRIES):
            slug = await next_numbered_slug(self.db, Template, base_slug)
            template = Template(
                created_by=actor_id,
                team_id=team_id,
                slug=slug,
                is_approved=False,
                **values,
            )
            self.db.add(template)
            try:
                await self.db.flush()
                self.activity.record(
                    user_id=actor_id,
                    team_id=team_id,
                    action=ActivityAction.TEMPLATE_CREATED.value,
                    resource_type=ResourceType.TEMPLATE.value,
                    resource_id=template.id,
                    details={
                        "name": template.name,
                        "category": template.category,
                        "visibility": template.visibility,
                    },
                )
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.warning("Template slug %s taken concurrently, retrying (attempt %d)", slug, attempt + 1)
                continue
            await self.db.refresh(template)
            logger.info("Template %s created by %s", template.id, actor_id, extra={"user_id": actor_id})
            return template

        raise ConflictError("Could not allocate a unique template slug, please try another name")

    async def update_template(self, actor: Actor, template_id: str, changes: dict[str, Any]) -> Template:
        """
        Edit a template. Edits by anyone but a moderator send it back to review.
        """
        template, membership = await self._viewable(actor, template_id)
        if not can_modify_template(actor, TemplateFacts.from_row(template), membership):
            raise ForbiddenError("You do not have permission to modify this template")

        changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        for field_name in REQUIRED_FIELDS:
            if field_name in changes and not changes[field_name]:
                raise ValidationError(field_name, "must not be empty")
        if changes.get("visibility") == TemplateVisibility.TEAM.value and not template.team_id:
            raise ValidationError("visibility", "team visibility requires the template to belong to a team")

        for key, value in changes.items():
            setattr(template, key, value)
        if changes and not actor.is_moderator:
            template.is_approved = False
            template.approved_by = None
            template.approved_at = None
        template.updated_at = datetime.now(UTC)

        self.activity.record(
            user_id=actor.id,
            team_id=template.team_id,
            action=ActivityAction.TEMPLATE_UPDATED.value,
            resource_type=ResourceType.TEMPLATE.value,
            resource_id=template.id,
            details={"fields": sorted(changes)},
        )
        await self.db.commit()
        await self.db.refresh(template)
        return template

    async def delete_template(self, actor: Actor, template_id: str) -> None:
        template, membership = await self._viewable(actor, template_id)
        if not can_modify_template(actor, TemplateFacts.from_row(template), membership):
            raise ForbiddenError("You do not have permission to delete this template")

        template.deleted_at = datetime.now(UTC)
        template.deleted_by = actor.id
        self.activity.record(
            user_id=actor.id,
            team_id=template.team_id,
            action=ActivityAction.TEMPLATE_DELETED.value,
            resource_type=ResourceType.TEMPLATE.value,
            resource_id=template.id,
            details={"name": template.name},
        )
        await self.db.commit()
        logger.info("Template %s deleted by %s", template_id, actor.id)

    async def set_approval(self, actor: Actor, template_id: str, approved: bool) -> Template:
        """Approve or withdraw approval. Moderators only."""
        if not can_moderate_templates(actor):
            raise ForbiddenError("Only moderators can approve templates")
        template = await self._live_template(template_id)
        if template is None:
            raise NotFoundError("Template not found")

        template.is_approved = approved
        template.approved_by = actor.id if approved else None
        template.approved_at = datetime.now(UTC) if approved else None
        self.activity.record(
            user_id=actor.id,
            team_id=template.team_id,
            action=ActivityAction.TEMPLATE_APPROVED.value,
            resource_type=ResourceType.TEMPLATE.value,
            resource_id=template.id,
            details={"approved": approved},
        )
        await self.db.commit()
        await self.db.refresh(template)
        return template
