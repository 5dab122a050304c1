"""
Project service: CRUD and collaborator grants.

Every read and write goes through the project predicates in
``core.policies``; a project the actor may not view is reported as not found.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.domain.project import (
    Collaboration,
    CollaboratorRole,
    CollaboratorStatus,
    ProjectFacts,
    ProjectStatus,
    ProjectVisibility,
)
from core.domain.template import TemplateFacts
from core.domain.user import Actor
from core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from core.policies import (
    can_insert_project,
    can_manage_collaborators,
    can_modify_project,
    can_view_project,
    can_view_template,
    is_live_actor,
)
from core.slugs import slugify
from infrastructure.database.models.activity import ActivityAction, ResourceType
from infrastructure.database.models.project import Project, ProjectCollaborator
from infrastructure.database.models.team import Team
from infrastructure.database.models.template import Template
from infrastructure.database.models.user import User
from infrastructure.database.queries import escape_like, next_random_slug
from services.activity_log import ActivityLogService, RequestContext
from services.memberships import (
    get_active_collaborations,
    get_active_memberships,
    get_collaboration,
    get_membership,
)

logger = logging.getLogger(__name__)

SLUG_RACE_RETRIES = 3

# Columns UpdateProject may write
UPDATABLE_FIELDS = (
    "name",
    "description",
    "frontend_stack",
    "backend_stack",
    "auth_method",
    "visibility",
    "is_public",
    "status",
    "file_structure",
    "database_schema",
    "api_endpoints",
    "environment_variables",
    "dependencies",
    "deployment_config",
    "security_recommendations",
)


class ProjectService:
    def __init__(self, db: AsyncSession, context: Optional[RequestContext] = None):
        self.db = db
        self.activity = ActivityLogService(db, context)

    async def _live_project(self, project_id: str) -> Optional[Project]:
        result = await self.db.execute(
            select(Project).where(Project.id == project_id, Project.live())
        )
        return result.scalar_one_or_none()

    async def _access(self, actor: Optional[Actor], project_id: str):
        """Load a project with the actor's membership and collaboration, or raise NotFoundError."""
        project = await self._live_project(project_id)
        if project is None:
            raise NotFoundError("Project not found")
        actor_id = actor.id if actor else None
        membership = await get_membership(self.db, project.team_id, actor_id)
        collaboration = await get_collaboration(self.db, project.id, actor_id)
        facts = ProjectFacts.from_row(project)
        if not can_view_project(actor, facts, membership, collaboration):
            raise NotFoundError("Project not found")
        return project, facts, membership, collaboration

    async def resolve_template(self, actor: Actor, template_id: str) -> Template:
        """A live template the actor may view, or NotFoundError."""
        result = await self.db.execute(
            select(Template).where(Template.id == template_id, Template.live())
        )
        template = result.scalar_one_or_none()
        membership = await get_membership(self.db, template.team_id if template else None, actor.id)
        if template is None or not can_view_template(actor, TemplateFacts.from_row(template), membership):
            raise NotFoundError("Template not found")
        return template

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(
        self,
        actor: Actor,
        name: str,
        description: Optional[str] = None,
        frontend_stack: Optional[str] = None,
        backend_stack: Optional[str] = None,
        auth_method: Optional[str] = None,
        visibility: str = ProjectVisibility.PRIVATE.value,
        is_public: bool = False,
        team_id: Optional[str] = None,
        template_id: Optional[str] = None,
        **scaffold: Any,
    ) -> Project:
        """
        Create a draft project owned by the actor.

        Raises:
            ValidationError: empty name, or team visibility without a team
            ForbiddenError: team given that the actor does not actively belong to
            NotFoundError: template missing or not viewable
            ConflictError: team project limit reached
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("name", "must not be empty")
        if visibility == ProjectVisibility.TEAM.value and not team_id:
            raise ValidationError("team_id", "required when visibility is team")

        membership = await get_membership(self.db, team_id, actor.id)
        if not can_insert_project(actor, actor.id, team_id, membership):
            raise ForbiddenError("You can only add projects to teams you belong to")

        if team_id:
            result = await self.db.execute(select(Team).where(Team.id == team_id, Team.live()))
            team = result.scalar_one_or_none()
            if team is None:
                raise NotFoundError("Team not found")
            count = await self.db.execute(
                select(func.count()).select_from(Project).where(
                    Project.team_id == team_id, Project.live()
                )
            )
            if int(count.scalar() or 0) >= team.project_limit:
                raise ConflictError(f"Team has reached its project limit of {team.project_limit}")

        if template_id:
            await self.resolve_template(actor, template_id)

        values = dict(
            name=name,
            description=(description or "").strip() or None,
            frontend_stack=frontend_stack,
            backend_stack=backend_stack,
            auth_method=auth_method,
            visibility=visibility,
            is_public=is_public,
            team_id=team_id,
            template_id=template_id,
            status=ProjectStatus.DRAFT.value,
            **{k: v for k, v in scaffold.items() if k in UPDATABLE_FIELDS},
        )
        project = await self.insert_project(
            actor,
            values,
            action=ActivityAction.PROJECT_CREATED,
            details={
                "frontend_stack": frontend_stack,
                "backend_stack": backend_stack,
                "template_id": template_id,
            },
        )
        logger.info("Project %s created by %s", project.id, actor.id, extra={"user_id": actor.id, "team_id": team_id})
        return project

    async def insert_project(
        self,
        actor: Actor,
        values: dict,
        action: ActivityAction,
        details: Optional[dict] = None,
        on_commit=None,
    ) -> Project:
        """
        Insert a project under a per-owner unique slug and commit it with its audit entry.

        ``on_commit`` is awaited inside the same transaction before the commit,
        for callers that have further writes to land with the project.
        """
        actor_id = actor.id
        base_slug = slugify(values["name"], fallback="project")
        template_id = values.get("template_id")

        for attempt in range(SLUG_RACE_RETRIES):
            slug = await next_random_slug(self.db, Project, base_slug, Project.owner_user_id == actor_id)
            project = Project(owner_user_id=actor_id, slug=slug, **values)
            self.db.add(project)
            try:
                await self.db.flush()
                if template_id:
                    await self.db.execute(
                        update(Template)
                        .where(Template.id == template_id)
                        .values(usage_count=Template.usage_count + 1)
                    )
                if on_commit is not None:
                    await on_commit(project)
                self.activity.record(
                    user_id=actor_id,
                    team_id=project.team_id,
                    action=action.value,
                    resource_type=ResourceType.PROJECT.value,
                    resource_id=project.id,
                    details={**(details or {}), "project_id": project.id},
                )
                await self.db.commit()
            except IntegrityError:
                await self.db.rollback()
                logger.warning("Project slug %s taken concurrently, retrying (attempt %d)", slug, attempt + 1)
                continue
            await self.db.refresh(project)
            return project

        raise ConflictError("Could not allocate a unique project slug, please try another name")

    async def list_projects(
        self,
        actor: Actor,
        status: Optional[str] = None,
        team_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Project], int]:
        """
        Projects the actor owns, shares through a team, or collaborates on.

        Memberships and collaborations are loaded active-only, so the WHERE
        clause admits exactly what ``can_view_project`` would and paging
        happens in SQL.
        """
        if not is_live_actor(actor):
            return [], 0
        memberships = await get_active_memberships(self.db, actor.id)
        collaborations = await get_active_collaborations(self.db, actor.id)

        reach = [Project.owner_user_id == actor.id]
        if memberships:
            reach.append(Project.team_id.in_(list(memberships)))
        if collaborations:
            reach.append(Project.id.in_(list(collaborations)))

        query = select(Project).where(Project.live(), or_(*reach))
        if status:
            query = query.where(Project.status == status)
        if team_id:
            query = query.where(Project.team_id == team_id)
        if search:
            pattern = f"%{escape_like(search)}%"
            query = query.where(
                or_(
                    Project.name.ilike(pattern, escape="\\"),
                    Project.description.ilike(pattern, escape="\\"),
                )
            )

        counted = await self.db.execute(select(func.count()).select_from(query.subquery()))
        result = await self.db.execute(
            query.order_by(Project.created_at.desc(), Project.id).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), counted.scalar_one()

    async def get_project(self, actor: Optional[Actor], project_id: str) -> Project:
        project, *_ = await self._access(actor, project_id)
        return project

    async def update_project(self, actor: Actor, project_id: str, changes: dict) -> Project:
        project, facts, membership, collaboration = await self._access(actor, project_id)
        if not can_modify_project(actor, facts, membership, collaboration):
            raise ForbiddenError("You do not have permission to modify this project")

        changes = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        if "name" in changes:
            changes["name"] = (changes["name"] or "").strip()
            if not changes["name"]:
                raise ValidationError("name", "must not be empty")
        if changes.get("visibility") == ProjectVisibility.TEAM.value and not project.team_id:
            raise ValidationError("visibility", "team visibility requires the project to belong to a team")
        for key in ("visibility", "status", "is_public"):
            if key in changes and changes[key] is None:
                raise ValidationError(key, "must not be null")

        for key, value in changes.items():
            setattr(project, key, value)
        project.updated_at = datetime.now(UTC)

        self.activity.record(
            user_id=actor.id,
            team_id=project.team_id,
            action=ActivityAction.PROJECT_UPDATED.value,
            resource_type=ResourceType.PROJECT.value,
            resource_id=project.id,
            details={"fields": sorted(changes)},
        )
        await self.db.commit()
        await self.db.refresh(project)
        return project

    async def delete_project(self, actor: Actor, project_id: str) -> None:
        """Soft delete. The row stays for audit; every read path skips it."""
        project, facts, membership, collaboration = await self._access(actor, project_id)
        if not can_modify_project(actor, facts, membership, collaboration):
            raise ForbiddenError("You do not have permission to delete this project")

        project.deleted_at = datetime.now(UTC)
        self.activity.record(
            user_id=actor.id,
            team_id=project.team_id,
            action=ActivityAction.PROJECT_DELETED.value,
            resource_type=ResourceType.PROJECT.value,
            resource_id=project.id,
            details={"name": project.name},
        )
        await self.db.commit()
        logger.info("Project %s deleted by %s", project_id, actor.id)

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    async def _managed_project(self, actor: Actor, project_id: str) -> Project:
        project, facts, _, _ = await self._access(actor, project_id)
        if not can_manage_collaborators(actor, facts):
            raise ForbiddenError("Only the project owner can manage collaborators")
        return project

    async def _collaborator_row(self, project_id: str, user_id: str) -> Optional[ProjectCollaborator]:
        result = await self.db.execute(
            select(ProjectCollaborator).where(
                ProjectCollaborator.project_id == project_id,
                ProjectCollaborator.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_collaborators(self, actor: Actor, project_id: str) -> list[tuple[ProjectCollaborator, User]]:
        await self._access(actor, project_id)
        result = await self.db.execute(
            select(ProjectCollaborator, User)
            .join(User, User.id == ProjectCollaborator.user_id)
            .where(
                ProjectCollaborator.project_id == project_id,
                ProjectCollaborator.status != CollaboratorStatus.REMOVED.value,
            )
            .order_by(ProjectCollaborator.created_at)
        )
        return list(result.all())

    async def add_collaborator(
        self,
        actor: Actor,
        project_id: str,
        email: str,
        role: str = CollaboratorRole.VIEWER.value,
    ) -> ProjectCollaborator:
        project = await self._managed_project(actor, project_id)
        if role not in {r.value for r in CollaboratorRole}:
            raise ValidationError("role", f"unknown collaborator role '{role}'")

        email = (email or "").strip().lower()
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email, User.live())
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")
        if user.id == project.owner_user_id:
            raise ValidationError("email", "the project owner cannot be added as a collaborator")

        row = await self._collaborator_row(project_id, user.id)
        if row is not None and row.status != CollaboratorStatus.REMOVED.value:
            raise ConflictError("User is already a collaborator on this project")
        if row is None:
            row = ProjectCollaborator(project_id=project_id, user_id=user.id)
            self.db.add(row)
        row.role = role
        row.status = CollaboratorStatus.ACTIVE.value
        row.invited_by = actor.id
        await self.db.flush()

        self.activity.record(
            user_id=actor.id,
            team_id=project.team_id,
            action=ActivityAction.COLLABORATOR_ADDED.value,
            resource_type=ResourceType.PROJECT_COLLABORATOR.value,
            resource_id=row.id,
            details={"project_id": project_id, "collaborator_id": user.id, "role": role},
        )
        await self.db.commit()
        await self.db.refresh(row)
        return row

    async def update_collaborator(
        self,
        actor: Actor,
        project_id: str,
        user_id: str,
        role: Optional[str] = None,
        status: Optional[str] = None,
    ) -> ProjectCollaborator:
        project = await self._managed_project(actor, project_id)
        if role is not None and role not in {r.value for r in CollaboratorRole}:
            raise ValidationError("role", f"unknown collaborator role '{role}'")
        if status is not None and status not in {s.value for s in CollaboratorStatus}:
            raise ValidationError("status", f"unknown collaborator status '{status}'")

        row = await self._collaborator_row(project_id, user_id)
        if row is None or row.status == CollaboratorStatus.REMOVED.value:
            raise NotFoundError("Collaborator not found")

        previous = Collaboration.from_row(row)
        if role is not None:
            row.role = role
        if status is not None:
            row.status = status
        row.updated_at = datetime.now(UTC)

        self.activity.record(
            user_id=actor.id,
            team_id=project.team_id,
            action=ActivityAction.COLLABORATOR_UPDATED.value,
            resource_type=ResourceType.PROJECT_COLLABORATOR.value,
            resource_id=row.id,
            details={
                "project_id": project_id,
                "collaborator_id": user_id,
                "previous_role": previous.role,
                "previous_status": previous.status,
                "role": row.role,
                "status": row.status,
            },
        )
        await self.db.commit()
        await self.db.refresh(row)
        return row

    async def remove_collaborator(self, actor: Actor, project_id: str, user_id: str) -> None:
        project = await self._managed_project(actor, project_id)
        row = await self._collaborator_row(project_id, user_id)
        if row is None or row.status == CollaboratorStatus.REMOVED.value:
            raise NotFoundError("Collaborator not found")

        row.status = CollaboratorStatus.REMOVED.value
        row.updated_at = datetime.now(UTC)
        self.activity.record(
            user_id=actor.id,
            team_id=project.team_id,
            action=ActivityAction.COLLABORATOR_REMOVED.value,
            resource_type=ResourceType.PROJECT_COLLABORATOR.value,
            resource_id=row.id,
            details={"project_id": project_id, "collaborator_id": user_id},
        )
        await self.db.commit()
