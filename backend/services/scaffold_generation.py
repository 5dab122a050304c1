"""
Scaffold generation: quota, generator call and project persistence.
"""

import logging
import time
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from adapters.ai.anthropic_adapter import (
    MAX_APP_IDEA_LENGTH,
    AnthropicScaffoldService,
    GeneratedScaffold,
    generate_project_name,
    scaffold_ai_service,
)
from core.domain.project import ProjectStatus
from core.domain.user import Actor
from core.exceptions import ValidationError
from infrastructure.database.models.activity import ActivityAction
from infrastructure.database.models.project import Project
from infrastructure.database.models.user import User
from services.activity_log import RequestContext
from services.projects import ProjectService
from services.usage_quota import GenerationQuotaService

logger = logging.getLogger(__name__)


class ScaffoldGenerationService:
    """
    Generate a scaffold for the actor and store it as a project.

    The generation slot is claimed and committed before the generator runs,
    so no transaction stays open across the external call. Any failure after
    the claim hands the slot back.
    """

    def __init__(
        self,
        db: AsyncSession,
        context: Optional[RequestContext] = None,
        generator: Optional[AnthropicScaffoldService] = None,
    ):
        self.db = db
        self.generator = generator or scaffold_ai_service
        self.projects = ProjectService(db, context)
        self.quota = GenerationQuotaService(db)

    async def generate(
        self,
        actor: Actor,
        app_idea: str,
        frontend_stack: str,
        backend_stack: Optional[str] = None,
        auth_method: Optional[str] = None,
        template_id: Optional[str] = None,
    ) -> tuple[Project, GeneratedScaffold]:
        """
        Raises:
            ValidationError: empty or oversized app idea
            NotFoundError: template missing or not viewable
            QuotaExceededError: monthly limit reached; nothing is written
            TransientError: generator timed out or is unavailable
            ConfigurationError: generator is not configured
        """
        app_idea = (app_idea or "").strip()
        if not app_idea:
            raise ValidationError("app_idea", "must not be empty")
        if len(app_idea) > MAX_APP_IDEA_LENGTH:
            raise ValidationError("app_idea", f"must be at most {MAX_APP_IDEA_LENGTH} characters")
        if not frontend_stack:
            raise ValidationError("frontend_stack", "is required")

        actor_id = actor.id
        base_template = None
        if template_id:
            template = await self.projects.resolve_template(actor, template_id)
            base_template = template.file_structure

        await self.quota.reset_if_due(actor_id)
        await self.quota.reserve(actor_id, actor.subscription_tier)

        started = time.monotonic()
        try:
            scaffold = await self.generator.generate_scaffold(
                app_idea=app_idea,
                frontend_stack=frontend_stack,
                backend_stack=backend_stack,
                auth_method=auth_method,
                base_template=base_template,
            )
        except Exception:
            await self.db.rollback()
            await self.quota.release(actor_id)
            raise
        generation_time_ms = int((time.monotonic() - started) * 1000)

        async def count_generation(project: Project) -> None:
            await self.db.execute(
                update(User)
                .where(User.id == actor_id)
                .values(projects_generated=User.projects_generated + 1)
            )

        values = dict(
            name=generate_project_name(app_idea),
            description=app_idea,
            frontend_stack=frontend_stack,
            backend_stack=backend_stack,
            auth_method=auth_method,
            template_id=template_id,
            status=ProjectStatus.GENERATED.value,
            file_structure=scaffold.project_structure,
            database_schema=scaffold.database_schema,
            api_endpoints=scaffold.api_endpoints,
            environment_variables=scaffold.environment_variables,
            dependencies=scaffold.dependencies,
            deployment_config=scaffold.deployment_config,
            security_recommendations=scaffold.security_recommendations,
            original_prompt=app_idea,
            ai_model_used=scaffold.model,
            generation_time_ms=generation_time_ms,
        )
        try:
            project = await self.projects.insert_project(
                actor,
                values,
                action=ActivityAction.SCAFFOLD_GENERATED,
                details={
                    "frontend_stack": frontend_stack,
                    "backend_stack": backend_stack,
                    "auth_type": auth_method,
                    "generation_time_ms": generation_time_ms,
                    "defaulted_keys": scaffold.defaulted_keys,
                },
                on_commit=count_generation,
            )
        except Exception:
            await self.db.rollback()
            await self.quota.release(actor_id)
            logger.exception("Failed to store generated scaffold for user %s", actor_id)
            raise

        logger.info(
            "Scaffold generated for user %s in %dms (project %s)",
            actor_id,
            generation_time_ms,
            project.id,
            extra={"user_id": actor_id, "action": ActivityAction.SCAFFOLD_GENERATED.value},
        )
        return project, scaffold
