"""
Scaffold generation API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentActor, RequestCtx
from api.middleware.rate_limit import get_rate_limit, limiter
from api.schemas.project import ProjectResponse
from api.schemas.scaffold import (
    GenerateScaffoldRequest,
    GenerateScaffoldResponse,
    ScaffoldResponse,
    UsageResponse,
)
from infrastructure.database.connection import get_db
from services.scaffold_generation import ScaffoldGenerationService
from services.usage_quota import GenerationQuotaService

router = APIRouter(prefix="/scaffold", tags=["Scaffold Generation"])


@router.post(
    "/generate",
    response_model=GenerateScaffoldResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(get_rate_limit("scaffold"))
async def generate_scaffold(
    request: Request,
    body: GenerateScaffoldRequest,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Generate a project scaffold from an app idea and store it as a project.

    Counts against the caller's monthly generation quota. Keys the generator
    leaves out come back filled with stack-aware defaults.
    """
    project, scaffold = await ScaffoldGenerationService(db, ctx).generate(
        actor,
        app_idea=body.app_idea,
        frontend_stack=body.frontend_stack.value,
        backend_stack=body.backend_stack.value if body.backend_stack else None,
        auth_method=body.auth_type.value if body.auth_type else None,
        template_id=body.template_id,
    )
    return GenerateScaffoldResponse(
        project=ProjectResponse.model_validate(project),
        scaffold=ScaffoldResponse.model_validate(scaffold),
        generation_time=project.generation_time_ms or 0,
    )


@router.get("/usage", response_model=UsageResponse)
async def get_usage(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Generations used this period against the caller's tier limit."""
    quota = GenerationQuotaService(db)
    await quota.reset_if_due(actor.id)
    return await quota.get_usage(actor.id)
