"""
Template marketplace API routes.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentActor, OptionalActor, RequestCtx
from api.schemas.template import (
    Pagination,
    TemplateApprovalRequest,
    TemplateCreate,
    TemplateDetailResponse,
    TemplateFacets,
    TemplateRatingRequest,
    TemplateRatingResponse,
    TemplateResponse,
    TemplateSearchQuery,
    TemplateSearchResponse,
    TemplateUpdate,
)
from infrastructure.database.connection import get_db
from services.templates import TemplateSearchParams, TemplateService

router = APIRouter(prefix="/templates", tags=["Templates"])


@router.get("", response_model=TemplateSearchResponse)
async def search_templates(
    query: Annotated[TemplateSearchQuery, Query()],
    actor: OptionalActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Search the marketplace.

    Anonymous callers see approved public templates. Facets cover every
    template the caller could list, regardless of the active filters.
    """
    params = TemplateSearchParams(
        category=query.category.value if query.category else None,
        frontend_stack=query.frontend_stack.value if query.frontend_stack else None,
        backend_stack=query.backend_stack.value if query.backend_stack else None,
        tags=[t.strip() for t in (query.tags or "").split(",") if t.strip()],
        search=query.search,
        visibility=query.visibility.value if query.visibility else None,
        sort_by=query.sort_by,
        sort_order=query.sort_order,
        limit=query.limit,
        offset=query.offset,
    )
    result = await TemplateService(db, ctx).search_templates(actor, params)
    return TemplateSearchResponse(
        templates=[TemplateResponse.model_validate(t) for t in result.templates],
        pagination=Pagination(offset=result.offset, limit=result.limit, total=result.total),
        facets=TemplateFacets(**result.facets),
    )


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    data: TemplateCreate,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Publish a template. It is listed once a moderator approves it."""
    return await TemplateService(db, ctx).create_template(actor, data.model_dump(mode="json"))


@router.get("/{template_id}", response_model=TemplateDetailResponse)
async def get_template(
    template_id: str,
    actor: OptionalActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a template by id with its most recent ratings. Counts as a view."""
    detail = await TemplateService(db, ctx).get_template(actor, template_id)
    return TemplateDetailResponse(
        **TemplateResponse.model_validate(detail.template).model_dump(),
        ratings=[TemplateRatingResponse.model_validate(r) for r in detail.ratings],
    )


@router.put("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: str,
    data: TemplateUpdate,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Edit a template. Edits by non-moderators send it back for approval."""
    changes = data.model_dump(mode="json", exclude_unset=True)
    return await TemplateService(db, ctx).update_template(actor, template_id, changes)


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: str,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await TemplateService(db, ctx).delete_template(actor, template_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{template_id}/approval", response_model=TemplateResponse)
async def set_template_approval(
    template_id: str,
    data: TemplateApprovalRequest,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Approve or withdraw approval. Moderators and admins only."""
    return await TemplateService(db, ctx).set_approval(actor, template_id, data.approved)


@router.post("/{template_id}/ratings", response_model=TemplateRatingResponse)
async def rate_template(
    template_id: str,
    data: TemplateRatingRequest,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Rate a template 1-5 with an optional review. Rating again replaces the earlier one."""
    return await TemplateService(db, ctx).rate_template(actor, template_id, data.rating, data.review)
