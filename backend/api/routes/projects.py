"""
Project management API routes.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentActor, OptionalActor, RequestCtx
from api.schemas.project import (
    CollaboratorCreate,
    CollaboratorListResponse,
    CollaboratorResponse,
    CollaboratorUpdate,
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from api.schemas.user import UserSummary
from core.domain.project import ProjectStatus
from infrastructure.database.connection import get_db
from services.projects import ProjectService

router = APIRouter(prefix="/projects", tags=["Projects"])


# =============================================================================
# Project CRUD
# =============================================================================

@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    data: ProjectCreate,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Create a draft project owned by the caller.

    A ``team_id`` shares the project with that team; the caller must be an
    active member of it.
    """
    return await ProjectService(db, ctx).create_project(actor, **data.model_dump(mode="json"))


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
    project_status: Optional[ProjectStatus] = Query(None, alias="status"),
    team_id: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """List projects the caller owns, shares through a team or collaborates on."""
    projects, total = await ProjectService(db).list_projects(
        actor,
        status=project_status.value if project_status else None,
        team_id=team_id,
        search=search,
        limit=limit,
        offset=offset,
    )
    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(p) for p in projects],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    actor: OptionalActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a project. Public projects are readable without signing in."""
    return await ProjectService(db).get_project(actor, project_id)


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update project fields. Only fields present in the body change."""
    changes = data.model_dump(mode="json", exclude_unset=True)
    return await ProjectService(db, ctx).update_project(actor, project_id, changes)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await ProjectService(db, ctx).delete_project(actor, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# =============================================================================
# Collaborators
# =============================================================================

@router.get("/{project_id}/collaborators", response_model=CollaboratorListResponse)
async def list_collaborators(
    project_id: str,
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    rows = await ProjectService(db).list_collaborators(actor, project_id)
    collaborators = []
    for row, user in rows:
        item = CollaboratorResponse.model_validate(row)
        item.user = UserSummary.model_validate(user)
        collaborators.append(item)
    return CollaboratorListResponse(collaborators=collaborators, total=len(collaborators))


@router.post(
    "/{project_id}/collaborators",
    response_model=CollaboratorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_collaborator(
    project_id: str,
    data: CollaboratorCreate,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Add an existing user as a collaborator. Project owner only."""
    return await ProjectService(db, ctx).add_collaborator(
        actor, project_id, email=data.email, role=data.role.value
    )


@router.put("/{project_id}/collaborators/{user_id}", response_model=CollaboratorResponse)
async def update_collaborator(
    project_id: str,
    user_id: str,
    data: CollaboratorUpdate,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await ProjectService(db, ctx).update_collaborator(
        actor,
        project_id,
        user_id,
        role=data.role.value if data.role else None,
        status=data.status.value if data.status else None,
    )


@router.delete("/{project_id}/collaborators/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_collaborator(
    project_id: str,
    user_id: str,
    actor: CurrentActor,
    ctx: RequestCtx,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await ProjectService(db, ctx).remove_collaborator(actor, project_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
