"""
Activity log API routes.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentActor
from api.schemas.activity import ActivityLogListResponse, ActivityLogResponse
from infrastructure.database.connection import get_db
from services.activity_log import ActivityLogService

router = APIRouter(prefix="/activity", tags=["Activity"])


@router.get("", response_model=ActivityLogListResponse)
async def list_activity(
    actor: CurrentActor,
    db: Annotated[AsyncSession, Depends(get_db)],
    team_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None, max_length=100),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """
    Activity entries readable by the caller, newest first.

    That is their own entries plus those of teams they actively belong to.
    Platform admins see everything.
    """
    entries, total = await ActivityLogService(db).list_for_actor(
        actor, team_id=team_id, action=action, limit=limit, offset=offset
    )
    return ActivityLogListResponse(
        entries=[ActivityLogResponse.model_validate(e) for e in entries],
        total=total,
        limit=limit,
        offset=offset,
    )
