"""
API dependencies for authentication and request context.
"""

from typing import Annotated, Optional

from fastapi import Depends, Request

from api.middleware.rate_limit import get_client_ip
from api.routes.auth import get_current_user, get_optional_user
from core.domain.user import Actor
from infrastructure.database.models.user import User
from services.activity_log import RequestContext


async def get_actor(
    current_user: Annotated[User, Depends(get_current_user)],
) -> Actor:
    """Policy snapshot of the authenticated caller."""
    return Actor.from_user(current_user)


async def get_optional_actor(
    current_user: Annotated[Optional[User], Depends(get_optional_user)],
) -> Optional[Actor]:
    """Policy snapshot of the caller, or ``None`` when anonymous."""
    return Actor.from_user(current_user) if current_user else None


def get_request_context(request: Request) -> RequestContext:
    """Caller IP and user agent for audit entries."""
    return RequestContext(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


CurrentActor = Annotated[Actor, Depends(get_actor)]
OptionalActor = Annotated[Optional[Actor], Depends(get_optional_actor)]
RequestCtx = Annotated[RequestContext, Depends(get_request_context)]
