"""
Authentication API routes.

Sign-in happens at the identity provider. This module verifies the access
tokens it issues, provisions the local user row on first use and exposes the
caller's own profile.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.user import UserResponse
from core.domain.user import SubscriptionTier, UserRole
from core.security.tokens import TokenPayload, TokenService
from infrastructure.config.settings import settings
from infrastructure.database.connection import get_db
from infrastructure.database.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])

token_service = TokenService(
    secret_key=settings.jwt_secret_key,
    algorithm=settings.jwt_algorithm,
    access_token_expire_minutes=settings.jwt_access_token_expire_minutes,
)


def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    """Bearer token from the Authorization header, else the access_token cookie."""
    token = None
    if authorization and authorization.startswith("Bearer "):
        parts = authorization.split(" ", 1)
        token = parts[1] if len(parts) > 1 and parts[1] else None
    if not token:
        token = request.cookies.get("access_token")
    return token


async def _provision_user(db: AsyncSession, payload: TokenPayload) -> User:
    """Create the local row for an identity seen for the first time."""
    user = User(
        id=payload.sub,
        email=payload.email.strip().lower(),
        display_name=payload.name,
        role=UserRole.USER.value,
        subscription_tier=SubscriptionTier.FREE.value,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Another request provisioned the same identity first
        await db.rollback()
        result = await db.execute(select(User).where(User.id == payload.sub))
        existing = result.scalar_one_or_none()
        if existing is None:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Email is already linked to another account",
            )
        return existing
    await db.refresh(user)
    logger.info("Provisioned user %s on first authentication", user.id, extra={"user_id": user.id})
    return user


async def _resolve_user(db: AsyncSession, token: str) -> User:
    payload = token_service.verify_access_token(token)

    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == payload.sub))
    user = result.scalar_one_or_none()

    if not user:
        if not payload.email:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found",
                headers={"WWW-Authenticate": "Bearer"},
            )
        user = await _provision_user(db, payload)

    if user.deleted_at is not None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is not active",
        )

    return user


async def get_current_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.

    Checks the Authorization header first (Bearer token), then the
    access_token cookie set by the browser sign-in flow.
    """
    token = _extract_token(request, authorization)

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return await _resolve_user(db, token)


async def get_optional_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Like get_current_user, but anonymous requests get ``None``.

    A token that is present but invalid is still rejected.
    """
    token = _extract_token(request, authorization)
    if not token:
        return None
    return await _resolve_user(db, token)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    """
    Get current authenticated user profile.
    """
    return current_user
