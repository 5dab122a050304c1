"""API Routes."""

from fastapi import APIRouter

from .activity import router as activity_router
from .auth import router as auth_router
from .health import router as health_router
from .projects import router as projects_router
from .scaffold import router as scaffold_router
from .team_invitations import router as team_invitations_router
from .teams import router as teams_router
from .templates import router as templates_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(auth_router)
api_router.include_router(teams_router)
api_router.include_router(team_invitations_router)
api_router.include_router(projects_router)
api_router.include_router(templates_router)
api_router.include_router(scaffold_router)
api_router.include_router(activity_router)
