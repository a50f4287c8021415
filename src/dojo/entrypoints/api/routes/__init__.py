"""API route modules."""

from fastapi import APIRouter

from dojo.entrypoints.api.routes.auth import router as auth_router
from dojo.entrypoints.api.routes.workspaces import router as workspaces_router

# Create main API router
api_router = APIRouter()

# Include all route modules
api_router.include_router(auth_router)
api_router.include_router(workspaces_router)

__all__ = ["api_router"]
