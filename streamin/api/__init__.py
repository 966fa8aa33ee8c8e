"""
streamin API routes package.

Contains all API endpoint routers for the application.
"""

from fastapi import APIRouter

from .media import router as media_router

# Main API router that includes all sub-routers
api_router = APIRouter()

api_router.include_router(media_router, tags=["media"])

__all__ = [
    "api_router",
    "media_router",
]
