"""API routes for the medication reminder service."""

from fastapi import APIRouter

from .medications import router as medications_router
from .notifications import router as notifications_router
from .preferences import router as preferences_router

api_router = APIRouter(prefix="/api")

api_router.include_router(notifications_router)
api_router.include_router(medications_router)
api_router.include_router(preferences_router)

__all__ = ["api_router"]
