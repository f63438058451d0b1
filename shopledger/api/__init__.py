"""API router aggregation."""

from fastapi import APIRouter

from shopledger.api.admin import admin_router
from shopledger.api.auth import router as auth_router
from shopledger.api.health import router as health_router
from shopledger.api.panel import panel_router

# Everything is served under /api
api_router = APIRouter(prefix="/api")

api_router.include_router(health_router)
api_router.include_router(auth_router)
api_router.include_router(admin_router)
api_router.include_router(panel_router)

__all__ = ["api_router"]
