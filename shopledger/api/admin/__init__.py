"""Admin API router aggregation."""

from fastapi import APIRouter

from shopledger.api.admin.commission_tiers import router as commission_tiers_router
from shopledger.api.admin.wallets import router as wallets_router

admin_router = APIRouter(prefix="/admin", tags=["Admin"])

admin_router.include_router(commission_tiers_router)
admin_router.include_router(wallets_router)

__all__ = ["admin_router"]
