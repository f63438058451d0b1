"""Manager panel API router aggregation."""

from fastapi import APIRouter

from shopledger.api.panel.wallet import router as wallet_router

panel_router = APIRouter(prefix="/panel", tags=["Panel"])

panel_router.include_router(wallet_router)

__all__ = ["panel_router"]
