"""Pydantic schemas for request/response validation."""

from shopledger.schemas.auth import LoginRequest, LoginResponse
from shopledger.schemas.commission import (
    BreakdownEntryResponse,
    CommissionPreviewResponse,
    CommissionTierCreate,
    CommissionTierResponse,
    CommissionTierUpdate,
)
from shopledger.schemas.wallet import (
    ManagerWalletDetailResponse,
    ManagerWalletItem,
    ManagerWalletListResponse,
    PanelWalletResponse,
    PayoutPage,
    PayoutRequest,
    PayoutResponse,
    SaleResponse,
    WalletSummaryResponse,
)

__all__ = [
    # Auth
    "LoginRequest",
    "LoginResponse",
    # Commission schedule
    "CommissionTierCreate",
    "CommissionTierUpdate",
    "CommissionTierResponse",
    "BreakdownEntryResponse",
    "CommissionPreviewResponse",
    # Wallets
    "PayoutRequest",
    "PayoutResponse",
    "PayoutPage",
    "SaleResponse",
    "WalletSummaryResponse",
    "ManagerWalletItem",
    "ManagerWalletListResponse",
    "ManagerWalletDetailResponse",
    "PanelWalletResponse",
]
