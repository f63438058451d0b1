"""Wallet, payout and sales schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from shopledger.schemas.commission import BreakdownEntryResponse


class PayoutRequest(BaseModel):
    """Admin request to pay a manager out."""

    amount: Decimal = Field(..., ge=Decimal("0.01"), max_digits=12, decimal_places=2)
    notes: Optional[str] = Field(None, max_length=500)


class PayoutResponse(BaseModel):
    """A processed payout."""

    id: int
    manager_id: int
    processed_by: int
    processed_by_name: Optional[str] = None
    amount: Decimal
    status: str
    notes: Optional[str]
    processed_at: datetime

    @classmethod
    def from_payout(cls, payout, processed_by_name: Optional[str] = None) -> "PayoutResponse":
        return cls(
            id=payout.id,
            manager_id=payout.user_id,
            processed_by=payout.processed_by,
            processed_by_name=processed_by_name,
            amount=payout.amount,
            status=payout.status.value,
            notes=payout.notes,
            processed_at=payout.processed_at,
        )


class SaleResponse(BaseModel):
    """Sale line shown next to a wallet."""

    id: int
    total_amount: Decimal
    status: str
    customer_name: Optional[str]
    created_at: datetime

    @classmethod
    def from_sale(cls, sale) -> "SaleResponse":
        return cls(
            id=sale.id,
            total_amount=sale.total_amount,
            status=sale.status.value,
            customer_name=sale.customer_name,
            created_at=sale.created_at,
        )


class WalletSummaryResponse(BaseModel):
    """Wallet figures with a freshly computed commission breakdown."""

    manager_id: int
    currency: str
    balance: Decimal
    total_earned: Decimal
    total_paid_out: Decimal
    paid_sales: Decimal
    total_sales: Decimal
    qualified_sales: Decimal
    qualified_commission: Decimal
    carry_forward: Decimal
    unpaid_sales: Decimal
    next_threshold: Optional[Decimal]
    next_milestone: Optional[Decimal]
    breakdown: List[BreakdownEntryResponse]

    @classmethod
    def from_summary(cls, summary, currency: str) -> "WalletSummaryResponse":
        """Build from a ledger WalletSummary."""
        return cls(
            manager_id=summary.manager_id,
            currency=currency,
            balance=summary.balance,
            total_earned=summary.total_earned,
            total_paid_out=summary.total_paid_out,
            paid_sales=summary.paid_sales,
            total_sales=summary.total_sales,
            qualified_sales=summary.qualified_sales,
            qualified_commission=summary.qualified_commission,
            carry_forward=summary.carry_forward,
            unpaid_sales=summary.unpaid_sales,
            next_threshold=summary.next_threshold,
            next_milestone=summary.next_milestone,
            breakdown=[
                BreakdownEntryResponse.model_validate(entry) for entry in summary.breakdown
            ],
        )


class ManagerWalletItem(BaseModel):
    """Row of the admin wallets overview."""

    id: int
    username: str
    display_name: str
    email: Optional[str]
    total_sales: Decimal
    sales_count: int
    balance: Decimal
    total_earned: Decimal
    total_paid_out: Decimal


class ManagerWalletListResponse(BaseModel):
    """All managers with their wallets."""

    items: List[ManagerWalletItem]


class PayoutPage(BaseModel):
    """Paginated payout history."""

    items: List[PayoutResponse]
    total: int
    page: int
    per_page: int
    pages: int


class ManagerWalletDetailResponse(BaseModel):
    """Admin view of a single manager's wallet."""

    id: int
    display_name: str
    email: Optional[str]
    wallet: WalletSummaryResponse
    payouts: PayoutPage
    recent_sales: List[SaleResponse]


class PanelWalletResponse(BaseModel):
    """Manager's own wallet page."""

    wallet: WalletSummaryResponse
    recent_payouts: List[PayoutResponse]
    recent_sales: List[SaleResponse]
