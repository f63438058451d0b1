"""Manager panel wallet endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shopledger.auth.dependencies import require_manager
from shopledger.config import settings
from shopledger.db import get_db
from shopledger.models import User
from shopledger.schemas.wallet import (
    PanelWalletResponse,
    PayoutResponse,
    SaleResponse,
    WalletSummaryResponse,
)
from shopledger.services.stores import PayoutStore, SalesSource
from shopledger.services.wallet_ledger import WalletLedger

router = APIRouter(prefix="/wallet")


@router.get("", response_model=PanelWalletResponse)
async def my_wallet(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_manager),
):
    """
    The manager's own wallet.

    Creates the wallet on first visit and reconciles it against current
    sales, so the balance and the breakdown always match.
    """
    manager_id = current_user.id

    summary = await WalletLedger.for_session(db).get_summary(manager_id)
    payouts = await PayoutStore(db).list_for_manager(manager_id, limit=10)
    sales = await SalesSource(db).recent_sales(manager_id, limit=10)

    return PanelWalletResponse(
        wallet=WalletSummaryResponse.from_summary(summary, settings.currency),
        recent_payouts=[
            PayoutResponse.from_payout(p, p.processed_by_user.display_name) for p in payouts
        ],
        recent_sales=[SaleResponse.from_sale(sale) for sale in sales],
    )
