"""Admin wallet and payout API endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shopledger.auth.dependencies import require_admin
from shopledger.config import settings
from shopledger.db import get_db
from shopledger.models import User, UserRole
from shopledger.schemas.wallet import (
    ManagerWalletDetailResponse,
    ManagerWalletItem,
    ManagerWalletListResponse,
    PayoutPage,
    PayoutRequest,
    PayoutResponse,
    SaleResponse,
    WalletSummaryResponse,
)
from shopledger.services.commission import ZERO
from shopledger.services.payouts import PayoutProcessor, get_payout_processor
from shopledger.services.stores import PayoutStore, SalesSource
from shopledger.services.wallet_ledger import WalletLedger
from shopledger.utils.audit import get_client_ip

router = APIRouter(prefix="/wallets")


async def _get_manager_or_404(db: AsyncSession, manager_id: int) -> User:
    manager = await db.get(User, manager_id)
    if not manager or manager.role != UserRole.MANAGER:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Manager not found",
        )
    return manager


@router.get("", response_model=ManagerWalletListResponse)
async def list_wallets(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    active_only: bool = Query(False),
):
    """Every manager with sales totals and reconciled wallet figures."""
    query = select(User).where(User.role == UserRole.MANAGER)
    if active_only:
        query = query.where(User.is_active == True)  # noqa: E712
    query = query.order_by(User.display_name)

    result = await db.execute(query)
    # Plain rows: a lost reconcile race rolls back and expires ORM instances
    managers = [
        (m.id, m.username, m.display_name, m.email) for m in result.scalars().all()
    ]

    ledger = WalletLedger.for_session(db)
    tiers = await ledger.schedule.list_active_tiers()
    totals = await SalesSource(db).get_totals_by_manager()

    items = []
    for manager_id, username, display_name, email in managers:
        total_sales, sales_count = totals.get(manager_id, (ZERO, 0))
        wallet, tiers = await ledger.reconcile_for_read(manager_id, total_sales, tiers)

        items.append(
            ManagerWalletItem(
                id=manager_id,
                username=username,
                display_name=display_name,
                email=email,
                total_sales=total_sales,
                sales_count=sales_count,
                balance=wallet.balance,
                total_earned=wallet.total_earned,
                total_paid_out=wallet.total_paid_out,
            )
        )

    return ManagerWalletListResponse(items=items)


@router.get("/{manager_id}", response_model=ManagerWalletDetailResponse)
async def get_wallet(
    manager_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    page: int = Query(1, ge=1),
    per_page: int = Query(15, ge=1, le=100),
):
    """Wallet, payout history and recent sales for one manager."""
    manager = await _get_manager_or_404(db, manager_id)
    display_name, email = manager.display_name, manager.email

    summary = await WalletLedger.for_session(db).get_summary(manager_id)

    payouts = PayoutStore(db)
    total = await payouts.count_for_manager(manager_id)
    history = await payouts.list_for_manager(
        manager_id,
        offset=(page - 1) * per_page,
        limit=per_page,
    )
    recent_sales = await SalesSource(db).recent_sales(manager_id, limit=20)

    return ManagerWalletDetailResponse(
        id=manager_id,
        display_name=display_name,
        email=email,
        wallet=WalletSummaryResponse.from_summary(summary, settings.currency),
        payouts=PayoutPage(
            items=[
                PayoutResponse.from_payout(p, p.processed_by_user.display_name)
                for p in history
            ],
            total=total,
            page=page,
            per_page=per_page,
            pages=(total + per_page - 1) // per_page if total else 0,
        ),
        recent_sales=[SaleResponse.from_sale(sale) for sale in recent_sales],
    )


@router.post(
    "/{manager_id}/payouts",
    response_model=PayoutResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_payout(
    request: Request,
    manager_id: int,
    data: PayoutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
    processor: PayoutProcessor = Depends(get_payout_processor),
):
    """
    Pay a manager out of their wallet.

    Returns 400 with the current balance when the wallet cannot cover
    the amount, 409 when a concurrent payout won the race.
    """
    await _get_manager_or_404(db, manager_id)

    payout = await processor.process_payout(
        manager_id=manager_id,
        amount=data.amount,
        notes=data.notes,
        admin_id=current_user.id,
        ip_address=get_client_ip(request),
    )

    return PayoutResponse.from_payout(payout, current_user.display_name)
