"""
Database access for the commission engine.

The calculator, ledger and payout processor never build queries themselves;
they receive these stores instead. Every store wraps one AsyncSession and
only flushes - committing is left to whoever owns the session.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from shopledger.models import CommissionTier, Payout, Sale, SaleStatus, Wallet
from shopledger.services.commission import ZERO, to_money
from shopledger.services.exceptions import (
    CommissionValidationError,
    ConcurrencyConflictError,
)

logger = logging.getLogger(__name__)

# Default schedule seeded into an empty tier table
DEFAULT_COMMISSION_TIERS = [
    {
        "sales_threshold": Decimal("5000.00"),
        "commission_amount": Decimal("300.00"),
        "description": "Base tier - 300 on reaching 5,000 in sales",
    },
    {
        "sales_threshold": Decimal("10000.00"),
        "commission_amount": Decimal("700.00"),
        "description": "Tier 2 - 700 on reaching 10,000 in sales",
    },
    {
        "sales_threshold": Decimal("20000.00"),
        "commission_amount": Decimal("1500.00"),
        "description": "Tier 3 - 1,500 on reaching 20,000 in sales",
    },
]


def _positive_money(value, field_name: str) -> Decimal:
    amount = to_money(value)
    if amount <= ZERO:
        raise CommissionValidationError(f"{field_name} must be greater than zero")
    return amount


class CommissionScheduleStore:
    """Read and edit the global commission schedule."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_tiers(self) -> List[CommissionTier]:
        """All tiers, active or not, by ascending threshold."""
        result = await self.db.execute(
            select(CommissionTier).order_by(
                CommissionTier.sales_threshold, CommissionTier.id
            )
        )
        return list(result.scalars().all())

    async def list_active_tiers(self) -> List[CommissionTier]:
        result = await self.db.execute(
            select(CommissionTier)
            .where(CommissionTier.is_active == True)  # noqa: E712
            .order_by(CommissionTier.sales_threshold, CommissionTier.id)
        )
        return list(result.scalars().all())

    async def get(self, tier_id: int) -> Optional[CommissionTier]:
        return await self.db.get(CommissionTier, tier_id)

    async def create(
        self,
        sales_threshold,
        commission_amount,
        description: Optional[str] = None,
        is_active: bool = True,
    ) -> CommissionTier:
        tier = CommissionTier(
            sales_threshold=_positive_money(sales_threshold, "Sales threshold"),
            commission_amount=_positive_money(commission_amount, "Commission amount"),
            description=description,
            is_active=is_active,
        )
        self.db.add(tier)
        await self.db.flush()
        logger.info(
            f"Commission tier {tier.id} created: {tier.sales_threshold} -> {tier.commission_amount}"
        )
        return tier

    async def update(
        self,
        tier: CommissionTier,
        sales_threshold=None,
        commission_amount=None,
        description: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> CommissionTier:
        """Apply the given fields; None leaves a field untouched."""
        if sales_threshold is not None:
            tier.sales_threshold = _positive_money(sales_threshold, "Sales threshold")
        if commission_amount is not None:
            tier.commission_amount = _positive_money(commission_amount, "Commission amount")
        if description is not None:
            tier.description = description
        if is_active is not None:
            tier.is_active = is_active
        await self.db.flush()
        logger.info(f"Commission tier {tier.id} updated")
        return tier

    async def delete(self, tier: CommissionTier) -> None:
        await self.db.delete(tier)
        await self.db.flush()
        logger.info(f"Commission tier {tier.id} deleted")

    async def toggle(self, tier: CommissionTier) -> CommissionTier:
        tier.is_active = not tier.is_active
        await self.db.flush()
        logger.info(f"Commission tier {tier.id} active={tier.is_active}")
        return tier

    async def seed_defaults(self) -> int:
        """Insert the default schedule if no tier exists yet."""
        existing = await self.db.scalar(select(func.count()).select_from(CommissionTier))
        if existing:
            return 0
        for tier in DEFAULT_COMMISSION_TIERS:
            self.db.add(CommissionTier(is_active=True, **tier))
        await self.db.flush()
        return len(DEFAULT_COMMISSION_TIERS)


class SalesSource:
    """Aggregates over completed sales."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_total_sales_for_manager(self, manager_id: int) -> Decimal:
        total = await self.db.scalar(
            select(func.coalesce(func.sum(Sale.total_amount), 0))
            .where(
                Sale.manager_id == manager_id,
                Sale.status == SaleStatus.COMPLETED,
            )
        )
        return to_money(total)

    async def get_totals_by_manager(self) -> Dict[int, Tuple[Decimal, int]]:
        """(total sales, sales count) per manager, completed sales only."""
        result = await self.db.execute(
            select(
                Sale.manager_id,
                func.coalesce(func.sum(Sale.total_amount), 0).label("total"),
                func.count().label("count"),
            )
            .where(Sale.status == SaleStatus.COMPLETED)
            .group_by(Sale.manager_id)
        )
        return {row.manager_id: (to_money(row.total), row.count) for row in result}

    async def recent_sales(self, manager_id: int, limit: int = 10) -> Sequence[Sale]:
        result = await self.db.execute(
            select(Sale)
            .where(Sale.manager_id == manager_id)
            .order_by(Sale.created_at.desc(), Sale.id.desc())
            .limit(limit)
        )
        return result.scalars().all()


class WalletStore:
    """Load, lazily create and persist manager wallets."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, manager_id: int, for_update: bool = False) -> Optional[Wallet]:
        query = select(Wallet).where(Wallet.user_id == manager_id)
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def get_or_create(self, manager_id: int, for_update: bool = False) -> Wallet:
        """
        Fetch the manager's wallet, creating an empty one on first access.

        Raises ConcurrencyConflictError if another transaction created the
        wallet between our read and our insert; retrying will find it.
        """
        wallet = await self.get(manager_id, for_update=for_update)
        if wallet:
            return wallet

        wallet = Wallet(
            user_id=manager_id,
            balance=ZERO,
            total_earned=ZERO,
            total_paid_out=ZERO,
            paid_sales=ZERO,
        )
        self.db.add(wallet)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise ConcurrencyConflictError(
                f"Wallet for manager {manager_id} was created concurrently"
            ) from e

        logger.info(f"Created wallet for manager {manager_id}")
        return wallet

    async def save(self, wallet: Wallet) -> Wallet:
        self.db.add(wallet)
        await self.db.flush()
        return wallet


class PayoutStore:
    """Append-only access to payout records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, payout: Payout) -> Payout:
        self.db.add(payout)
        await self.db.flush()
        return payout

    async def count_for_manager(self, manager_id: int) -> int:
        total = await self.db.scalar(
            select(func.count()).select_from(Payout).where(Payout.user_id == manager_id)
        )
        return total or 0

    async def list_for_manager(
        self,
        manager_id: int,
        offset: int = 0,
        limit: int = 15,
    ) -> Sequence[Payout]:
        """Newest first."""
        result = await self.db.execute(
            select(Payout)
            .options(selectinload(Payout.processed_by_user))
            .where(Payout.user_id == manager_id)
            .order_by(Payout.processed_at.desc(), Payout.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return result.scalars().all()
