"""
Wallet ledger: books calculated commission into manager wallets.

Rules:
- Commission is derived from the manager's current sales total every time,
  never accumulated incrementally, so repeated reconciliation is a no-op
- total_earned never decreases; deactivating or lowering a tier after the
  fact does not claw back commission already earned
- balance is always total_earned - total_paid_out
- paid_sales records the sales total at the last payout and is only used
  for reporting
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from shopledger.models import Wallet
from shopledger.services.commission import (
    ZERO,
    Breakdown,
    BreakdownEntry,
    compute_breakdown,
    get_next_threshold,
    to_money,
)
from shopledger.services.exceptions import ConcurrencyConflictError
from shopledger.services.stores import CommissionScheduleStore, SalesSource, WalletStore

logger = logging.getLogger(__name__)


def apply_breakdown(wallet: Wallet, breakdown: Breakdown) -> bool:
    """Bring wallet totals in line with a breakdown.

    Returns True if any field changed.
    """
    current_earned = to_money(wallet.total_earned)
    paid_out = to_money(wallet.total_paid_out)

    total_earned = max(current_earned, breakdown.total_commission)
    balance = total_earned - paid_out

    changed = total_earned != current_earned or balance != to_money(wallet.balance)
    if changed:
        wallet.total_earned = total_earned
        wallet.balance = balance
    return changed


@dataclass(frozen=True)
class WalletSummary:
    """Read-only wallet view, recomputed from current sales."""

    manager_id: int
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
    breakdown: List[BreakdownEntry] = field(default_factory=list)


class WalletLedger:
    """Reconciles wallets against the commission schedule."""

    def __init__(
        self,
        wallets: WalletStore,
        schedule: CommissionScheduleStore,
        sales: SalesSource,
    ):
        self.wallets = wallets
        self.schedule = schedule
        self.sales = sales

    @classmethod
    def for_session(cls, db: AsyncSession) -> "WalletLedger":
        """Ledger whose stores all share one session."""
        return cls(WalletStore(db), CommissionScheduleStore(db), SalesSource(db))

    async def _save(self, wallet: Wallet) -> Wallet:
        # A failed flush leaves the instance unreadable until rollback
        manager_id = wallet.user_id
        try:
            return await self.wallets.save(wallet)
        except StaleDataError as e:
            raise ConcurrencyConflictError(
                f"Wallet for manager {manager_id} was modified concurrently"
            ) from e

    async def reconcile(
        self,
        wallet: Wallet,
        total_sales: Any,
        tiers: Sequence[Any],
    ) -> Wallet:
        """
        Book the commission earned by ``total_sales`` into the wallet.

        Idempotent: a second call with the same inputs changes nothing
        and issues no UPDATE.

        Raises:
            ConcurrencyConflictError: the wallet row changed since it was read
        """
        breakdown = compute_breakdown(total_sales, tiers)
        if apply_breakdown(wallet, breakdown):
            logger.debug(
                f"Wallet {wallet.user_id} reconciled: earned={wallet.total_earned} "
                f"balance={wallet.balance}"
            )
            await self._save(wallet)
        return wallet

    async def update_paid_sales(
        self,
        wallet: Wallet,
        amount_paid: Any,
        total_sales_at_payout_time: Any,
    ) -> Wallet:
        """Move the paid-sales watermark after a payout.

        ``amount_paid`` is informational; the watermark is simply the
        sales total the payout was made against.
        """
        wallet.paid_sales = max(ZERO, to_money(total_sales_at_payout_time))
        logger.debug(
            f"Wallet {wallet.user_id} paid_sales={wallet.paid_sales} after payout of "
            f"{to_money(amount_paid)}"
        )
        return await self._save(wallet)

    async def reconcile_manager(self, manager_id: int, for_update: bool = False) -> Wallet:
        """Load (or create) a manager's wallet and reconcile it with live data."""
        wallet = await self.wallets.get_or_create(manager_id, for_update=for_update)
        total_sales = await self.sales.get_total_sales_for_manager(manager_id)
        tiers = await self.schedule.list_active_tiers()
        return await self.reconcile(wallet, total_sales, tiers)

    async def reconcile_for_read(
        self,
        manager_id: int,
        total_sales: Any,
        tiers: Sequence[Any],
    ) -> Tuple[Wallet, List[Any]]:
        """
        Reconcile on a read path, where losing a race is not an error.

        Readers do not lock the wallet row, so a concurrent payout or
        dashboard load may commit first. The session is then rolled back and
        the winner's row is read instead. Rollback expires every instance in
        the session, so the schedule is loaded again and callers must use
        the returned tiers.

        Returns:
            (wallet, active tiers)
        """
        try:
            wallet = await self.wallets.get_or_create(manager_id)
            await self.reconcile(wallet, total_sales, tiers)
            return wallet, list(tiers)
        except ConcurrencyConflictError as e:
            logger.info(f"Read-side reconcile for manager {manager_id} lost a race: {e}")
            await self.wallets.db.rollback()

        tiers = await self.schedule.list_active_tiers()
        wallet = await self.wallets.get_or_create(manager_id)
        return wallet, tiers

    async def get_summary(self, manager_id: int) -> WalletSummary:
        """
        Wallet figures plus a freshly computed breakdown.

        The wallet is reconciled first so the stored totals and the
        breakdown shown next to them always agree. If a concurrent writer
        wins the wallet row, its committed figures are shown instead.
        """
        total_sales = await self.sales.get_total_sales_for_manager(manager_id)
        tiers = await self.schedule.list_active_tiers()

        wallet, tiers = await self.reconcile_for_read(manager_id, total_sales, tiers)
        breakdown = compute_breakdown(total_sales, tiers)
        next_threshold = get_next_threshold(total_sales, tiers)
        paid_sales = to_money(wallet.paid_sales)

        return WalletSummary(
            manager_id=manager_id,
            balance=to_money(wallet.balance),
            total_earned=to_money(wallet.total_earned),
            total_paid_out=to_money(wallet.total_paid_out),
            paid_sales=paid_sales,
            total_sales=breakdown.total_sales,
            qualified_sales=breakdown.qualified_sales,
            qualified_commission=breakdown.total_commission,
            carry_forward=breakdown.carry_forward,
            unpaid_sales=max(ZERO, breakdown.total_sales - paid_sales),
            next_threshold=next_threshold,
            next_milestone=(
                next_threshold - breakdown.total_sales if next_threshold is not None else None
            ),
            breakdown=breakdown.entries,
        )
