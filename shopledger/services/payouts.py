"""
Payout processing.

A payout moves money out of a manager's wallet:

    requested -> validated -> committed
    requested -> rejected (insufficient balance)

The payout record, the wallet debit and the paid-sales watermark are written
in one transaction. Payouts for the same manager are serialised three ways:
an in-process lock per manager, SELECT ... FOR UPDATE on the wallet row, and
the wallet's version counter, which turns a lost race into a retryable
ConcurrencyConflictError instead of an overdraft.
"""

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from shopledger.config import settings
from shopledger.db import AsyncSessionLocal
from shopledger.models import Payout, PayoutStatus, User, UserRole
from shopledger.services.commission import ZERO, to_money
from shopledger.services.exceptions import (
    CommissionValidationError,
    ConcurrencyConflictError,
    InsufficientBalanceError,
    PersistenceFailureError,
)
from shopledger.services.stores import PayoutStore
from shopledger.services.wallet_ledger import WalletLedger
from shopledger.utils.audit import log_payout

logger = logging.getLogger(__name__)


class PayoutProcessor:
    """Validates and commits manager payouts."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        max_retries: Optional[int] = None,
        notes_max_length: Optional[int] = None,
    ):
        if max_retries is None:
            max_retries = settings.payout_max_retries
        if max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if notes_max_length is None:
            notes_max_length = settings.payout_notes_max_length

        self.session_factory = session_factory
        self.max_retries = max_retries
        self.notes_max_length = notes_max_length
        # Only managers with a payout in flight have an entry
        self._locks: Dict[int, asyncio.Lock] = {}
        self._lock_holders: Dict[int, int] = defaultdict(int)

    @asynccontextmanager
    async def _manager_lock(self, manager_id: int) -> AsyncIterator[None]:
        """Serialise payouts for one manager; the lock is dropped when idle."""
        lock = self._locks.setdefault(manager_id, asyncio.Lock())
        self._lock_holders[manager_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_holders[manager_id] -= 1
            if not self._lock_holders[manager_id]:
                del self._lock_holders[manager_id]
                del self._locks[manager_id]

    def validate_request(self, amount: Any, notes: Optional[str]) -> Decimal:
        """Check amount and notes before touching the database."""
        if amount is None:
            raise CommissionValidationError("Payout amount is required")
        try:
            payout_amount = to_money(amount)
        except (ArithmeticError, TypeError, ValueError) as e:
            raise CommissionValidationError(f"Invalid payout amount: {amount!r}") from e
        if not payout_amount.is_finite() or payout_amount <= ZERO:
            raise CommissionValidationError("Payout amount must be greater than zero")
        if notes is not None and len(notes) > self.notes_max_length:
            raise CommissionValidationError(
                f"Payout notes must be at most {self.notes_max_length} characters"
            )
        return payout_amount

    async def process_payout(
        self,
        manager_id: int,
        amount: Any,
        notes: Optional[str],
        admin_id: int,
        ip_address: Optional[str] = None,
    ) -> Payout:
        """
        Pay ``amount`` out of the manager's wallet.

        Args:
            manager_id: Manager receiving the payout
            amount: Positive amount, rounded to cents
            notes: Optional free-text note stored on the payout
            admin_id: Admin processing the payout
            ip_address: Client IP for the audit trail

        Returns:
            The committed Payout record

        Raises:
            CommissionValidationError: bad amount/notes or wrong roles
            InsufficientBalanceError: balance is below ``amount``
            ConcurrencyConflictError: lost the race on every retry
            PersistenceFailureError: the database rejected the transaction
        """
        payout_amount = self.validate_request(amount, notes)

        async with self._manager_lock(manager_id):
            for attempt in range(1, self.max_retries + 1):
                try:
                    return await self._commit(
                        manager_id, payout_amount, notes, admin_id, ip_address
                    )
                except ConcurrencyConflictError:
                    if attempt >= self.max_retries:
                        logger.warning(
                            f"Payout for manager {manager_id} gave up after {attempt} conflicts"
                        )
                        raise
                    logger.warning(
                        f"Payout for manager {manager_id} hit a concurrent update, "
                        f"retrying ({attempt}/{self.max_retries})"
                    )

        # Unreachable: the loop either returns or raises
        raise ConcurrencyConflictError(f"Payout for manager {manager_id} was not committed")

    async def _commit(
        self,
        manager_id: int,
        amount: Decimal,
        notes: Optional[str],
        admin_id: int,
        ip_address: Optional[str],
    ) -> Payout:
        async with self.session_factory() as db:
            try:
                async with db.begin():
                    return await self._apply(db, manager_id, amount, notes, admin_id, ip_address)
            except StaleDataError as e:
                raise ConcurrencyConflictError(
                    f"Wallet for manager {manager_id} was modified concurrently"
                ) from e
            except SQLAlchemyError as e:
                logger.error(f"Payout for manager {manager_id} failed to persist: {e}")
                raise PersistenceFailureError(
                    f"Payout for manager {manager_id} could not be saved"
                ) from e

    async def _apply(
        self,
        db: AsyncSession,
        manager_id: int,
        amount: Decimal,
        notes: Optional[str],
        admin_id: int,
        ip_address: Optional[str],
    ) -> Payout:
        manager = await db.get(User, manager_id)
        if manager is None or manager.role != UserRole.MANAGER:
            raise CommissionValidationError(f"User {manager_id} is not a manager")

        admin = await db.get(User, admin_id)
        if admin is None or admin.role != UserRole.ADMIN:
            raise CommissionValidationError(f"User {admin_id} cannot process payouts")

        ledger = WalletLedger.for_session(db)

        # Validated: lock the wallet row and bring it up to date
        wallet = await ledger.wallets.get_or_create(manager_id, for_update=True)
        total_sales = await ledger.sales.get_total_sales_for_manager(manager_id)
        tiers = await ledger.schedule.list_active_tiers()
        await ledger.reconcile(wallet, total_sales, tiers)

        balance = to_money(wallet.balance)
        if balance < amount:
            logger.warning(
                f"Payout of {amount} to manager {manager_id} rejected: balance {balance}"
            )
            raise InsufficientBalanceError(balance=balance, requested=amount)

        # Committed: record, debit, watermark
        payout = await PayoutStore(db).add(
            Payout(
                user_id=manager_id,
                processed_by=admin_id,
                amount=amount,
                status=PayoutStatus.COMPLETED,
                notes=notes,
                processed_at=datetime.now(timezone.utc),
            )
        )

        wallet.balance = balance - amount
        wallet.total_paid_out = to_money(wallet.total_paid_out) + amount
        await ledger.update_paid_sales(wallet, amount, total_sales)

        await log_payout(
            db,
            admin_id=admin_id,
            payout_id=payout.id,
            manager_id=manager_id,
            amount=amount,
            balance_after=wallet.balance,
            ip_address=ip_address,
        )

        logger.info(
            f"Payout {payout.id}: {amount} to manager {manager_id} by admin {admin_id}, "
            f"balance now {wallet.balance}"
        )
        return payout


@lru_cache
def get_payout_processor() -> PayoutProcessor:
    """Shared processor so the per-manager locks are shared too."""
    return PayoutProcessor(AsyncSessionLocal)
