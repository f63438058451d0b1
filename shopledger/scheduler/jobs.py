"""
Background job definitions using APScheduler.

Jobs include:
- Wallet reconciliation (books newly earned commission into wallets)
"""

import logging
from typing import Callable, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy import select

from shopledger.config import settings
from shopledger.db import get_db_context
from shopledger.models import User, UserRole
from shopledger.services.exceptions import ConcurrencyConflictError
from shopledger.services.wallet_ledger import WalletLedger

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def reconcile_wallets(db_context: Optional[Callable] = None) -> int:
    """
    Reconcile every active manager's wallet.

    Each manager runs in its own transaction so a conflict on one wallet
    (a payout in flight) does not hold up the rest.

    Returns:
        Number of wallets whose totals changed
    """
    db_context = db_context or get_db_context

    async with db_context() as db:
        result = await db.execute(
            select(User.id).where(
                User.role == UserRole.MANAGER,
                User.is_active == True,  # noqa: E712
            )
        )
        manager_ids = list(result.scalars().all())

    changed = 0
    for manager_id in manager_ids:
        try:
            async with db_context() as db:
                ledger = WalletLedger.for_session(db)
                wallet = await ledger.wallets.get_or_create(manager_id)
                before = (wallet.total_earned, wallet.balance)
                await ledger.reconcile_manager(manager_id)
                if (wallet.total_earned, wallet.balance) != before:
                    changed += 1
        except ConcurrencyConflictError as e:
            logger.warning(f"Skipped wallet reconciliation for manager {manager_id}: {e}")

    return changed


async def wallet_reconciliation_job():
    """Periodic wallet reconciliation."""
    logger.debug("Running wallet reconciliation job")
    try:
        changed = await reconcile_wallets()
        if changed:
            logger.info(f"Wallet reconciliation job: updated {changed} wallets")
    except Exception as e:
        logger.error(f"Wallet reconciliation job error: {e}")


def setup_scheduler():
    """
    Configure and add all scheduled jobs.

    Called during application startup.
    """
    scheduler.add_job(
        wallet_reconciliation_job,
        trigger=IntervalTrigger(minutes=settings.wallet_reconcile_interval_minutes),
        id="wallet_reconciliation",
        name="Reconcile manager wallets",
        replace_existing=True,
    )

    logger.info("Scheduler configured with jobs")
