"""
Builders for test data.
"""

from decimal import Decimal

from sqlalchemy import select

from shopledger.models import CommissionTier, Sale, SaleStatus, User, UserRole, Wallet

# Tiers used throughout the examples: 1000 -> 50, 5000 -> 200, 10000 -> 500
SCENARIO_TIERS = [
    (Decimal("1000"), Decimal("50")),
    (Decimal("5000"), Decimal("200")),
    (Decimal("10000"), Decimal("500")),
]


async def create_user(db, username, role=UserRole.MANAGER, display_name=None, **kwargs):
    user = User(
        username=username,
        password_hash=kwargs.pop("password_hash", "not-a-real-hash"),
        role=role,
        display_name=display_name or username.title(),
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )
    db.add(user)
    await db.flush()
    return user


async def add_sale(db, manager, amount, status=SaleStatus.COMPLETED):
    sale = Sale(manager_id=manager.id, total_amount=Decimal(str(amount)), status=status)
    db.add(sale)
    await db.flush()
    return sale


async def add_tiers(db, tiers=SCENARIO_TIERS, is_active=True):
    rows = []
    for threshold, amount in tiers:
        tier = CommissionTier(
            sales_threshold=Decimal(str(threshold)),
            commission_amount=Decimal(str(amount)),
            is_active=is_active,
        )
        db.add(tier)
        rows.append(tier)
    await db.flush()
    return rows


async def add_wallet(db, manager, balance="0", total_earned="0", total_paid_out="0"):
    wallet = Wallet(
        user_id=manager.id,
        balance=Decimal(balance),
        total_earned=Decimal(total_earned),
        total_paid_out=Decimal(total_paid_out),
        paid_sales=Decimal("0"),
    )
    db.add(wallet)
    await db.flush()
    return wallet


async def load_wallet(session_factory, manager_id):
    async with session_factory() as db:
        result = await db.execute(select(Wallet).where(Wallet.user_id == manager_id))
        return result.scalar_one_or_none()


def assert_conserved(wallet):
    assert wallet.balance == wallet.total_earned - wallet.total_paid_out
