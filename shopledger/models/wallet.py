"""
Wallet and payout models for manager commission accounting.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, Text, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopledger.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from shopledger.models.user import User


class Wallet(Base, TimestampMixin):
    """
    Per-manager commission wallet.

    Invariant after every committed write:
        balance == total_earned - total_paid_out

    ``version`` is bumped by SQLAlchemy on every UPDATE and checked in the
    WHERE clause, so a write based on a stale read fails instead of
    overwriting a concurrent payout.
    """

    __tablename__ = "wallets"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        unique=True,
        nullable=False,
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
    )
    total_earned: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
    )
    total_paid_out: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
    )
    paid_sales: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        default=Decimal("0.00"),
        server_default="0",
        nullable=False,
        comment="Sales total at the last payout (reporting only)",
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    user: Mapped["User"] = relationship(
        "User",
        back_populates="wallet",
    )

    def __repr__(self) -> str:
        return (
            f"<Wallet(user_id={self.user_id}, balance={self.balance}, "
            f"earned={self.total_earned}, paid_out={self.total_paid_out})>"
        )


class PayoutStatus(str, Enum):
    """Payout states. The payout flow only ever produces COMPLETED."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Payout(Base, TimestampMixin):
    """
    Immutable record of money moved out of a manager's wallet.

    Rows are inserted by the payout processor and never updated or deleted.
    """

    __tablename__ = "payouts"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    processed_by: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    status: Mapped[PayoutStatus] = mapped_column(
        SQLAlchemyEnum(
            PayoutStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PayoutStatus.COMPLETED,
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    manager: Mapped["User"] = relationship(
        "User",
        back_populates="payouts",
        foreign_keys=[user_id],
    )
    processed_by_user: Mapped["User"] = relationship(
        "User",
        foreign_keys=[processed_by],
    )

    def __repr__(self) -> str:
        return f"<Payout(id={self.id}, user_id={self.user_id}, amount={self.amount})>"
