"""
Commission schedule model.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from shopledger.models.base import Base, TimestampMixin


class CommissionTier(Base, TimestampMixin):
    """
    A milestone in the global commission schedule.

    A manager whose cumulative sales reach ``sales_threshold`` earns the flat
    ``commission_amount`` once. Inactive tiers are ignored by the calculator.
    Tiers are edited by admins only; the calculator never writes to them.
    """

    __tablename__ = "commission_tiers"

    id: Mapped[int] = mapped_column(primary_key=True)
    sales_threshold: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        index=True,
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    description: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<CommissionTier(id={self.id}, threshold={self.sales_threshold}, "
            f"commission={self.commission_amount}, active={self.is_active})>"
        )
