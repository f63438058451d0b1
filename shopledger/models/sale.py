"""
Completed sale records.

Only the fields the commission engine aggregates are modelled here;
sale line items and cart handling live outside this service.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Numeric, String, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shopledger.models.base import Base

if TYPE_CHECKING:
    from shopledger.models.user import User


class SaleStatus(str, Enum):
    """Sale lifecycle. Only completed sales count towards commission."""
    COMPLETED = "completed"
    VOIDED = "voided"


class Sale(Base):
    """A sale rung up by a manager."""

    __tablename__ = "sales"

    id: Mapped[int] = mapped_column(primary_key=True)
    manager_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )
    status: Mapped[SaleStatus] = mapped_column(
        SQLAlchemyEnum(
            SaleStatus,
            values_callable=lambda x: [e.value for e in x],
        ),
        default=SaleStatus.COMPLETED,
        nullable=False,
        index=True,
    )
    customer_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    # Relationships
    manager: Mapped["User"] = relationship(
        "User",
        back_populates="sales",
    )

    def __repr__(self) -> str:
        return f"<Sale(id={self.id}, manager_id={self.manager_id}, total={self.total_amount})>"
