"""
Database models for Shopledger.

All models are exported here for convenient imports:
    from shopledger.models import User, Wallet, Payout, etc.
"""

from shopledger.models.audit import AuditAction, AuditLog
from shopledger.models.base import Base, TimestampMixin
from shopledger.models.commission import CommissionTier
from shopledger.models.sale import Sale, SaleStatus
from shopledger.models.user import User, UserRole
from shopledger.models.wallet import Payout, PayoutStatus, Wallet

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # User
    "User",
    "UserRole",
    # Sales
    "Sale",
    "SaleStatus",
    # Commission
    "CommissionTier",
    # Wallet
    "Wallet",
    "Payout",
    "PayoutStatus",
    # Audit
    "AuditLog",
    "AuditAction",
]
