"""
Errors raised by the commission and wallet services.

The API layer maps these onto HTTP responses; services never swallow them.
"""

from decimal import Decimal


class LedgerError(Exception):
    """Base class for commission and wallet errors."""


class CommissionValidationError(LedgerError):
    """Malformed input: non-positive amounts, bad thresholds, wrong roles."""


class InsufficientBalanceError(LedgerError):
    """Payout amount exceeds the wallet balance at commit time."""

    def __init__(self, balance: Decimal, requested: Decimal):
        self.balance = balance
        self.requested = requested
        super().__init__(
            f"Insufficient balance for payout: requested {requested}, available {balance}"
        )


class ConcurrencyConflictError(LedgerError):
    """A concurrent write changed the wallet row first. Safe to retry."""


class PersistenceFailureError(LedgerError):
    """The database rejected the write; the transaction was rolled back."""
