"""Commission, wallet and payout services."""

from shopledger.services.commission import (
    compute_breakdown,
    get_carry_forward_amount,
    get_next_milestone_amount,
    preview_commission,
)
from shopledger.services.exceptions import (
    CommissionValidationError,
    ConcurrencyConflictError,
    InsufficientBalanceError,
    LedgerError,
    PersistenceFailureError,
)

__all__ = [
    "compute_breakdown",
    "get_carry_forward_amount",
    "get_next_milestone_amount",
    "preview_commission",
    "LedgerError",
    "CommissionValidationError",
    "InsufficientBalanceError",
    "ConcurrencyConflictError",
    "PersistenceFailureError",
]
