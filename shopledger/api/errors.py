"""
HTTP mapping for ledger errors.

Services raise domain exceptions; these handlers turn them into JSON
responses with a specific reason so the UI can tell "not enough balance"
apart from "try again" and "system error".
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from shopledger.services.exceptions import (
    CommissionValidationError,
    ConcurrencyConflictError,
    InsufficientBalanceError,
    PersistenceFailureError,
)

logger = logging.getLogger(__name__)


async def validation_error_handler(request: Request, exc: CommissionValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": str(exc)},
    )


async def insufficient_balance_handler(request: Request, exc: InsufficientBalanceError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Insufficient balance for payout.",
            "balance": str(exc.balance),
            "requested": str(exc.requested),
        },
    )


async def concurrency_conflict_handler(request: Request, exc: ConcurrencyConflictError):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": "The wallet was updated by another request. Please try again."},
    )


async def persistence_failure_handler(request: Request, exc: PersistenceFailureError):
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "The payout could not be saved. No money was moved."},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the ledger error handlers to an application."""
    app.add_exception_handler(CommissionValidationError, validation_error_handler)
    app.add_exception_handler(InsufficientBalanceError, insufficient_balance_handler)
    app.add_exception_handler(ConcurrencyConflictError, concurrency_conflict_handler)
    app.add_exception_handler(PersistenceFailureError, persistence_failure_handler)
