"""
Audit trail for money movement and commission schedule edits.

Entries are added to the caller's session and land in the same commit as
the payout or tier change they describe; nothing here flushes or commits.
Money values are stored as strings so the JSON column keeps exact cents.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shopledger.models.audit import AuditAction, AuditLog

TIER_TARGET = "commission_tier"
PAYOUT_TARGET = "payout"


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Mapping):
        return {str(k): _json_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return value


async def log_action(
    db: AsyncSession,
    user_id: int,
    action: AuditAction,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action_metadata: Optional[Mapping[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """
    Add an audit entry to the current transaction.

    Decimal amounts in ``action_metadata`` are written as strings and
    enum members as their values.
    """
    log_entry = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        action_metadata=_json_value(action_metadata) if action_metadata is not None else None,
        ip_address=ip_address,
    )
    db.add(log_entry)
    return log_entry


async def log_payout(
    db: AsyncSession,
    admin_id: int,
    payout_id: int,
    manager_id: int,
    amount: Decimal,
    balance_after: Decimal,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """Record who paid which manager how much, and what was left."""
    return await log_action(
        db=db,
        user_id=admin_id,
        action=AuditAction.PROCESS_PAYOUT,
        target_type=PAYOUT_TARGET,
        target_id=payout_id,
        action_metadata={
            "manager_id": manager_id,
            "amount": amount,
            "balance_after": balance_after,
        },
        ip_address=ip_address,
    )


def tier_snapshot(tier) -> dict[str, Any]:
    """Threshold and amount of a tier, for create/delete entries."""
    return {
        "sales_threshold": tier.sales_threshold,
        "commission_amount": tier.commission_amount,
    }


async def log_tier_change(
    db: AsyncSession,
    admin_id: int,
    action: AuditAction,
    tier_id: int,
    changes: Mapping[str, Any],
    ip_address: Optional[str] = None,
) -> AuditLog:
    return await log_action(
        db=db,
        user_id=admin_id,
        action=action,
        target_type=TIER_TARGET,
        target_id=tier_id,
        action_metadata=changes,
        ip_address=ip_address,
    )


def get_client_ip(request) -> Optional[str]:
    """Client address, preferring the first X-Forwarded-For hop."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    client = getattr(request, "client", None)
    return client.host if client else None
