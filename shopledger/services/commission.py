"""
Milestone commission calculation.

Managers earn a flat bonus for every tier of the schedule whose sales
threshold their cumulative sales have reached:

- Tiers are walked in ascending threshold order, inactive tiers skipped
- A tier is earned when total sales >= its threshold (inclusive)
- Qualified sales is the highest threshold reached
- Sales past that threshold carry forward towards the next tier

Everything here is pure: no database access, no clock, Decimal only.
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """Normalise a number to a Decimal with two places (half-up).

    Floats go through ``str`` so that 0.1 becomes Decimal("0.10"),
    not its binary approximation.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class BreakdownEntry:
    """One tier's contribution to a commission breakdown."""

    tier_threshold: Decimal
    tier_commission: Decimal
    sales_in_tier: Decimal
    earned_at_this_tier: bool
    description: Optional[str] = None


@dataclass(frozen=True)
class Breakdown:
    """Result of walking the schedule for a given sales total."""

    total_sales: Decimal
    total_commission: Decimal
    qualified_sales: Decimal
    entries: List[BreakdownEntry] = field(default_factory=list)

    @property
    def carry_forward(self) -> Decimal:
        return self.total_sales - self.qualified_sales

    @property
    def earned_entries(self) -> List[BreakdownEntry]:
        return [entry for entry in self.entries if entry.earned_at_this_tier]


def _clamp_sales(total_sales: Any) -> Decimal:
    sales = to_money(total_sales)
    if sales < ZERO:
        logger.warning(f"Negative sales total {sales} passed to commission calculator, using 0")
        return ZERO
    return sales


def active_tiers(tiers: Iterable[Any]) -> List[Any]:
    """Active tiers sorted by ascending sales threshold.

    Works with ORM rows or any object exposing ``sales_threshold``,
    ``commission_amount`` and (optionally) ``is_active``.
    """
    return sorted(
        (tier for tier in tiers if getattr(tier, "is_active", True)),
        key=lambda tier: to_money(tier.sales_threshold),
    )


def compute_breakdown(total_sales: Any, tiers: Sequence[Any]) -> Breakdown:
    """Walk the active schedule and work out what ``total_sales`` has earned.

    Args:
        total_sales: Cumulative sales of the manager (negative is treated as 0)
        tiers: Commission tiers in any order, inactive ones included

    Returns:
        Breakdown with one entry per active tier. Tiers that were not
        reached are listed with ``earned_at_this_tier=False`` and no sales.
    """
    sales = _clamp_sales(total_sales)

    consumed = ZERO
    total_commission = ZERO
    entries: List[BreakdownEntry] = []
    reached = True

    for tier in active_tiers(tiers):
        threshold = to_money(tier.sales_threshold)
        commission = to_money(tier.commission_amount)
        description = getattr(tier, "description", None)

        # Thresholds ascend, so once one is missed every later one is too
        if reached and sales >= threshold:
            sales_in_tier = max(ZERO, min(sales, threshold) - consumed)
            consumed = max(consumed, threshold)
            total_commission += commission
            entries.append(
                BreakdownEntry(threshold, commission, sales_in_tier, True, description)
            )
        else:
            reached = False
            entries.append(
                BreakdownEntry(threshold, commission, ZERO, False, description)
            )

    return Breakdown(
        total_sales=sales,
        total_commission=total_commission,
        qualified_sales=consumed,
        entries=entries,
    )


def get_carry_forward_amount(total_sales: Any, tiers: Sequence[Any]) -> Decimal:
    """Sales not yet absorbed by an earned tier."""
    return compute_breakdown(total_sales, tiers).carry_forward


def get_next_threshold(total_sales: Any, tiers: Sequence[Any]) -> Optional[Decimal]:
    """Smallest active threshold strictly above ``total_sales``, if any."""
    sales = _clamp_sales(total_sales)
    for tier in active_tiers(tiers):
        threshold = to_money(tier.sales_threshold)
        if threshold > sales:
            return threshold
    return None


def get_next_milestone_amount(total_sales: Any, tiers: Sequence[Any]) -> Optional[Decimal]:
    """Sales still needed to reach the next tier.

    Returns None once the manager is at or past the top of the schedule.
    """
    next_threshold = get_next_threshold(total_sales, tiers)
    if next_threshold is None:
        return None
    return next_threshold - _clamp_sales(total_sales)


@dataclass(frozen=True)
class CommissionPreview:
    """What a given sales amount would earn under a schedule."""

    breakdown: Breakdown
    next_threshold: Optional[Decimal]
    next_milestone: Optional[Decimal]


def preview_commission(sales_amount: Any, tiers: Sequence[Any]) -> CommissionPreview:
    """Breakdown plus next-tier figures, for the admin schedule preview."""
    breakdown = compute_breakdown(sales_amount, tiers)
    next_threshold = get_next_threshold(breakdown.total_sales, tiers)
    return CommissionPreview(
        breakdown=breakdown,
        next_threshold=next_threshold,
        next_milestone=(
            next_threshold - breakdown.total_sales if next_threshold is not None else None
        ),
    )
