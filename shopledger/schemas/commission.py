"""Commission schedule schemas."""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class CommissionTierCreate(BaseModel):
    """Create a commission tier."""

    sales_threshold: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    commission_amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)


class CommissionTierUpdate(BaseModel):
    """Update a commission tier. Omitted fields are left as they are."""

    sales_threshold: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    commission_amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    description: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None


class CommissionTierResponse(BaseModel):
    """Commission tier for admin view."""

    id: int
    sales_threshold: Decimal
    commission_amount: Decimal
    is_active: bool
    description: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class BreakdownEntryResponse(BaseModel):
    """One tier in a commission breakdown."""

    tier_threshold: Decimal
    tier_commission: Decimal
    sales_in_tier: Decimal
    earned_at_this_tier: bool
    description: Optional[str] = None

    model_config = {"from_attributes": True}


class CommissionPreviewResponse(BaseModel):
    """What a sales amount would earn under the current schedule."""

    sales_amount: Decimal
    total_commission: Decimal
    qualified_sales: Decimal
    carry_forward: Decimal
    next_threshold: Optional[Decimal]
    next_milestone: Optional[Decimal]
    breakdown: List[BreakdownEntryResponse]
