"""Admin commission schedule API endpoints."""

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shopledger.auth.dependencies import require_admin
from shopledger.db import get_db
from shopledger.models import AuditAction, CommissionTier, User
from shopledger.schemas.commission import (
    BreakdownEntryResponse,
    CommissionPreviewResponse,
    CommissionTierCreate,
    CommissionTierResponse,
    CommissionTierUpdate,
)
from shopledger.services.commission import preview_commission
from shopledger.services.stores import CommissionScheduleStore
from shopledger.utils.audit import get_client_ip, log_tier_change, tier_snapshot

router = APIRouter(prefix="/commission-tiers")


async def _get_tier_or_404(store: CommissionScheduleStore, tier_id: int) -> CommissionTier:
    tier = await store.get(tier_id)
    if not tier:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Commission tier not found",
        )
    return tier


@router.get("", response_model=list[CommissionTierResponse])
async def list_tiers(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """All tiers, lowest threshold first."""
    return await CommissionScheduleStore(db).list_tiers()


@router.get("/preview", response_model=CommissionPreviewResponse)
async def preview(
    sales_amount: Decimal = Query(..., ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Show what a sales amount would earn under the active schedule."""
    tiers = await CommissionScheduleStore(db).list_active_tiers()
    result = preview_commission(sales_amount, tiers)
    breakdown = result.breakdown

    return CommissionPreviewResponse(
        sales_amount=breakdown.total_sales,
        total_commission=breakdown.total_commission,
        qualified_sales=breakdown.qualified_sales,
        carry_forward=breakdown.carry_forward,
        next_threshold=result.next_threshold,
        next_milestone=result.next_milestone,
        breakdown=[BreakdownEntryResponse.model_validate(e) for e in breakdown.entries],
    )


@router.post("", response_model=CommissionTierResponse, status_code=status.HTTP_201_CREATED)
async def create_tier(
    request: Request,
    data: CommissionTierCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Add a tier to the schedule. New tiers start active."""
    tier = await CommissionScheduleStore(db).create(
        sales_threshold=data.sales_threshold,
        commission_amount=data.commission_amount,
        description=data.description,
    )

    await log_tier_change(
        db,
        admin_id=current_user.id,
        action=AuditAction.CREATE_COMMISSION_TIER,
        tier_id=tier.id,
        changes=tier_snapshot(tier),
        ip_address=get_client_ip(request),
    )

    await db.commit()
    await db.refresh(tier)
    return tier


@router.put("/{tier_id}", response_model=CommissionTierResponse)
async def update_tier(
    request: Request,
    tier_id: int,
    data: CommissionTierUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """
    Edit a tier.

    Commission already booked into wallets is not reduced by lowering
    or deactivating a tier.
    """
    store = CommissionScheduleStore(db)
    tier = await _get_tier_or_404(store, tier_id)

    changes = data.model_dump(exclude_unset=True)
    await store.update(tier, **changes)

    await log_tier_change(
        db,
        admin_id=current_user.id,
        action=AuditAction.UPDATE_COMMISSION_TIER,
        tier_id=tier.id,
        changes=changes,
        ip_address=get_client_ip(request),
    )

    await db.commit()
    await db.refresh(tier)
    return tier


@router.delete("/{tier_id}")
async def delete_tier(
    request: Request,
    tier_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Remove a tier from the schedule."""
    store = CommissionScheduleStore(db)
    tier = await _get_tier_or_404(store, tier_id)

    snapshot = tier_snapshot(tier)
    await store.delete(tier)

    await log_tier_change(
        db,
        admin_id=current_user.id,
        action=AuditAction.DELETE_COMMISSION_TIER,
        tier_id=tier_id,
        changes=snapshot,
        ip_address=get_client_ip(request),
    )

    return {"success": True, "message": "Commission tier deleted"}


@router.post("/{tier_id}/toggle", response_model=CommissionTierResponse)
async def toggle_tier(
    request: Request,
    tier_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Flip a tier between active and inactive."""
    store = CommissionScheduleStore(db)
    tier = await _get_tier_or_404(store, tier_id)
    await store.toggle(tier)

    await log_tier_change(
        db,
        admin_id=current_user.id,
        action=AuditAction.TOGGLE_COMMISSION_TIER,
        tier_id=tier.id,
        changes={"is_active": tier.is_active},
        ip_address=get_client_ip(request),
    )

    await db.commit()
    await db.refresh(tier)
    return tier
