from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from remindmybill.db import get_db
from remindmybill.models.user import User
from remindmybill.schemas.user import (
    PlanCancelRequest,
    PlanCancelResponse,
    TierChange,
    TierChangeResponse,
    UserResponse,
    UserUpdate,
)
from remindmybill.services.auth import get_current_user
from remindmybill.services.currency import sanitize_currency
from remindmybill.services.limit_enforcer import sync_subscription_lock_status
from remindmybill.services.subscription_store import SqlSubscriptionStore
from remindmybill.services.tiers import apply_tier, clear_scheduled_cancellation, is_pro, resolve_tier

router = APIRouter(prefix="/profile", tags=["profile"])


def _plan_status(user: User) -> PlanCancelResponse:
    return PlanCancelResponse(
        tier=user.tier,
        cancellation_scheduled=user.cancellation_scheduled,
        cancellation_date=user.cancellation_date,
    )


@router.get("/", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if data.full_name is not None:
        current_user.full_name = data.full_name
    if data.default_currency is not None:
        current_user.default_currency = sanitize_currency(data.default_currency)
    await db.flush()
    await db.refresh(current_user)
    return current_user


@router.put("/tier", response_model=TierChangeResponse)
async def change_tier(
    data: TierChange,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Upgrade or downgrade, then re-lock or unlock subscriptions to fit the new cap."""
    apply_tier(current_user, data.tier)
    clear_scheduled_cancellation(current_user)
    await db.flush()

    result = await sync_subscription_lock_status(SqlSubscriptionStore(db), current_user.id)
    tier = resolve_tier(current_user.tier, current_user.is_pro)
    return TierChangeResponse(
        tier=tier.name, cap=tier.cap, changed_count=result.changed_count, any_changed=result.any_changed
    )


@router.post("/plan/cancel", response_model=PlanCancelResponse)
async def schedule_plan_cancellation(
    data: PlanCancelRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Keep the paid plan until ``cancel_at``; the daily job downgrades afterwards."""
    if not is_pro(current_user.tier, current_user.is_pro):
        raise HTTPException(status_code=400, detail="No paid plan to cancel")
    if current_user.cancellation_scheduled:
        raise HTTPException(status_code=400, detail="Cancellation already scheduled")

    cancel_at = data.cancel_at or datetime.now()
    if cancel_at.tzinfo is not None:
        cancel_at = cancel_at.astimezone().replace(tzinfo=None)

    current_user.cancellation_scheduled = True
    current_user.cancellation_date = cancel_at
    current_user.cancellation_reason = data.reason
    current_user.previous_tier = current_user.tier
    await db.flush()
    return _plan_status(current_user)


@router.post("/plan/reactivate", response_model=PlanCancelResponse)
async def undo_plan_cancellation(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not current_user.cancellation_scheduled:
        raise HTTPException(status_code=400, detail="No cancellation scheduled")
    if current_user.cancellation_date is not None and current_user.cancellation_date < datetime.now():
        raise HTTPException(status_code=400, detail="Plan has already ended")

    clear_scheduled_cancellation(current_user)
    await db.flush()
    return _plan_status(current_user)
