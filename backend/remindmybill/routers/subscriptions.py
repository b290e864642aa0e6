from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from remindmybill.db import get_db
from remindmybill.models.cancellation_log import CancellationLog
from remindmybill.models.subscription import Subscription
from remindmybill.models.user import User
from remindmybill.schemas.subscription import (
    CancelRequest, CancelResponse, SubscriptionCreate, SubscriptionRenewal,
    SubscriptionResponse, SubscriptionUpdate,
)
from remindmybill.services.auth import get_current_user
from remindmybill.services.date_cycle import next_occurrence, urgency_label
from remindmybill.services.forecast import monthly_equivalent, shared_cost
from remindmybill.services.limit_enforcer import sync_subscription_lock_status
from remindmybill.services.pending import PendingUpdate
from remindmybill.services.subscription_store import SqlSubscriptionStore

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


async def _get_owned(db: AsyncSession, sub_id: int, user: User) -> Subscription:
    result = await db.execute(
        select(Subscription).where(Subscription.id == sub_id, Subscription.user_id == user.id)
    )
    sub = result.scalar_one_or_none()
    if not sub:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return sub


async def _sync_locks(db: AsyncSession, user: User) -> int:
    result = await sync_subscription_lock_status(SqlSubscriptionStore(db), user.id)
    return result.changed_count


@router.get("/", response_model=list[SubscriptionResponse])
async def list_subscriptions(
    status: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    query = select(Subscription).where(Subscription.user_id == current_user.id)
    if status is not None:
        query = query.where(Subscription.status == status)
    query = query.order_by(Subscription.renewal_date, Subscription.id)
    result = await db.execute(query)
    return result.scalars().all()


@router.get("/{sub_id}", response_model=SubscriptionResponse)
async def get_subscription(
    sub_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return await _get_owned(db, sub_id, current_user)


@router.get("/{sub_id}/renewal", response_model=SubscriptionRenewal)
async def get_renewal(
    sub_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sub = await _get_owned(db, sub_id, current_user)
    projected = next_occurrence(sub.renewal_date, sub.frequency)
    urgency = urgency_label(projected)
    return SubscriptionRenewal(
        subscription_id=sub.id,
        next_renewal_date=projected,
        label=urgency.label,
        days_left=urgency.days_left,
        is_urgent=urgency.is_urgent,
    )


@router.post("/", response_model=SubscriptionResponse, status_code=201)
async def create_subscription(
    data: SubscriptionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sub = Subscription(**data.model_dump(), user_id=current_user.id, status="active", is_locked=False)
    db.add(sub)
    await db.flush()
    await _sync_locks(db, current_user)
    await db.refresh(sub)
    return sub


@router.put("/{sub_id}", response_model=SubscriptionResponse)
async def update_subscription(
    sub_id: int,
    data: SubscriptionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sub = await _get_owned(db, sub_id, current_user)
    if sub.is_locked:
        raise HTTPException(status_code=403, detail="Subscription is locked on your current plan")

    changes = data.model_dump(exclude_unset=True)
    # Keep the old price so analytics can report increases
    if changes.get("cost") is not None and changes["cost"] != sub.cost:
        changes["previous_cost"] = sub.cost

    pending = PendingUpdate(sub, changes).apply()
    await pending.confirm(db.flush)
    await db.refresh(sub)
    return sub


@router.delete("/{sub_id}", status_code=204)
async def delete_subscription(
    sub_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sub = await _get_owned(db, sub_id, current_user)
    sub.status = "cancelled"
    sub.is_locked = False
    await db.flush()
    await _sync_locks(db, current_user)


@router.post("/{sub_id}/cancel", response_model=CancelResponse)
async def cancel_subscription(
    sub_id: int,
    body: CancelRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sub = await _get_owned(db, sub_id, current_user)
    if sub.status == "cancelled":
        raise HTTPException(status_code=400, detail="Subscription is already cancelled")

    savings = monthly_equivalent(sub, shared_cost(sub, sub.currency))
    db.add(
        CancellationLog(
            subscription_id=sub.id,
            reason=body.reason,
            feedback=body.feedback,
            savings_per_month=savings,
            currency=sub.currency,
        )
    )
    sub.status = "cancelled"
    sub.is_locked = False
    await db.flush()
    changed = await _sync_locks(db, current_user)
    return CancelResponse(message="Subscription cancelled", savings_per_month=savings, locks_changed=changed)


@router.post("/{sub_id}/reactivate", response_model=SubscriptionResponse)
async def reactivate_subscription(
    sub_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    sub = await _get_owned(db, sub_id, current_user)
    if sub.status == "active":
        raise HTTPException(status_code=400, detail="Subscription is already active")
    sub.status = "active"
    await db.flush()
    await _sync_locks(db, current_user)
    await db.refresh(sub)
    return sub
