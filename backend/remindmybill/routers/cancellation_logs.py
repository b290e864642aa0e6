import logging
from decimal import Decimal

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from remindmybill.db import get_db
from remindmybill.exceptions import UnknownCurrencyError
from remindmybill.models.cancellation_log import CancellationLog
from remindmybill.models.subscription import Subscription
from remindmybill.models.user import User
from remindmybill.schemas.cancellation_log import CancellationLogResponse, SavingsSummary
from remindmybill.services.auth import get_current_user
from remindmybill.services.currency import convert

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cancellation-logs", tags=["cancellation-logs"])


async def _user_logs(db: AsyncSession, user: User) -> list[CancellationLog]:
    result = await db.execute(
        select(CancellationLog)
        .join(Subscription, CancellationLog.subscription_id == Subscription.id)
        .options(selectinload(CancellationLog.subscription))
        .where(Subscription.user_id == user.id)
        .order_by(CancellationLog.cancelled_at.desc(), CancellationLog.id.desc())
    )
    return list(result.scalars().all())


@router.get("/", response_model=list[CancellationLogResponse])
async def list_cancellation_logs(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    logs = await _user_logs(db, current_user)
    return [
        CancellationLogResponse(
            id=log.id,
            subscription_id=log.subscription_id,
            cancelled_at=log.cancelled_at,
            reason=log.reason,
            feedback=log.feedback,
            savings_per_month=log.savings_per_month,
            currency=log.currency,
            subscription_name=log.subscription.name if log.subscription else None,
        )
        for log in logs
    ]


@router.get("/savings", response_model=SavingsSummary)
async def get_savings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    currency = current_user.default_currency
    total = Decimal("0")
    logs = await _user_logs(db, current_user)
    for log in logs:
        if not log.savings_per_month:
            continue
        try:
            total += convert(log.savings_per_month, log.currency, currency)
        except UnknownCurrencyError as e:
            logger.warning(f"Leaving cancellation {log.id} out of savings: {e}")
    return SavingsSummary(total_monthly_savings=total, cancellation_count=len(logs), currency=currency)
