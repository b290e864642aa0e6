from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from remindmybill.db import get_db
from remindmybill.models.subscription import Subscription
from remindmybill.models.user import User
from remindmybill.schemas.analytics import (
    AnalyticsSummary, CategorySpending, ForecastArc, HealthScore, InflationAlert,
    SpendingVelocity, TimelineBucket, TimelineItem,
)
from remindmybill.services import forecast
from remindmybill.services.auth import get_current_user
from remindmybill.services.health_score import (
    calculate_health_score, health_score_label, optimization_level,
)

router = APIRouter(prefix="/analytics", tags=["analytics"])


async def _load_subscriptions(db: AsyncSession, user: User) -> list[Subscription]:
    result = await db.execute(select(Subscription).where(Subscription.user_id == user.id))
    return list(result.scalars().all())


def _health(subs: list[Subscription]) -> HealthScore:
    score = calculate_health_score(subs)
    return HealthScore(score=score, label=health_score_label(score), optimization_level=optimization_level(score))


@router.get("/summary", response_model=AnalyticsSummary)
async def get_summary(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    subs = await _load_subscriptions(db, current_user)
    currency = current_user.default_currency
    today = date.today()

    current, previous = forecast.velocity_inputs(subs, currency, today=today)
    velocity = forecast.spending_velocity(current, previous)
    paid, total = forecast.month_to_date(subs, currency, today=today)
    arc = forecast.forecast_arc(paid, total)

    return AnalyticsSummary(
        currency=currency,
        total_monthly_spend=forecast.monthly_spend(subs, currency),
        active_count=sum(1 for s in subs if s.status == "active"),
        category_breakdown=[
            CategorySpending(name=c.name, value=c.value, previous_value=c.previous_value)
            for c in forecast.category_breakdown(subs, currency)
        ],
        velocity=SpendingVelocity(
            current=current,
            previous=previous,
            delta=velocity.delta,
            percentage=velocity.percentage,
            direction=velocity.direction,
        ),
        forecast=ForecastArc(
            paid=paid, total=total, remaining=arc.remaining, progress_percent=arc.progress_percent
        ),
        inflation_alerts=[
            InflationAlert(
                name=a.name,
                previous_cost=a.previous_cost,
                current_cost=a.current_cost,
                increase_percent=a.increase_percent,
            )
            for a in forecast.inflation_alerts(subs)
        ],
        health=_health(subs),
    )


@router.get("/timeline", response_model=list[TimelineBucket])
async def get_timeline(
    month: str | None = Query(default=None, description="Short month label, e.g. Mar"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    subs = await _load_subscriptions(db, current_user)
    buckets = forecast.build_timeline(subs, current_user.default_currency, month_filter=month)
    return [
        TimelineBucket(
            date=b.date,
            total_cost=b.total_cost,
            items=[TimelineItem(subscription_id=i.subscription_id, name=i.name, cost=i.cost) for i in b.items],
        )
        for b in buckets
    ]


@router.get("/health", response_model=HealthScore)
async def get_health(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return _health(await _load_subscriptions(db, current_user))
