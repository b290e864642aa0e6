from datetime import date
from decimal import Decimal

from pydantic import BaseModel


class TimelineItem(BaseModel):
    subscription_id: int
    name: str
    cost: Decimal


class TimelineBucket(BaseModel):
    date: date
    total_cost: Decimal
    items: list[TimelineItem]


class CategorySpending(BaseModel):
    name: str
    value: Decimal
    previous_value: Decimal


class SpendingVelocity(BaseModel):
    current: Decimal
    previous: Decimal
    delta: Decimal
    percentage: Decimal
    direction: str


class ForecastArc(BaseModel):
    paid: Decimal
    total: Decimal
    remaining: Decimal
    progress_percent: Decimal


class InflationAlert(BaseModel):
    name: str
    previous_cost: Decimal
    current_cost: Decimal
    increase_percent: int


class HealthScore(BaseModel):
    score: int
    label: str
    optimization_level: str


class AnalyticsSummary(BaseModel):
    currency: str
    total_monthly_spend: Decimal
    active_count: int
    category_breakdown: list[CategorySpending]
    velocity: SpendingVelocity
    forecast: ForecastArc
    inflation_alerts: list[InflationAlert]
    health: HealthScore
