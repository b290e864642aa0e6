"""Upcoming-charge forecasting for the timeline, velocity and arc widgets."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from dateutil.relativedelta import relativedelta

from remindmybill.config import settings
from remindmybill.exceptions import InvalidShareCountError, UnknownCurrencyError
from remindmybill.services.currency import RateSource, convert
from remindmybill.services.date_cycle import YEARLY, next_occurrence, normalize_frequency, occurrences_between

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
FLAT_EPSILON = Decimal("0.01")
# Previous spend assumed when no earlier price was recorded
PREVIOUS_COST_FALLBACK = Decimal("0.95")


@dataclass
class TimelineItem:
    subscription_id: int
    name: str
    cost: Decimal


@dataclass
class TimelineBucket:
    date: date
    total_cost: Decimal = ZERO
    items: list[TimelineItem] = field(default_factory=list)


@dataclass(frozen=True)
class SpendingVelocity:
    delta: Decimal
    percentage: Decimal
    direction: str  # up | down | flat


@dataclass(frozen=True)
class ForecastArc:
    remaining: Decimal
    progress_percent: Decimal


@dataclass(frozen=True)
class CategorySpend:
    name: str
    value: Decimal
    previous_value: Decimal


@dataclass(frozen=True)
class InflationAlert:
    name: str
    previous_cost: Decimal
    current_cost: Decimal
    increase_percent: int


def month_label(d: date) -> str:
    return d.strftime("%b")


def _share_count(sub: Any) -> int:
    count = getattr(sub, "shared_with_count", None)
    if count is None:
        return 1
    if count < 1:
        raise InvalidShareCountError(f"Subscription {sub.id} is shared with {count} payers")
    return count


def shared_cost(
    sub: Any,
    user_currency: str,
    rates: RateSource | None = None,
    amount: Decimal | None = None,
) -> Decimal:
    """Per-payer cost of ``sub`` in ``user_currency``."""
    value = sub.cost if amount is None else amount
    return convert(value, sub.currency, user_currency, rates) / _share_count(sub)


def _billable(subscriptions: Iterable[Any]) -> list[Any]:
    return [s for s in subscriptions if s.status == "active" and s.cost is not None and s.currency]


def _converted(
    subscriptions: Iterable[Any], user_currency: str, rates: RateSource | None
) -> list[tuple[Any, Decimal]]:
    rows = []
    for sub in _billable(subscriptions):
        try:
            rows.append((sub, shared_cost(sub, user_currency, rates)))
        except UnknownCurrencyError as e:
            logger.warning(f"Skipping subscription {sub.id} ({sub.name}): {e}")
    return rows


def build_timeline(
    subscriptions: Iterable[Any],
    user_currency: str,
    month_filter: str | None = None,
    rates: RateSource | None = None,
    today: date | None = None,
) -> list[TimelineBucket]:
    buckets: dict[date, TimelineBucket] = {}
    for sub, cost in _converted(subscriptions, user_currency, rates):
        projected = next_occurrence(sub.renewal_date, sub.frequency, today)
        if month_filter and month_label(projected) != month_filter:
            continue
        bucket = buckets.setdefault(projected, TimelineBucket(date=projected))
        bucket.items.append(TimelineItem(subscription_id=sub.id, name=sub.name, cost=cost))
        bucket.total_cost += cost

    ordered = sorted(buckets.values(), key=lambda b: b.date)
    return ordered[: settings.TIMELINE_MAX_BUCKETS]


def spending_velocity(current: Decimal, previous: Decimal) -> SpendingVelocity:
    current = Decimal(str(current))
    previous = Decimal(str(previous))
    delta = current - previous

    if previous == 0:
        percentage = HUNDRED if current > 0 else ZERO
    else:
        percentage = delta / previous * HUNDRED

    if abs(percentage) <= FLAT_EPSILON:
        direction = "flat"
    elif percentage > 0:
        direction = "up"
    else:
        direction = "down"
    return SpendingVelocity(delta=delta, percentage=percentage, direction=direction)


def forecast_arc(paid: Decimal, total: Decimal) -> ForecastArc:
    # Overpayment is surfaced as negative remaining / >100% progress
    paid = Decimal(str(paid))
    total = Decimal(str(total))
    progress = paid / total * HUNDRED if total != 0 else ZERO
    return ForecastArc(remaining=total - paid, progress_percent=progress)


def monthly_equivalent(sub: Any, cost: Decimal) -> Decimal:
    if normalize_frequency(sub.frequency) == YEARLY:
        return cost / 12
    return cost


def monthly_spend(
    subscriptions: Iterable[Any], user_currency: str, rates: RateSource | None = None
) -> Decimal:
    """Monthly-equivalent spend of all active subscriptions."""
    converted = _converted(subscriptions, user_currency, rates)
    return sum((monthly_equivalent(sub, cost) for sub, cost in converted), ZERO)


def _previous_cost(sub: Any, current: Decimal, user_currency: str, rates: RateSource | None) -> Decimal:
    if sub.previous_cost:
        return shared_cost(sub, user_currency, rates, amount=sub.previous_cost)
    return current * PREVIOUS_COST_FALLBACK


def category_breakdown(
    subscriptions: Iterable[Any], user_currency: str, rates: RateSource | None = None
) -> list[CategorySpend]:
    totals: dict[str, tuple[Decimal, Decimal]] = {}
    for sub, cost in _converted(subscriptions, user_currency, rates):
        name = (sub.category or "").strip() or "Other"
        current = monthly_equivalent(sub, cost)
        previous = monthly_equivalent(sub, _previous_cost(sub, cost, user_currency, rates))
        old_current, old_previous = totals.get(name, (ZERO, ZERO))
        totals[name] = (old_current + current, old_previous + previous)

    breakdown = [
        CategorySpend(name=name, value=current, previous_value=previous)
        for name, (current, previous) in totals.items()
    ]
    breakdown.sort(key=lambda c: c.value, reverse=True)
    return breakdown


def _month_bounds(today: date) -> tuple[date, date]:
    start = today.replace(day=1)
    return start, start + relativedelta(months=1, days=-1)


def velocity_inputs(
    subscriptions: Iterable[Any],
    user_currency: str,
    rates: RateSource | None = None,
    today: date | None = None,
) -> tuple[Decimal, Decimal]:
    """Spend charged so far this month, and over the same span of last month."""
    today = today or date.today()
    month_start, _ = _month_bounds(today)
    last_month_start = month_start - relativedelta(months=1)
    same_day_last_month = today - relativedelta(months=1)

    current = ZERO
    previous = ZERO
    for sub, cost in _converted(subscriptions, user_currency, rates):
        charges = occurrences_between(sub.renewal_date, sub.frequency, month_start, today)
        current += cost * len(charges)
        earlier = occurrences_between(sub.renewal_date, sub.frequency, last_month_start, same_day_last_month)
        previous += _previous_cost(sub, cost, user_currency, rates) * len(earlier)
    return current, previous


def month_to_date(
    subscriptions: Iterable[Any],
    user_currency: str,
    rates: RateSource | None = None,
    today: date | None = None,
) -> tuple[Decimal, Decimal]:
    """``(paid, total)`` for charges falling in the current calendar month.

    A charge counts as paid once its date is strictly before today.
    """
    today = today or date.today()
    month_start, month_end = _month_bounds(today)
    paid = ZERO
    total = ZERO
    for sub, cost in _converted(subscriptions, user_currency, rates):
        for charge in occurrences_between(sub.renewal_date, sub.frequency, month_start, month_end):
            total += cost
            if charge < today:
                paid += cost
    return paid, total


def inflation_alerts(subscriptions: Iterable[Any]) -> list[InflationAlert]:
    alerts = []
    for sub in subscriptions:
        if sub.status != "active" or not sub.previous_cost or sub.cost <= sub.previous_cost:
            continue
        increase = (sub.cost - sub.previous_cost) / sub.previous_cost * HUNDRED
        alerts.append(
            InflationAlert(
                name=sub.name,
                previous_cost=sub.previous_cost,
                current_cost=sub.cost,
                increase_percent=int(increase.to_integral_value()),
            )
        )
    return alerts
