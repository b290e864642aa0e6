"""Recurring renewal date projection and urgency labels."""

import logging
from dataclasses import dataclass
from datetime import date, datetime

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from remindmybill.exceptions import InvalidDateError

logger = logging.getLogger(__name__)

MONTHLY = "monthly"
YEARLY = "yearly"

_FREQUENCY_ALIASES = {
    "monthly": MONTHLY,
    "yearly": YEARLY,
    "annual": YEARLY,
}

URGENT_WITHIN_DAYS = 3


@dataclass(frozen=True)
class RenewalUrgency:
    label: str
    days_left: int
    is_urgent: bool


def normalize_frequency(value: str | None) -> str:
    """Map a stored billing frequency onto ``monthly`` or ``yearly``.

    Unrecognized values fall back to monthly, but are logged so bad rows
    show up instead of silently billing on the wrong cadence.
    """
    key = (value or "").strip().lower()
    if key in _FREQUENCY_ALIASES:
        return _FREQUENCY_ALIASES[key]
    logger.warning(f"Unrecognized billing frequency {value!r}, treating as monthly")
    return MONTHLY


def parse_date(value: date | datetime | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return isoparse(value.strip()).date()
        except (ValueError, OverflowError) as e:
            raise InvalidDateError(f"Invalid date {value!r}: {e}") from e
    raise InvalidDateError(f"Invalid date {value!r}")


def _step(frequency: str | None) -> relativedelta:
    if normalize_frequency(frequency) == YEARLY:
        return relativedelta(years=1)
    return relativedelta(months=1)


def next_occurrence(
    anchor: date | datetime | str,
    frequency: str | None,
    today: date | None = None,
) -> date:
    """Roll ``anchor`` forward one cycle at a time until it is not in the past."""
    current = parse_date(anchor)
    today = today or date.today()
    step = _step(frequency)
    while current < today:
        current = current + step
    return current


def urgency_label(projected: date | datetime | str, today: date | None = None) -> RenewalUrgency:
    projected = parse_date(projected)
    today = today or date.today()
    days_left = (projected - today).days

    if days_left == 0:
        label = "Due Today"
    elif days_left == 1:
        label = "Tomorrow"
    else:
        label = f"In {days_left} days"

    return RenewalUrgency(label=label, days_left=days_left, is_urgent=days_left <= URGENT_WITHIN_DAYS)


def occurrences_between(
    anchor: date | datetime | str,
    frequency: str | None,
    start: date,
    end: date,
) -> list[date]:
    """Charge dates of the cycle through ``anchor`` within ``[start, end]``.

    The stored anchor is rolled forward by the daily job, so the series is
    projected backward from it as well as forward. Every date is a whole
    number of cycles away from ``anchor``.
    """
    anchor = parse_date(anchor)
    step = _step(frequency)
    cycles = 0
    while anchor + step * cycles > start:
        cycles -= 1
    while anchor + step * cycles < start:
        cycles += 1
    dates = []
    current = anchor + step * cycles
    while current <= end:
        dates.append(current)
        cycles += 1
        current = anchor + step * cycles
    return dates
