"""Portfolio health score.

Starts at 100 and subtracts:

* 15 for every distinct subscription name that appears more than once,
* 20 for every trial whose renewal date is at most three days away,
* 5 for every subscription with no category or the catch-all "Other".

Only active, enabled subscriptions are considered. The result never drops
below 0.
"""

import re
from collections import Counter
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any

from remindmybill.services.date_cycle import parse_date

DUPLICATE_PENALTY = 15
RISKY_TRIAL_PENALTY = 20
UNCATEGORIZED_PENALTY = 5
TRIAL_WINDOW_DAYS = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def _normalize_name(name: str) -> str:
    return _NON_ALNUM.sub("", name.lower().strip())


def _is_active(sub: Any) -> bool:
    return sub.status == "active" and getattr(sub, "is_enabled", True) is not False


def _is_trial(sub: Any) -> bool:
    return getattr(sub, "is_trial", False) is True or "trial" in sub.name.lower()


def _is_uncategorized(sub: Any) -> bool:
    category = (sub.category or "").strip()
    return not category or category.lower() == "other"


def calculate_health_score(subscriptions: Iterable[Any], today: date | None = None) -> int:
    subscriptions = list(subscriptions)
    if not subscriptions:
        return 100

    today = today or date.today()
    active = [s for s in subscriptions if _is_active(s)]
    score = 100

    name_counts = Counter(_normalize_name(s.name) for s in active)
    duplicate_sets = sum(1 for count in name_counts.values() if count > 1)
    score -= duplicate_sets * DUPLICATE_PENALTY

    # The stored renewal date is used as-is here, not rolled forward
    trial_cutoff = today + timedelta(days=TRIAL_WINDOW_DAYS)
    for sub in active:
        if _is_trial(sub) and parse_date(sub.renewal_date) <= trial_cutoff:
            score -= RISKY_TRIAL_PENALTY

    score -= UNCATEGORIZED_PENALTY * sum(1 for s in active if _is_uncategorized(s))

    return max(0, score)


def health_score_label(score: int) -> str:
    if score >= 90:
        return "Excellent"
    if score >= 70:
        return "Good"
    if score >= 50:
        return "Needs Attention"
    if score >= 30:
        return "At Risk"
    return "Critical"


def optimization_level(score: int) -> str:
    if score >= 80:
        return "high"
    if score >= 60:
        return "medium"
    return "low"
