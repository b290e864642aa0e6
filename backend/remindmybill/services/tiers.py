from dataclasses import dataclass
from datetime import datetime
from typing import Any

from remindmybill.config import settings

PAID_TIERS = frozenset({"pro", "premium", "lifetime"})


@dataclass(frozen=True)
class UserTier:
    name: str
    cap: int


def is_pro(tier: str | None, is_pro_flag: bool | None = None) -> bool:
    if is_pro_flag is True:
        return True
    return (tier or "").lower() in PAID_TIERS


def get_tier_cap(tier: str | None, is_pro_flag: bool | None = None) -> int:
    """Number of active subscriptions that may stay unlocked on this tier."""
    if is_pro(tier, is_pro_flag):
        return settings.PRO_TIER_SUBSCRIPTION_CAP
    return settings.FREE_TIER_SUBSCRIPTION_CAP


def resolve_tier(tier: str | None, is_pro_flag: bool | None = None) -> UserTier:
    name = (tier or "free").lower()
    if name not in PAID_TIERS and is_pro_flag:
        name = "pro"
    elif name not in PAID_TIERS:
        name = "free"
    return UserTier(name=name, cap=get_tier_cap(name, is_pro_flag))


def apply_tier(user: Any, tier: str) -> None:
    """Set the tier, pro flag and reminder quota on ``user``."""
    user.tier = tier
    user.is_pro = is_pro(tier)
    user.email_alerts_limit = (
        settings.PRO_TIER_EMAIL_ALERTS if user.is_pro else settings.FREE_TIER_EMAIL_ALERTS
    )
    user.tier_updated_at = datetime.now()


def clear_scheduled_cancellation(user: Any) -> None:
    user.cancellation_scheduled = False
    user.cancellation_date = None
    user.cancellation_reason = None
    user.previous_tier = None
