import logging
from datetime import date, datetime, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from remindmybill.config import settings
from remindmybill.models.subscription import Subscription
from remindmybill.models.user import User
from remindmybill.services.currency import format_currency
from remindmybill.services.date_cycle import next_occurrence
from remindmybill.services.limit_enforcer import sync_subscription_lock_status
from remindmybill.services.notification import REMINDER_COLOR, send_webhook_notification
from remindmybill.services.subscription_store import SqlSubscriptionStore
from remindmybill.services.tiers import apply_tier, clear_scheduled_cancellation, is_pro

logger = logging.getLogger(__name__)


async def roll_forward_renewal_dates(db: AsyncSession) -> int:
    """Move past renewal dates of active subscriptions to their next occurrence."""
    today = date.today()
    result = await db.execute(
        select(Subscription)
        .where(Subscription.status == "active")
        .where(Subscription.renewal_date < today)
    )
    subs = result.scalars().all()
    for sub in subs:
        sub.renewal_date = next_occurrence(sub.renewal_date, sub.frequency, today)
    await db.commit()
    logger.info(f"Rolled forward {len(subs)} renewal dates")
    return len(subs)


async def reconcile_all_locks(db: AsyncSession) -> int:
    """Sweep every user with active subscriptions through the lock sync."""
    result = await db.execute(
        select(Subscription.user_id).where(Subscription.status == "active").distinct()
    )
    user_ids = result.scalars().all()
    store = SqlSubscriptionStore(db)
    changed = 0
    for user_id in user_ids:
        sync = await sync_subscription_lock_status(store, user_id)
        changed += sync.changed_count
    await db.commit()
    logger.info(f"Lock sweep over {len(user_ids)} users changed {changed} subscriptions")
    return changed


async def send_renewal_reminders(db: AsyncSession, webhook_url: str) -> int:
    """Notify owners of active, unlocked subscriptions renewing in exactly N days."""
    target = date.today() + timedelta(days=settings.REMINDER_LEAD_DAYS)
    result = await db.execute(
        select(Subscription)
        .options(selectinload(Subscription.user))
        .where(Subscription.status == "active")
        .where(Subscription.is_locked.is_(False))
        .where(Subscription.renewal_date == target)
        .order_by(Subscription.id)
    )
    subs = result.scalars().all()
    if not subs:
        logger.info(f"No subscriptions renewing on {target}")
        return 0

    batch = subs[: settings.REMINDER_BATCH_LIMIT]
    if len(subs) > len(batch):
        logger.warning(f"Found {len(subs)} renewals on {target}, processing first {len(batch)}")

    sent = 0
    for sub in batch:
        user = sub.user
        if user is None:
            continue
        if not is_pro(user.tier, user.is_pro) and user.email_alerts_used >= user.email_alerts_limit:
            logger.info(f"User {user.id} is out of reminder quota, skipping {sub.name}")
            continue
        ok = await send_webhook_notification(
            webhook_url,
            f"Renewal reminder: {sub.name}",
            f"**{sub.name}** renews on {sub.renewal_date} for "
            f"{format_currency(sub.cost, sub.currency)} ({user.email})",
            color=REMINDER_COLOR,
        )
        if ok:
            user.email_alerts_used += 1
            sent += 1
    await db.commit()
    logger.info(f"Sent {sent} of {len(batch)} renewal reminders for {target}")
    return sent


async def reset_alert_counters(db: AsyncSession) -> None:
    await db.execute(update(User).where(User.tier == "free").values(email_alerts_used=0))
    await db.commit()
    logger.info("Reset reminder counters for free tier users")


async def process_scheduled_cancellations(db: AsyncSession, webhook_url: str) -> int:
    """Downgrade users whose scheduled plan cancellation date has passed."""
    now = datetime.now()
    result = await db.execute(
        select(User)
        .where(User.cancellation_scheduled.is_(True))
        .where(User.cancellation_date < now)
        .order_by(User.id)
    )
    users = result.scalars().all()
    store = SqlSubscriptionStore(db)
    for user in users:
        previous = user.previous_tier or user.tier
        apply_tier(user, "free")
        clear_scheduled_cancellation(user)
        await db.flush()
        sync = await sync_subscription_lock_status(store, user.id)
        logger.info(f"Downgraded user {user.id} from {previous} to free, locked {sync.changed_count} subscriptions")
        await send_webhook_notification(
            webhook_url,
            "Plan switched to Free",
            f"{user.email}: the {previous} plan has ended, {sync.changed_count} subscriptions are now locked",
        )
    await db.commit()
    if users:
        logger.info(f"Processed {len(users)} scheduled cancellations")
    return len(users)
