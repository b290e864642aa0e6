import asyncio
from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from remindmybill.exceptions import StoreWriteError
from remindmybill.models.subscription import Subscription
from remindmybill.models.user import User
from remindmybill.services.tiers import UserTier, resolve_tier


class SqlSubscriptionStore:
    """Subscription store backed by the request's ``AsyncSession``.

    A session cannot run two statements at once, so concurrent lock writes
    are queued on an internal lock and land in the caller's transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self._write_lock = asyncio.Lock()

    async def list_active(self, user_id: int) -> Sequence[Subscription]:
        result = await self.db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id, Subscription.status == "active")
            .order_by(Subscription.created_at, Subscription.id)
        )
        return result.scalars().all()

    async def set_lock_flag(self, subscription_id: int, locked: bool) -> None:
        async with self._write_lock:
            try:
                result = await self.db.execute(
                    update(Subscription)
                    .where(Subscription.id == subscription_id)
                    .values(is_locked=locked)
                )
            except SQLAlchemyError as e:
                raise StoreWriteError(subscription_id, str(e)) from e
            if result.rowcount == 0:
                raise StoreWriteError(subscription_id, "row not found")

    async def get_tier(self, user_id: int) -> UserTier:
        user = await self.db.get(User, user_id)
        if user is None:
            return resolve_tier(None)
        return resolve_tier(user.tier, user.is_pro)
