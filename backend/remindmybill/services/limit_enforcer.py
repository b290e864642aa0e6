"""Keeps subscription lock flags in line with the owner's tier cap.

Active subscriptions are ranked oldest first by ``(created_at, id)``. The
first ``cap`` stay unlocked and the rest are locked. Only rows whose flag
actually changes are written, so running the sync twice in a row with the
same data performs no writes the second time.
"""

import asyncio
import logging
import weakref
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from remindmybill.services.tiers import UserTier

logger = logging.getLogger(__name__)


class SubscriptionStore(Protocol):
    async def list_active(self, user_id: int) -> Sequence[Any]: ...

    async def set_lock_flag(self, subscription_id: int, locked: bool) -> None: ...

    async def get_tier(self, user_id: int) -> UserTier: ...


@dataclass(frozen=True)
class LockSyncResult:
    changed_count: int
    any_changed: bool


class UserLockRegistry:
    """Per-user ``asyncio.Lock``s that are dropped once nobody holds them."""

    def __init__(self):
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def get(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)


default_lock_registry = UserLockRegistry()


def _rank_key(sub: Any) -> tuple[datetime, int]:
    return (sub.created_at or datetime.min, sub.id)


def plan_lock_changes(subscriptions: Sequence[Any], cap: int) -> list[tuple[Any, bool]]:
    """Return ``(subscription, locked)`` pairs for every flag that must flip."""
    ordered = sorted(subscriptions, key=_rank_key)
    changes = []
    for rank, sub in enumerate(ordered):
        should_lock = rank >= cap
        if bool(sub.is_locked) != should_lock:
            changes.append((sub, should_lock))
    return changes


async def _apply(store: SubscriptionStore, sub: Any, locked: bool) -> bool:
    try:
        await store.set_lock_flag(sub.id, locked)
    except Exception as e:
        logger.error(f"Lock sync: could not set is_locked={locked} on subscription {sub.id}: {e}")
        return False
    return True


async def sync_subscription_lock_status(
    store: SubscriptionStore,
    user_id: int,
    locks: UserLockRegistry | None = None,
) -> LockSyncResult:
    """Lock or unlock the user's active subscriptions to match their tier cap.

    Syncs for the same user sharing a ``locks`` registry run one at a time.
    """
    registry = locks if locks is not None else default_lock_registry
    async with registry.get(user_id):
        tier = await store.get_tier(user_id)
        subscriptions = await store.list_active(user_id)
        changes = plan_lock_changes(subscriptions, tier.cap)
        if not changes:
            return LockSyncResult(changed_count=0, any_changed=False)

        results = await asyncio.gather(*(_apply(store, sub, locked) for sub, locked in changes))
        changed = sum(1 for ok in results if ok)
        if changed < len(changes):
            logger.warning(
                f"Lock sync for user {user_id}: applied {changed} of {len(changes)} changes"
            )
        else:
            logger.info(f"Synced lock status for user {user_id}: updated {changed} subscriptions")
        return LockSyncResult(changed_count=changed, any_changed=changed > 0)
