"""Two-phase local update: apply now, then confirm or roll back.

``PendingUpdate`` changes attributes on an in-memory object right away so
callers can work with the new values, then either confirms once the
persistence call succeeds or restores the old values if it fails.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)

NEW = "new"
PENDING = "pending"
CONFIRMED = "confirmed"
ROLLED_BACK = "rolled_back"


class PendingUpdate:
    def __init__(self, target: Any, changes: dict[str, Any]):
        self.target = target
        self.changes = dict(changes)
        self.state = NEW
        self._snapshot: dict[str, Any] = {}

    def apply(self) -> "PendingUpdate":
        if self.state != NEW:
            raise RuntimeError(f"Cannot apply an update in state {self.state!r}")
        self._snapshot = {key: getattr(self.target, key) for key in self.changes}
        for key, value in self.changes.items():
            setattr(self.target, key, value)
        self.state = PENDING
        return self

    async def confirm(self, persist: Callable[[], Awaitable[Any]]) -> Any:
        if self.state != PENDING:
            raise RuntimeError(f"Cannot confirm an update in state {self.state!r}")
        try:
            result = await persist()
        except Exception:
            logger.warning(f"Persisting {sorted(self.changes)} failed, rolling back")
            self.rollback()
            raise
        self.state = CONFIRMED
        return result

    def rollback(self) -> None:
        if self.state != PENDING:
            raise RuntimeError(f"Cannot roll back an update in state {self.state!r}")
        for key, value in self._snapshot.items():
            setattr(self.target, key, value)
        self.state = ROLLED_BACK
