from remindmybill.models.user import User
from remindmybill.models.subscription import Subscription
from remindmybill.models.cancellation_log import CancellationLog

__all__ = [
    "User",
    "Subscription",
    "CancellationLog",
]
