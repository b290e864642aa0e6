from remindmybill.schemas.subscription import (
    SubscriptionCreate,
    SubscriptionResponse,
    SubscriptionUpdate,
)
from remindmybill.schemas.user import UserResponse, UserUpdate

__all__ = [
    "SubscriptionCreate",
    "SubscriptionResponse",
    "SubscriptionUpdate",
    "UserResponse",
    "UserUpdate",
]
