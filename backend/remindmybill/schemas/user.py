from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    id: int
    email: str
    full_name: str | None = None
    tier: str
    is_pro: bool
    default_currency: str
    email_alerts_used: int
    email_alerts_limit: int
    cancellation_scheduled: bool = False
    cancellation_date: datetime | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class UserUpdate(BaseModel):
    full_name: str | None = None
    default_currency: str | None = Field(default=None, min_length=1, max_length=3)


class TierChange(BaseModel):
    tier: Literal["free", "pro", "premium", "lifetime"]


class TierChangeResponse(BaseModel):
    tier: str
    cap: int
    changed_count: int
    any_changed: bool


class PlanCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=50)
    # Defaults to now; a billing period end can be passed instead
    cancel_at: datetime | None = None


class PlanCancelResponse(BaseModel):
    tier: str
    cancellation_scheduled: bool
    cancellation_date: datetime | None = None
