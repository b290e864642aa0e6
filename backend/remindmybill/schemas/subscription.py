from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from remindmybill.services.currency import sanitize_currency
from remindmybill.services.date_cycle import normalize_frequency


class SubscriptionBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    cost: Decimal = Field(ge=0)
    currency: str = "USD"
    frequency: str = "monthly"
    category: str | None = None
    renewal_date: date
    is_trial: bool = False
    is_enabled: bool = True
    shared_with_count: int = Field(default=1, ge=1)
    notes: str | None = None

    @field_validator("frequency")
    @classmethod
    def _normalize_frequency(cls, value: str) -> str:
        return normalize_frequency(value)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return sanitize_currency(value)


class SubscriptionCreate(SubscriptionBase):
    pass


class SubscriptionUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    cost: Decimal | None = Field(default=None, ge=0)
    currency: str | None = None
    frequency: str | None = None
    category: str | None = None
    renewal_date: date | None = None
    is_trial: bool | None = None
    is_enabled: bool | None = None
    shared_with_count: int | None = Field(default=None, ge=1)
    notes: str | None = None

    @field_validator(
        "name", "cost", "currency", "frequency", "renewal_date", "is_trial", "is_enabled", "shared_with_count"
    )
    @classmethod
    def _not_null(cls, value):
        # Omit a field to leave it unchanged; these columns cannot be cleared
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    @field_validator("frequency")
    @classmethod
    def _normalize_frequency(cls, value: str | None) -> str | None:
        return normalize_frequency(value) if value is not None else None

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str | None) -> str | None:
        return sanitize_currency(value) if value is not None else None


class SubscriptionResponse(SubscriptionBase):
    id: int
    status: str
    is_locked: bool
    previous_cost: Decimal | None = None
    created_at: datetime
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class SubscriptionRenewal(BaseModel):
    subscription_id: int
    next_renewal_date: date
    label: str
    days_left: int
    is_urgent: bool


class CancelRequest(BaseModel):
    reason: str | None = None
    feedback: str | None = None


class CancelResponse(BaseModel):
    message: str
    savings_per_month: Decimal
    locks_changed: int
