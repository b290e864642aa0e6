from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel


class CancellationLogResponse(BaseModel):
    id: int
    subscription_id: int
    cancelled_at: datetime
    reason: str | None = None
    feedback: str | None = None
    savings_per_month: Decimal | None = None
    currency: str
    subscription_name: str | None = None

    model_config = {"from_attributes": True}


class SavingsSummary(BaseModel):
    total_monthly_savings: Decimal
    cancellation_count: int
    currency: str
