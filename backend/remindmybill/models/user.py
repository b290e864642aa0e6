from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from remindmybill.config import settings
from remindmybill.db import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    tier: Mapped[str] = mapped_column(String(20), default="free")  # free | pro | premium | lifetime
    is_pro: Mapped[bool] = mapped_column(Boolean, default=False)
    default_currency: Mapped[str] = mapped_column(String(3), default=lambda: settings.DEFAULT_CURRENCY)
    email_alerts_used: Mapped[int] = mapped_column(Integer, default=0)
    email_alerts_limit: Mapped[int] = mapped_column(Integer, default=3)
    tier_updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    # Paid plan ends at cancellation_date; the daily job then downgrades to free
    cancellation_scheduled: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    cancellation_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(String(50), nullable=True)
    previous_tier: Mapped[str | None] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, onupdate=func.now(), nullable=True)

    subscriptions = relationship("Subscription", back_populates="user")
