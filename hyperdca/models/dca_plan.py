"""DcaPlan model: a recurring USD purchase of one asset."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class DcaPlan(SQLModel, table=True):
    __tablename__ = "dca_plan"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="profile.id", index=True)
    asset: str  # e.g. "BTC", "HYPE"
    amount_usd: float
    frequency: str = "weekly"  # daily, weekly, biweekly, monthly
    custom_days_interval: int | None = None  # overrides frequency when set
    slippage: float = 1.0  # percent
    is_active: bool = True
    next_execution_at: datetime | None = Field(default=None, index=True)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
