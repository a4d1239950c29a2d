"""DcaExecution model: one row per triggered plan purchase, success or failure."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class DcaExecution(SQLModel, table=True):
    __tablename__ = "dca_execution"

    id: int | None = Field(default=None, primary_key=True)
    plan_id: int = Field(foreign_key="dca_plan.id", index=True)
    amount_usd: float  # requested
    amount_crypto: float | None = None  # filled
    price_at_execution: float | None = None  # average fill price
    status: str  # "success", "failed", "unknown"
    hyperliquid_order_id: str | None = None
    error_message: str | None = None
    executed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
