"""WalletBalance model: spendable quote balance and total portfolio value."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class WalletBalance(SQLModel, table=True):
    __tablename__ = "wallet_balance"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="profile.id", index=True, unique=True)
    usdc_balance: float = 0.0
    total_value_usd: float = 0.0
    last_synced_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
