"""WalletHolding model: cached non-quote spot balances, replaced on every sync."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class WalletHolding(SQLModel, table=True):
    __tablename__ = "wallet_holding"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="profile.id", index=True)
    asset: str
    symbol: str
    amount: float = 0.0
    current_price: float | None = None
    value_usd: float | None = None
    last_synced_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
