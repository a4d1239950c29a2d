"""WalletTransaction model: buys, sells, deposits and withdrawals.

Unique per (user_id, hyperliquid_tx_hash) so exchange history can be upserted.
"""

from datetime import datetime, timezone
from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class WalletTransaction(SQLModel, table=True):
    __tablename__ = "wallet_transaction"
    __table_args__ = (
        UniqueConstraint("user_id", "hyperliquid_tx_hash", name="uq_wallet_transaction_user_tx_hash"),
    )

    id: int | None = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="profile.id", index=True)
    type: str  # "buy", "sell", "deposit", "withdraw"
    asset: str | None = None
    symbol: str | None = None
    amount: float | None = None
    price: float | None = None
    total: float
    timestamp: datetime
    status: str = "completed"
    hyperliquid_tx_hash: str | None = None  # exchange hash, or order id for locally executed trades
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
