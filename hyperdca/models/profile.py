"""Profile model: one per end user, owns the agent wallet."""

from datetime import datetime, timezone
from sqlmodel import SQLModel, Field


class Profile(SQLModel, table=True):
    __tablename__ = "profile"

    id: int | None = Field(default=None, primary_key=True)
    identity_subject: str = Field(unique=True, index=True)  # identity provider user id (DID)
    email: str | None = None
    wallet_address: str | None = None  # main wallet whose funds are traded
    wallet_type: str = "embedded"  # "embedded" or "external"
    network_mode: str = "mainnet"  # "mainnet" or "testnet"
    low_balance_threshold: float = 100.0

    # Delegated signer. Address must always derive from the encrypted key.
    agent_wallet_address: str | None = None
    agent_wallet_private_key_encrypted: str | None = None
    agent_wallet_authorized_at: datetime | None = None  # None = not authorized

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
