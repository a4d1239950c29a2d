"""Pydantic schemas for profile and session API."""

from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from hyperdca.utils.constants import Network


def _check_address(value: str | None) -> str | None:
    if value is None:
        return value
    text = value.strip()
    if not (text.startswith("0x") and len(text) == 42):
        raise ValueError("must be a 0x-prefixed 20-byte hex address")
    try:
        int(text[2:], 16)
    except ValueError:
        raise ValueError("must be a 0x-prefixed 20-byte hex address")
    return text


class SessionRequest(BaseModel):
    wallet_address: str | None = None
    wallet_type: str = Field(default="embedded", pattern="^(embedded|external)$")
    email: str | None = None

    @field_validator("wallet_address")
    @classmethod
    def _validate_address(cls, value: str | None) -> str | None:
        return _check_address(value)


class ProfileUpdate(BaseModel):
    network_mode: Network | None = None
    low_balance_threshold: float | None = Field(default=None, ge=0)


class ProfileRead(BaseModel):
    id: int
    email: str | None
    wallet_address: str | None
    wallet_type: str
    network_mode: str
    low_balance_threshold: float
    agent_wallet_address: str | None
    agent_wallet_authorized_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AgentWalletStatus(BaseModel):
    agent_address: str | None
    authorized: bool
    authorized_at: datetime | None = None
    network_mode: str
