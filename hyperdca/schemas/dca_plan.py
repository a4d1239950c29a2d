"""Pydantic schemas for DCA plan API."""

from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from hyperdca.utils.constants import VALID_FREQUENCIES


def _normalize_asset(value: str) -> str:
    text = value.strip().upper()
    if not text:
        raise ValueError("must not be empty")
    return text


def _validate_frequency(value: str) -> str:
    if value not in VALID_FREQUENCIES:
        allowed = ", ".join(VALID_FREQUENCIES)
        raise ValueError(f"must be one of: {allowed}")
    return value


class DcaPlanCreate(BaseModel):
    asset: str = Field(min_length=1, max_length=32)
    amount_usd: float = Field(gt=0)
    frequency: str = "weekly"
    custom_days_interval: int | None = Field(default=None, ge=1, le=365)
    slippage: float = Field(default=1.0, gt=0, le=50)
    is_active: bool = True
    next_execution_at: datetime | None = None  # defaults to now (first run on the next sweep)

    @field_validator("asset")
    @classmethod
    def _trim_asset(cls, value: str) -> str:
        return _normalize_asset(value)

    @field_validator("frequency")
    @classmethod
    def _check_frequency(cls, value: str) -> str:
        return _validate_frequency(value)


class DcaPlanUpdate(BaseModel):
    amount_usd: float | None = Field(default=None, gt=0)
    frequency: str | None = None
    custom_days_interval: int | None = Field(default=None, ge=1, le=365)
    slippage: float | None = Field(default=None, gt=0, le=50)
    is_active: bool | None = None
    next_execution_at: datetime | None = None

    @field_validator("frequency")
    @classmethod
    def _check_frequency(cls, value: str | None) -> str | None:
        if value is None:
            return value
        return _validate_frequency(value)


class DcaPlanRead(BaseModel):
    id: int
    user_id: int
    asset: str
    amount_usd: float
    frequency: str
    custom_days_interval: int | None
    slippage: float
    is_active: bool
    next_execution_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DcaExecutionRead(BaseModel):
    id: int
    plan_id: int
    amount_usd: float
    amount_crypto: float | None
    price_at_execution: float | None
    status: str
    hyperliquid_order_id: str | None
    error_message: str | None
    executed_at: datetime

    model_config = {"from_attributes": True}
