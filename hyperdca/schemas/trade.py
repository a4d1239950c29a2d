"""Pydantic schemas for spot buys."""

from pydantic import BaseModel, Field, field_validator, model_validator


class SpotBuyRequest(BaseModel):
    """Buy by USD amount or by exact quantity; exactly one must be given."""

    asset: str = Field(min_length=1, max_length=32)
    amount_usd: float | None = Field(default=None, gt=0)
    quantity: float | None = Field(default=None, gt=0)
    slippage: float | None = Field(default=None, gt=0, le=50)  # percent

    @field_validator("asset")
    @classmethod
    def _trim_asset(cls, value: str) -> str:
        text = value.strip().upper()
        if not text:
            raise ValueError("must not be empty")
        return text

    @model_validator(mode="after")
    def _one_amount(self):
        if (self.amount_usd is None) == (self.quantity is None):
            raise ValueError("provide exactly one of amount_usd or quantity")
        return self


class SpotBuyResponse(BaseModel):
    success: bool = True
    order_id: str
    asset: str
    amount_usd: float
    amount_crypto: float
    price: float
    trading_address: str | None
    recorded: bool
