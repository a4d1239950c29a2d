"""Spot trading API."""

from fastapi import APIRouter, Depends

from hyperdca.api.deps import get_current_profile, get_executor
from hyperdca.config import settings
from hyperdca.engine.order_executor import OrderExecutor
from hyperdca.models import Profile
from hyperdca.schemas.trade import SpotBuyRequest, SpotBuyResponse

router = APIRouter(prefix="/api/trades", tags=["trades"])


@router.post("/buy", response_model=SpotBuyResponse)
async def spot_buy(
    body: SpotBuyRequest,
    profile: Profile = Depends(get_current_profile),
    executor: OrderExecutor = Depends(get_executor),
):
    """Market-buy a spot asset with an IOC limit order at mid + slippage."""
    slippage = body.slippage if body.slippage is not None else settings.default_slippage
    if body.quantity is not None:
        fill = await executor.buy_by_quantity(profile.id, body.asset, body.quantity, slippage)
    else:
        fill = await executor.buy_by_usd(profile.id, body.asset, body.amount_usd, slippage)
    return fill.to_dict()
