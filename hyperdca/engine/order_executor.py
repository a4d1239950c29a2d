"""Spot market buys through an approved agent wallet.

One call is one IOC limit order: price check, local validation, signing,
submission, then recording of the actual fill. Every local check runs before
anything is sent to the exchange's write endpoint.
"""

import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError

from hyperdca.services.agent_wallet import AgentWalletManager
from hyperdca.services.asset_resolver import AssetResolver, SpotAsset
from hyperdca.services.errors import (
    AgentNotAuthorized,
    AssetNotFound,
    ExchangeRejected,
    InsufficientOrderSize,
    NoLiquidity,
    PersistenceGap,
)
from hyperdca.services.exchange_response import (
    ExchangeError,
    Malformed,
    OrderError,
    OrderFilled,
    OrderNotFilled,
    UnrecognizedAgent,
    parse_order_response,
)
from hyperdca.services.hyperliquid_client import HyperliquidClient
from hyperdca.services.signing import (
    MonotonicNonce,
    TradeAction,
    format_price,
    format_size,
    nonce_source,
    sign_l1_action,
)
from hyperdca.services.store import Store
from hyperdca.utils.constants import Network
from hyperdca.utils.retry import RetryPolicy, retry_async

logger = logging.getLogger(__name__)


def _is_store_error(exc: BaseException) -> bool:
    return isinstance(exc, SQLAlchemyError)


PERSIST_POLICY = RetryPolicy(max_attempts=3, base_delay=0.5, backoff_multiplier=2.0, is_retryable=_is_store_error)


@dataclass
class FillResult:
    order_id: str
    asset: str
    amount_usd: float
    amount_crypto: float
    price: float
    trading_address: str | None
    recorded: bool = True

    def to_dict(self) -> dict:
        return {"success": True, **asdict(self)}


def lookup_mid(mids: dict, symbol: str, asset: SpotAsset) -> float | None:
    """Mid price by ticker, then by pair name, then by the ``@index`` spot key."""
    for key in (symbol, asset.name, f"@{asset.index}"):
        raw = mids.get(key)
        if raw in (None, ""):
            continue
        try:
            price = float(raw)
        except (TypeError, ValueError):
            continue
        if price > 0 and math.isfinite(price):
            return price
    return None


class OrderExecutor:
    def __init__(
        self,
        store: Store,
        wallets: AgentWalletManager,
        resolver: AssetResolver,
        client_factory: Callable[[Network], HyperliquidClient],
        nonces: MonotonicNonce = nonce_source,
        persist_policy: RetryPolicy = PERSIST_POLICY,
    ):
        self.store = store
        self.wallets = wallets
        self.resolver = resolver
        self.client_factory = client_factory
        self.nonces = nonces
        self.persist_policy = persist_policy

    async def buy_by_usd(self, profile_id: int, symbol: str, usd_amount: float, slippage: float = 1.0) -> FillResult:
        if not usd_amount or usd_amount <= 0:
            raise InsufficientOrderSize("Amount must be greater than 0")
        return await self._buy(profile_id, symbol, slippage, usd_amount=usd_amount)

    async def buy_by_quantity(self, profile_id: int, symbol: str, quantity: float, slippage: float = 1.0) -> FillResult:
        if not quantity or quantity <= 0:
            raise InsufficientOrderSize("Quantity must be greater than 0")
        return await self._buy(profile_id, symbol, slippage, quantity=quantity)

    async def _buy(
        self,
        profile_id: int,
        symbol: str,
        slippage: float,
        usd_amount: float | None = None,
        quantity: float | None = None,
    ) -> FillResult:
        symbol = symbol.strip().upper()
        profile = self.store.require_profile(profile_id)
        network = Network(profile.network_mode or Network.MAINNET)
        client = self.client_factory(network)

        agent = self.wallets.ensure(profile)

        # ensure() may have rotated the key, which clears authorization
        fresh = self.store.require_profile(profile_id)
        stored_agent = (fresh.agent_wallet_address or "").lower()
        if fresh.agent_wallet_authorized_at is None or stored_agent != agent.address.lower():
            raise AgentNotAuthorized(
                "Agent wallet not authorized yet. Authorize agent wallet "
                f"{agent.address} from your main wallet, then try again."
            )

        logger.info(f"Trading setup: user={fresh.wallet_address} agent={agent.address} net={network.value}")

        mids = await client.all_mids()
        asset = await self.resolver.resolve(symbol, network)
        price = lookup_mid(mids, symbol, asset)
        if price is None:
            raise AssetNotFound(f"No price available for {symbol} on {network.value}")
        logger.info(f"Current {symbol} price: ${price}")

        if quantity is not None:
            size = quantity
        else:
            size = usd_amount / price
        if asset.whole_units_only:
            size = math.floor(size)

        limit_price = price * (1 + slippage / 100)

        if size < asset.min_size:
            min_usd = asset.min_size * price
            raise InsufficientOrderSize(
                f"Order too small. Minimum is {Decimal(str(asset.min_size)).normalize():f} {symbol} (~${min_usd:.2f})."
            )
        if asset.whole_units_only and size < 1:
            raise InsufficientOrderSize(
                f"Not enough to buy 1 {symbol}. Current price is ~${price:.2f}. "
                f"You need at least ${math.ceil(price)} to buy 1 {symbol}."
            )

        formatted_size = format_size(size, asset.sz_decimals)
        formatted_price = format_price(limit_price)
        if float(formatted_size) <= 0:
            raise InsufficientOrderSize(f"Cannot place order for 0 {symbol}. Try a larger amount.")
        if float(formatted_price) <= 0:
            raise InsufficientOrderSize(
                f"Price of {symbol} (~${price}) is below the smallest tradable tick. Order not placed."
            )

        action = TradeAction(
            asset_id=asset.asset_id,
            is_buy=True,
            limit_price=formatted_price,
            size=formatted_size,
        ).to_wire()
        nonce = self.nonces.next()
        signature = sign_l1_action(agent.private_key, action, nonce, client.config.is_mainnet)

        logger.info(
            f"Placing spot order: assetId={asset.asset_id} ({asset.name}) {formatted_size} {symbol} "
            f"@ {formatted_price} (mid: {price}, minSz: {asset.min_size})"
        )
        body = await client.submit_action(action, nonce, signature.to_dict())
        outcome = parse_order_response(body)
        logger.debug(f"Order response for nonce {nonce}: {body}")

        if isinstance(outcome, UnrecognizedAgent):
            self.wallets.clear_authorization(profile_id)
            raise AgentNotAuthorized(
                f"Agent wallet not recognized by Hyperliquid yet. Authorize agent wallet "
                f"{agent.address}, then try again."
            )
        if isinstance(outcome, ExchangeError):
            raise ExchangeRejected(f"Hyperliquid error: {outcome.reason}")
        if isinstance(outcome, OrderError):
            raise ExchangeRejected(f"Order failed: {outcome.reason}", status_code=400)
        if isinstance(outcome, OrderNotFilled):
            raise NoLiquidity(
                f"Order not filled - no matching liquidity for {symbol} at ${formatted_price}. "
                f"Try a higher slippage or check if {symbol} has active trading on {network.value}."
            )
        if not isinstance(outcome, OrderFilled):
            raw = outcome.raw if isinstance(outcome, Malformed) else outcome
            raise ExchangeRejected(f"Invalid Hyperliquid response: {raw}")

        order_id = str(outcome.oid) if outcome.oid is not None else f"spot-{nonce}"
        logger.info(f"Order filled: {outcome.total_sz} {symbol} @ avg ${outcome.avg_px}, orderId={order_id}")

        result = FillResult(
            order_id=order_id,
            asset=symbol,
            amount_usd=outcome.total_sz * outcome.avg_px,
            amount_crypto=outcome.total_sz,
            price=outcome.avg_px,
            trading_address=fresh.wallet_address,
        )
        result.recorded = await self._record_fill(profile_id, result)
        return result

    async def _record_fill(self, profile_id: int, fill: FillResult) -> bool:
        """Persist the fill, retrying store errors. A failure is logged, not raised."""
        record = {
            "user_id": profile_id,
            "type": "buy",
            "asset": fill.asset,
            "symbol": fill.asset,
            "amount": fill.amount_crypto,
            "price": fill.price,
            "total": fill.amount_usd,
            "timestamp": datetime.now(timezone.utc),
            "status": "completed",
            "hyperliquid_tx_hash": fill.order_id,
        }

        async def insert():
            return self.store.insert_transaction(record)

        try:
            await retry_async(insert, self.persist_policy, label=f"record fill {fill.order_id}")
            return True
        except SQLAlchemyError as e:
            gap = PersistenceGap(
                f"Trade succeeded but recording failed after retries "
                f"(profile={profile_id}, order={fill.order_id}, asset={fill.asset}, "
                f"size={fill.amount_crypto}, price={fill.price}, total={fill.amount_usd:.2f}): {e}"
            )
            logger.critical(f"{type(gap).__name__} [{gap.kind}]: {gap.message}")
            return False
