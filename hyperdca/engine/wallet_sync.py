"""Wallet sync: reconcile cached holdings, balance and history with Hyperliquid.

Holdings are a cache and are replaced wholesale on every sync. Transactions
are a ledger: rows from the exchange are upserted on
``(user_id, hyperliquid_tx_hash)`` and never deleted, so trades recorded
locally by the order executor survive and are not duplicated.

Data pulled per sync:
1. spotClearinghouseState → balances (required; a failure aborts the sync)
2. allMids → current prices
3. userNonFundingLedgerUpdates → deposits and withdrawals
4. userFillsByTime over the lookback window → buys and sells
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from hyperdca.services.errors import TradingError
from hyperdca.services.hyperliquid_client import HyperliquidClient
from hyperdca.services.store import Store
from hyperdca.utils.constants import QUOTE_COINS, TRANSACTION_CONFLICT_KEYS, Network

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000


@dataclass
class SyncResult:
    holdings: list[dict] = field(default_factory=list)
    balance: dict = field(default_factory=dict)
    transactions_synced: int = 0

    def to_dict(self) -> dict:
        return {
            "success": True,
            "holdings": self.holdings,
            "balance": self.balance,
            "transactions_synced": self.transactions_synced,
        }


def _to_float(value: Any, default: float = 0.0) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _from_ms(ms: Any) -> datetime:
    return datetime.fromtimestamp(_to_float(ms) / 1000, tz=timezone.utc)


def build_holdings(balances: list[dict], mids: dict) -> tuple[list[dict], float, float]:
    """Split balances into non-quote holdings and the quote balance.

    Returns ``(holdings, usdc_balance, total_value_usd)``.
    """
    holdings = []
    usdc_balance = 0.0
    total_value = 0.0
    for balance in balances:
        if not isinstance(balance, dict):
            continue
        amount = _to_float(balance.get("total"))
        if amount <= 0:
            continue
        coin = str(balance.get("coin") or "")
        if coin in QUOTE_COINS:
            usdc_balance += amount
            total_value += amount
            continue
        price = _to_float(mids.get(coin))
        value_usd = amount * price
        total_value += value_usd
        holdings.append({
            "asset": coin,
            "symbol": coin,
            "amount": amount,
            "current_price": price,
            "value_usd": value_usd,
        })
    return holdings, usdc_balance, total_value


def transfer_records(user_id: int, wallet_address: str, updates: list[dict]) -> list[dict]:
    """Deposit and withdraw rows from non-funding ledger updates."""
    wallet = wallet_address.lower()
    records = []
    for update in updates:
        if not isinstance(update, dict) or not update.get("hash"):
            continue
        delta = update.get("delta") or {}
        kind = delta.get("type")
        if kind in ("deposit", "withdraw"):
            tx_type = kind
            coin = "USDC"
            amount = abs(_to_float(delta.get("usdc")))
            total = amount
        elif kind == "spotTransfer":
            incoming = str(delta.get("destination") or "").lower() == wallet
            tx_type = "deposit" if incoming else "withdraw"
            coin = str(delta.get("token") or "USDC")
            amount = abs(_to_float(delta.get("amount")))
            total = abs(_to_float(delta.get("usdcValue"), amount))
        else:
            continue
        records.append({
            "user_id": user_id,
            "type": tx_type,
            "asset": coin,
            "symbol": coin,
            "amount": amount,
            "price": None,
            "total": total,
            "timestamp": _from_ms(update.get("time")),
            "status": "completed",
            "hyperliquid_tx_hash": str(update["hash"]),
        })
    return records


def fill_records(user_id: int, fills: list[dict], local_hashes: set[str]) -> list[dict]:
    """Buy and sell rows from fills, skipping orders already recorded locally by id."""
    records = []
    for fill in fills:
        if not isinstance(fill, dict) or not fill.get("hash"):
            continue
        if fill.get("oid") is not None and str(fill["oid"]) in local_hashes:
            continue
        price = _to_float(fill.get("px"))
        size = _to_float(fill.get("sz"))
        records.append({
            "user_id": user_id,
            "type": "buy" if fill.get("side") == "B" else "sell",
            "asset": fill.get("coin"),
            "symbol": fill.get("coin"),
            "amount": size,
            "price": price,
            "total": price * size,
            "timestamp": _from_ms(fill.get("time")),
            "status": "completed",
            "hyperliquid_tx_hash": str(fill["hash"]),
        })
    return records


class WalletSync:
    def __init__(
        self,
        store: Store,
        client_factory: Callable[[Network], HyperliquidClient],
        lookback_days: int = 90,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.client_factory = client_factory
        self.lookback_days = lookback_days
        self._clock = clock

    async def _optional(self, label: str, coro, default):
        try:
            return await coro
        except TradingError as e:
            logger.warning(f"Wallet sync: could not fetch {label}: {e}")
            return default

    async def sync(self, profile_id: int, wallet_address: str, network: Network | str = Network.MAINNET) -> SyncResult:
        network = Network(network)
        client = self.client_factory(network)
        logger.info(f"Wallet sync: fetching Hyperliquid data for {wallet_address} ({network.value})")

        now_ms = int(self._clock() * 1000)
        start_ms = now_ms - self.lookback_days * DAY_MS

        state = await client.spot_clearinghouse_state(wallet_address)
        mids = await self._optional("prices", client.all_mids(), {})
        updates = await self._optional("transfers", client.ledger_updates(wallet_address, start_ms, now_ms), [])
        fills = await self._optional("fills", client.user_fills_by_time(wallet_address, start_ms, now_ms), [])

        holdings, usdc_balance, total_value = build_holdings(state.get("balances") or [], mids)
        logger.info(
            f"Wallet sync: {len(holdings)} holdings, USDC: {usdc_balance}, total: {total_value} "
            f"(profile {profile_id})"
        )

        synced_at = datetime.now(timezone.utc)
        self.store.replace_holdings(profile_id, [{**h, "last_synced_at": synced_at} for h in holdings])
        balance = {
            "usdc_balance": usdc_balance,
            "total_value_usd": total_value,
            "last_synced_at": synced_at,
        }
        self.store.upsert_balance(profile_id, balance)

        local_hashes = self.store.transaction_hashes(profile_id)
        records = transfer_records(profile_id, wallet_address, updates)
        records += fill_records(profile_id, fills, local_hashes)

        synced = 0
        for record in records:
            if self._save_transaction(record):
                synced += 1
        logger.info(f"Wallet sync: {synced}/{len(records)} transactions synced for profile {profile_id}")

        return SyncResult(holdings=holdings, balance=balance, transactions_synced=synced)

    def _save_transaction(self, record: dict) -> bool:
        try:
            self.store.upsert_transaction(record, TRANSACTION_CONFLICT_KEYS)
            return True
        except (SQLAlchemyError, NotImplementedError) as e:
            logger.info(f"Upsert failed, trying insert: {e}")

        try:
            self.store.insert_transaction(record)
            return True
        except IntegrityError:
            # Already present; duplicates are expected on repeat syncs
            return False
        except SQLAlchemyError as e:
            logger.error(f"Transaction insert error for {record['hyperliquid_tx_hash']}: {e}")
            return False
