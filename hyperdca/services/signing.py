"""Hyperliquid L1 action construction and signing.

The exchange re-encodes the ``action`` it receives before checking the
signature, so the dict passed to ``sign_l1_action`` must be the same dict that
goes into the request body.
"""

import logging
import threading
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from eth_account import Account
from hyperliquid.utils import signing as hl_signing

from hyperdca.services.errors import SigningError
from hyperdca.utils.constants import PRICE_DECIMALS

logger = logging.getLogger(__name__)


def _round(value: float, decimals: int) -> float:
    quantum = Decimal(1).scaleb(-decimals)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def format_size(size: float, sz_decimals: int) -> str:
    return hl_signing.float_to_wire(_round(size, sz_decimals))


def format_price(price: float) -> str:
    return hl_signing.float_to_wire(_round(price, PRICE_DECIMALS))


@dataclass(frozen=True)
class TradeAction:
    """One IOC limit order on a spot instrument."""

    asset_id: int
    is_buy: bool
    limit_price: str
    size: str
    reduce_only: bool = False
    time_in_force: str = "Ioc"
    grouping: str = "na"

    def to_wire(self) -> dict:
        """Exchange wire form. Key order is part of the signed encoding."""
        return {
            "type": "order",
            "orders": [
                {
                    "a": self.asset_id,
                    "b": self.is_buy,
                    "p": self.limit_price,
                    "s": self.size,
                    "r": self.reduce_only,
                    "t": {"limit": {"tif": self.time_in_force}},
                }
            ],
            "grouping": self.grouping,
        }


@dataclass(frozen=True)
class Signature:
    r: str
    s: str
    v: int

    def to_dict(self) -> dict:
        return {"r": self.r, "s": self.s, "v": self.v}


def sign_l1_action(
    private_key: str,
    action: dict,
    nonce: int,
    is_mainnet: bool,
    vault_address: str | None = None,
) -> Signature:
    """Sign an L1 action with an agent key. Any failure aborts as ``SigningError``."""
    if not private_key:
        raise SigningError("No agent wallet key available for signing")
    try:
        wallet = Account.from_key(private_key)
        signed = hl_signing.sign_l1_action(wallet, action, vault_address, nonce, None, is_mainnet)
    except Exception as e:
        raise SigningError(f"Failed to sign order action: {e}") from e
    logger.debug(f"Signed L1 action with {wallet.address}, nonce={nonce}")
    return Signature(r=signed["r"], s=signed["s"], v=signed["v"])


class MonotonicNonce:
    """Wall-clock millisecond nonces, strictly increasing within this process."""

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            now = int(self._clock() * 1000)
            self._last = max(now, self._last + 1)
            return self._last


nonce_source = MonotonicNonce()
