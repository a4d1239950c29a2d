"""Shared constants and defaults."""

from enum import Enum


class Network(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


# Spot instrument ids are 10000 + index in spotMeta.universe
SPOT_ASSET_OFFSET = 10000

DEFAULT_SZ_DECIMALS = 4
PRICE_DECIMALS = 2

# Perp-style tickers that trade under a wrapped name on spot
ASSET_ALIASES: dict[str, list[str]] = {
    "BTC": ["WBTC", "UBTC"],
    "ETH": ["WETH", "UETH"],
}

QUOTE_COINS = {"USDC", "USDC0"}

# Substring Hyperliquid uses when the signing agent is not approved for the user
UNKNOWN_AGENT_MARKER = "does not exist"

VALID_FREQUENCIES = ["daily", "weekly", "biweekly", "monthly"]

FREQUENCY_DAYS: dict[str, int] = {
    "daily": 1,
    "weekly": 7,
    "biweekly": 14,
}

TRANSACTION_CONFLICT_KEYS = ("user_id", "hyperliquid_tx_hash")
