"""Spot asset resolution: symbol -> Hyperliquid spot asset id and precision."""

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable

from hyperdca.services.errors import AssetNotFound
from hyperdca.utils.constants import ASSET_ALIASES, DEFAULT_SZ_DECIMALS, SPOT_ASSET_OFFSET, Network

logger = logging.getLogger(__name__)

# network -> coroutine returning the raw spotMeta document
MetaFetcher = Callable[[Network], Awaitable[dict]]


@dataclass(frozen=True)
class SpotAsset:
    asset_id: int
    sz_decimals: int
    min_size: float
    name: str

    @property
    def index(self) -> int:
        return self.asset_id - SPOT_ASSET_OFFSET

    @property
    def whole_units_only(self) -> bool:
        return self.sz_decimals == 0


def _base_names(entry: dict, tokens: dict[int, dict]) -> set[str]:
    """Names the base token of a universe entry can be referred to by."""
    names = set()
    base = str(entry.get("name", "")).split("/")[0]
    names.add(base[1:] if base.startswith("@") else base)
    token_ids = entry.get("tokens") or []
    if token_ids:
        token = tokens.get(token_ids[0])
        if token and token.get("name"):
            names.add(str(token["name"]))
    return names


def _match(universe: list[dict], tokens: dict[int, dict], symbol: str) -> dict | None:
    rules = (
        lambda u: u.get("name") == symbol,
        lambda u: u.get("name") == f"{symbol}/USDC",
        lambda u: symbol in _base_names(u, tokens),
    )
    for rule in rules:
        for entry in universe:
            if rule(entry):
                return entry
    return None


def find_spot_entry(spot_meta: dict, symbol: str) -> dict | None:
    universe = [u for u in (spot_meta.get("universe") or []) if isinstance(u, dict)]
    tokens = {
        t.get("index"): t for t in (spot_meta.get("tokens") or []) if isinstance(t, dict)
    }
    for candidate in [symbol, *ASSET_ALIASES.get(symbol, [])]:
        entry = _match(universe, tokens, candidate)
        if entry is not None:
            return entry
    return None


def describe_entry(spot_meta: dict, entry: dict) -> SpotAsset:
    sz_decimals = entry.get("szDecimals")
    if sz_decimals is None:
        token_ids = entry.get("tokens") or []
        for token in spot_meta.get("tokens") or []:
            if token_ids and isinstance(token, dict) and token.get("index") == token_ids[0]:
                sz_decimals = token.get("szDecimals")
                break
    sz_decimals = int(sz_decimals) if sz_decimals is not None else DEFAULT_SZ_DECIMALS

    min_sz = entry.get("minSz")
    min_size = float(min_sz) if min_sz not in (None, "") else 10 ** -sz_decimals

    return SpotAsset(
        asset_id=SPOT_ASSET_OFFSET + int(entry["index"]),
        sz_decimals=sz_decimals,
        min_size=min_size,
        name=str(entry.get("name", "")),
    )


class AssetResolver:
    """Resolves spot symbols, reusing one spotMeta fetch per network for ``ttl`` seconds."""

    def __init__(self, fetch_meta: MetaFetcher, ttl: float = 30.0, clock=time.monotonic):
        self._fetch_meta = fetch_meta
        self._ttl = ttl
        self._clock = clock
        self._cache: dict[Network, tuple[float, dict]] = {}

    async def spot_meta(self, network: Network) -> dict:
        cached = self._cache.get(network)
        now = self._clock()
        if cached and now - cached[0] < self._ttl:
            return cached[1]
        meta = await self._fetch_meta(network)
        self._cache[network] = (now, meta)
        return meta

    async def resolve(self, symbol: str, network: Network) -> SpotAsset:
        spot_meta = await self.spot_meta(network)
        entry = find_spot_entry(spot_meta, symbol)
        if entry is None:
            available = ", ".join(str(u.get("name")) for u in (spot_meta.get("universe") or [])[:10])
            raise AssetNotFound(
                f"Spot asset {symbol} not found on {Network(network).value}. Available: {available}..."
            )
        asset = describe_entry(spot_meta, entry)
        logger.info(
            f"Resolved spot asset {symbol}: {asset.name} -> assetId={asset.asset_id}, "
            f"szDecimals={asset.sz_decimals}, minSz={asset.min_size}"
        )
        return asset
