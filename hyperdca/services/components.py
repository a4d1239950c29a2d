"""Builds the trading components from settings.

API dependencies, the scheduler and the CLI all go through these builders so
business classes only ever see explicit constructor arguments.
"""

from functools import partial
from typing import Callable

from sqlalchemy.engine import Engine

from hyperdca.config import Settings, settings
from hyperdca.engine.order_executor import OrderExecutor
from hyperdca.engine.wallet_sync import WalletSync
from hyperdca.services.agent_wallet import AgentWalletManager
from hyperdca.services.asset_resolver import AssetResolver
from hyperdca.services.encryption import SecretCodec
from hyperdca.services.hyperliquid_client import HyperliquidClient, make_client
from hyperdca.services.store import Store
from hyperdca.utils.constants import Network

ClientFactory = Callable[[Network], HyperliquidClient]


def build_client_factory(app_settings: Settings = settings) -> ClientFactory:
    return partial(make_client, app_settings=app_settings)


def build_resolver(client_factory: ClientFactory, app_settings: Settings = settings) -> AssetResolver:
    async def fetch_meta(network: Network) -> dict:
        return await client_factory(network).spot_meta()

    return AssetResolver(fetch_meta, ttl=app_settings.asset_cache_ttl)


def build_wallets(store: Store, client_factory: ClientFactory, app_settings: Settings = settings) -> AgentWalletManager:
    return AgentWalletManager(store, SecretCodec(app_settings.encryption_key), client_factory)


def build_executor(store: Store, app_settings: Settings = settings) -> OrderExecutor:
    client_factory = build_client_factory(app_settings)
    return OrderExecutor(
        store,
        build_wallets(store, client_factory, app_settings),
        build_resolver(client_factory, app_settings),
        client_factory,
    )


def build_wallet_sync(store: Store, app_settings: Settings = settings) -> WalletSync:
    return WalletSync(store, build_client_factory(app_settings), lookback_days=app_settings.sync_lookback_days)


def build_store(engine: Engine | None = None) -> Store:
    if engine is None:
        from hyperdca.database import engine
    return Store(engine)
