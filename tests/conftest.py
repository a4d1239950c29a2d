"""Shared fixtures: in-memory database, store and a scripted Hyperliquid client."""

import os

# Settings are read at import time; keep tests off the production database
os.environ.setdefault("HD_DATABASE_URL", "sqlite://")
os.environ.setdefault("HD_ENCRYPTION_KEY", "test-master-key")
os.environ.setdefault("HD_DCA_SCHEDULER_ENABLED", "false")

import pytest
from eth_account import Account
from eth_account.messages import encode_typed_data
from hyperliquid.utils import signing as hl_signing
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

import hyperdca.models  # noqa: F401
from hyperdca.services.agent_wallet import AgentWalletManager
from hyperdca.services.encryption import SecretCodec
from hyperdca.services.hyperliquid_client import NetworkConfig
from hyperdca.services.store import Store
from hyperdca.utils.constants import Network

MASTER_KEY = "test-master-key"

WALLET_ADDRESS = "0x1111111111111111111111111111111111111111"

SPOT_META = {
    "tokens": [
        {"name": "USDC", "index": 0, "szDecimals": 8},
        {"name": "PURR", "index": 1, "szDecimals": 0},
        {"name": "HYPE", "index": 150, "szDecimals": 2},
        {"name": "UBTC", "index": 197, "szDecimals": 5},
    ],
    "universe": [
        {"name": "PURR/USDC", "tokens": [1, 0], "index": 0, "szDecimals": 0, "minSz": "1"},
        {"name": "@1", "tokens": [150, 0], "index": 1},
        {"name": "@2", "tokens": [150, 0], "index": 2, "szDecimals": 2},
        {"name": "WBTC/USDC", "tokens": [197, 0], "index": 3, "szDecimals": 5, "minSz": "0.0001"},
    ],
}


class FakeClient:
    """Scripted stand-in for ``HyperliquidClient`` recording every write."""

    def __init__(self, network: Network = Network.MAINNET):
        self.config = NetworkConfig(network=network, api_url=f"https://{network.value}.invalid")
        self.mids: dict = {}
        self.meta: dict = SPOT_META
        self.order_response: dict = {}
        self.state: dict = {"balances": []}
        self.ledger: list[dict] = []
        self.fills: list[dict] = []
        self.agents: list[dict] = []
        self.submitted: list[dict] = []
        self.errors: dict[str, Exception] = {}

    @property
    def network(self) -> Network:
        return self.config.network

    def _maybe_fail(self, name: str):
        if name in self.errors:
            raise self.errors[name]

    async def all_mids(self):
        self._maybe_fail("all_mids")
        return self.mids

    async def spot_meta(self):
        self._maybe_fail("spot_meta")
        return self.meta

    async def spot_clearinghouse_state(self, user):
        self._maybe_fail("spot_clearinghouse_state")
        return self.state

    async def ledger_updates(self, user, start_time, end_time=None):
        self._maybe_fail("ledger_updates")
        return self.ledger

    async def user_fills_by_time(self, user, start_time, end_time=None):
        self._maybe_fail("user_fills_by_time")
        return self.fills

    async def extra_agents(self, user):
        self._maybe_fail("extra_agents")
        return self.agents

    async def submit_action(self, action, nonce, signature, vault_address=None):
        self.submitted.append({"action": action, "nonce": nonce, "signature": signature})
        self._maybe_fail("submit_action")
        return self.order_response


def recover_agent(action: dict, nonce: int, is_mainnet: bool, signature: dict, vault_address=None) -> str:
    """Address that signed ``action``, recovered from the SDK's own L1 payload."""
    digest = hl_signing.action_hash(action, vault_address, nonce, None)
    payload = hl_signing.l1_payload(hl_signing.construct_phantom_agent(digest, is_mainnet))
    signable = encode_typed_data(full_message=payload)
    return Account.recover_message(signable, vrs=(signature["v"], int(signature["r"], 16), int(signature["s"], 16)))


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    return Store(engine)


@pytest.fixture
def codec():
    return SecretCodec(MASTER_KEY)


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def client_factory(fake_client):
    return lambda network: fake_client


@pytest.fixture
def wallets(store, codec, client_factory):
    return AgentWalletManager(store, codec, client_factory)


@pytest.fixture
def profile(store):
    return store.create_profile(identity_subject="did:privy:test-user", wallet_address=WALLET_ADDRESS)


@pytest.fixture
def authorized_profile(store, wallets, profile):
    wallets.rotate(profile.id)
    wallets.register_authorization(profile.id)
    return store.require_profile(profile.id)
