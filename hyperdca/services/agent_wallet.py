"""Agent wallet lifecycle: creation, validation, rotation and authorization tracking.

An agent wallet is a secp256k1 key that signs orders for a user's main wallet
once the main wallet has approved the agent's address on Hyperliquid. The
stored address is never trusted on its own: it must equal the address derived
from the stored key, otherwise the key pair is rotated. Any rotation clears
the authorization timestamp because approvals are per address.
"""

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from eth_account import Account
from eth_utils import to_hex

from hyperdca.models import Profile
from hyperdca.services.encryption import SecretCodec
from hyperdca.services.errors import AgentNotAuthorized, TradingError
from hyperdca.services.hyperliquid_client import HyperliquidClient
from hyperdca.services.store import Store
from hyperdca.utils.constants import Network

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AgentKey:
    address: str
    private_key: str


def derive_address(private_key: str) -> str | None:
    """Checksummed address for a hex private key, or None if it is not a valid key."""
    try:
        return Account.from_key(private_key).address
    except Exception:  # malformed hex, wrong length, out-of-range scalar
        return None


def generate_agent_key() -> AgentKey:
    account = Account.create()
    return AgentKey(address=account.address, private_key=to_hex(account.key))


class AgentWalletManager:
    def __init__(
        self,
        store: Store,
        codec: SecretCodec,
        client_factory: Callable[[Network], HyperliquidClient],
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.codec = codec
        self.client_factory = client_factory
        self._clock = clock

    def _recover_key(self, profile: Profile) -> str | None:
        """Decrypt the stored key, upgrading legacy-encoded keys in place."""
        encrypted = profile.agent_wallet_private_key_encrypted
        if not encrypted:
            return None
        context = str(profile.id)

        key = self.codec.decrypt(encrypted, context)
        if key is not None:
            return key

        key = self.codec.decrypt_legacy(encrypted)
        if key is None or derive_address(key) is None:
            return None

        logger.info(f"Migrating legacy-encoded agent key for profile {profile.id} to AES-256-GCM")
        self.store.update_profile(
            profile.id,
            {"agent_wallet_private_key_encrypted": self.codec.encrypt(key, context)},
        )
        return key

    def rotate(self, profile_id: int) -> AgentKey:
        """Replace the agent key pair and clear authorization in a single update."""
        agent = generate_agent_key()
        encrypted = self.codec.encrypt(agent.private_key, str(profile_id))
        self.store.update_profile(
            profile_id,
            {
                "agent_wallet_address": agent.address,
                "agent_wallet_private_key_encrypted": encrypted,
                "agent_wallet_authorized_at": None,
            },
        )
        logger.info(f"Created agent wallet {agent.address} for profile {profile_id}")
        return agent

    def ensure(self, profile: Profile) -> AgentKey:
        """Return a usable key whose address matches the stored one, rotating if needed."""
        if profile.agent_wallet_private_key_encrypted and profile.agent_wallet_address:
            key = self._recover_key(profile)
            if key is not None:
                derived = derive_address(key)
                if derived and derived.lower() == profile.agent_wallet_address.lower():
                    return AgentKey(address=profile.agent_wallet_address, private_key=key)
                logger.warning(
                    f"Agent wallet mismatch for profile {profile.id}: "
                    f"stored={profile.agent_wallet_address} derived={derived}. Rotating."
                )
            else:
                logger.warning(f"Agent wallet key for profile {profile.id} could not be decrypted. Rotating.")
        return self.rotate(profile.id)

    def check_authorization(self, profile_id: int) -> bool:
        profile = self.store.require_profile(profile_id)
        return profile.agent_wallet_authorized_at is not None

    def register_authorization(self, profile_id: int) -> Profile:
        """Record that the user approved the current agent address on the exchange."""
        profile = self.store.require_profile(profile_id)
        if not profile.agent_wallet_address:
            raise AgentNotAuthorized("No agent wallet found for this profile")
        logger.info(f"Agent wallet {profile.agent_wallet_address} authorized for profile {profile_id}")
        return self.store.update_profile(profile_id, {"agent_wallet_authorized_at": datetime.now(timezone.utc)})

    def clear_authorization(self, profile_id: int) -> Profile:
        return self.store.update_profile(profile_id, {"agent_wallet_authorized_at": None})

    async def sync_authorization_from_exchange(self, profile_id: int) -> bool:
        """Mark authorized if the exchange lists the current agent with a future expiry."""
        profile = self.store.require_profile(profile_id)
        wallet = (profile.wallet_address or "").lower()
        agent = (profile.agent_wallet_address or "").lower()
        if not wallet or not agent:
            return False

        client = self.client_factory(Network(profile.network_mode))
        try:
            approved = await client.extra_agents(wallet)
        except TradingError as e:
            logger.warning(f"Could not query approved agents for profile {profile_id}: {e}")
            return False

        now_ms = self._clock() * 1000
        for entry in approved:
            if not isinstance(entry, dict):
                continue
            address = str(entry.get("address") or "").lower()
            try:
                valid_until = float(entry.get("validUntil") or 0)
            except (TypeError, ValueError):
                continue
            if address == agent and math.isfinite(valid_until) and valid_until > now_ms:
                self.store.update_profile(profile_id, {"agent_wallet_authorized_at": datetime.now(timezone.utc)})
                logger.info(f"Authorization for agent {agent} synced from Hyperliquid (profile {profile_id})")
                return True

        logger.info(f"Agent {agent} not found in approved agents for {wallet}")
        return False
