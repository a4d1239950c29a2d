"""Tests for agent wallet creation, repair, legacy migration and authorization."""

import base64
import logging

import pytest
from eth_account import Account

from hyperdca.services.agent_wallet import derive_address, generate_agent_key
from hyperdca.services.errors import AgentNotAuthorized, ProfileNotFound, TransientNetworkError


def _legacy(key: str) -> str:
    return base64.b64encode(f"legacysalt:{key}".encode()).decode()


class TestKeyHelpers:
    def test_generated_key_matches_address(self):
        agent = generate_agent_key()
        assert derive_address(agent.private_key) == agent.address

    @pytest.mark.parametrize("bad", ["", "0x1234", "not-a-key", "0x" + "00" * 32])
    def test_invalid_keys(self, bad):
        assert derive_address(bad) is None


# ---------------------------------------------------------------------------
# 1. ensure / rotate
# ---------------------------------------------------------------------------

class TestEnsure:
    def test_creates_wallet_when_missing(self, wallets, store, codec, profile):
        agent = wallets.ensure(profile)

        stored = store.require_profile(profile.id)
        assert stored.agent_wallet_address == agent.address
        assert codec.decrypt(stored.agent_wallet_private_key_encrypted, str(profile.id)) == agent.private_key
        assert stored.agent_wallet_authorized_at is None

    def test_returns_existing_wallet(self, wallets, store, profile):
        first = wallets.ensure(profile)
        second = wallets.ensure(store.require_profile(profile.id))
        assert second == first

    def test_keeps_authorization_for_valid_wallet(self, wallets, store, authorized_profile):
        wallets.ensure(authorized_profile)
        assert store.require_profile(authorized_profile.id).agent_wallet_authorized_at is not None

    def test_rotates_on_address_mismatch(self, wallets, store, authorized_profile, caplog):
        store.update_profile(authorized_profile.id, {"agent_wallet_address": "0x" + "22" * 20})
        with caplog.at_level(logging.WARNING):
            agent = wallets.ensure(store.require_profile(authorized_profile.id))

        stored = store.require_profile(authorized_profile.id)
        assert agent.address != "0x" + "22" * 20
        assert stored.agent_wallet_address == agent.address
        assert stored.agent_wallet_authorized_at is None
        assert "mismatch" in caplog.text

    def test_rotates_when_undecryptable(self, wallets, store, authorized_profile):
        old_address = authorized_profile.agent_wallet_address
        store.update_profile(authorized_profile.id, {"agent_wallet_private_key_encrypted": "deadbeef"})

        agent = wallets.ensure(store.require_profile(authorized_profile.id))

        stored = store.require_profile(authorized_profile.id)
        assert agent.address != old_address
        assert stored.agent_wallet_authorized_at is None

    def test_rotation_writes_consistent_pair(self, wallets, store, codec, profile):
        agent = wallets.rotate(profile.id)
        stored = store.require_profile(profile.id)
        key = codec.decrypt(stored.agent_wallet_private_key_encrypted, str(profile.id))
        assert derive_address(key) == stored.agent_wallet_address == agent.address

    def test_ciphertext_bound_to_profile(self, wallets, store, codec, profile):
        other = store.create_profile(identity_subject="did:privy:other")
        wallets.rotate(profile.id)
        ciphertext = store.require_profile(profile.id).agent_wallet_private_key_encrypted
        assert codec.decrypt(ciphertext, str(other.id)) is None

    def test_unknown_profile(self, wallets):
        with pytest.raises(ProfileNotFound):
            wallets.rotate(999)


# ---------------------------------------------------------------------------
# 2. Legacy migration
# ---------------------------------------------------------------------------

class TestLegacyMigration:
    def test_legacy_key_is_recovered_and_reencrypted(self, wallets, store, codec, profile):
        account = Account.create()
        key = account.key.hex()
        store.update_profile(profile.id, {
            "agent_wallet_address": account.address,
            "agent_wallet_private_key_encrypted": _legacy(key),
        })

        agent = wallets.ensure(store.require_profile(profile.id))

        assert agent.address == account.address
        stored = store.require_profile(profile.id)
        assert stored.agent_wallet_private_key_encrypted != _legacy(key)
        assert derive_address(codec.decrypt(stored.agent_wallet_private_key_encrypted, str(profile.id))) == account.address

    def test_second_ensure_uses_new_scheme(self, wallets, store, codec, profile, monkeypatch):
        account = Account.create()
        store.update_profile(profile.id, {
            "agent_wallet_address": account.address,
            "agent_wallet_private_key_encrypted": _legacy(account.key.hex()),
        })
        wallets.ensure(store.require_profile(profile.id))

        def fail_legacy(_):
            raise AssertionError("legacy decoder should not be used after migration")

        monkeypatch.setattr(codec, "decrypt_legacy", fail_legacy)
        agent = wallets.ensure(store.require_profile(profile.id))
        assert agent.address == account.address

    def test_legacy_garbage_rotates(self, wallets, store, profile):
        store.update_profile(profile.id, {
            "agent_wallet_address": "0x" + "33" * 20,
            "agent_wallet_private_key_encrypted": base64.b64encode(b"salt:not-a-key").decode(),
        })
        agent = wallets.ensure(store.require_profile(profile.id))
        assert agent.address != "0x" + "33" * 20


# ---------------------------------------------------------------------------
# 3. Authorization
# ---------------------------------------------------------------------------

class TestAuthorization:
    def test_register_requires_agent(self, wallets, profile):
        with pytest.raises(AgentNotAuthorized):
            wallets.register_authorization(profile.id)

    def test_register_and_clear(self, wallets, profile):
        wallets.rotate(profile.id)
        assert wallets.check_authorization(profile.id) is False
        wallets.register_authorization(profile.id)
        assert wallets.check_authorization(profile.id) is True
        wallets.clear_authorization(profile.id)
        assert wallets.check_authorization(profile.id) is False

    @pytest.mark.asyncio
    async def test_sync_marks_authorized_when_listed(self, wallets, store, profile, fake_client):
        agent = wallets.rotate(profile.id)
        fake_client.agents = [{"address": agent.address.lower(), "validUntil": 9999999999999}]

        assert await wallets.sync_authorization_from_exchange(profile.id) is True
        assert wallets.check_authorization(profile.id) is True

    @pytest.mark.asyncio
    async def test_sync_ignores_expired_agent(self, wallets, profile, fake_client):
        agent = wallets.rotate(profile.id)
        fake_client.agents = [{"address": agent.address, "validUntil": 1000}]

        assert await wallets.sync_authorization_from_exchange(profile.id) is False
        assert wallets.check_authorization(profile.id) is False

    @pytest.mark.asyncio
    async def test_sync_ignores_other_agents(self, wallets, profile, fake_client):
        wallets.rotate(profile.id)
        fake_client.agents = [{"address": "0x" + "44" * 20, "validUntil": 9999999999999}, "junk"]

        assert await wallets.sync_authorization_from_exchange(profile.id) is False

    @pytest.mark.asyncio
    async def test_sync_network_failure_is_not_fatal(self, wallets, profile, fake_client):
        wallets.rotate(profile.id)
        fake_client.errors["extra_agents"] = TransientNetworkError("down")

        assert await wallets.sync_authorization_from_exchange(profile.id) is False
