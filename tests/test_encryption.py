"""Tests for the agent key codec: AES-256-GCM per profile plus the legacy base64 format."""

import base64
import logging

import pytest

from hyperdca.services.encryption import NONCE_SIZE, SecretCodec
from hyperdca.services.errors import ConfigurationError

KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


class TestSecretCodec:
    def test_round_trip(self, codec):
        ciphertext = codec.encrypt(KEY, "42")
        assert codec.decrypt(ciphertext, "42") == KEY

    def test_ciphertext_is_hex_with_nonce_prefix(self, codec):
        ciphertext = codec.encrypt(KEY, "42")
        raw = bytes.fromhex(ciphertext)
        # nonce + plaintext + 16-byte GCM tag
        assert len(raw) == NONCE_SIZE + len(KEY) + 16

    def test_fresh_nonce_per_encryption(self, codec):
        assert codec.encrypt(KEY, "42") != codec.encrypt(KEY, "42")

    def test_bound_to_context(self, codec):
        ciphertext = codec.encrypt(KEY, "42")
        assert codec.decrypt(ciphertext, "43") is None

    def test_wrong_master_key(self, codec):
        ciphertext = codec.encrypt(KEY, "42")
        assert SecretCodec("another-key").decrypt(ciphertext, "42") is None

    @pytest.mark.parametrize("garbage", ["", "zz", "abcd", "00" * NONCE_SIZE])
    def test_garbage_returns_none(self, codec, garbage):
        assert codec.decrypt(garbage, "42") is None

    def test_tampered_ciphertext(self, codec):
        ciphertext = bytearray(bytes.fromhex(codec.encrypt(KEY, "42")))
        ciphertext[-1] ^= 0x01
        assert codec.decrypt(bytes(ciphertext).hex(), "42") is None

    def test_encrypt_without_master_key_raises(self):
        with pytest.raises(ConfigurationError):
            SecretCodec("").encrypt(KEY, "42")

    def test_decrypt_without_master_key_logs(self, codec, caplog):
        ciphertext = codec.encrypt(KEY, "42")
        with caplog.at_level(logging.ERROR):
            assert SecretCodec("").decrypt(ciphertext, "42") is None
        assert "HD_ENCRYPTION_KEY" in caplog.text


class TestLegacyDecode:
    def test_salt_and_key(self):
        legacy = base64.b64encode(f"somesalt:{KEY}".encode()).decode()
        assert SecretCodec.decrypt_legacy(legacy) == KEY

    def test_extra_colons_are_kept(self):
        legacy = base64.b64encode(b"salt:a:b").decode()
        assert SecretCodec.decrypt_legacy(legacy) == "a:b"

    def test_no_separator(self):
        legacy = base64.b64encode(b"nocolonhere").decode()
        assert SecretCodec.decrypt_legacy(legacy) is None

    def test_not_base64(self):
        assert SecretCodec.decrypt_legacy("not base64!") is None

    def test_new_scheme_does_not_decode_as_legacy(self, codec):
        # hex ciphertext is valid base64 alphabet but never decodes to "salt:key"
        ciphertext = codec.encrypt(KEY, "42")
        assert SecretCodec.decrypt_legacy(ciphertext) != KEY
