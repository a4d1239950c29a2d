"""AES-256-GCM encryption for agent wallet private keys.

Each ciphertext is bound to its owning profile: the AES key is
``sha256(master_key + context_id)``, so a ciphertext copied onto another
profile will not decrypt. Ciphertexts are hex strings of ``nonce || sealed``.

Keys written before this scheme existed were stored as
``base64(salt + ":" + private_key)``; ``decrypt_legacy`` recovers those so the
caller can re-encrypt them.
"""

import base64
import binascii
import hashlib
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from hyperdca.services.errors import ConfigurationError

logger = logging.getLogger(__name__)

NONCE_SIZE = 12


class SecretCodec:
    def __init__(self, master_key: str):
        self.master_key = master_key

    def _aead(self, context_id: str) -> AESGCM:
        digest = hashlib.sha256((self.master_key + context_id).encode()).digest()
        return AESGCM(digest)

    def encrypt(self, plaintext: str, context_id: str) -> str:
        """Encrypt a secret for one profile and return hex ciphertext."""
        if not self.master_key:
            raise ConfigurationError("HD_ENCRYPTION_KEY not set; cannot encrypt agent wallet keys")
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aead(context_id).encrypt(nonce, plaintext.encode(), None)
        return (nonce + sealed).hex()

    def decrypt(self, ciphertext: str, context_id: str) -> str | None:
        """Decrypt hex ciphertext. Returns None when the secret cannot be recovered."""
        if not self.master_key:
            logger.error("HD_ENCRYPTION_KEY not set; cannot decrypt agent wallet key")
            return None
        try:
            combined = bytes.fromhex(ciphertext)
        except ValueError:
            return None
        if len(combined) <= NONCE_SIZE:
            return None
        nonce, sealed = combined[:NONCE_SIZE], combined[NONCE_SIZE:]
        try:
            return self._aead(context_id).decrypt(nonce, sealed, None).decode()
        except (InvalidTag, UnicodeDecodeError):
            return None

    @staticmethod
    def decrypt_legacy(ciphertext: str) -> str | None:
        """Recover a key stored as base64("salt:secret"). Returns None if not that format."""
        try:
            decoded = base64.b64decode(ciphertext, validate=True).decode()
        except (binascii.Error, ValueError):
            return None
        parts = decoded.split(":")
        if len(parts) < 2:
            return None
        return ":".join(parts[1:])
