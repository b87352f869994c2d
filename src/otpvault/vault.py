"""AES-256-GCM encryption for TOTP secrets at rest.

The key is loaded once, when the vault is built, and never changes after
that. Every ``encrypt`` call draws a fresh 96-bit IV. A missing key is fatal:
the vault refuses to start rather than invent an ephemeral key that would
orphan every stored secret on restart.
"""

from __future__ import annotations

import logging
import os
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from otpvault.config import Settings, settings
from otpvault.errors import AuthenticationFailure, InvalidEncryptionKey, MalformedBlob, MissingEncryptionKey
from otpvault.models import IV_SIZE, TAG_SIZE, EncryptedBlob

logger = logging.getLogger(__name__)

KEY_SIZE = 32  # AES-256


def generate_key() -> str:
    """Return a new random key, hex-encoded, for OTPVAULT_ENCRYPTION_KEY."""
    return secrets.token_hex(KEY_SIZE)


def parse_key(raw: str) -> bytes:
    """Decode a hex key from configuration."""
    raw = (raw or "").strip()
    if not raw:
        raise MissingEncryptionKey("OTPVAULT_ENCRYPTION_KEY not set")
    try:
        key = bytes.fromhex(raw)
    except ValueError:
        raise InvalidEncryptionKey("OTPVAULT_ENCRYPTION_KEY must be hex-encoded") from None
    if len(key) != KEY_SIZE:
        raise InvalidEncryptionKey(f"OTPVAULT_ENCRYPTION_KEY must be {KEY_SIZE} bytes ({KEY_SIZE * 2} hex chars)")
    return key


class SecretVault:
    """Encrypts and decrypts secrets with a single process-wide key."""

    def __init__(self, key: bytes) -> None:
        if len(key) != KEY_SIZE:
            raise InvalidEncryptionKey(f"key must be {KEY_SIZE} bytes, got {len(key)}")
        self._aead = AESGCM(key)

    def encrypt(self, plaintext: str) -> EncryptedBlob:
        """Encrypt a secret. Same input twice gives two different blobs."""
        if not plaintext:
            raise ValueError("plaintext must not be empty")
        iv = os.urandom(IV_SIZE)
        sealed = self._aead.encrypt(iv, plaintext.encode(), None)
        return EncryptedBlob(iv=iv, auth_tag=sealed[-TAG_SIZE:], ciphertext=sealed[:-TAG_SIZE])

    def decrypt(self, blob: EncryptedBlob) -> str:
        """Decrypt a blob. Raises AuthenticationFailure if the tag does not verify."""
        if not isinstance(blob, EncryptedBlob):
            raise MalformedBlob(f"expected EncryptedBlob, got {type(blob).__name__}")
        try:
            plain = self._aead.decrypt(blob.iv, blob.ciphertext + blob.auth_tag, None)
        except InvalidTag:
            logger.warning("Secret failed authentication on decrypt")
            raise AuthenticationFailure("Encrypted secret failed authentication") from None
        try:
            return plain.decode()
        except UnicodeDecodeError:
            raise MalformedBlob("decrypted secret is not valid UTF-8") from None

    def encrypt_to_text(self, plaintext: str) -> str:
        """Encrypt and serialize as ``iv:authTag:ciphertext`` hex."""
        return self.encrypt(plaintext).to_text()

    def decrypt_text(self, stored: str) -> str:
        """Parse an ``iv:authTag:ciphertext`` string and decrypt it."""
        return self.decrypt(EncryptedBlob.from_text(stored))


def load_vault(config: Settings | None = None) -> SecretVault:
    """Build a vault from configuration. Raises MissingEncryptionKey when unset."""
    config = config or settings
    return SecretVault(parse_key(config.otpvault_encryption_key))


_vault: SecretVault | None = None


def get_vault() -> SecretVault:
    """Get or create the process-wide vault instance."""
    global _vault
    if _vault is None:
        _vault = load_vault()
        logger.info("Secret vault initialized")
    return _vault
