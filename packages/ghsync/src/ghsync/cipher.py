"""AES-256-GCM encryption of OAuth access tokens at rest.

Stored format is ``nonce:tag:ciphertext`` with every part hex-encoded.
"""

import hashlib
import logging
import os
import re
import secrets
from typing import Callable

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .config import Settings
from .errors import ConfigurationError, CredentialAuthenticationError, CredentialFormatError

logger = logging.getLogger(__name__)

NONCE_LENGTH = 12  # bytes
TAG_LENGTH = 16  # bytes
KEY_LENGTH = 32  # bytes
ENV_KEY = "ENCRYPTION_KEY"

_HEX_KEY = re.compile(r"^[0-9a-fA-F]{64}$")

SecretSource = str | Callable[[], str | None] | None


def generate_key() -> str:
    """Generate a random 256-bit key as 64 hex characters."""
    return secrets.token_hex(KEY_LENGTH)


def derive_key(secret: str) -> bytes:
    """
    Turn a configured secret into a 32-byte AES key.

    A 64-character hex string is used as the key itself; any other string
    is hashed with SHA-256.
    """
    if _HEX_KEY.match(secret):
        return bytes.fromhex(secret)
    return hashlib.sha256(secret.encode("utf-8")).digest()


def _unhex(value: str, what: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError:
        raise CredentialFormatError(f"Invalid encrypted token format: {what} is not hex") from None


class TokenCipher:
    """Encrypts and decrypts access tokens with a configured secret."""

    def __init__(self, secret: SecretSource):
        """
        Initialize cipher.

        Args:
            secret: The key or passphrase, or a callable returning it. A
                callable is consulted on every call so configuration changes
                take effect without rebuilding the cipher.
        """
        self._secret = secret

    def __repr__(self) -> str:
        return "TokenCipher(secret=***)"

    @classmethod
    def from_env(cls, name: str = ENV_KEY) -> "TokenCipher":
        """Build a cipher that reads its secret from the environment at call time."""
        return cls(lambda: os.environ.get(name))

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenCipher":
        """Build a cipher that reads ``settings.encryption_key`` at call time."""
        return cls(lambda: settings.encryption_key)

    def _key(self) -> bytes:
        secret = self._secret() if callable(self._secret) else self._secret
        if not secret:
            raise ConfigurationError(f"{ENV_KEY} not configured")
        return derive_key(secret)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a token for storage."""
        key = self._key()
        nonce = secrets.token_bytes(NONCE_LENGTH)
        sealed = AESGCM(key).encrypt(nonce, plaintext.encode("utf-8"), None)
        # AESGCM appends the tag to the ciphertext
        ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
        return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt(self, encrypted: str) -> str:
        """
        Decrypt a stored token.

        Raises:
            ConfigurationError: No secret is configured
            CredentialFormatError: The value is not ``nonce:tag:ciphertext``
            CredentialAuthenticationError: The tag does not verify
        """
        key = self._key()
        parts = encrypted.split(":")
        if len(parts) != 3 or not parts[0] or not parts[1]:
            raise CredentialFormatError("Invalid encrypted token format")

        nonce = _unhex(parts[0], "nonce")
        tag = _unhex(parts[1], "tag")
        ciphertext = _unhex(parts[2], "ciphertext")
        if len(nonce) != NONCE_LENGTH or len(tag) != TAG_LENGTH:
            raise CredentialFormatError("Invalid encrypted token format")

        try:
            plaintext = AESGCM(key).decrypt(nonce, ciphertext + tag, None)
        except InvalidTag:
            logger.debug("Token authentication tag did not verify")
            raise CredentialAuthenticationError("Invalid encrypted token") from None
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError:
            raise CredentialFormatError("Invalid encrypted token format: not UTF-8") from None
