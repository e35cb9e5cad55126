"""Cryptographic utilities for keystore metadata.

Keystore passwords are stored as registry properties encrypted with Fernet;
certificate thumbprints identify the stored public certificate.
"""

import hashlib
import logging

from cryptography import x509
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import serialization

from shared.config import settings

logger = logging.getLogger(__name__)


class CryptoError(Exception):
    """Raised when a cryptographic operation fails."""

    pass


def get_encryption_key(configured: str | None = None) -> bytes:
    """Load the Fernet key protecting stored keystore passwords.

    Falls back to ``KEYSTORE_ENCRYPTION_KEY`` from settings.

    Raises:
        CryptoError: If the key is not set or invalid.
    """
    key_str = configured or settings.KEYSTORE_ENCRYPTION_KEY
    if not key_str:
        raise CryptoError("KEYSTORE_ENCRYPTION_KEY is not set")

    try:
        key_bytes = key_str.encode("utf-8")
        Fernet(key_bytes)
        return key_bytes
    except (ValueError, TypeError) as e:
        raise CryptoError(f"Invalid KEYSTORE_ENCRYPTION_KEY: {e}") from e


def encrypt_secret(secret: str, key: bytes | None = None) -> str:
    """Encrypt a keystore password for storage as a registry property.

    Returns:
        The Fernet token as text.
    """
    if key is None:
        key = get_encryption_key()

    try:
        return Fernet(key).encrypt(secret.encode("utf-8")).decode("utf-8")
    except (ValueError, TypeError) as e:
        raise CryptoError(f"Failed to encrypt secret: {e}") from e


def decrypt_secret(token: str, key: bytes | None = None) -> str:
    """Decrypt a password previously stored with :func:`encrypt_secret`."""
    if key is None:
        key = get_encryption_key()

    try:
        return Fernet(key).decrypt(token.encode("utf-8")).decode("utf-8")
    except (InvalidToken, ValueError, TypeError) as e:
        raise CryptoError(f"Failed to decrypt secret: {e}") from e


def compute_thumbprint(certificate: x509.Certificate) -> str:
    """Lowercase hex SHA-256 over the certificate's DER encoding."""
    der_bytes = certificate.public_bytes(serialization.Encoding.DER)
    return hashlib.sha256(der_bytes).hexdigest()


def generate_fernet_key() -> str:
    """Generate a value suitable for KEYSTORE_ENCRYPTION_KEY."""
    return Fernet.generate_key().decode("utf-8")
