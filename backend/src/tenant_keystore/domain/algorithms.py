"""Signature algorithm selection for tenant certificates.

Algorithm names follow the ``<digest>with<encryption>`` convention. The
key-generation algorithm is whatever follows ``with`` and the key size is
derived from it.
"""

import logging
from enum import StrEnum

logger = logging.getLogger(__name__)

WITH_TOKEN = "with"

DEFAULT_CRYPTO_PROVIDER = "OpenSSL"


class SignatureAlgorithm(StrEnum):
    """Signature algorithms supported for tenant public certificates."""

    DSA_SHA1 = "SHA1withDSA"
    ECDSA_SHA1 = "SHA1withECDSA"
    ECDSA_SHA256 = "SHA256withECDSA"
    ECDSA_SHA384 = "SHA384withECDSA"
    ECDSA_SHA512 = "SHA512withECDSA"
    RSA_MD5 = "MD5withRSA"
    RSA_SHA1 = "SHA1withRSA"
    RSA_SHA256 = "SHA256withRSA"
    RSA_SHA384 = "SHA384withRSA"
    RSA_SHA512 = "SHA512withRSA"

    @classmethod
    def parse(cls, value: str | None) -> "SignatureAlgorithm | None":
        """Case-insensitive exact lookup (surrounding whitespace is not ignored).

        Returns None when nothing matches.
        """
        if not value:
            return None
        wanted = value.lower()
        for member in cls:
            if member.value.lower() == wanted:
                return member
        return None

    @property
    def digest(self) -> str:
        """Digest part of the name, e.g. ``SHA256``."""
        index = self.value.find(WITH_TOKEN)
        return self.value[:index] if index != -1 else self.value

    @property
    def key_generation_algorithm(self) -> str:
        return resolve_key_generation_algorithm(self.value)


# Kept for deployments whose tenants were provisioned before the setting existed.
# MD5 signatures are not a security recommendation.
LEGACY_DEFAULT_ALGORITHM = SignatureAlgorithm.RSA_MD5


def resolve_signature_algorithm(configured: str | None) -> SignatureAlgorithm:
    """Resolve the configured signing algorithm, falling back to MD5withRSA."""
    algorithm = SignatureAlgorithm.parse(configured)
    if algorithm is not None:
        return algorithm

    logger.warning(
        "legacy_signature_algorithm_fallback",
        extra={"configured": configured, "algorithm": LEGACY_DEFAULT_ALGORITHM.value},
    )
    return LEGACY_DEFAULT_ALGORITHM


def resolve_key_generation_algorithm(signature_algorithm: str) -> str:
    """Return the encryption part of ``<digest>with<encryption>``.

    Names without the token (or with nothing after it) are returned unchanged.
    """
    name = str(signature_algorithm)
    index = name.find(WITH_TOKEN)
    if index != -1 and index + len(WITH_TOKEN) < len(name):
        return name[index + len(WITH_TOKEN) :]
    return name


def resolve_key_size(key_generation_algorithm: str) -> int:
    """Key size for the key-generation algorithm; 0 means the primitive's default."""
    algorithm = key_generation_algorithm.upper()
    if algorithm == "ECDSA":
        return 384
    if algorithm in ("RSA", "DSA"):
        return 2048
    return 0


def resolve_crypto_provider(configured: str | None) -> str:
    """Configured provider name, or the default when blank."""
    if configured and configured.strip():
        return configured.strip()
    return DEFAULT_CRYPTO_PROVIDER
