"""Tenant keystore module.

This module provides:
- Signature algorithm, key and self-signed certificate generation per tenant
- Password-protected keystore containers (PKCS#12, PEM)
- Persistence of keystores and public certificates to the registry
"""

from tenant_keystore.keystore.errors import (
    GenerationError,
    KeyStoreMgtError,
    PersistenceError,
    ResolutionError,
)
from tenant_keystore.keystore.generator import KeyStoreGenerator, KeystoreSummary

__all__ = [
    "GenerationError",
    "KeyStoreGenerator",
    "KeyStoreMgtError",
    "KeystoreSummary",
    "PersistenceError",
    "ResolutionError",
]
