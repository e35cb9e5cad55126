"""Capabilities the keystore generator consumes from the platform.

The registry holds serialized keystores and their metadata; the tenant
directory maps tenant ids to domains. Both are injected into the generator.
"""

from dataclasses import dataclass, field
from typing import Protocol

# Registry layout
SECURITY_ROOT = "/repository/security"
KEY_STORES = f"{SECURITY_ROOT}/key-stores"
TENANT_PUBKEY_RESOURCE = f"{SECURITY_ROOT}/pub-key"

# Resource properties
PROP_TYPE = "type"
PROP_PROVIDER = "provider"
PROP_PASSWORD = "password"
PROP_PRIVATE_KEY_PASS = "privatekeyPass"
PROP_PRIVATE_KEY_ALIAS = "privatekeyAlias"
PROP_TENANT_PUB_KEY_FILE_NAME_APPENDER = "tenant.pubkey.filename.appender"
PROP_THUMBPRINT = "thumbprint"

ASSOCIATION_TENANT_KS_PUB_KEY = "assoc.tenant.ks.pub.key"


def keystore_path(name: str) -> str:
    return f"{KEY_STORES}/{name}"


class RegistryError(Exception):
    """Raised when a registry read or write fails."""

    pass


class TenantNotFoundError(Exception):
    """Raised when the directory has no tenant with the requested id."""

    pass


class TenantDirectoryError(Exception):
    """Raised when the tenant directory cannot be queried."""

    pass


@dataclass
class Resource:
    """A registry resource: content bytes plus string properties."""

    content: bytes
    media_type: str | None = None
    properties: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Association:
    source_path: str
    target_path: str
    association_type: str


class Registry(Protocol):
    async def resource_exists(self, path: str) -> bool: ...

    async def get(self, path: str) -> Resource | None: ...

    async def put(self, path: str, resource: Resource) -> None: ...

    async def delete(self, path: str) -> None: ...

    async def add_association(
        self, source_path: str, target_path: str, association_type: str
    ) -> None: ...

    async def get_associations(
        self, path: str, association_type: str | None = None
    ) -> list[Association]: ...


class TenantDirectory(Protocol):
    async def get_domain(self, tenant_id: int) -> str: ...
