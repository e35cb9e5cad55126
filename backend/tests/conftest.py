"""Shared fixtures: in-memory registry and tenant directory."""

import pytest

from shared.config import Settings
from tenant_keystore.keystore.crypto import generate_fernet_key
from tenant_keystore.keystore.generator import KeyStoreGenerator
from tenant_keystore.repository.interfaces import (
    Association,
    RegistryError,
    Resource,
    TenantNotFoundError,
)


class InMemoryRegistry:
    """Registry fake.

    Entries in ``fail_on`` raise RegistryError: either an operation name, failing every
    call, or ``"<operation>:<path>"``, failing only calls for that path.
    """

    def __init__(self) -> None:
        self.resources: dict[str, Resource] = {}
        self.associations: list[Association] = []
        self.fail_on: set[str] = set()
        self.writes = 0

    def _check(self, operation: str, path: str | None = None) -> None:
        if operation in self.fail_on or f"{operation}:{path}" in self.fail_on:
            raise RegistryError(f"{operation} failed")

    async def resource_exists(self, path: str) -> bool:
        self._check("resource_exists", path)
        return path in self.resources

    async def get(self, path: str) -> Resource | None:
        self._check("get", path)
        return self.resources.get(path)

    async def put(self, path: str, resource: Resource) -> None:
        self._check("put", path)
        self.writes += 1
        self.resources[path] = resource

    async def delete(self, path: str) -> None:
        self._check("delete", path)
        self.resources.pop(path, None)
        self.associations = [
            a for a in self.associations if path not in (a.source_path, a.target_path)
        ]

    async def add_association(
        self, source_path: str, target_path: str, association_type: str
    ) -> None:
        self._check("add_association", source_path)
        self.writes += 1
        association = Association(source_path, target_path, association_type)
        if association not in self.associations:
            self.associations.append(association)

    async def get_associations(
        self, path: str, association_type: str | None = None
    ) -> list[Association]:
        return [
            a
            for a in self.associations
            if path in (a.source_path, a.target_path)
            and (association_type is None or a.association_type == association_type)
        ]


class FakeTenantDirectory:
    def __init__(self, domains: dict[int, str], error: Exception | None = None) -> None:
        self.domains = domains
        self.error = error

    async def get_domain(self, tenant_id: int) -> str:
        if self.error is not None:
            raise self.error
        if tenant_id not in self.domains:
            raise TenantNotFoundError(f"No tenant with id {tenant_id}")
        return self.domains[tenant_id]


@pytest.fixture
def fernet_key() -> str:
    return generate_fernet_key()


@pytest.fixture
def config(fernet_key) -> Settings:
    """Settings with no signing algorithm configured (legacy default)."""
    return Settings(
        TENANT_SIGNING_ALGORITHM=None,
        CRYPTO_PROVIDER=None,
        KEYSTORE_FILE_TYPE="PKCS12",
        TRUSTSTORE_FILE_TYPE="PEM",
        KEYSTORE_ENCRYPTION_KEY=fernet_key,
    )


@pytest.fixture
def registry() -> InMemoryRegistry:
    return InMemoryRegistry()


@pytest.fixture
def tenant_directory() -> FakeTenantDirectory:
    return FakeTenantDirectory({5: "acme.com", 7: "beta.example.org"})


@pytest.fixture
def make_generator(registry, tenant_directory, config):
    """Factory for generators bound to the shared fakes."""

    async def _make(tenant_id: int = 5, settings: Settings | None = None) -> KeyStoreGenerator:
        return await KeyStoreGenerator.create(
            tenant_id,
            tenant_directory=tenant_directory,
            registry=registry,
            config=settings or config,
        )

    return _make
