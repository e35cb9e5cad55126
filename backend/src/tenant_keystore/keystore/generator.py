"""Per-tenant keystore and trust store generation.

A KeyStoreGenerator is bound to one tenant. Callers serialize
``generate_keystore`` / ``generate_trust_store`` calls for the same tenant;
nothing is retried here.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from opentelemetry import trace

from shared.config import Settings, settings
from shared.security import generate_password
from tenant_keystore.domain.algorithms import (
    SignatureAlgorithm,
    resolve_crypto_provider,
    resolve_key_size,
    resolve_signature_algorithm,
)
from tenant_keystore.domain.file_types import StoreFileType
from tenant_keystore.domain.models import TenantContext
from tenant_keystore.keystore.certificate_generator import generate_identity
from tenant_keystore.keystore.container import KeystoreContainer, KeystoreContainerError
from tenant_keystore.keystore.crypto import compute_thumbprint
from tenant_keystore.keystore.errors import GenerationError, PersistenceError, ResolutionError
from tenant_keystore.keystore.naming import derive_keystore_file_name
from tenant_keystore.keystore.persistence import KeystorePersistence
from tenant_keystore.metrics import keystore_metrics
from tenant_keystore.repository.interfaces import (
    Registry,
    TenantDirectory,
    TenantDirectoryError,
    TenantNotFoundError,
    keystore_path,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@dataclass(frozen=True)
class KeystoreSummary:
    """What was provisioned. Holds no key material or password."""

    tenant_id: int
    tenant_domain: str
    keystore_name: str
    keystore_path: str
    file_type: StoreFileType
    alias: str
    serial_number: str
    thumbprint: str
    signature_algorithm: SignatureAlgorithm
    not_before: datetime
    not_after: datetime


class KeyStoreGenerator:
    """Generates a tenant's keystore and trust stores and stores them in the registry."""

    def __init__(
        self,
        tenant: TenantContext,
        registry: Registry,
        tenant_directory: TenantDirectory,
        config: Settings | None = None,
    ) -> None:
        self._tenant = tenant
        self.registry = registry
        self.tenant_directory = tenant_directory
        self.config = config or settings
        self._persistence = KeystorePersistence(registry, tenant, self.config)

    @classmethod
    async def create(
        cls,
        tenant_id: int,
        tenant_directory: TenantDirectory,
        registry: Registry | None,
        config: Settings | None = None,
    ) -> "KeyStoreGenerator":
        """Resolve the tenant's domain and bind a generator to it.

        Raises:
            ResolutionError: If the domain or the registry cannot be resolved.
        """
        with tracer.start_as_current_span("KeyStoreGenerator.create") as span:
            span.set_attribute("tenant_id", tenant_id)

            if registry is None:
                logger.error("registry_unavailable", extra={"tenant_id": tenant_id})
                raise ResolutionError(
                    f"Registry instance is not available for tenant: {tenant_id}",
                    tenant_id=tenant_id,
                )

            try:
                domain = await tenant_directory.get_domain(tenant_id)
            except (TenantNotFoundError, TenantDirectoryError) as e:
                logger.error(
                    "tenant_domain_resolution_failed",
                    extra={"tenant_id": tenant_id, "error": str(e)},
                )
                raise ResolutionError(
                    f"Error in getting the domain name for the tenant id: {tenant_id}",
                    tenant_id=tenant_id,
                ) from e

            if not domain or not domain.strip():
                raise ResolutionError(
                    f"Tenant {tenant_id} has no domain name", tenant_id=tenant_id
                )

            span.set_attribute("tenant_domain", domain)
            return cls(
                TenantContext(tenant_id=tenant_id, tenant_domain=domain),
                registry,
                tenant_directory,
                config,
            )

    @property
    def tenant_id(self) -> int:
        return self._tenant.tenant_id

    @property
    def tenant_domain(self) -> str:
        return self._tenant.tenant_domain

    @property
    def keystore_file_type(self) -> StoreFileType:
        return StoreFileType.from_config(self.config.KEYSTORE_FILE_TYPE)

    @property
    def trust_store_file_type(self) -> StoreFileType:
        return StoreFileType.from_config(self.config.TRUSTSTORE_FILE_TYPE)

    def _signature_algorithm(self) -> SignatureAlgorithm:
        configured = self.config.TENANT_SIGNING_ALGORITHM
        if SignatureAlgorithm.parse(configured) is None:
            keystore_metrics.record_legacy_fallback()
        return resolve_signature_algorithm(configured)

    async def generate_keystore(self) -> KeystoreSummary:
        """Generate the tenant's key pair and certificate and persist the keystore.

        Raises:
            GenerationError: If the key pair or certificate cannot be built.
            PersistenceError: If the keystore cannot be stored.
        """
        with tracer.start_as_current_span("KeyStoreGenerator.generate_keystore") as span:
            span.set_attribute("tenant_id", self.tenant_id)
            span.set_attribute("tenant_domain", self.tenant_domain)

            file_type = self.keystore_file_type
            signature_algorithm = self._signature_algorithm()
            key_generation_algorithm = signature_algorithm.key_generation_algorithm
            key_size = resolve_key_size(key_generation_algorithm)
            provider = resolve_crypto_provider(self.config.CRYPTO_PROVIDER)

            span.set_attribute("file_type", file_type.value)
            span.set_attribute("signature_algorithm", signature_algorithm.value)

            password = generate_password()

            try:
                container = KeystoreContainer.empty(file_type, password)
                identity = generate_identity(
                    self.tenant_domain,
                    signature_algorithm,
                    key_generation_algorithm,
                    key_size,
                    provider,
                )
                container.set_key_entry(
                    self.tenant_domain, identity.private_key, [identity.certificate]
                )
            except GenerationError as e:
                keystore_metrics.record_generation_failure("generation")
                e.tenant_id = self.tenant_id
                raise
            except KeystoreContainerError as e:
                keystore_metrics.record_generation_failure("generation")
                logger.error(
                    "keystore_instantiation_failed",
                    extra={"tenant_domain": self.tenant_domain, "error": str(e)},
                )
                raise GenerationError(
                    f"Error while instantiating a keystore: {e}",
                    tenant_id=self.tenant_id,
                    tenant_domain=self.tenant_domain,
                ) from e

            keystore_name = derive_keystore_file_name(self.tenant_domain, file_type)

            try:
                path = await self._persistence.persist_keystore(
                    container, keystore_name, password, identity.certificate, provider
                )
            except PersistenceError:
                keystore_metrics.record_generation_failure("persistence")
                raise

            keystore_metrics.record_keystore_generated(file_type.value, signature_algorithm.value)

            summary = KeystoreSummary(
                tenant_id=self.tenant_id,
                tenant_domain=self.tenant_domain,
                keystore_name=keystore_name,
                keystore_path=path,
                file_type=file_type,
                alias=self.tenant_domain,
                serial_number=identity.serial_number,
                thumbprint=compute_thumbprint(identity.certificate),
                signature_algorithm=signature_algorithm,
                not_before=identity.not_before,
                not_after=identity.not_after,
            )

            logger.info(
                "keystore_generated",
                extra={
                    "tenant_id": self.tenant_id,
                    "tenant_domain": self.tenant_domain,
                    "keystore_name": keystore_name,
                    "serial": summary.serial_number,
                    "signature_algorithm": signature_algorithm.value,
                },
            )
            return summary

    async def generate_trust_store(self, trust_store_name: str) -> str:
        """Create an empty trust store under ``trust_store_name``.

        Returns:
            Registry path of the stored trust store.

        Raises:
            PersistenceError: If the name is blank or the trust store cannot be
                encoded or stored.
        """
        if not trust_store_name or not trust_store_name.strip():
            raise PersistenceError(
                "Trust store name must not be empty",
                tenant_id=self.tenant_id,
                tenant_domain=self.tenant_domain,
            )

        with tracer.start_as_current_span("KeyStoreGenerator.generate_trust_store") as span:
            span.set_attribute("tenant_id", self.tenant_id)
            span.set_attribute("truststore_name", trust_store_name)

            file_type = self.trust_store_file_type
            password = generate_password()

            try:
                container = KeystoreContainer.empty(file_type, password)
                path = await self._persistence.persist_trust_store(
                    container,
                    trust_store_name.strip(),
                    password,
                    resolve_crypto_provider(self.config.CRYPTO_PROVIDER),
                )
            except PersistenceError:
                keystore_metrics.record_generation_failure("persistence")
                raise

            keystore_metrics.record_truststore_generated(file_type.value)
            logger.info(
                "truststore_generated",
                extra={"tenant_id": self.tenant_id, "truststore_path": path},
            )
            return path

    async def keystore_exists(self, tenant_id: int | None = None) -> bool:
        """Whether the tenant's keystore is already in the registry.

        Defaults to the bound tenant. Lookup failures are logged and reported
        as ``False`` so provisioning can continue.
        """
        with tracer.start_as_current_span("KeyStoreGenerator.keystore_exists") as span:
            tenant_id = self.tenant_id if tenant_id is None else tenant_id
            span.set_attribute("tenant_id", tenant_id)

            try:
                if tenant_id == self.tenant_id:
                    domain = self.tenant_domain
                else:
                    domain = await self.tenant_directory.get_domain(tenant_id)
                name = derive_keystore_file_name(domain, self.keystore_file_type)
                exists = await self.registry.resource_exists(keystore_path(name))
            except Exception as e:
                logger.error(
                    "keystore_existence_check_failed",
                    extra={"tenant_id": tenant_id, "error": str(e)},
                )
                keystore_metrics.record_existence_check("error")
                return False

            span.set_attribute("exists", exists)
            keystore_metrics.record_existence_check("exists" if exists else "missing")
            return exists
