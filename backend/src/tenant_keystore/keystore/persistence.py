"""Writes serialized keystores and tenant public certificates to the registry."""

import logging

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from opentelemetry import trace

from shared.config import Settings
from tenant_keystore.domain.algorithms import DEFAULT_CRYPTO_PROVIDER
from tenant_keystore.domain.models import TenantContext
from tenant_keystore.keystore.container import KeystoreContainer, KeystoreContainerError
from tenant_keystore.keystore.crypto import (
    CryptoError,
    compute_thumbprint,
    encrypt_secret,
    get_encryption_key,
)
from tenant_keystore.keystore.errors import PersistenceError
from tenant_keystore.keystore.naming import derive_pub_key_appender
from tenant_keystore.repository.interfaces import (
    ASSOCIATION_TENANT_KS_PUB_KEY,
    PROP_PASSWORD,
    PROP_PRIVATE_KEY_ALIAS,
    PROP_PRIVATE_KEY_PASS,
    PROP_PROVIDER,
    PROP_TENANT_PUB_KEY_FILE_NAME_APPENDER,
    PROP_THUMBPRINT,
    PROP_TYPE,
    TENANT_PUBKEY_RESOURCE,
    Registry,
    RegistryError,
    Resource,
    keystore_path,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CERTIFICATE_MEDIA_TYPE = "application/pkix-cert"


class KeystorePersistence:
    """Stores a tenant's keystore, public certificate and their association."""

    def __init__(self, registry: Registry, tenant: TenantContext, config: Settings) -> None:
        self.registry = registry
        self.tenant = tenant
        self.config = config

    def _error(self, message: str) -> PersistenceError:
        return PersistenceError(
            message, tenant_id=self.tenant.tenant_id, tenant_domain=self.tenant.tenant_domain
        )

    def _store_properties(
        self, container: KeystoreContainer, password: str, provider: str
    ) -> dict[str, str]:
        encrypted_password = encrypt_secret(
            password, get_encryption_key(self.config.KEYSTORE_ENCRYPTION_KEY)
        )
        return {
            PROP_TYPE: container.file_type.value,
            PROP_PROVIDER: provider,
            PROP_PASSWORD: encrypted_password,
        }

    async def _discard(self, paths: list[str]) -> None:
        """Remove resources written by a keystore persist that did not complete."""
        for written_path in reversed(paths):
            try:
                await self.registry.delete(written_path)
            except RegistryError as e:
                logger.error(
                    "keystore_rollback_failed",
                    extra={"resource_path": written_path, "error": str(e)},
                )

    async def persist_keystore(
        self,
        container: KeystoreContainer,
        keystore_name: str,
        password: str,
        certificate: x509.Certificate,
        provider: str = DEFAULT_CRYPTO_PROVIDER,
    ) -> str:
        """Persist the keystore, then the public certificate, then link them.

        If a registry write fails part way, resources already written by this
        call are deleted so the keystore can be generated again.

        Returns:
            Registry path of the stored keystore.

        Raises:
            PersistenceError: If a keystore with this name exists or any step fails.
        """
        path = keystore_path(keystore_name)

        with tracer.start_as_current_span("KeystorePersistence.persist_keystore") as span:
            span.set_attribute("tenant_id", self.tenant.tenant_id)
            span.set_attribute("keystore_path", path)
            written: list[str] = []

            try:
                if await self.registry.resource_exists(path):
                    raise self._error(f"Key store {keystore_name} already available")

                content = container.serialize()
                properties = self._store_properties(container, password, provider)
                properties[PROP_PRIVATE_KEY_PASS] = properties[PROP_PASSWORD]
                if container.key_entry is not None:
                    properties[PROP_PRIVATE_KEY_ALIAS] = container.key_entry.alias

                await self.registry.put(
                    path,
                    Resource(
                        content=content,
                        media_type=container.file_type.media_type,
                        properties=properties,
                    ),
                )
                written.append(path)

                appender = derive_pub_key_appender()
                await self.registry.put(
                    TENANT_PUBKEY_RESOURCE,
                    Resource(
                        content=certificate.public_bytes(serialization.Encoding.DER),
                        media_type=CERTIFICATE_MEDIA_TYPE,
                        properties={
                            PROP_TENANT_PUB_KEY_FILE_NAME_APPENDER: appender,
                            PROP_THUMBPRINT: compute_thumbprint(certificate),
                        },
                    ),
                )
                written.append(TENANT_PUBKEY_RESOURCE)

                await self.registry.add_association(
                    path, TENANT_PUBKEY_RESOURCE, ASSOCIATION_TENANT_KS_PUB_KEY
                )
            except PersistenceError:
                raise
            except RegistryError as e:
                logger.error(
                    "keystore_registry_write_failed",
                    extra={"tenant_domain": self.tenant.tenant_domain, "error": str(e)},
                )
                await self._discard(written)
                raise self._error(
                    f"Error when writing the keystore/pub. cert to registry: {e}"
                ) from e
            except (KeystoreContainerError, CryptoError) as e:
                logger.error(
                    "keystore_processing_failed",
                    extra={"tenant_domain": self.tenant.tenant_domain, "error": str(e)},
                )
                raise self._error(
                    f"Error when processing keystore/pub. cert to be stored in registry: {e}"
                ) from e

            logger.info(
                "keystore_persisted",
                extra={
                    "tenant_id": self.tenant.tenant_id,
                    "keystore_path": path,
                    "pub_key_appender": appender,
                },
            )
            return path

    async def persist_trust_store(
        self,
        container: KeystoreContainer,
        trust_store_name: str,
        password: str,
        provider: str = DEFAULT_CRYPTO_PROVIDER,
    ) -> str:
        """Persist a trust store under the caller-supplied name.

        No certificate resource or association is written for trust stores. An
        empty PEM trust store encodes to zero bytes, so its stored password is
        nominal until certificates are added.
        """
        path = keystore_path(trust_store_name)

        with tracer.start_as_current_span("KeystorePersistence.persist_trust_store") as span:
            span.set_attribute("tenant_id", self.tenant.tenant_id)
            span.set_attribute("truststore_path", path)

            try:
                if await self.registry.resource_exists(path):
                    raise self._error(f"Trust store {trust_store_name} already available")

                await self.registry.put(
                    path,
                    Resource(
                        content=container.serialize(),
                        media_type=container.file_type.media_type,
                        properties=self._store_properties(container, password, provider),
                    ),
                )
            except PersistenceError:
                raise
            except (RegistryError, KeystoreContainerError, CryptoError) as e:
                logger.error(
                    "truststore_persist_failed",
                    extra={"tenant_domain": self.tenant.tenant_domain, "error": str(e)},
                )
                raise self._error(
                    f"Error when processing trust store to be stored in registry: {e}"
                ) from e

            logger.info(
                "truststore_persisted",
                extra={"tenant_id": self.tenant.tenant_id, "truststore_path": path},
            )
            return path
