"""Internal provisioning API.

Called by the tenant-creation workflow to provision a tenant's keystore and
trust stores. Not exposed outside the platform.
"""

import logging
from dataclasses import dataclass

from fastapi import APIRouter, Depends, HTTPException, status
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from shared.database import get_db
from tenant_keystore.api.schemas import (
    CreateTrustStoreRequest,
    KeystoreExistsResponse,
    KeystoreResponse,
    TrustStoreResponse,
)
from tenant_keystore.keystore.errors import GenerationError, PersistenceError, ResolutionError
from tenant_keystore.keystore.generator import KeyStoreGenerator
from tenant_keystore.repository.interfaces import Registry, TenantDirectory, keystore_path
from tenant_keystore.repository.repositories import SqlRegistry, SqlTenantDirectory

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

router = APIRouter(prefix="/internal/tenants", tags=["provisioning"])


@dataclass
class ProvisioningContext:
    """Registry and tenant directory sharing one database transaction."""

    session: AsyncSession
    registry: Registry
    tenant_directory: TenantDirectory


def get_provisioning_context(db: AsyncSession = Depends(get_db)) -> ProvisioningContext:
    """Dependency to get the provisioning context for a request."""
    return ProvisioningContext(
        session=db,
        registry=SqlRegistry(db),
        tenant_directory=SqlTenantDirectory(db),
    )


async def _get_generator(tenant_id: int, ctx: ProvisioningContext) -> KeyStoreGenerator:
    try:
        return await KeyStoreGenerator.create(
            tenant_id,
            tenant_directory=ctx.tenant_directory,
            registry=ctx.registry,
        )
    except ResolutionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e


@router.post(
    "/{tenant_id}/keystore",
    response_model=KeystoreResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_keystore(
    tenant_id: int,
    ctx: ProvisioningContext = Depends(get_provisioning_context),
) -> KeystoreResponse:
    """Generate and store the tenant's keystore unless it already exists."""
    with tracer.start_as_current_span("provision_keystore") as span:
        span.set_attribute("tenant_id", tenant_id)

        generator = await _get_generator(tenant_id, ctx)

        if await generator.keystore_exists():
            logger.info("keystore_already_exists", extra={"tenant_id": tenant_id})
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Keystore already exists for tenant {tenant_id}",
            )

        try:
            summary = await generator.generate_keystore()
        except (GenerationError, PersistenceError) as e:
            await ctx.session.rollback()
            logger.error(
                "keystore_provisioning_failed",
                extra={"tenant_id": tenant_id, "error": str(e)},
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
            ) from e

        await ctx.session.commit()

        return KeystoreResponse(
            tenant_id=summary.tenant_id,
            tenant_domain=summary.tenant_domain,
            keystore_name=summary.keystore_name,
            keystore_path=summary.keystore_path,
            file_type=summary.file_type.value,
            alias=summary.alias,
            serial_number=summary.serial_number,
            thumbprint=summary.thumbprint,
            signature_algorithm=summary.signature_algorithm.value,
            not_before=summary.not_before,
            not_after=summary.not_after,
        )


@router.get("/{tenant_id}/keystore", response_model=KeystoreExistsResponse)
async def keystore_exists(
    tenant_id: int,
    ctx: ProvisioningContext = Depends(get_provisioning_context),
) -> KeystoreExistsResponse:
    generator = await _get_generator(tenant_id, ctx)
    return KeystoreExistsResponse(tenant_id=tenant_id, exists=await generator.keystore_exists())


@router.post(
    "/{tenant_id}/truststores",
    response_model=TrustStoreResponse,
    status_code=status.HTTP_201_CREATED,
)
async def generate_trust_store(
    tenant_id: int,
    body: CreateTrustStoreRequest,
    ctx: ProvisioningContext = Depends(get_provisioning_context),
) -> TrustStoreResponse:
    """Create an empty trust store for the tenant."""
    generator = await _get_generator(tenant_id, ctx)

    if await ctx.registry.resource_exists(keystore_path(body.name)):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Trust store {body.name} already exists",
        )

    try:
        path = await generator.generate_trust_store(body.name)
    except PersistenceError as e:
        await ctx.session.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)
        ) from e

    await ctx.session.commit()
    return TrustStoreResponse(tenant_id=tenant_id, truststore_path=path)
