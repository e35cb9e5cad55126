"""SQLAlchemy-backed registry and tenant directory."""

import logging

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_keystore.domain.models import RegistryAssociation, RegistryResource, Tenant
from tenant_keystore.repository.interfaces import (
    Association,
    RegistryError,
    Resource,
    TenantDirectoryError,
    TenantNotFoundError,
)

logger = logging.getLogger(__name__)


class SqlRegistry:
    """Registry stored in the ``registry_resources`` / ``registry_associations`` tables.

    Writes are flushed, not committed. The caller owns the transaction.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resource_exists(self, path: str) -> bool:
        try:
            result = await self.db.execute(
                select(func.count())
                .select_from(RegistryResource)
                .where(RegistryResource.path == path)
            )
            return result.scalar_one() > 0
        except SQLAlchemyError as e:
            raise RegistryError(f"Failed to check resource {path}: {e}") from e

    async def get(self, path: str) -> Resource | None:
        try:
            result = await self.db.execute(
                select(RegistryResource).where(RegistryResource.path == path)
            )
            row = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise RegistryError(f"Failed to read resource {path}: {e}") from e

        if row is None:
            return None
        return Resource(
            content=row.content,
            media_type=row.media_type,
            properties=dict(row.properties or {}),
        )

    async def put(self, path: str, resource: Resource) -> None:
        """Create or replace the resource at ``path``."""
        try:
            await self.db.merge(
                RegistryResource(
                    path=path,
                    content=resource.content,
                    media_type=resource.media_type,
                    properties=dict(resource.properties),
                )
            )
            await self.db.flush()
        except SQLAlchemyError as e:
            raise RegistryError(f"Failed to write resource {path}: {e}") from e

    async def delete(self, path: str) -> None:
        """Remove the resource at ``path`` and every association touching it."""
        try:
            await self.db.execute(
                delete(RegistryAssociation).where(
                    or_(
                        RegistryAssociation.source_path == path,
                        RegistryAssociation.target_path == path,
                    )
                )
            )
            await self.db.execute(delete(RegistryResource).where(RegistryResource.path == path))
            await self.db.flush()
        except SQLAlchemyError as e:
            raise RegistryError(f"Failed to delete resource {path}: {e}") from e

    async def add_association(
        self, source_path: str, target_path: str, association_type: str
    ) -> None:
        try:
            existing = await self.db.execute(
                select(RegistryAssociation)
                .where(RegistryAssociation.source_path == source_path)
                .where(RegistryAssociation.target_path == target_path)
                .where(RegistryAssociation.association_type == association_type)
            )
            if existing.scalar_one_or_none() is not None:
                return
            self.db.add(
                RegistryAssociation(
                    source_path=source_path,
                    target_path=target_path,
                    association_type=association_type,
                )
            )
            await self.db.flush()
        except SQLAlchemyError as e:
            raise RegistryError(
                f"Failed to associate {source_path} -> {target_path}: {e}"
            ) from e

    async def get_associations(
        self, path: str, association_type: str | None = None
    ) -> list[Association]:
        """Associations where ``path`` is either end."""
        query = select(RegistryAssociation).where(
            or_(RegistryAssociation.source_path == path, RegistryAssociation.target_path == path)
        )
        if association_type is not None:
            query = query.where(RegistryAssociation.association_type == association_type)

        try:
            result = await self.db.execute(query.order_by(RegistryAssociation.association_id))
        except SQLAlchemyError as e:
            raise RegistryError(f"Failed to read associations for {path}: {e}") from e

        return [
            Association(
                source_path=row.source_path,
                target_path=row.target_path,
                association_type=row.association_type,
            )
            for row in result.scalars().all()
        ]


class SqlTenantDirectory:
    """Tenant directory backed by the ``tenants`` table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_domain(self, tenant_id: int) -> str:
        try:
            result = await self.db.execute(
                select(Tenant.domain).where(Tenant.tenant_id == tenant_id)
            )
            domain = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise TenantDirectoryError(f"Tenant directory unavailable: {e}") from e

        if domain is None:
            raise TenantNotFoundError(f"No tenant with id {tenant_id}")
        return domain
