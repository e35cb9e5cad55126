"""Pydantic schemas for the provisioning API."""

from datetime import datetime

from pydantic import BaseModel, Field


class KeystoreResponse(BaseModel):
    """Response after a tenant keystore was generated."""

    tenant_id: int
    tenant_domain: str
    keystore_name: str
    keystore_path: str
    file_type: str
    alias: str
    serial_number: str
    thumbprint: str
    signature_algorithm: str
    not_before: datetime
    not_after: datetime


class KeystoreExistsResponse(BaseModel):
    tenant_id: int
    exists: bool


class CreateTrustStoreRequest(BaseModel):
    """Request body for creating an empty trust store."""

    name: str = Field(..., min_length=1, max_length=255, pattern=r"^[A-Za-z0-9._-]+$")


class TrustStoreResponse(BaseModel):
    tenant_id: int
    truststore_path: str
