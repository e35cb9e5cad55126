"""Registry names for tenant keystores and public certificates."""

import uuid

from tenant_keystore.domain.file_types import StoreFileType


def derive_keystore_file_name(tenant_domain: str, file_type: StoreFileType) -> str:
    """``example.com`` -> ``example-com.p12`` for PKCS12."""
    return tenant_domain.strip().replace(".", "-") + file_type.extension


def derive_pub_key_appender() -> str:
    """Short tag for the public certificate file name, e.g. ``example-com-3f2a9.cert``.

    For disambiguation only; it carries no security meaning.
    """
    value = str(uuid.uuid4())
    return value[len(value) - 6 : len(value) - 1]
