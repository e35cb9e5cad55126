from backend.src.main import health_check
from backend.src.shared.config import Settings
from backend.src.shared.database import get_db, get_db_context
from backend.src.tenant_keystore.domain.algorithms import SignatureAlgorithm
from backend.src.tenant_keystore.domain.file_types import StoreFileType
from backend.src.tenant_keystore.domain.models import (
    RegistryAssociation,
    RegistryResource,
    Tenant,
)
from backend.src.tenant_keystore.keystore.certificate_generator import (
    CryptographySigningProvider,
    GeneratedIdentity,
    distinguished_name_string,
)
from backend.src.tenant_keystore.keystore.container import KeystoreContainer
from backend.src.tenant_keystore.keystore.crypto import decrypt_secret, generate_fernet_key
from backend.src.tenant_keystore.repository.interfaces import Registry

# Pydantic Settings
Settings.model_config
Settings.APP_ENV

# Domain Models (columns written by SQLAlchemy defaults or read by operators)
Tenant.created_at
RegistryResource.created_at
RegistryResource.updated_at
RegistryAssociation.association_id
RegistryAssociation.created_at

# Enum members selected through configuration
SignatureAlgorithm.DSA_SHA1
SignatureAlgorithm.ECDSA_SHA1
SignatureAlgorithm.ECDSA_SHA384
SignatureAlgorithm.ECDSA_SHA512
SignatureAlgorithm.RSA_SHA1
SignatureAlgorithm.RSA_SHA256
SignatureAlgorithm.RSA_SHA384
SignatureAlgorithm.RSA_SHA512
StoreFileType.PFX

# Public API used by operators and tests
GeneratedIdentity.not_before
CryptographySigningProvider.name
KeystoreContainer.load
KeystoreContainer.trusted_certificates
Registry.get
Registry.get_associations
distinguished_name_string
decrypt_secret
generate_fernet_key

# FastAPI
health_check

# Database Dependency
get_db
get_db_context
