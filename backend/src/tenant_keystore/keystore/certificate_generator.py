"""Self-signed X.509 certificates for tenant keystores.

Each tenant gets one key pair and one self-signed certificate:
- Subject = Issuer: CN=<tenant domain>, OU=None, O=None, L=None, C=None
- Validity: now() - 30 days to now() + 3650 days (backdated for clock skew)
- Serial: random positive integer (up to 159 bits)
- Signature: the resolved SignatureAlgorithm, via the configured provider
"""

import logging
import time
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Protocol

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, rsa
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.x509.oid import NameOID
from OpenSSL import crypto
from opentelemetry import trace

from tenant_keystore.domain.algorithms import DEFAULT_CRYPTO_PROVIDER, SignatureAlgorithm
from tenant_keystore.keystore.errors import GenerationError
from tenant_keystore.metrics import keystore_metrics

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

VALIDITY_DAYS = 3650
BACKDATE_DAYS = 30
PLACEHOLDER = "None"

X509_SIGN_DEPRECATION = "X509.sign is deprecated"

RSA_PUBLIC_EXPONENT = 65537
DEFAULT_RSA_KEY_SIZE = 2048
DEFAULT_DSA_KEY_SIZE = 2048
DEFAULT_EC_KEY_SIZE = 256

_EC_CURVES: dict[int, type[ec.EllipticCurve]] = {
    256: ec.SECP256R1,
    384: ec.SECP384R1,
    521: ec.SECP521R1,
}

_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    "MD5": hashes.MD5,
    "SHA1": hashes.SHA1,
    "SHA256": hashes.SHA256,
    "SHA384": hashes.SHA384,
    "SHA512": hashes.SHA512,
}


@dataclass
class GeneratedIdentity:
    """Key pair and certificate for one tenant. Never logged."""

    private_key: PrivateKeyTypes = field(repr=False)
    certificate: x509.Certificate
    signature_algorithm: SignatureAlgorithm

    @property
    def serial_number(self) -> str:
        return format(self.certificate.serial_number, "x")

    @property
    def not_before(self) -> datetime:
        return self.certificate.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self.certificate.not_valid_after_utc


def distinguished_name_string(tenant_domain: str) -> str:
    return (
        f"CN={tenant_domain}, OU={PLACEHOLDER}, O={PLACEHOLDER}, "
        f"L={PLACEHOLDER}, C={PLACEHOLDER}"
    )


def build_distinguished_name(tenant_domain: str) -> x509.Name:
    """Subject/issuer name for the tenant certificate, CN first.

    ``C=None`` is not a two-letter country code; the length check is relaxed
    so the name matches certificates issued to existing tenants.
    """
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        country = x509.NameAttribute(NameOID.COUNTRY_NAME, PLACEHOLDER, _validate=False)

    return x509.Name(
        [
            x509.NameAttribute(NameOID.COMMON_NAME, tenant_domain),
            x509.NameAttribute(NameOID.ORGANIZATIONAL_UNIT_NAME, PLACEHOLDER),
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, PLACEHOLDER),
            x509.NameAttribute(NameOID.LOCALITY_NAME, PLACEHOLDER),
            country,
        ]
    )


def generate_key_pair(key_generation_algorithm: str, key_size: int) -> PrivateKeyTypes:
    """Generate a private key; ``key_size`` 0 means the algorithm's default size."""
    algorithm = key_generation_algorithm.upper()

    if algorithm == "RSA":
        return rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=key_size or DEFAULT_RSA_KEY_SIZE,
        )
    if algorithm == "DSA":
        return dsa.generate_private_key(key_size=key_size or DEFAULT_DSA_KEY_SIZE)
    if algorithm in ("ECDSA", "EC"):
        curve = _EC_CURVES.get(key_size or DEFAULT_EC_KEY_SIZE)
        if curve is None:
            raise ValueError(f"No elliptic curve for key size {key_size}")
        return ec.generate_private_key(curve())

    raise ValueError(f"Unsupported key generation algorithm: {key_generation_algorithm}")


class SigningProvider(Protocol):
    name: str

    def sign(
        self,
        builder: x509.CertificateBuilder,
        private_key: PrivateKeyTypes,
        algorithm: SignatureAlgorithm,
    ) -> x509.Certificate: ...


class CryptographySigningProvider:
    """Signs with ``cryptography``. Rejects MD5 and SHA-1 DSA/ECDSA signatures."""

    name = "cryptography"

    def sign(
        self,
        builder: x509.CertificateBuilder,
        private_key: PrivateKeyTypes,
        algorithm: SignatureAlgorithm,
    ) -> x509.Certificate:
        return builder.sign(private_key, _HASHES[algorithm.digest]())  # type: ignore[arg-type]


class OpenSSLSigningProvider:
    """Signs through pyOpenSSL, which accepts every supported algorithm.

    The certificate is first assembled and signed by ``cryptography`` with
    SHA-256; ``X509.sign`` then rewrites both signature algorithm fields and
    the signature with the requested digest.
    """

    name = DEFAULT_CRYPTO_PROVIDER

    def sign(
        self,
        builder: x509.CertificateBuilder,
        private_key: PrivateKeyTypes,
        algorithm: SignatureAlgorithm,
    ) -> x509.Certificate:
        draft = builder.sign(private_key, hashes.SHA256())  # type: ignore[arg-type]
        certificate = crypto.X509.from_cryptography(draft)
        with warnings.catch_warnings():
            # Deprecated upstream; the pyOpenSSL upper bound in pyproject.toml keeps it available.
            warnings.filterwarnings(
                "ignore", message=X509_SIGN_DEPRECATION, category=DeprecationWarning
            )
            certificate.sign(
                crypto.PKey.from_cryptography_key(private_key),  # type: ignore[arg-type]
                algorithm.digest.lower(),
            )
        return certificate.to_cryptography()


_PROVIDERS: dict[str, SigningProvider] = {
    provider.name.lower(): provider
    for provider in (OpenSSLSigningProvider(), CryptographySigningProvider())
}


def get_signing_provider(name: str) -> SigningProvider:
    provider = _PROVIDERS.get(name.strip().lower())
    if provider is None:
        raise ValueError(f"Crypto provider {name!r} is not available")
    return provider


def generate_identity(
    tenant_domain: str,
    signature_algorithm: SignatureAlgorithm,
    key_generation_algorithm: str,
    key_size: int,
    provider: str = DEFAULT_CRYPTO_PROVIDER,
) -> GeneratedIdentity:
    """Generate a key pair and a self-signed certificate for the tenant.

    Args:
        tenant_domain: Tenant domain, used as CN and as the key alias.
        signature_algorithm: Algorithm the certificate is signed with.
        key_generation_algorithm: ``RSA``, ``DSA`` or ``ECDSA``.
        key_size: Key size in bits, 0 for the algorithm default.
        provider: Name of the signing provider.

    Returns:
        GeneratedIdentity holding the private key and certificate.

    Raises:
        GenerationError: If key generation or signing fails.
    """
    with tracer.start_as_current_span("generate_identity") as span:
        span.set_attribute("tenant_domain", tenant_domain)
        span.set_attribute("signature_algorithm", signature_algorithm.value)
        span.set_attribute("key_size", key_size)
        span.set_attribute("provider", provider)

        start_time = time.time()

        try:
            signer = get_signing_provider(provider)
            private_key = generate_key_pair(key_generation_algorithm, key_size)

            name = build_distinguished_name(tenant_domain)
            now = datetime.now(timezone.utc)

            builder = (
                x509.CertificateBuilder()
                .subject_name(name)
                .issuer_name(name)
                .public_key(private_key.public_key())  # type: ignore[arg-type]
                .serial_number(x509.random_serial_number())
                .not_valid_before(now - timedelta(days=BACKDATE_DAYS))
                .not_valid_after(now + timedelta(days=VALIDITY_DAYS))
            )

            certificate = signer.sign(builder, private_key, signature_algorithm)
        except Exception as e:
            logger.error(
                "tenant_certificate_generation_failed",
                extra={
                    "tenant_domain": tenant_domain,
                    "signature_algorithm": signature_algorithm.value,
                    "provider": provider,
                    "error": str(e),
                },
            )
            raise GenerationError(
                f"Error while generating the certificate for tenant: {tenant_domain}: {e}",
                tenant_domain=tenant_domain,
            ) from e

        identity = GeneratedIdentity(
            private_key=private_key,
            certificate=certificate,
            signature_algorithm=signature_algorithm,
        )

        generation_time = time.time() - start_time
        keystore_metrics.record_identity_generated(generation_time)
        span.set_attribute("serial", identity.serial_number)

        logger.info(
            "tenant_certificate_generated",
            extra={
                "tenant_domain": tenant_domain,
                "serial": identity.serial_number,
                "signature_algorithm": signature_algorithm.value,
                "not_after": identity.not_after.isoformat(),
                "duration_seconds": generation_time,
            },
        )

        return identity
