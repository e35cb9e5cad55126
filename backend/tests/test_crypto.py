"""Tests for keystore password encryption and certificate thumbprints."""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from tenant_keystore.keystore import crypto
from tenant_keystore.keystore.crypto import (
    CryptoError,
    compute_thumbprint,
    decrypt_secret,
    encrypt_secret,
    generate_fernet_key,
    get_encryption_key,
)


class TestCryptoUtilities:
    """Tests for crypto.py utilities."""

    def test_generate_fernet_key_returns_valid_key(self):
        key = generate_fernet_key()
        assert isinstance(key, str)
        # Fernet keys are 44 characters base64
        assert len(key) == 44

    def test_get_encryption_key_from_argument(self):
        key = generate_fernet_key()
        assert get_encryption_key(key) == key.encode("utf-8")

    def test_get_encryption_key_missing_raises(self, monkeypatch):
        """Test that a missing key raises CryptoError."""
        monkeypatch.setattr(crypto.settings, "KEYSTORE_ENCRYPTION_KEY", None)

        with pytest.raises(CryptoError, match="KEYSTORE_ENCRYPTION_KEY"):
            get_encryption_key()

    def test_get_encryption_key_invalid_raises(self):
        with pytest.raises(CryptoError, match="Invalid KEYSTORE_ENCRYPTION_KEY"):
            get_encryption_key("not-a-fernet-key")

    def test_encrypt_decrypt_roundtrip(self):
        key = get_encryption_key(generate_fernet_key())

        token = encrypt_secret("7a0b93a1b4", key)

        assert token != "7a0b93a1b4"
        assert decrypt_secret(token, key) == "7a0b93a1b4"

    def test_decrypt_with_wrong_key_raises(self):
        token = encrypt_secret("secret", get_encryption_key(generate_fernet_key()))

        with pytest.raises(CryptoError, match="decrypt"):
            decrypt_secret(token, get_encryption_key(generate_fernet_key()))

    def test_compute_thumbprint_returns_sha256_of_der(self):
        private_key = ec.generate_private_key(ec.SECP256R1())
        name = x509.Name([x509.NameAttribute(x509.oid.NameOID.COMMON_NAME, "test")])
        now = datetime.now(timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + timedelta(days=1))
            .sign(private_key, hashes.SHA256())
        )

        thumbprint = compute_thumbprint(cert)

        expected = hashlib.sha256(cert.public_bytes(serialization.Encoding.DER)).hexdigest()
        assert thumbprint == expected
        assert len(thumbprint) == 64
