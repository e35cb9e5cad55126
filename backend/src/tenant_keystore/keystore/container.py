"""Password-protected keystore containers.

A container holds at most one private-key entry (with its certificate
chain) and any number of trusted certificates, each under a unique alias.
PKCS#12/PFX containers are encoded with ``cryptography``'s PKCS#12 support.
PEM containers use the layout ``openssl pkcs12 -info`` prints: each block is
preceded by a ``friendlyName`` bag attribute naming its alias.
"""

import re
from dataclasses import dataclass, field

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes
from cryptography.hazmat.primitives.serialization import pkcs12

from tenant_keystore.domain.file_types import StoreFileType

_PEM_BLOCK = re.compile(
    r"-----BEGIN (?P<label>[A-Z0-9 ]+)-----.*?-----END (?P=label)-----\r?\n?",
    re.DOTALL,
)
_FRIENDLY_NAME = re.compile(r"friendlyName:\s*(?P<alias>\S.*?)\s*$", re.MULTILINE)

_CERTIFICATE_LABEL = "CERTIFICATE"
_PRIVATE_KEY_LABELS = ("ENCRYPTED PRIVATE KEY", "PRIVATE KEY")


class KeystoreContainerError(Exception):
    """Raised when a container cannot be populated, encoded or decoded."""

    pass


@dataclass
class KeyEntry:
    alias: str
    private_key: PrivateKeyTypes
    chain: list[x509.Certificate] = field(default_factory=list)

    @property
    def certificate(self) -> x509.Certificate:
        return self.chain[0]


class KeystoreContainer:
    """In-memory keystore or trust store, protected by a password when encoded."""

    def __init__(self, file_type: StoreFileType, password: str) -> None:
        if not password:
            raise KeystoreContainerError("Keystore password must not be empty")
        self.file_type = file_type
        self._password = password
        self._key_entry: KeyEntry | None = None
        self._trusted: dict[str, x509.Certificate] = {}

    @classmethod
    def empty(cls, file_type: StoreFileType, password: str) -> "KeystoreContainer":
        return cls(file_type, password)

    @property
    def key_entry(self) -> KeyEntry | None:
        return self._key_entry

    @property
    def trusted_certificates(self) -> dict[str, x509.Certificate]:
        return dict(self._trusted)

    def aliases(self) -> list[str]:
        aliases = [self._key_entry.alias] if self._key_entry else []
        return aliases + list(self._trusted)

    def set_key_entry(
        self,
        alias: str,
        private_key: PrivateKeyTypes,
        chain: list[x509.Certificate],
    ) -> None:
        """Store the private key and its chain (leaf first), replacing any previous key entry."""
        if not chain:
            raise KeystoreContainerError("A key entry needs at least one certificate")
        if alias in self._trusted:
            raise KeystoreContainerError(
                f"Alias {alias!r} is already used by a trusted certificate"
            )
        self._key_entry = KeyEntry(alias=alias, private_key=private_key, chain=list(chain))

    def add_trusted_certificate(self, alias: str, certificate: x509.Certificate) -> None:
        if self._key_entry is not None and self._key_entry.alias == alias:
            raise KeystoreContainerError(f"Alias {alias!r} is already used by the key entry")
        self._trusted[alias] = certificate

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def serialize(self) -> bytes:
        """Encode the container, protected by its password."""
        try:
            if self.file_type.is_pkcs12:
                return self._serialize_pkcs12()
            return self._serialize_pem()
        except KeystoreContainerError:
            raise
        except (ValueError, TypeError) as e:
            raise KeystoreContainerError(f"Failed to encode {self.file_type} container: {e}") from e

    def _encryption(self) -> serialization.KeySerializationEncryption:
        return serialization.BestAvailableEncryption(self._password.encode("utf-8"))

    def _trusted_bags(self) -> list[pkcs12.PKCS12Certificate]:
        return [
            pkcs12.PKCS12Certificate(certificate, alias.encode("utf-8"))
            for alias, certificate in self._trusted.items()
        ]

    def _serialize_pkcs12(self) -> bytes:
        entry = self._key_entry
        if entry is not None:
            return pkcs12.serialize_key_and_certificates(
                name=entry.alias.encode("utf-8"),
                key=entry.private_key,  # type: ignore[arg-type]
                cert=entry.certificate,
                cas=[*entry.chain[1:], *self._trusted_bags()],
                encryption_algorithm=self._encryption(),
            )
        if self._trusted:
            return pkcs12.serialize_java_truststore(self._trusted_bags(), self._encryption())
        raise KeystoreContainerError(
            f"An empty {self.file_type} container cannot be encoded; add a certificate first"
        )

    def _serialize_pem(self) -> bytes:
        parts: list[bytes] = []
        entry = self._key_entry
        if entry is not None:
            parts.append(
                _bag_attributes(entry.alias)
                + entry.private_key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=self._encryption(),
                )
            )
            for certificate in entry.chain:
                parts.append(
                    _bag_attributes(entry.alias)
                    + certificate.public_bytes(serialization.Encoding.PEM)
                )
        for alias, certificate in self._trusted.items():
            parts.append(
                _bag_attributes(alias) + certificate.public_bytes(serialization.Encoding.PEM)
            )
        return b"".join(parts)

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, data: bytes, file_type: StoreFileType, password: str) -> "KeystoreContainer":
        """Decode a container previously produced by :meth:`serialize`."""
        container = cls(file_type, password)
        try:
            if file_type.is_pkcs12:
                container._load_pkcs12(data)
            else:
                container._load_pem(data)
        except KeystoreContainerError:
            raise
        except (ValueError, TypeError) as e:
            raise KeystoreContainerError(f"Failed to decode {file_type} container: {e}") from e
        return container

    def _load_pkcs12(self, data: bytes) -> None:
        bundle = pkcs12.load_pkcs12(data, self._password.encode("utf-8"))
        chain_tail = []
        for bag in bundle.additional_certs:
            if bag.friendly_name is None:
                chain_tail.append(bag.certificate)
            else:
                self._trusted[bag.friendly_name.decode("utf-8")] = bag.certificate

        if bundle.key is not None:
            if bundle.cert is None:
                raise KeystoreContainerError("Private key entry has no certificate")
            alias = (bundle.cert.friendly_name or b"").decode("utf-8")
            self._key_entry = KeyEntry(
                alias=alias,
                private_key=bundle.key,
                chain=[bundle.cert.certificate, *chain_tail],
            )
        elif bundle.cert is not None:
            alias = (bundle.cert.friendly_name or b"").decode("utf-8")
            self._trusted[alias] = bundle.cert.certificate

    def _load_pem(self, data: bytes) -> None:
        text = data.decode("utf-8")
        key_alias: str | None = None
        private_key: PrivateKeyTypes | None = None
        chain: list[x509.Certificate] = []
        position = 0

        for match in _PEM_BLOCK.finditer(text):
            preamble = text[position : match.start()]
            position = match.end()
            names = _FRIENDLY_NAME.findall(preamble)
            alias = names[-1] if names else ""
            block = match.group(0).encode("ascii")
            label = match.group("label")

            if label in _PRIVATE_KEY_LABELS:
                private_key = serialization.load_pem_private_key(
                    block, password=self._password.encode("utf-8")
                )
                key_alias = alias
            elif label == _CERTIFICATE_LABEL:
                certificate = x509.load_pem_x509_certificate(block)
                if key_alias is not None and alias == key_alias:
                    chain.append(certificate)
                else:
                    self._trusted[alias] = certificate
            else:
                raise KeystoreContainerError(f"Unexpected PEM block {label!r}")

        if private_key is not None:
            if not chain:
                raise KeystoreContainerError("Private key entry has no certificate")
            self._key_entry = KeyEntry(alias=key_alias or "", private_key=private_key, chain=chain)


def _bag_attributes(alias: str) -> bytes:
    return f"Bag Attributes\n    friendlyName: {alias}\n".encode("utf-8")
