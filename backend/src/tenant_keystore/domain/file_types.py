from enum import StrEnum


class StoreFileType(StrEnum):
    """Container formats a keystore or trust store can be written in."""

    PKCS12 = "PKCS12"
    PFX = "PFX"
    PEM = "PEM"

    @property
    def extension(self) -> str:
        return _EXTENSIONS[self]

    @property
    def media_type(self) -> str:
        return "application/x-pem-file" if self is StoreFileType.PEM else "application/x-pkcs12"

    @property
    def is_pkcs12(self) -> bool:
        return self in (StoreFileType.PKCS12, StoreFileType.PFX)

    @classmethod
    def from_config(cls, value: str | None) -> "StoreFileType":
        """Case-insensitive parse; unknown or blank values mean PKCS12."""
        if value:
            wanted = value.strip().upper()
            for member in cls:
                if member.value == wanted:
                    return member
        return cls.PKCS12


_EXTENSIONS = {
    StoreFileType.PKCS12: ".p12",
    StoreFileType.PFX: ".pfx",
    StoreFileType.PEM: ".pem",
}
