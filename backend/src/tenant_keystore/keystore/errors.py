"""Errors raised while provisioning tenant key material."""


class KeyStoreMgtError(Exception):
    """Base error. Carries the tenant it was raised for."""

    def __init__(
        self,
        message: str,
        tenant_id: int | None = None,
        tenant_domain: str | None = None,
    ) -> None:
        super().__init__(message)
        self.tenant_id = tenant_id
        self.tenant_domain = tenant_domain


class ResolutionError(KeyStoreMgtError):
    """Raised when the tenant domain or registry context cannot be resolved."""

    pass


class GenerationError(KeyStoreMgtError):
    """Raised when key pair or certificate construction fails."""

    pass


class PersistenceError(KeyStoreMgtError):
    """Raised when serializing or storing a keystore fails."""

    pass
