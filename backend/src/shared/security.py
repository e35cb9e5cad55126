"""Shared security utilities for keystore credential generation."""

import secrets

PASSWORD_LENGTH = 10
PASSWORD_RANDOM_BITS = 130
PASSWORD_RADIX = 12

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _to_radix(value: int, radix: int) -> str:
    """Render a non-negative integer in the given radix (lowercase digits)."""
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, radix)
        digits.append(_DIGITS[remainder])
    return "".join(reversed(digits))


def generate_password() -> str:
    """
    Generate a keystore password: the last 10 base-12 digits of a 130-bit random integer.

    Example: 7a0b93a1b4
    """
    rendered = _to_radix(secrets.randbits(PASSWORD_RANDOM_BITS), PASSWORD_RADIX)
    return rendered.rjust(PASSWORD_LENGTH, "0")[-PASSWORD_LENGTH:]
