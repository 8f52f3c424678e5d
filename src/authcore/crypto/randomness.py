"""Secure random helpers and recovery code generation."""

from __future__ import annotations

import base64
import secrets
import string

RECOVERY_CODE_ALPHABET = string.ascii_uppercase + string.digits


def secure_random_hex(num_bytes: int) -> str:
    """Return *num_bytes* random bytes, hex encoded."""
    return secrets.token_hex(num_bytes)


def secure_random_base64(num_bytes: int) -> str:
    """Return *num_bytes* random bytes, standard base64 encoded."""
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode("ascii")


def generate_recovery_code(length: int = 10) -> str:
    """Generate one recovery code over ``A-Z0-9``.

    Example:
        ```python
        generate_recovery_code()
        # Returns: "Q7K2M9XA4B"
        ```
    """
    return "".join(secrets.choice(RECOVERY_CODE_ALPHABET) for _ in range(length))


def generate_recovery_code_set(count: int = 8, length: int = 10) -> list[str]:
    """Generate *count* mutually distinct recovery codes.

    Draws again on collision until the set is complete.
    """
    codes: set[str] = set()
    while len(codes) < count:
        codes.add(generate_recovery_code(length))
    return list(codes)


def normalize_recovery_code(code: str) -> str:
    """Normalize user input: strip whitespace and dashes, uppercase."""
    return code.strip().replace("-", "").replace(" ", "").upper()


__all__: list[str] = [
    "RECOVERY_CODE_ALPHABET",
    "secure_random_hex",
    "secure_random_base64",
    "generate_recovery_code",
    "generate_recovery_code_set",
    "normalize_recovery_code",
]
