"""OAuth2 PKCE (Proof Key for Code Exchange) utilities.

PKCE binds an authorization request to its token exchange: the client
sends ``code_challenge`` up front and must later present the
``code_verifier`` that hashes to it.

RFC 7636: https://datatracker.ietf.org/doc/html/rfc7636
"""

from __future__ import annotations

import base64
import hashlib
import secrets
from dataclasses import dataclass, field
from typing import Literal

MIN_VERIFIER_LENGTH = 43
MAX_VERIFIER_LENGTH = 128
VERIFIER_SOURCE_BYTES = 64


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


@dataclass(frozen=True)
class PKCEPair:
    """PKCE verification data.

    Attributes:
        code_verifier: Random string (43-128 chars) kept by the client.
        code_challenge: S256 hash of the verifier sent in the authorize request.
        code_challenge_method: Always "S256".
    """

    code_verifier: str = field(repr=False)
    code_challenge: str
    code_challenge_method: Literal["S256"] = "S256"


def generate_pkce_verifier(num_bytes: int = VERIFIER_SOURCE_BYTES) -> str:
    """Generate a cryptographically random code_verifier.

    The default 64 random bytes encode to 86 URL-safe characters without
    padding, inside the 43-128 range required by RFC 7636.

    Args:
        num_bytes: Random bytes to draw (default 64).

    Returns:
        URL-safe base64 string without padding.

    Raises:
        ValueError: If the encoded length would fall outside 43-128.
    """
    encoded_length = -(-num_bytes * 4 // 3)
    if not MIN_VERIFIER_LENGTH <= encoded_length <= MAX_VERIFIER_LENGTH:
        raise ValueError("code_verifier length must be between 43 and 128 characters")
    return _b64url(secrets.token_bytes(num_bytes))


def generate_pkce_challenge(verifier: str) -> str:
    """Derive the S256 code_challenge for *verifier*.

    code_challenge = BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))
    """
    return _b64url(hashlib.sha256(verifier.encode("utf-8")).digest())


def create_pkce_pair() -> PKCEPair:
    """Generate a verifier and its matching challenge.

    Example:
        ```python
        pkce = create_pkce_pair()
        url = strategy.build_authorization_url(state, pkce.code_challenge)
        # keep pkce.code_verifier server-side until the callback
        ```
    """
    verifier = generate_pkce_verifier()
    return PKCEPair(
        code_verifier=verifier, code_challenge=generate_pkce_challenge(verifier)
    )


def is_valid_verifier(verifier: str) -> bool:
    """Check RFC 7636 length and character constraints."""
    if not MIN_VERIFIER_LENGTH <= len(verifier) <= MAX_VERIFIER_LENGTH:
        return False
    allowed = set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~")
    return all(ch in allowed for ch in verifier)


def verify_pkce_challenge(verifier: str, challenge: str) -> bool:
    """Check that *verifier* hashes to *challenge* (constant time)."""
    if not verifier or not challenge or not is_valid_verifier(verifier):
        return False
    return secrets.compare_digest(generate_pkce_challenge(verifier), challenge)


__all__: list[str] = [
    "PKCEPair",
    "generate_pkce_verifier",
    "generate_pkce_challenge",
    "create_pkce_pair",
    "is_valid_verifier",
    "verify_pkce_challenge",
    "MIN_VERIFIER_LENGTH",
    "MAX_VERIFIER_LENGTH",
]
