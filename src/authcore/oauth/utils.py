"""Provider-agnostic OAuth2 helpers."""

from __future__ import annotations

import re
import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

_EMAIL_DOMAIN = re.compile(r"@(.+)$")


@dataclass(frozen=True)
class OAuthErrorInfo:
    """Normalized error body returned by an OAuth2 endpoint (RFC 6749 §5.2)."""

    error: str
    description: str | None = None
    uri: str | None = None


def build_query_string(params: Mapping[str, Any]) -> str:
    """Encode *params* as a query string.

    Keys are sorted for stable output, ``None`` values are skipped and
    list/tuple values are space-joined (OAuth scope convention).

    Example:
        ```python
        build_query_string({"state": "xyz", "scope": ["openid", "email"]})
        # Returns: "scope=openid%20email&state=xyz"
        ```
    """
    parts = []
    for key in sorted(params):
        value = params[key]
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = " ".join(str(v) for v in value)
        parts.append(f"{quote(str(key), safe='')}={quote(str(value), safe='')}")
    return "&".join(parts)


def build_url(base_url: str, params: Mapping[str, Any]) -> str:
    return f"{base_url}?{build_query_string(params)}"


def parse_oauth_error_response(body: Any) -> OAuthErrorInfo:
    """Extract ``error`` / ``error_description`` / ``error_uri`` from *body*.

    Plain-text bodies become the description; anything unrecognized maps
    to ``unknown_error``.
    """
    if isinstance(body, str):
        return OAuthErrorInfo(error="unknown_error", description=body or None)

    if isinstance(body, Mapping):
        error = body.get("error")
        description = body.get("error_description") or body.get("message")
        # Microsoft Graph nests errors: {"error": {"code": ..., "message": ...}}
        if isinstance(error, Mapping):
            description = description or error.get("message")
            error = error.get("code")
        return OAuthErrorInfo(
            error=str(error) if error else "unknown_error",
            description=str(description) if description else None,
            uri=body.get("error_uri"),
        )

    return OAuthErrorInfo(
        error="unknown_error", description="An unknown error occurred"
    )


def generate_state(num_bytes: int = 32) -> str:
    """Generate an unguessable anti-CSRF ``state`` value."""
    return secrets.token_urlsafe(num_bytes)


def validate_state(received: str | None, expected: str | None) -> bool:
    """Compare the callback ``state`` with the stored one in constant time."""
    if not received or not expected:
        return False
    return secrets.compare_digest(received, expected)


def extract_email_domain(email: str) -> str | None:
    match = _EMAIL_DOMAIN.search(email)
    return match.group(1) if match else None


def build_scope_string(scopes: list[str] | tuple[str, ...]) -> str:
    return " ".join(scopes)


def parse_scope_string(scope: str | None) -> list[str]:
    if not scope:
        return []
    return [s for s in scope.split(" ") if s]


__all__: list[str] = [
    "OAuthErrorInfo",
    "build_query_string",
    "build_url",
    "parse_oauth_error_response",
    "generate_state",
    "validate_state",
    "extract_email_domain",
    "build_scope_string",
    "parse_scope_string",
]
