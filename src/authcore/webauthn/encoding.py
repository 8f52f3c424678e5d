"""Helpers for reading fields out of FIDO2 JSON credential responses.

Responses arrive in the standard browser JSON shape::

    {
        "id": "...", "rawId": "...", "type": "public-key",
        "response": {
            "clientDataJSON": "...",
            "authenticatorData": "...", "signature": "...",
            "userHandle": "...",          # assertions, optional
            "transports": ["internal"],   # registrations, optional
        },
    }

All binary fields are base64url without padding.
"""

from __future__ import annotations

import binascii
import json
from collections.abc import Mapping
from typing import Any

from webauthn.helpers import base64url_to_bytes, bytes_to_base64url


def _inner(response: Mapping[str, Any]) -> Mapping[str, Any]:
    inner = response.get("response")
    return inner if isinstance(inner, Mapping) else {}


def normalize_credential_id(response: Mapping[str, Any]) -> str | None:
    """Return the credential id in canonical base64url, or None if unreadable."""
    raw = response.get("rawId") or response.get("id")
    if not isinstance(raw, str) or not raw:
        return None
    try:
        return bytes_to_base64url(base64url_to_bytes(raw))
    except (binascii.Error, ValueError):
        return None


def decode_user_handle(response: Mapping[str, Any]) -> str | None:
    """Decode the user id an authenticator returned for a resident key."""
    handle = _inner(response).get("userHandle")
    if not isinstance(handle, str) or not handle:
        return None
    try:
        return base64url_to_bytes(handle).decode("utf-8") or None
    except (binascii.Error, ValueError):
        # UnicodeDecodeError is a ValueError subclass
        return None


def extract_client_challenge(response: Mapping[str, Any]) -> str | None:
    """Read the challenge the browser signed from ``clientDataJSON``."""
    client_data = _inner(response).get("clientDataJSON")
    if not isinstance(client_data, str) or not client_data:
        return None
    try:
        parsed = json.loads(base64url_to_bytes(client_data))
    except (binascii.Error, ValueError):
        return None
    challenge = parsed.get("challenge") if isinstance(parsed, dict) else None
    return challenge if isinstance(challenge, str) and challenge else None


def extract_transports(response: Mapping[str, Any]) -> tuple[str, ...]:
    transports = _inner(response).get("transports") or response.get("transports")
    if not isinstance(transports, list):
        return ()
    return tuple(t for t in transports if isinstance(t, str))


__all__: list[str] = [
    "normalize_credential_id",
    "decode_user_handle",
    "extract_client_challenge",
    "extract_transports",
]
