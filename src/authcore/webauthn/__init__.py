"""WebAuthn (FIDO2) registration, authentication and device management.

Attestation and assertion signatures are checked by py_webauthn through
:class:`PyWebAuthnVerifier`; everything around them (challenge binding,
single-use consumption, counter replay defense, discoverable identity
resolution, device cap) lives in :class:`WebAuthnService`.
"""

from __future__ import annotations

from .memory import InMemoryWebAuthnStore
from .models import (
    AuthenticationOutcome,
    CredentialSummary,
    VerifiedAuthentication,
    VerifiedRegistration,
    WebAuthnCredential,
)
from .ports import IWebAuthnCredentialStore, IWebAuthnVerifier
from .service import WebAuthnService
from .verifier import PyWebAuthnVerifier

__all__: list[str] = [
    "WebAuthnService",
    "PyWebAuthnVerifier",
    "IWebAuthnCredentialStore",
    "IWebAuthnVerifier",
    "InMemoryWebAuthnStore",
    "AuthenticationOutcome",
    "CredentialSummary",
    "VerifiedAuthentication",
    "VerifiedRegistration",
    "WebAuthnCredential",
]
