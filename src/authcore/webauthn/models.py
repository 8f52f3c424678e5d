"""WebAuthn credential model and ceremony outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class WebAuthnCredential:
    """A registered authenticator.

    Attributes:
        id: Primary key, a UUID string.
        user_id: Owner.
        credential_id: Authenticator-chosen id, base64url, globally unique.
        public_key: COSE public key, base64url.
        counter: Last accepted signature counter.
        created_at: Registration time.
        transports: Transport hints reported at registration.
        device_name: User-facing label.
        aaguid: Authenticator model identifier, when attested.
        last_used_at: Last successful authentication.
    """

    id: str
    user_id: str
    credential_id: str
    public_key: str = field(repr=False)
    counter: int
    created_at: datetime
    transports: tuple[str, ...] = ()
    device_name: str = "Unknown Device"
    aaguid: str | None = None
    last_used_at: datetime | None = None

    def summary(self) -> CredentialSummary:
        return CredentialSummary(
            id=self.id,
            credential_id=self.credential_id,
            device_name=self.device_name,
            transports=self.transports,
            created_at=self.created_at,
            last_used_at=self.last_used_at,
        )


@dataclass(frozen=True)
class CredentialSummary:
    """Public view of a credential for device management screens."""

    id: str
    credential_id: str
    device_name: str
    transports: tuple[str, ...]
    created_at: datetime
    last_used_at: datetime | None


@dataclass(frozen=True)
class AuthenticationOutcome:
    """Successful assertion.

    Attributes:
        user_id: Resolved owner; in passwordless mode this is how the
            caller learns who signed in.
        credential_id: Credential that produced the assertion.
    """

    user_id: str
    credential_id: str


# ═══════════════════════════════════════════════════════════════
# VERIFIER OUTPUTS
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class VerifiedRegistration:
    credential_id: str
    public_key: str = field(repr=False)
    sign_count: int
    aaguid: str | None = None


@dataclass(frozen=True)
class VerifiedAuthentication:
    credential_id: str
    new_sign_count: int


__all__: list[str] = [
    "WebAuthnCredential",
    "CredentialSummary",
    "AuthenticationOutcome",
    "VerifiedRegistration",
    "VerifiedAuthentication",
]
