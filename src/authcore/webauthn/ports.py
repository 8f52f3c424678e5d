"""WebAuthn ports (protocols).

Two collaborators sit behind these interfaces: the durable credential
store and the cryptographic verification routine. The orchestrator owns
the protocol state machine; neither collaborator makes policy decisions.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from .models import VerifiedAuthentication, VerifiedRegistration, WebAuthnCredential


@runtime_checkable
class IWebAuthnCredentialStore(Protocol):
    """Protocol for durable WebAuthn credential storage."""

    async def create(self, credential: WebAuthnCredential) -> None:
        """Persist a newly registered credential.

        Raises:
            DuplicateCredentialError: If ``credential_id`` already exists.
        """
        ...

    async def find_by_id(self, id: str) -> WebAuthnCredential | None:
        ...

    async def find_by_credential_id(
        self, credential_id: str
    ) -> WebAuthnCredential | None:
        ...

    async def list_by_user(self, user_id: str) -> list[WebAuthnCredential]:
        """Credentials of *user_id*, oldest first."""
        ...

    async def count_by_user(self, user_id: str) -> int:
        ...

    async def update_counter(
        self,
        credential_id: str,
        *,
        expected_counter: int,
        new_counter: int,
        used_at: datetime,
    ) -> bool:
        """Compare-and-set the signature counter and stamp ``last_used_at``.

        Returns:
            False if the stored counter no longer equals *expected_counter*
            (a concurrent assertion won) or the credential is gone.
        """
        ...

    async def update_name(self, id: str, device_name: str) -> bool:
        ...

    async def delete(self, id: str) -> bool:
        ...


@runtime_checkable
class IWebAuthnVerifier(Protocol):
    """Trusted routine that checks attestation and assertion signatures.

    Implementations raise any exception when verification fails; the
    orchestrator reports every such exception as ``VerificationFailed``.
    Signature counters are *not* judged here.
    """

    def verify_registration(
        self,
        response: Mapping[str, Any],
        *,
        expected_challenge: str,
        expected_origin: str,
        expected_rp_id: str,
    ) -> VerifiedRegistration:
        ...

    def verify_authentication(
        self,
        response: Mapping[str, Any],
        *,
        expected_challenge: str,
        expected_origin: str,
        expected_rp_id: str,
        public_key: str,
    ) -> VerifiedAuthentication:
        ...


__all__: list[str] = ["IWebAuthnCredentialStore", "IWebAuthnVerifier"]
