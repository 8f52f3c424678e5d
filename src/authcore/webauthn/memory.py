"""In-memory WebAuthn credential store for development and testing."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from ..exceptions import DuplicateCredentialError
from .ports import IWebAuthnCredentialStore

if TYPE_CHECKING:
    from datetime import datetime

    from .models import WebAuthnCredential


class InMemoryWebAuthnStore(IWebAuthnCredentialStore):
    """In-memory credential store for TESTING ONLY.

    ⚠️ WARNING: Credentials live in a process-local dictionary.
    Do NOT use in production!
    """

    def __init__(self) -> None:
        self._by_id: dict[str, WebAuthnCredential] = {}

    async def create(self, credential: WebAuthnCredential) -> None:
        if await self.find_by_credential_id(credential.credential_id) is not None:
            raise DuplicateCredentialError(
                f"Duplicate credential_id {credential.credential_id!r}"
            )
        self._by_id[credential.id] = credential

    async def find_by_id(self, id: str) -> WebAuthnCredential | None:
        return self._by_id.get(id)

    async def find_by_credential_id(
        self, credential_id: str
    ) -> WebAuthnCredential | None:
        for credential in self._by_id.values():
            if credential.credential_id == credential_id:
                return credential
        return None

    async def list_by_user(self, user_id: str) -> list[WebAuthnCredential]:
        owned = [c for c in self._by_id.values() if c.user_id == user_id]
        return sorted(owned, key=lambda c: c.created_at)

    async def count_by_user(self, user_id: str) -> int:
        return sum(1 for c in self._by_id.values() if c.user_id == user_id)

    async def update_counter(
        self,
        credential_id: str,
        *,
        expected_counter: int,
        new_counter: int,
        used_at: datetime,
    ) -> bool:
        credential = await self.find_by_credential_id(credential_id)
        if credential is None or credential.counter != expected_counter:
            return False
        self._by_id[credential.id] = replace(
            credential, counter=new_counter, last_used_at=used_at
        )
        return True

    async def update_name(self, id: str, device_name: str) -> bool:
        credential = self._by_id.get(id)
        if credential is None:
            return False
        self._by_id[id] = replace(credential, device_name=device_name)
        return True

    async def delete(self, id: str) -> bool:
        return self._by_id.pop(id, None) is not None

    def clear_all(self) -> None:
        """Drop every credential. Useful for testing cleanup."""
        self._by_id.clear()


__all__: list[str] = ["InMemoryWebAuthnStore"]
