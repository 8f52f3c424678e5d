"""In-memory two-factor credential store for development and testing."""

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from .models import LockoutState, TwoFactorCredential
from .ports import ITwoFactorCredentialStore

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime


class InMemoryTwoFactorStore(ITwoFactorCredentialStore):
    """In-memory credential store for TESTING ONLY.

    ⚠️ WARNING: Credentials live in a process-local dictionary.
    Do NOT use in production!

    No method awaits between reading and writing, so each call is atomic
    with respect to other coroutines on the same event loop.
    """

    def __init__(self) -> None:
        self._credentials: dict[str, TwoFactorCredential] = {}

    async def get(self, user_id: str) -> TwoFactorCredential | None:
        return self._credentials.get(user_id)

    async def create(self, credential: TwoFactorCredential) -> bool:
        if credential.user_id in self._credentials:
            return False
        self._credentials[credential.user_id] = credential
        return True

    async def delete(self, user_id: str) -> bool:
        return self._credentials.pop(user_id, None) is not None

    async def replace_recovery_codes(
        self, user_id: str, code_hashes: Sequence[str]
    ) -> bool:
        credential = self._credentials.get(user_id)
        if credential is None:
            return False
        self._credentials[user_id] = replace(
            credential, recovery_code_hashes=tuple(code_hashes)
        )
        return True

    async def consume_recovery_code(self, user_id: str, code_hash: str) -> bool:
        credential = self._credentials.get(user_id)
        if credential is None or code_hash not in credential.recovery_code_hashes:
            return False
        remaining = list(credential.recovery_code_hashes)
        remaining.remove(code_hash)
        self._credentials[user_id] = replace(
            credential, recovery_code_hashes=tuple(remaining)
        )
        return True

    async def register_failure(
        self,
        user_id: str,
        *,
        threshold: int,
        lock_until: datetime,
    ) -> LockoutState | None:
        credential = self._credentials.get(user_id)
        if credential is None:
            return None
        failed_attempts = credential.failed_attempts + 1
        locked_until = credential.locked_until
        if failed_attempts >= threshold:
            locked_until = lock_until
        updated = replace(
            credential, failed_attempts=failed_attempts, locked_until=locked_until
        )
        self._credentials[user_id] = updated
        return updated.lockout

    async def reset_failures(self, user_id: str, *, verified_at: datetime) -> bool:
        credential = self._credentials.get(user_id)
        if credential is None or credential.lockout.is_locked(verified_at):
            return False
        self._credentials[user_id] = replace(
            credential,
            failed_attempts=0,
            locked_until=None,
            last_verified_at=verified_at,
        )
        return True

    def clear_all(self) -> None:
        """Drop every credential. Useful for testing cleanup."""
        self._credentials.clear()


__all__: list[str] = ["InMemoryTwoFactorStore"]
