"""Two-factor ports (protocols).

The orchestrator never performs read-then-write on mutable counters or
code sets. Every mutation that can race is a single store call that the
implementation must make atomic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

    from .models import LockoutState, TwoFactorCredential


@runtime_checkable
class ITwoFactorCredentialStore(Protocol):
    """Protocol for durable TOTP credential storage.

    Production implementation:
    :class:`authcore.contrib.sqlalchemy.SQLAlchemyTwoFactorStore`.
    """

    async def get(self, user_id: str) -> TwoFactorCredential | None:
        """Load the credential of *user_id*, or None if not enrolled."""
        ...

    async def create(self, credential: TwoFactorCredential) -> bool:
        """Insert *credential* atomically.

        Returns:
            False if the user already has a credential (nothing written).
        """
        ...

    async def delete(self, user_id: str) -> bool:
        """Remove all two-factor state of *user_id*.

        Returns:
            True if a credential existed.
        """
        ...

    async def replace_recovery_codes(
        self, user_id: str, code_hashes: Sequence[str]
    ) -> bool:
        """Atomically swap the whole recovery-code hash set.

        Returns:
            False if the user is not enrolled.
        """
        ...

    async def consume_recovery_code(self, user_id: str, code_hash: str) -> bool:
        """Atomically remove *code_hash* if it is still present.

        When two callers race on the same hash exactly one receives True.
        """
        ...

    async def register_failure(
        self,
        user_id: str,
        *,
        threshold: int,
        lock_until: datetime,
    ) -> LockoutState | None:
        """Atomically increment the failure counter.

        When the incremented counter reaches *threshold*, ``locked_until``
        is set to *lock_until* in the same operation.

        Returns:
            The state after the increment, or None if the user is not enrolled.
        """
        ...

    async def reset_failures(self, user_id: str, *, verified_at: datetime) -> bool:
        """Clear the lockout state and stamp the last successful verification.

        The check and the write are one atomic operation: a lock that is
        still active at *verified_at* is left untouched, so a correct
        token racing a burst of failures cannot lift a fresh lock.

        Returns:
            False if the user is not enrolled or is locked at *verified_at*.
        """
        ...


__all__: list[str] = ["ITwoFactorCredentialStore"]
