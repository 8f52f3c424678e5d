"""Ephemeral challenge store port and key layout.

WebAuthn challenges live only in an ephemeral store with a server-side
TTL and are consumed exactly once via an atomic get-and-delete. Two
requests racing on the same challenge can never both receive it.

Key space:
    ``challenge:{purpose}:{user_id}`` when the user is already known,
    ``challenge:discoverable:{challenge}`` for passwordless flows.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from enum import Enum
from typing import Protocol, runtime_checkable

KEY_PREFIX = "challenge"
DISCOVERABLE_SCOPE = "discoverable"


class ChallengePurpose(str, Enum):
    """Ceremony a challenge was issued for."""

    REGISTRATION = "registration"
    AUTHENTICATION = "authentication"


def user_challenge_key(purpose: ChallengePurpose, user_id: str) -> str:
    """Key for a challenge bound to a known user."""
    return f"{KEY_PREFIX}:{purpose.value}:{user_id}"


def discoverable_challenge_key(challenge: str) -> str:
    """Key for a passwordless challenge, bound to its own value."""
    return f"{KEY_PREFIX}:{DISCOVERABLE_SCOPE}:{challenge}"


@runtime_checkable
class IChallengeStore(Protocol):
    """Protocol for the ephemeral challenge store.

    Implementations must make :meth:`get_and_delete` atomic: a value is
    returned to at most one caller.
    """

    async def put(self, key: str, value: str, ttl: int) -> None:
        """Store *value* under *key*, overwriting, expiring after *ttl* seconds."""
        ...

    async def get_and_delete(self, key: str) -> str | None:
        """Atomically fetch and remove *key*.

        Returns:
            The stored value, or None if absent or expired.
        """
        ...


class InMemoryChallengeStore(IChallengeStore):
    """In-memory challenge store for development and testing only.

    ⚠️ WARNING: Challenges are kept in a local dictionary and will NOT be
    shared between workers. Use :class:`authcore.contrib.redis.RedisChallengeStore`
    in production.

    Neither ``put`` nor ``get_and_delete`` contains a suspension point, so
    both are atomic with respect to other coroutines on the same event
    loop. Expired entries are purged on every ``put``, so abandoned
    challenges do not accumulate.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._entries: dict[str, tuple[str, float]] = {}
        self._clock = clock

    async def put(self, key: str, value: str, ttl: int) -> None:
        now = self._clock()
        for stale in [k for k, (_, exp) in self._entries.items() if now >= exp]:
            del self._entries[stale]
        self._entries[key] = (value, now + ttl)

    async def get_and_delete(self, key: str) -> str | None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            return None
        return value

    def __len__(self) -> int:
        return len(self._entries)

    def clear_all(self) -> None:
        """Drop every stored challenge. Useful for testing cleanup."""
        self._entries.clear()


__all__: list[str] = [
    "ChallengePurpose",
    "IChallengeStore",
    "InMemoryChallengeStore",
    "user_challenge_key",
    "discoverable_challenge_key",
]
