"""Redis implementation of the ephemeral challenge store."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from redis.exceptions import RedisError

from ...challenges import IChallengeStore
from ...exceptions import ChallengeStoreError

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger("authcore.redis_challenges")


class RedisChallengeStore(IChallengeStore):
    """Challenge store backed by Redis keys with a native TTL.

    Consumption uses ``GETDEL`` (Redis >= 6.2), so two workers racing on
    the same key can never both obtain the challenge.

    Unlike a cache, failures here are not swallowed: a challenge that
    cannot be stored or consumed must abort the ceremony.

    Example:
        ```python
        from redis.asyncio import Redis

        store = RedisChallengeStore(Redis.from_url("redis://localhost:6379/0"))
        ```
    """

    def __init__(self, redis_client: Redis, *, namespace: str = "authcore") -> None:
        self._redis = redis_client
        self._namespace = namespace

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}" if self._namespace else key

    async def put(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._redis.set(self._key(key), value, ex=ttl)
        except RedisError as e:
            logger.error("Redis SET failed for challenge key %s: %s", key, e)
            raise ChallengeStoreError(f"Could not store challenge {key!r}") from e

    async def get_and_delete(self, key: str) -> str | None:
        try:
            value = await self._redis.getdel(self._key(key))
        except RedisError as e:
            logger.error("Redis GETDEL failed for challenge key %s: %s", key, e)
            raise ChallengeStoreError(f"Could not consume challenge {key!r}") from e
        if value is None:
            return None
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return str(value)


__all__: list[str] = ["RedisChallengeStore"]
