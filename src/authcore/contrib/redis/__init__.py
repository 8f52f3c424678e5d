"""Redis adapters."""

from .challenges import RedisChallengeStore

__all__: list[str] = ["RedisChallengeStore"]
