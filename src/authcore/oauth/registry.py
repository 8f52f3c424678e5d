"""Registry of configured OAuth strategies keyed by provider."""

from __future__ import annotations

import logging

import httpx

from ..config import OAuthClientConfig
from ..result import ErrorCode, Result
from .models import OAuthProvider
from .providers import STRATEGY_CLASSES
from .strategy import OAuthStrategy

logger = logging.getLogger("authcore.oauth")


def _coerce_provider(provider: OAuthProvider | str) -> OAuthProvider | None:
    if isinstance(provider, OAuthProvider):
        return provider
    try:
        return OAuthProvider(str(provider).lower())
    except ValueError:
        return None


def create_strategy(
    provider: OAuthProvider | str,
    config: OAuthClientConfig,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> Result[OAuthStrategy]:
    """Instantiate the strategy class for *provider*."""
    resolved = _coerce_provider(provider)
    if resolved is None:
        return Result.fail(
            ErrorCode.UNKNOWN_PROVIDER, f"Unknown OAuth provider: {provider}"
        )
    return Result.ok(STRATEGY_CLASSES[resolved](config, http_client=http_client))


class OAuthStrategyRegistry:
    """Holds at most one strategy per provider.

    Example:
        ```python
        registry = OAuthStrategyRegistry()
        registry.register(GoogleOAuthStrategy(google_config))

        result = registry.get("google")
        if result:
            url = result.value.build_authorization_url(...)
        ```
    """

    def __init__(self) -> None:
        self._strategies: dict[OAuthProvider, OAuthStrategy] = {}

    def register(self, strategy: OAuthStrategy) -> Result[None]:
        if strategy.provider in self._strategies:
            return Result.fail(
                ErrorCode.DUPLICATE_PROVIDER,
                f"Provider already registered: {strategy.provider.value}",
            )
        self._strategies[strategy.provider] = strategy
        logger.debug("Registered OAuth strategy for %s", strategy.provider.value)
        return Result.ok(None)

    def get(self, provider: OAuthProvider | str) -> Result[OAuthStrategy]:
        resolved = _coerce_provider(provider)
        strategy = self._strategies.get(resolved) if resolved else None
        if strategy is None:
            return Result.fail(
                ErrorCode.UNKNOWN_PROVIDER, f"No strategy registered for {provider}"
            )
        return Result.ok(strategy)

    def has(self, provider: OAuthProvider | str) -> bool:
        resolved = _coerce_provider(provider)
        return resolved is not None and resolved in self._strategies

    def unregister(self, provider: OAuthProvider | str) -> bool:
        resolved = _coerce_provider(provider)
        if resolved is None:
            return False
        return self._strategies.pop(resolved, None) is not None

    def list_providers(self) -> list[OAuthProvider]:
        return list(self._strategies)

    def clear(self) -> None:
        self._strategies.clear()

    def __len__(self) -> int:
        return len(self._strategies)


__all__: list[str] = ["OAuthStrategyRegistry", "create_strategy"]
