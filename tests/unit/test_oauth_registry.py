"""Tests for OAuthStrategyRegistry and create_strategy."""

from __future__ import annotations

import pytest

from authcore.config import OAuthClientConfig
from authcore.oauth import (
    GitHubOAuthStrategy,
    GoogleOAuthStrategy,
    MicrosoftOAuthStrategy,
    OAuthProvider,
    OAuthStrategyRegistry,
    create_strategy,
)
from authcore.result import ErrorCode


@pytest.fixture
def config() -> OAuthClientConfig:
    return OAuthClientConfig(
        client_id="id",
        client_secret="secret",
        redirect_uri="https://app.example.com/cb",
    )


class TestCreateStrategy:
    @pytest.mark.parametrize(
        ("provider", "expected"),
        [
            (OAuthProvider.GOOGLE, GoogleOAuthStrategy),
            ("github", GitHubOAuthStrategy),
            ("Microsoft", MicrosoftOAuthStrategy),
        ],
    )
    def test_known_providers(self, config, provider, expected) -> None:
        result = create_strategy(provider, config)
        assert isinstance(result.value, expected)
        assert result.value.config is config

    def test_unknown_provider(self, config) -> None:
        result = create_strategy("myspace", config)
        assert result.code is ErrorCode.UNKNOWN_PROVIDER


class TestOAuthStrategyRegistry:
    def test_register_and_get(self, config) -> None:
        registry = OAuthStrategyRegistry()
        strategy = GoogleOAuthStrategy(config)

        assert registry.register(strategy)
        assert registry.get("google").value is strategy
        assert registry.get(OAuthProvider.GOOGLE).value is strategy
        assert registry.has("GOOGLE")
        assert len(registry) == 1

    def test_duplicate_registration(self, config) -> None:
        registry = OAuthStrategyRegistry()
        registry.register(GoogleOAuthStrategy(config))

        result = registry.register(GoogleOAuthStrategy(config))

        assert result.code is ErrorCode.DUPLICATE_PROVIDER

    def test_get_missing(self, config) -> None:
        registry = OAuthStrategyRegistry()
        registry.register(GoogleOAuthStrategy(config))

        assert registry.get("github").code is ErrorCode.UNKNOWN_PROVIDER
        assert registry.get("nope").code is ErrorCode.UNKNOWN_PROVIDER
        assert not registry.has("nope")

    def test_unregister_and_list(self, config) -> None:
        registry = OAuthStrategyRegistry()
        registry.register(GoogleOAuthStrategy(config))
        registry.register(GitHubOAuthStrategy(config))

        assert registry.list_providers() == [
            OAuthProvider.GOOGLE,
            OAuthProvider.GITHUB,
        ]
        assert registry.unregister("google") is True
        assert registry.unregister("google") is False
        assert registry.unregister("nope") is False
        assert registry.list_providers() == [OAuthProvider.GITHUB]

    def test_clear(self, config) -> None:
        registry = OAuthStrategyRegistry()
        registry.register(MicrosoftOAuthStrategy(config))
        registry.clear()
        assert len(registry) == 0
