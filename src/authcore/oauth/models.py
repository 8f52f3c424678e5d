"""Provider-neutral OAuth2 token and profile shapes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class OAuthProvider(str, Enum):
    """Closed set of supported identity providers."""

    GOOGLE = "google"
    GITHUB = "github"
    MICROSOFT = "microsoft"


@dataclass(frozen=True)
class OAuthEndpoints:
    """Provider URLs.

    Attributes:
        authorization: Browser redirect target.
        token: Code exchange and refresh endpoint.
        userinfo: Profile endpoint called with the access token.
    """

    authorization: str
    token: str
    userinfo: str


@dataclass(frozen=True)
class OAuthTokens:
    """Normalized token endpoint response.

    ``refresh_token`` and ``expires_in`` are None for providers that do
    not issue them (GitHub OAuth apps).
    """

    access_token: str = field(repr=False)
    token_type: str = "Bearer"
    refresh_token: str | None = field(default=None, repr=False)
    expires_in: int | None = None
    scope: str | None = None


@dataclass(frozen=True)
class OAuthProfile:
    """Normalized user profile."""

    provider: OAuthProvider
    provider_id: str
    email: str
    email_verified: bool
    name: str | None = None
    picture: str | None = None


__all__: list[str] = [
    "OAuthProvider",
    "OAuthEndpoints",
    "OAuthTokens",
    "OAuthProfile",
]
