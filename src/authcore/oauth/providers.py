"""Concrete OAuth2 strategies: Google, GitHub and Microsoft."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, ClassVar

from ..result import ErrorCode, Result
from .models import OAuthEndpoints, OAuthProfile, OAuthProvider, OAuthTokens
from .strategy import OAuthStrategy


def _str_or_none(value: Any) -> str | None:
    return str(value) if value else None


# ═══════════════════════════════════════════════════════════════
# GOOGLE
# ═══════════════════════════════════════════════════════════════


class GoogleOAuthStrategy(OAuthStrategy):
    """Google OpenID Connect.

    Requests offline access with forced consent so a refresh token is
    issued on every authorization.
    """

    provider: ClassVar[OAuthProvider] = OAuthProvider.GOOGLE
    default_scopes: ClassVar[tuple[str, ...]] = ("openid", "email", "profile")

    _ENDPOINTS = OAuthEndpoints(
        authorization="https://accounts.google.com/o/oauth2/v2/auth",
        token="https://oauth2.googleapis.com/token",
        userinfo="https://www.googleapis.com/oauth2/v3/userinfo",
    )

    @property
    def endpoints(self) -> OAuthEndpoints:
        return self._ENDPOINTS

    def extra_authorization_params(self) -> dict[str, str]:
        return {"access_type": "offline", "prompt": "consent"}

    async def _profile_from(
        self, payload: Any, access_token: str
    ) -> Result[OAuthProfile]:
        if not isinstance(payload, Mapping) or not payload.get("sub"):
            return Result.fail(ErrorCode.INVALID_RESPONSE, "Userinfo has no subject")
        email = payload.get("email")
        if not email:
            return Result.fail(
                ErrorCode.PROFILE_FETCH_FAILED, "Google account has no email address"
            )
        return Result.ok(
            OAuthProfile(
                provider=self.provider,
                provider_id=str(payload["sub"]),
                email=str(email),
                email_verified=bool(payload.get("email_verified", False)),
                name=_str_or_none(payload.get("name")),
                picture=_str_or_none(payload.get("picture")),
            )
        )


# ═══════════════════════════════════════════════════════════════
# GITHUB
# ═══════════════════════════════════════════════════════════════


class GitHubOAuthStrategy(OAuthStrategy):
    """GitHub OAuth app.

    GitHub OAuth apps issue non-expiring tokens without refresh tokens,
    and ``/user`` omits private emails, so the verified primary address
    comes from a second call to ``/user/emails``.
    """

    provider: ClassVar[OAuthProvider] = OAuthProvider.GITHUB
    default_scopes: ClassVar[tuple[str, ...]] = ("read:user", "user:email")

    EMAILS_URL = "https://api.github.com/user/emails"
    _ENDPOINTS = OAuthEndpoints(
        authorization="https://github.com/login/oauth/authorize",
        token="https://github.com/login/oauth/access_token",
        userinfo="https://api.github.com/user",
    )

    @property
    def endpoints(self) -> OAuthEndpoints:
        return self._ENDPOINTS

    async def refresh_token(self, refresh_token: str) -> Result[OAuthTokens]:
        result: Result[OAuthTokens] = Result.fail(
            ErrorCode.TOKEN_REFRESH_FAILED,
            "GitHub OAuth apps do not support refresh tokens",
        )
        self._record("refresh_token", result)
        return result

    async def _profile_from(
        self, payload: Any, access_token: str
    ) -> Result[OAuthProfile]:
        if not isinstance(payload, Mapping) or payload.get("id") is None:
            return Result.fail(ErrorCode.INVALID_RESPONSE, "GitHub user has no id")

        emails = await self._request(
            "GET",
            self.EMAILS_URL,
            failure=ErrorCode.PROFILE_FETCH_FAILED,
            headers=self._bearer(access_token),
        )
        if not emails:
            return Result.from_failure(emails.error)
        if not isinstance(emails.value, list):
            return Result.fail(ErrorCode.INVALID_RESPONSE, "Unexpected emails response")

        primary = next(
            (
                entry
                for entry in emails.value
                if isinstance(entry, Mapping) and entry.get("primary") is True
            ),
            None,
        )
        if primary is None or not primary.get("email"):
            return Result.fail(
                ErrorCode.PROFILE_FETCH_FAILED, "No primary email found for user"
            )

        return Result.ok(
            OAuthProfile(
                provider=self.provider,
                provider_id=str(payload["id"]),
                email=str(primary["email"]),
                email_verified=bool(primary.get("verified", False)),
                name=_str_or_none(payload.get("name") or payload.get("login")),
                picture=_str_or_none(payload.get("avatar_url")),
            )
        )


# ═══════════════════════════════════════════════════════════════
# MICROSOFT
# ═══════════════════════════════════════════════════════════════


class MicrosoftOAuthStrategy(OAuthStrategy):
    """Microsoft identity platform (Entra ID / personal accounts).

    The tenant segment of every endpoint comes from
    ``OAuthClientConfig.tenant``: ``common``, ``organizations``,
    ``consumers`` or a directory id.
    """

    provider: ClassVar[OAuthProvider] = OAuthProvider.MICROSOFT
    default_scopes: ClassVar[tuple[str, ...]] = (
        "openid",
        "email",
        "profile",
        "offline_access",
        "User.Read",
    )

    AUTHORITY = "https://login.microsoftonline.com"
    GRAPH_ME_URL = "https://graph.microsoft.com/v1.0/me"

    @property
    def endpoints(self) -> OAuthEndpoints:
        base = f"{self.AUTHORITY}/{self.config.tenant}/oauth2/v2.0"
        return OAuthEndpoints(
            authorization=f"{base}/authorize",
            token=f"{base}/token",
            userinfo=self.GRAPH_ME_URL,
        )

    def extra_authorization_params(self) -> dict[str, str]:
        return {"response_mode": "query"}

    def _refresh_body(self, data: dict[str, str]) -> dict[str, str]:
        # The v2.0 endpoint requires scopes on refresh as well
        return {**data, "scope": " ".join(self.scopes)}

    async def _profile_from(
        self, payload: Any, access_token: str
    ) -> Result[OAuthProfile]:
        if not isinstance(payload, Mapping) or not payload.get("id"):
            return Result.fail(ErrorCode.INVALID_RESPONSE, "Graph profile has no id")
        email = payload.get("mail") or payload.get("userPrincipalName")
        if not email:
            return Result.fail(
                ErrorCode.PROFILE_FETCH_FAILED, "Microsoft account has no email address"
            )
        return Result.ok(
            OAuthProfile(
                provider=self.provider,
                provider_id=str(payload["id"]),
                email=str(email),
                # Directory-managed addresses are verified by the tenant
                email_verified=True,
                name=_str_or_none(payload.get("displayName")),
                picture=None,
            )
        )


STRATEGY_CLASSES: dict[OAuthProvider, type[OAuthStrategy]] = {
    OAuthProvider.GOOGLE: GoogleOAuthStrategy,
    OAuthProvider.GITHUB: GitHubOAuthStrategy,
    OAuthProvider.MICROSOFT: MicrosoftOAuthStrategy,
}


__all__: list[str] = [
    "GoogleOAuthStrategy",
    "GitHubOAuthStrategy",
    "MicrosoftOAuthStrategy",
    "STRATEGY_CLASSES",
]
