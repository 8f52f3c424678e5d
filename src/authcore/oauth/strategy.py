"""OAuth2 authorization-code strategy with mandatory PKCE.

Each provider subclass supplies its endpoints, default scopes and the
mapping of its profile payload; the base class owns URL construction,
HTTP calls with bounded timeouts and the normalization of every failure
into a :class:`~authcore.result.Result`.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from typing import Any, ClassVar

import httpx

from ..config import OAuthClientConfig
from ..crypto.pkce import is_valid_verifier
from ..observability import AuthCoreMetrics
from ..result import ErrorCode, Result
from .models import OAuthEndpoints, OAuthProfile, OAuthProvider, OAuthTokens
from .utils import build_url, parse_oauth_error_response

logger = logging.getLogger("authcore.oauth")

PKCE_METHOD = "S256"


class OAuthStrategy(ABC):
    """One OAuth2 provider behind a fixed operation contract.

    Example:
        ```python
        strategy = GitHubOAuthStrategy(
            OAuthClientConfig(
                client_id="...",
                client_secret="...",
                redirect_uri="https://app.example.com/auth/github/callback",
            )
        )
        pkce = create_pkce_pair()
        url = strategy.build_authorization_url(
            state=generate_state(), code_challenge=pkce.code_challenge
        )
        tokens = await strategy.exchange_code(
            code=callback_code, code_verifier=pkce.code_verifier
        )
        ```
    """

    provider: ClassVar[OAuthProvider]
    default_scopes: ClassVar[tuple[str, ...]] = ()

    def __init__(
        self,
        config: OAuthClientConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the strategy.

        Args:
            config: Client registration with the provider.
            http_client: Shared client; when omitted a short-lived client
                with ``config.http_timeout`` is opened per call.
        """
        self.config = config
        self._http_client = http_client

    @property
    @abstractmethod
    def endpoints(self) -> OAuthEndpoints:
        ...

    @property
    def scopes(self) -> tuple[str, ...]:
        return self.config.scopes or self.default_scopes

    def extra_authorization_params(self) -> dict[str, str]:
        """Provider-specific query parameters for the authorize URL."""
        return {}

    # ── Authorization ────────────────────────────────────────────

    def build_authorization_url(
        self,
        *,
        state: str,
        code_challenge: str,
        scopes: tuple[str, ...] | None = None,
        redirect_uri: str | None = None,
    ) -> Result[str]:
        """Build the URL to redirect the browser to.

        Args:
            state: Anti-CSRF value echoed back on the callback.
            code_challenge: S256 PKCE challenge; always required.
            scopes: Override the configured scopes.
            redirect_uri: Override the configured redirect URI.
        """
        if not state:
            return Result.fail(
                ErrorCode.AUTH_URL_GENERATION_FAILED, "state is required"
            )
        if not code_challenge:
            return Result.fail(
                ErrorCode.AUTH_URL_GENERATION_FAILED, "PKCE code_challenge is required"
            )

        params: dict[str, Any] = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": redirect_uri or self.config.redirect_uri,
            "scope": list(scopes or self.scopes),
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": PKCE_METHOD,
        }
        params.update(self.extra_authorization_params())
        return Result.ok(build_url(self.endpoints.authorization, params))

    async def exchange_code(
        self,
        *,
        code: str,
        code_verifier: str,
        redirect_uri: str | None = None,
    ) -> Result[OAuthTokens]:
        """Exchange an authorization code, proving possession of the verifier."""
        if not code:
            return Result.fail(
                ErrorCode.INVALID_REQUEST, "Authorization code is required"
            )
        if not is_valid_verifier(code_verifier):
            return Result.fail(ErrorCode.INVALID_REQUEST, "Invalid PKCE code_verifier")

        data = {
            "grant_type": "authorization_code",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "code": code,
            "redirect_uri": redirect_uri or self.config.redirect_uri,
            "code_verifier": code_verifier,
        }
        payload = await self._request(
            "POST",
            self.endpoints.token,
            failure=ErrorCode.TOKEN_EXCHANGE_FAILED,
            data=data,
        )
        result = self._parse_tokens(payload, ErrorCode.TOKEN_EXCHANGE_FAILED)
        self._record("exchange_code", result)
        return result

    async def refresh_token(self, refresh_token: str) -> Result[OAuthTokens]:
        data = {
            "grant_type": "refresh_token",
            "client_id": self.config.client_id,
            "client_secret": self.config.client_secret,
            "refresh_token": refresh_token,
        }
        payload = await self._request(
            "POST",
            self.endpoints.token,
            failure=ErrorCode.TOKEN_REFRESH_FAILED,
            data=self._refresh_body(data),
        )
        result = self._parse_tokens(
            payload, ErrorCode.TOKEN_REFRESH_FAILED, previous_refresh=refresh_token
        )
        self._record("refresh_token", result)
        return result

    async def fetch_profile(self, access_token: str) -> Result[OAuthProfile]:
        payload = await self._request(
            "GET",
            self.endpoints.userinfo,
            failure=ErrorCode.PROFILE_FETCH_FAILED,
            headers=self._bearer(access_token),
        )
        if not payload:
            result: Result[OAuthProfile] = Result.from_failure(payload.error)
        else:
            result = await self._profile_from(payload.value, access_token)
        self._record("fetch_profile", result)
        return result

    @abstractmethod
    async def _profile_from(
        self, payload: Any, access_token: str
    ) -> Result[OAuthProfile]:
        """Map the userinfo payload onto :class:`OAuthProfile`."""

    def _refresh_body(self, data: dict[str, str]) -> dict[str, str]:
        return data

    # ── HTTP plumbing ────────────────────────────────────────────

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient(timeout=self.config.http_timeout) as client:
                yield client

    @staticmethod
    def _bearer(access_token: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        failure: ErrorCode,
        data: Mapping[str, str] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[Any]:
        """Perform one provider call and decode its JSON body.

        Transport problems map to ``NETWORK_ERROR``, non-2xx responses to
        *failure* with the provider's parsed error, undecodable bodies to
        ``INVALID_RESPONSE``.
        """
        request_headers = {"Accept": "application/json", **(headers or {})}
        try:
            async with self._http() as client:
                response = await client.request(
                    method,
                    url,
                    data=data,
                    headers=request_headers,
                    timeout=self.config.http_timeout,
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            info = parse_oauth_error_response(_body_of(e.response))
            logger.warning(
                "%s %s request failed: HTTP %d (%s)",
                self.provider.value,
                failure.value,
                e.response.status_code,
                info.error,
            )
            return Result.fail(
                failure,
                info.description or info.error,
                status_code=e.response.status_code,
                error=info.error,
            )
        except httpx.HTTPError as e:
            logger.warning(
                "%s request to %s failed: %s",
                self.provider.value,
                url,
                type(e).__name__,
            )
            return Result.fail(ErrorCode.NETWORK_ERROR, str(e) or type(e).__name__)

        try:
            return Result.ok(response.json())
        except ValueError:
            return Result.fail(
                ErrorCode.INVALID_RESPONSE, "Provider returned a non-JSON body"
            )

    def _parse_tokens(
        self,
        payload: Result[Any],
        failure: ErrorCode,
        *,
        previous_refresh: str | None = None,
    ) -> Result[OAuthTokens]:
        if not payload:
            return Result.from_failure(payload.error)

        body = payload.value
        if not isinstance(body, Mapping):
            return Result.fail(ErrorCode.INVALID_RESPONSE, "Unexpected token response")
        # Some providers (GitHub) report errors with HTTP 200
        if body.get("error"):
            info = parse_oauth_error_response(body)
            return Result.fail(
                failure, info.description or info.error, error=info.error
            )

        access_token = body.get("access_token")
        if not isinstance(access_token, str) or not access_token:
            return Result.fail(
                ErrorCode.INVALID_RESPONSE, "Token response has no access_token"
            )

        try:
            raw_expiry = body.get("expires_in")
            expires_in = int(raw_expiry) if raw_expiry is not None else None
        except (TypeError, ValueError):
            expires_in = None
        return Result.ok(
            OAuthTokens(
                access_token=access_token,
                token_type=body.get("token_type") or "Bearer",
                refresh_token=body.get("refresh_token") or previous_refresh,
                expires_in=expires_in,
                scope=body.get("scope"),
            )
        )

    def _record(self, operation: str, result: Result[Any]) -> None:
        outcome = "success" if result else result.error.code.value
        AuthCoreMetrics.record_oauth(self.provider.value, operation, outcome)


def _body_of(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


__all__: list[str] = ["OAuthStrategy", "PKCE_METHOD"]
