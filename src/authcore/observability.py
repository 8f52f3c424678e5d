"""Prometheus counters for authentication outcomes.

Usage:
    ```python
    from authcore.observability import AuthCoreMetrics

    AuthCoreMetrics.record_two_factor("totp", "success")
    AuthCoreMetrics.record_lockout()
    ```

Metric recording is best effort: a failure to record is logged at debug
level and never propagates into the authentication flow.
"""

from __future__ import annotations

import logging
from typing import Any

from prometheus_client import Counter

_logger = logging.getLogger("authcore.observability")


class _AuthCoreMetricsRegistry:
    """Creates the Prometheus collectors on first use."""

    def __init__(self) -> None:
        self._two_factor: Any = None
        self._lockouts: Any = None
        self._webauthn: Any = None
        self._oauth: Any = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if self._initialized:
            return

        self._two_factor = Counter(
            "authcore_two_factor_verifications_total",
            "Two-factor verification attempts",
            ["kind", "result"],
        )
        self._lockouts = Counter(
            "authcore_account_lockouts_total",
            "Accounts locked after repeated TOTP failures",
        )
        self._webauthn = Counter(
            "authcore_webauthn_ceremonies_total",
            "Completed WebAuthn ceremonies",
            ["ceremony", "result"],
        )
        self._oauth = Counter(
            "authcore_oauth_requests_total",
            "Outbound OAuth provider requests",
            ["provider", "operation", "result"],
        )
        self._initialized = True

    @property
    def two_factor(self) -> Any:
        self._ensure_initialized()
        return self._two_factor

    @property
    def lockouts(self) -> Any:
        self._ensure_initialized()
        return self._lockouts

    @property
    def webauthn(self) -> Any:
        self._ensure_initialized()
        return self._webauthn

    @property
    def oauth(self) -> Any:
        self._ensure_initialized()
        return self._oauth


# Global registry instance
_registry = _AuthCoreMetricsRegistry()


class AuthCoreMetrics:
    """Static helpers for recording authentication metrics."""

    @staticmethod
    def record_two_factor(kind: str, result: str) -> None:
        """Record a TOTP or recovery-code verification.

        Args:
            kind: ``"totp"`` or ``"recovery"``.
            result: ``"success"``, ``"failure"`` or ``"locked"``.
        """
        try:
            _registry.two_factor.labels(kind=kind, result=result).inc()
        except Exception:  # noqa: BLE001
            _logger.debug("Failed to record two-factor metric")

    @staticmethod
    def record_lockout() -> None:
        try:
            _registry.lockouts.inc()
        except Exception:  # noqa: BLE001
            _logger.debug("Failed to record lockout metric")

    @staticmethod
    def record_webauthn(ceremony: str, result: str) -> None:
        """Record the outcome of a registration or authentication ceremony.

        Args:
            ceremony: ``"registration"`` or ``"authentication"``.
            result: Error code value, or ``"success"``.
        """
        try:
            _registry.webauthn.labels(ceremony=ceremony, result=result).inc()
        except Exception:  # noqa: BLE001
            _logger.debug("Failed to record webauthn metric")

    @staticmethod
    def record_oauth(provider: str, operation: str, result: str) -> None:
        try:
            _registry.oauth.labels(
                provider=provider, operation=operation, result=result
            ).inc()
        except Exception:  # noqa: BLE001
            _logger.debug("Failed to record oauth metric")


__all__: list[str] = ["AuthCoreMetrics"]
