"""Tests for the Prometheus counters."""

from __future__ import annotations

from unittest.mock import patch

from prometheus_client import REGISTRY

from authcore.observability import AuthCoreMetrics


def _sample(name: str, labels: dict[str, str] | None = None) -> float:
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


class TestAuthCoreMetrics:
    def test_record_two_factor(self) -> None:
        labels = {"kind": "totp", "result": "success"}
        before = _sample("authcore_two_factor_verifications_total", labels)

        AuthCoreMetrics.record_two_factor("totp", "success")

        assert _sample("authcore_two_factor_verifications_total", labels) == before + 1

    def test_record_lockout(self) -> None:
        AuthCoreMetrics.record_lockout()
        before = _sample("authcore_account_lockouts_total")

        AuthCoreMetrics.record_lockout()

        assert _sample("authcore_account_lockouts_total") == before + 1

    def test_record_webauthn(self) -> None:
        labels = {"ceremony": "registration", "result": "success"}
        before = _sample("authcore_webauthn_ceremonies_total", labels)

        AuthCoreMetrics.record_webauthn("registration", "success")

        assert _sample("authcore_webauthn_ceremonies_total", labels) == before + 1

    def test_record_oauth(self) -> None:
        labels = {
            "provider": "github",
            "operation": "fetch_profile",
            "result": "success",
        }
        before = _sample("authcore_oauth_requests_total", labels)

        AuthCoreMetrics.record_oauth("github", "fetch_profile", "success")

        assert _sample("authcore_oauth_requests_total", labels) == before + 1

    def test_recording_failure_never_propagates(self) -> None:
        with patch(
            "authcore.observability._registry._ensure_initialized",
            side_effect=RuntimeError("registry broken"),
        ):
            AuthCoreMetrics.record_two_factor("totp", "failure")
            AuthCoreMetrics.record_lockout()
            AuthCoreMetrics.record_webauthn("authentication", "success")
            AuthCoreMetrics.record_oauth("google", "exchange_code", "success")
