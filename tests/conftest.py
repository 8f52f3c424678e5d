"""Shared fixtures: cheap crypto, controllable clocks, in-memory stores."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from authcore.challenges import InMemoryChallengeStore
from authcore.crypto import CryptoPrimitives, SecretCipher, SecretHasher
from authcore.two_factor import InMemoryTwoFactorStore
from authcore.webauthn import (
    InMemoryWebAuthnStore,
    VerifiedAuthentication,
    VerifiedRegistration,
)

# RFC 6238 appendix B seed ("12345678901234567890") in base32
RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"
# 2009-03-18T01:58:29Z; the RFC's SHA1 token for this instant is 081804
RFC_TIME = 1111111109


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def timestamp(self) -> float:
        return self.current.timestamp()

    def advance(self, **kwargs: Any) -> None:
        self.current += timedelta(**kwargs)


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


class FakeVerifier:
    """Stands in for py_webauthn; returns canned results or raises."""

    def __init__(self) -> None:
        self.registration: VerifiedRegistration | None = None
        self.authentication: VerifiedAuthentication | None = None
        self.error: Exception | None = None
        self.calls: list[dict[str, Any]] = []

    def verify_registration(
        self,
        response: Any,
        *,
        expected_challenge: str,
        expected_origin: str,
        expected_rp_id: str,
    ) -> VerifiedRegistration:
        self.calls.append(
            {
                "challenge": expected_challenge,
                "origin": expected_origin,
                "rp_id": expected_rp_id,
            }
        )
        if self.error is not None:
            raise self.error
        assert self.registration is not None
        return self.registration

    def verify_authentication(
        self,
        response: Any,
        *,
        expected_challenge: str,
        expected_origin: str,
        expected_rp_id: str,
        public_key: str,
    ) -> VerifiedAuthentication:
        self.calls.append(
            {
                "challenge": expected_challenge,
                "origin": expected_origin,
                "rp_id": expected_rp_id,
                "public_key": public_key,
            }
        )
        if self.error is not None:
            raise self.error
        assert self.authentication is not None
        return self.authentication


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.fromtimestamp(RFC_TIME, tz=timezone.utc))


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def crypto() -> CryptoPrimitives:
    """Crypto with the minimum bcrypt cost so tests stay fast."""
    return CryptoPrimitives(SecretCipher("test-master-key"), SecretHasher(rounds=4))


@pytest.fixture
def two_factor_store() -> InMemoryTwoFactorStore:
    return InMemoryTwoFactorStore()


@pytest.fixture
def webauthn_store() -> InMemoryWebAuthnStore:
    return InMemoryWebAuthnStore()


@pytest.fixture
def challenge_store(monotonic: FakeMonotonic) -> InMemoryChallengeStore:
    return InMemoryChallengeStore(clock=monotonic)


@pytest.fixture
def verifier() -> FakeVerifier:
    return FakeVerifier()


@pytest.fixture
def rfc_secret() -> str:
    return RFC_SECRET
