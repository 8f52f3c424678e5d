"""Configuration objects for authcore services.

All configuration is carried by frozen dataclasses validated on
construction. Nothing here reads global state except
:meth:`CryptoConfig.from_env`.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Literal

from .exceptions import ConfigurationError

MASTER_KEY_ENV = "AUTHCORE_MASTER_KEY"
BCRYPT_ROUNDS_ENV = "AUTHCORE_BCRYPT_ROUNDS"

TotpAlgorithm = Literal["SHA1", "SHA256", "SHA512"]


@dataclass(frozen=True)
class CryptoConfig:
    """Key material and cost factors for the cryptographic primitives.

    Attributes:
        master_key: Secret from which the AES-256 key is derived (SHA-256).
        bcrypt_rounds: bcrypt cost factor, 2^rounds iterations.
    """

    master_key: str = field(repr=False)
    bcrypt_rounds: int = 14

    def __post_init__(self) -> None:
        if not self.master_key:
            raise ConfigurationError("master_key must not be empty")
        if not 4 <= self.bcrypt_rounds <= 31:
            raise ConfigurationError("bcrypt_rounds must be between 4 and 31")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> CryptoConfig:
        """Build the config from ``AUTHCORE_MASTER_KEY`` / ``AUTHCORE_BCRYPT_ROUNDS``.

        Raises:
            ConfigurationError: If the master key is missing or rounds is not an int.
        """
        env = os.environ if environ is None else environ
        master_key = env.get(MASTER_KEY_ENV, "")
        if not master_key:
            raise ConfigurationError(f"{MASTER_KEY_ENV} is not set")
        raw_rounds = env.get(BCRYPT_ROUNDS_ENV, "14")
        try:
            rounds = int(raw_rounds)
        except ValueError as e:
            raise ConfigurationError(
                f"{BCRYPT_ROUNDS_ENV} must be an integer, got {raw_rounds!r}"
            ) from e
        return cls(master_key=master_key, bcrypt_rounds=rounds)


@dataclass(frozen=True)
class TotpConfig:
    """RFC 6238 parameters.

    Attributes:
        issuer: Shown by authenticator apps next to the account label.
        digits: Token length.
        period: Time step in seconds.
        algorithm: HMAC digest name.
        window: Accepted drift in time steps on either side of "now".
    """

    issuer: str = "AuthCore"
    digits: int = 6
    period: int = 30
    algorithm: TotpAlgorithm = "SHA1"
    window: int = 1

    def __post_init__(self) -> None:
        if not self.issuer:
            raise ConfigurationError("issuer must not be empty")
        if not 6 <= self.digits <= 8:
            raise ConfigurationError("digits must be between 6 and 8")
        if self.period <= 0:
            raise ConfigurationError("period must be positive")
        if self.algorithm not in ("SHA1", "SHA256", "SHA512"):
            raise ConfigurationError(f"Unsupported TOTP algorithm: {self.algorithm}")
        if self.window < 0:
            raise ConfigurationError("window must not be negative")


@dataclass(frozen=True)
class LockoutPolicy:
    """Brute-force protection for TOTP verification."""

    max_failed_attempts: int = 3
    lock_duration: timedelta = timedelta(minutes=15)

    def __post_init__(self) -> None:
        if self.max_failed_attempts < 1:
            raise ConfigurationError("max_failed_attempts must be at least 1")
        if self.lock_duration <= timedelta(0):
            raise ConfigurationError("lock_duration must be positive")


@dataclass(frozen=True)
class RecoveryCodePolicy:
    """Shape of the recovery code set handed out on enrollment."""

    count: int = 8
    length: int = 10

    def __post_init__(self) -> None:
        if self.count < 1:
            raise ConfigurationError("count must be at least 1")
        if self.length < 8:
            raise ConfigurationError("length must be at least 8")


@dataclass(frozen=True)
class WebAuthnConfig:
    """WebAuthn ceremony parameters.

    Attributes:
        max_devices: Maximum registered authenticators per user.
        challenge_ttl: Seconds a challenge stays in the ephemeral store.
        timeout_ms: Ceremony timeout advertised to the browser.
        default_device_name: Used when registration supplies no name.
        allow_counterless_authenticators: Accept assertions where both the
            stored and the reported signature counter are zero. Such
            authenticators do not implement counters, so replay detection
            is unavailable for them. Disable to reject them outright.
        supported_algorithms: COSE algorithm identifiers offered at registration.
    """

    max_devices: int = 5
    challenge_ttl: int = 300
    timeout_ms: int = 60_000
    default_device_name: str = "Unknown Device"
    allow_counterless_authenticators: bool = True
    supported_algorithms: tuple[int, ...] = (-7, -257)

    def __post_init__(self) -> None:
        if self.max_devices < 1:
            raise ConfigurationError("max_devices must be at least 1")
        if self.challenge_ttl <= 0:
            raise ConfigurationError("challenge_ttl must be positive")
        if self.timeout_ms <= 0:
            raise ConfigurationError("timeout_ms must be positive")
        if not self.supported_algorithms:
            raise ConfigurationError("supported_algorithms must not be empty")


@dataclass(frozen=True)
class OAuthClientConfig:
    """Client registration for one OAuth2 provider.

    Attributes:
        client_id: OAuth2 client ID.
        client_secret: OAuth2 client secret.
        redirect_uri: Callback URL registered with the provider.
        scopes: Requested scopes; empty means the strategy's defaults.
        tenant: Directory tenant, used by Microsoft only.
        http_timeout: Seconds before any provider HTTP call is abandoned.
    """

    client_id: str
    client_secret: str = field(repr=False)
    redirect_uri: str
    scopes: tuple[str, ...] = ()
    tenant: str = "common"
    http_timeout: float = 10.0

    def __post_init__(self) -> None:
        if not self.client_id:
            raise ConfigurationError("client_id must not be empty")
        if not self.redirect_uri:
            raise ConfigurationError("redirect_uri must not be empty")
        if self.http_timeout <= 0:
            raise ConfigurationError("http_timeout must be positive")


__all__: list[str] = [
    "CryptoConfig",
    "TotpConfig",
    "TotpAlgorithm",
    "LockoutPolicy",
    "RecoveryCodePolicy",
    "WebAuthnConfig",
    "OAuthClientConfig",
    "MASTER_KEY_ENV",
    "BCRYPT_ROUNDS_ENV",
]
