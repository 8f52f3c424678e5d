"""TOTP (Time-based One-Time Password) engine, RFC 6238.

Works with any TOTP-compatible authenticator app (Google Authenticator,
Microsoft Authenticator, Authy, 1Password, FreeOTP...).

Uses pyotp for the HOTP/TOTP arithmetic. The engine itself is stateless:
it never stores secrets, that is the two-factor orchestrator's job.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import quote

import pyotp

from ..config import TotpConfig
from ..result import ErrorCode, Result
from .qr import render_qr_data_url

logger = logging.getLogger("authcore.totp")

BASE32_SECRET = re.compile(r"^[A-Z2-7]+=*$")
SECRET_LENGTH = 32  # base32 characters, 160 bits

_DIGESTS = {
    "SHA1": hashlib.sha1,
    "SHA256": hashlib.sha256,
    "SHA512": hashlib.sha512,
}


@dataclass(frozen=True)
class TotpSecret:
    """Freshly generated TOTP secret, not yet persisted anywhere.

    Attributes:
        secret: Base32-encoded secret.
        uri: otpauth:// URI for authenticator apps.
        qr_code: PNG data URL of the URI, when requested.
    """

    secret: str = field(repr=False)
    uri: str
    qr_code: str | None = None


@dataclass(frozen=True)
class TokenCheck:
    """Outcome of checking a well-formed token.

    Attributes:
        valid: True if the token matched a step inside the window.
        delta: Matched step offset relative to now (``-1``, ``0``, ``1``...).
    """

    valid: bool
    delta: int | None = None


class TotpEngine:
    """Generates secrets and verifies tokens with drift tolerance.

    Example:
        ```python
        engine = TotpEngine(TotpConfig(issuer="MyApp"))

        generated = engine.generate_secret("alice@example.com", want_qr=True)
        # show generated.qr_code to the user

        check = engine.verify_token("123456", generated.secret)
        if check and check.value.valid:
            ...
        ```
    """

    def __init__(
        self,
        config: TotpConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the engine.

        Args:
            config: RFC 6238 parameters (defaults: 6 digits, 30s, SHA1, window 1).
            clock: Returns the current UNIX time; injectable for tests.
        """
        self.config = config or TotpConfig()
        self._clock = clock
        self._token_pattern = re.compile(rf"^\d{{{self.config.digits}}}$")

    # ── Secrets ──────────────────────────────────────────────────

    def generate_secret(self, label: str, *, want_qr: bool = False) -> TotpSecret:
        """Generate a 160-bit secret and its provisioning URI.

        Args:
            label: Account label shown in the authenticator app.
            want_qr: Also render the URI as a PNG data URL.
        """
        secret = pyotp.random_base32(length=SECRET_LENGTH)
        uri = self.build_uri(secret, label)
        qr_code = render_qr_data_url(uri) if want_qr else None
        logger.debug("Generated TOTP secret for label %s", label)
        return TotpSecret(secret=secret, uri=uri, qr_code=qr_code)

    def build_uri(self, secret: str, label: str) -> str:
        """Build ``otpauth://totp/{issuer}:{label}?secret=...``.

        All parameters are always present, including the defaults, so
        apps never have to guess algorithm, digits or period.
        """
        issuer = self.config.issuer
        path = f"{quote(issuer, safe='')}:{quote(label, safe='@')}"
        query = "&".join(
            [
                f"secret={secret}",
                f"issuer={quote(issuer, safe='')}",
                f"algorithm={self.config.algorithm}",
                f"digits={self.config.digits}",
                f"period={self.config.period}",
            ]
        )
        return f"otpauth://totp/{path}?{query}"

    @staticmethod
    def is_valid_secret(secret: str) -> bool:
        return bool(secret) and BASE32_SECRET.match(secret) is not None

    def is_valid_token_format(self, token: str) -> bool:
        return self._token_pattern.match(token) is not None

    # ── Tokens ───────────────────────────────────────────────────

    def _totp(self, secret: str) -> pyotp.TOTP:
        return pyotp.TOTP(
            secret,
            digits=self.config.digits,
            digest=_DIGESTS[self.config.algorithm],
            interval=self.config.period,
        )

    def generate_token(self, secret: str, *, offset: int = 0) -> Result[str]:
        """Return the token for the current time step.

        Args:
            secret: Base32 secret.
            offset: Step offset from now; ``-1`` gives the previous period.

        Returns:
            The token, or ``INVALID_SECRET`` if *secret* is not base32.
        """
        if not self.is_valid_secret(secret):
            return Result.fail(ErrorCode.INVALID_SECRET, "Secret is not valid base32")
        try:
            token = self._totp(secret).at(int(self._clock()), counter_offset=offset)
        except ValueError:
            # binascii.Error (bad padding) is a ValueError subclass
            return Result.fail(ErrorCode.INVALID_SECRET, "Secret is not valid base32")
        return Result.ok(token)

    def verify_token(self, token: str, secret: str) -> Result[TokenCheck]:
        """Check *token* against every step in ``[now - W, now + W]``.

        A well-formed token that matches nothing is an ordinary negative
        result (``valid=False``). Malformed input is a failure.

        Returns:
            ``TokenCheck`` on success; ``INVALID_TOKEN`` or ``INVALID_SECRET``.
        """
        if not self.is_valid_token_format(token):
            return Result.fail(
                ErrorCode.INVALID_TOKEN,
                f"Token must be {self.config.digits} digits",
            )
        if not self.is_valid_secret(secret):
            return Result.fail(ErrorCode.INVALID_SECRET, "Secret is not valid base32")

        try:
            totp = self._totp(secret)
            now = int(self._clock())
            # Current step first so an on-time token always reports delta 0
            for delta in self._window_offsets():
                if hmac.compare_digest(totp.at(now, counter_offset=delta), token):
                    return Result.ok(TokenCheck(valid=True, delta=delta))
        except ValueError:
            return Result.fail(ErrorCode.INVALID_SECRET, "Secret is not valid base32")
        return Result.ok(TokenCheck(valid=False))

    def _window_offsets(self) -> list[int]:
        offsets = [0]
        for step in range(1, self.config.window + 1):
            offsets.extend((-step, step))
        return offsets


__all__: list[str] = [
    "TotpEngine",
    "TotpSecret",
    "TokenCheck",
    "BASE32_SECRET",
    "SECRET_LENGTH",
]
