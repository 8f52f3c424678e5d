"""Two-factor data model and operation outcomes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class CodeType(str, Enum):
    """Kind of code a verification was performed with."""

    TOTP = "totp"
    RECOVERY = "recovery"


@dataclass(frozen=True)
class LockoutState:
    """Brute-force counter attached to a TOTP credential.

    Attributes:
        failed_attempts: Consecutive wrong TOTP submissions.
        locked_until: Verification is refused until this instant.
    """

    failed_attempts: int = 0
    locked_until: datetime | None = None

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now


@dataclass(frozen=True)
class TwoFactorCredential:
    """Persisted TOTP enrollment of one user.

    The secret is stored encrypted and recovery codes only as
    independently salted hashes, so nothing here can be shown back to
    the user.
    """

    user_id: str
    encrypted_secret: str = field(repr=False)
    recovery_code_hashes: tuple[str, ...] = field(repr=False)
    enrolled_at: datetime
    failed_attempts: int = 0
    locked_until: datetime | None = None
    last_verified_at: datetime | None = None

    @property
    def lockout(self) -> LockoutState:
        return LockoutState(
            failed_attempts=self.failed_attempts,
            locked_until=self.locked_until,
        )


# ═══════════════════════════════════════════════════════════════
# OPERATION OUTCOMES
# ═══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class EnrollmentStart:
    """Material for the user to configure an authenticator app.

    Nothing is persisted until :class:`EnrollmentComplete`.
    """

    secret: str = field(repr=False)
    uri: str
    qr_code: str | None
    account_name: str


@dataclass(frozen=True)
class EnrollmentComplete:
    """Plaintext recovery codes, shown to the user exactly once."""

    recovery_codes: tuple[str, ...] = field(repr=False)
    enrolled_at: datetime


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of a well-formed TOTP or recovery-code submission."""

    valid: bool
    code_type: CodeType
    remaining_attempts: int | None = None
    locked_until: datetime | None = None


@dataclass(frozen=True)
class TwoFactorStatus:
    """Public view of a user's two-factor state. Never carries secrets."""

    enabled: bool
    enrolled_at: datetime | None = None
    recovery_codes_remaining: int = 0
    last_verified_at: datetime | None = None


@dataclass(frozen=True)
class RecoveryCodesRegenerated:
    recovery_codes: tuple[str, ...] = field(repr=False)
    regenerated_at: datetime


__all__: list[str] = [
    "CodeType",
    "LockoutState",
    "TwoFactorCredential",
    "EnrollmentStart",
    "EnrollmentComplete",
    "VerificationOutcome",
    "TwoFactorStatus",
    "RecoveryCodesRegenerated",
]
