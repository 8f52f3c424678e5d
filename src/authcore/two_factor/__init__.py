"""Two-factor authentication: TOTP enrollment, lockout and recovery codes."""

from __future__ import annotations

from .memory import InMemoryTwoFactorStore
from .models import (
    CodeType,
    EnrollmentComplete,
    EnrollmentStart,
    LockoutState,
    RecoveryCodesRegenerated,
    TwoFactorCredential,
    TwoFactorStatus,
    VerificationOutcome,
)
from .ports import ITwoFactorCredentialStore
from .service import TwoFactorService

__all__: list[str] = [
    "TwoFactorService",
    "ITwoFactorCredentialStore",
    "InMemoryTwoFactorStore",
    "CodeType",
    "EnrollmentComplete",
    "EnrollmentStart",
    "LockoutState",
    "RecoveryCodesRegenerated",
    "TwoFactorCredential",
    "TwoFactorStatus",
    "VerificationOutcome",
]
