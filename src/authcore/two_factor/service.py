"""Two-factor orchestrator: TOTP enrollment, verification and lockout.

State machine per user::

    Unenrolled ──start_enrollment──▶ Enrolling (nothing persisted)
    Enrolling ──complete_enrollment(valid token)──▶ Enrolled
    Enrolled ──3 wrong tokens──▶ Locked ──15 min──▶ Enrolled
    Enrolled/Locked ──disable──▶ Unenrolled
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Sequence
from datetime import datetime, timezone

from ..config import LockoutPolicy, RecoveryCodePolicy
from ..crypto import (
    CryptoPrimitives,
    generate_recovery_code_set,
    normalize_recovery_code,
)
from ..observability import AuthCoreMetrics
from ..result import ErrorCode, Result, catch_infrastructure_faults
from ..totp import TotpEngine
from .models import (
    CodeType,
    EnrollmentComplete,
    EnrollmentStart,
    RecoveryCodesRegenerated,
    TwoFactorCredential,
    TwoFactorStatus,
    VerificationOutcome,
)
from .ports import ITwoFactorCredentialStore

logger = logging.getLogger("authcore.two_factor")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TwoFactorService:
    """Coordinates the TOTP engine, crypto primitives and credential store.

    Every public method returns a :class:`~authcore.result.Result`;
    unexpected exceptions are reported as ``ErrorCode.INTERNAL``.

    Example:
        ```python
        service = TwoFactorService(
            store=SQLAlchemyTwoFactorStore(session_factory),
            engine=TotpEngine(TotpConfig(issuer="MyApp")),
            crypto=CryptoPrimitives.from_config(CryptoConfig.from_env()),
        )

        started = await service.start_enrollment("user-123", "alice@example.com")
        # user scans started.value.qr_code and submits a token
        done = await service.complete_enrollment(
            "user-123", "123456", started.value.secret
        )
        ```
    """

    def __init__(
        self,
        *,
        store: ITwoFactorCredentialStore,
        engine: TotpEngine,
        crypto: CryptoPrimitives,
        lockout: LockoutPolicy | None = None,
        recovery_codes: RecoveryCodePolicy | None = None,
        render_qr: bool = True,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Durable credential store.
            engine: TOTP engine.
            crypto: Encryption and hashing primitives.
            lockout: Failure threshold and lock duration (default 3 / 15 min).
            recovery_codes: Count and length of recovery codes (default 8 x 10).
            render_qr: Include a QR data URL in :meth:`start_enrollment`.
            clock: Returns the current aware UTC datetime; injectable for tests.
        """
        self._store = store
        self._engine = engine
        self._crypto = crypto
        self._lockout = lockout or LockoutPolicy()
        self._codes = recovery_codes or RecoveryCodePolicy()
        self._render_qr = render_qr
        self._clock = clock
        self._code_pattern = re.compile(rf"^[A-Z0-9]{{{self._codes.length}}}$")

    # ── Enrollment ───────────────────────────────────────────────

    @catch_infrastructure_faults("two_factor.start_enrollment")
    async def start_enrollment(
        self, user_id: str, label: str
    ) -> Result[EnrollmentStart]:
        """Generate a secret for the user to scan. Nothing is persisted."""
        if await self._store.get(user_id) is not None:
            return Result.fail(ErrorCode.ALREADY_ENROLLED, "2FA is already enabled")

        generated = self._engine.generate_secret(label, want_qr=self._render_qr)
        logger.debug("Started 2FA enrollment for user %s", user_id)
        return Result.ok(
            EnrollmentStart(
                secret=generated.secret,
                uri=generated.uri,
                qr_code=generated.qr_code,
                account_name=label,
            )
        )

    @catch_infrastructure_faults("two_factor.complete_enrollment")
    async def complete_enrollment(
        self, user_id: str, token: str, secret: str
    ) -> Result[EnrollmentComplete]:
        """Persist the enrollment once the user proves possession of *secret*.

        Returns:
            The plaintext recovery codes. They are not retrievable later.
        """
        if await self._store.get(user_id) is not None:
            return Result.fail(ErrorCode.ALREADY_ENROLLED, "2FA is already enabled")

        check = self._engine.verify_token(token, secret)
        if not check:
            return Result.from_failure(check.error)
        if not check.value.valid:
            return Result.fail(
                ErrorCode.VERIFICATION_FAILED, "Invalid verification code"
            )

        codes = generate_recovery_code_set(self._codes.count, self._codes.length)
        hashes = await self._hash_codes(codes)
        now = self._clock()
        credential = TwoFactorCredential(
            user_id=user_id,
            encrypted_secret=self._crypto.encrypt_secret(secret),
            recovery_code_hashes=tuple(hashes),
            enrolled_at=now,
        )
        if not await self._store.create(credential):
            return Result.fail(ErrorCode.ALREADY_ENROLLED, "2FA is already enabled")

        logger.info("2FA enrolled for user %s", user_id)
        return Result.ok(
            EnrollmentComplete(recovery_codes=tuple(codes), enrolled_at=now)
        )

    # ── Login-time verification ──────────────────────────────────

    @catch_infrastructure_faults("two_factor.verify_token")
    async def verify_token(
        self, user_id: str, token: str
    ) -> Result[VerificationOutcome]:
        """Verify a TOTP token, counting failures towards a lockout."""
        credential = await self._store.get(user_id)
        if credential is None:
            return Result.fail(ErrorCode.NOT_ENROLLED, "2FA is not enabled")

        now = self._clock()
        lockout = credential.lockout
        if lockout.is_locked(now):
            AuthCoreMetrics.record_two_factor(CodeType.TOTP.value, "locked")
            return self._locked(lockout.locked_until)

        secret = self._crypto.decrypt_secret(credential.encrypted_secret)
        check = self._engine.verify_token(token, secret)
        if not check:
            return Result.from_failure(check.error)

        if check.value.valid:
            # The read above may be stale; the store refuses to reset a lock
            # set by a concurrent failure
            if not await self._store.reset_failures(user_id, verified_at=now):
                current = await self._store.get(user_id)
                if current is None:
                    return Result.fail(ErrorCode.NOT_ENROLLED, "2FA is not enabled")
                AuthCoreMetrics.record_two_factor(CodeType.TOTP.value, "locked")
                return self._locked(current.locked_until)
            AuthCoreMetrics.record_two_factor(CodeType.TOTP.value, "success")
            return Result.ok(VerificationOutcome(valid=True, code_type=CodeType.TOTP))

        state = await self._store.register_failure(
            user_id,
            threshold=self._lockout.max_failed_attempts,
            lock_until=now + self._lockout.lock_duration,
        )
        if state is None:
            return Result.fail(ErrorCode.NOT_ENROLLED, "2FA is not enabled")

        AuthCoreMetrics.record_two_factor(CodeType.TOTP.value, "failure")
        if state.is_locked(now):
            logger.info(
                "Locked 2FA for user %s after %d failed attempts",
                user_id,
                state.failed_attempts,
            )
            AuthCoreMetrics.record_lockout()
            return self._locked(state.locked_until)

        remaining = max(self._lockout.max_failed_attempts - state.failed_attempts, 0)
        return Result.ok(
            VerificationOutcome(
                valid=False,
                code_type=CodeType.TOTP,
                remaining_attempts=remaining,
            )
        )

    @catch_infrastructure_faults("two_factor.verify_recovery_code")
    async def verify_recovery_code(
        self, user_id: str, code: str
    ) -> Result[VerificationOutcome]:
        """Verify and consume a single-use recovery code."""
        credential = await self._store.get(user_id)
        if credential is None:
            return Result.fail(ErrorCode.NOT_ENROLLED, "2FA is not enabled")

        normalized = normalize_recovery_code(code)
        if not self._code_pattern.match(normalized):
            return Result.fail(ErrorCode.INVALID_TOKEN, "Malformed recovery code")

        matched = await asyncio.to_thread(
            self._find_matching_hash, credential.recovery_code_hashes, normalized
        )
        # A concurrent request may consume the same hash first; only one wins
        if matched is None or not await self._store.consume_recovery_code(
            user_id, matched
        ):
            AuthCoreMetrics.record_two_factor(CodeType.RECOVERY.value, "failure")
            return Result.ok(
                VerificationOutcome(valid=False, code_type=CodeType.RECOVERY)
            )

        logger.info("Recovery code consumed for user %s", user_id)
        AuthCoreMetrics.record_two_factor(CodeType.RECOVERY.value, "success")
        return Result.ok(VerificationOutcome(valid=True, code_type=CodeType.RECOVERY))

    # ── Lifecycle ────────────────────────────────────────────────

    @catch_infrastructure_faults("two_factor.disable")
    async def disable(self, user_id: str) -> Result[bool]:
        """Remove the secret, recovery codes and lockout state."""
        if not await self._store.delete(user_id):
            return Result.fail(ErrorCode.NOT_ENROLLED, "2FA is not enabled")
        logger.info("2FA disabled for user %s", user_id)
        return Result.ok(True)

    @catch_infrastructure_faults("two_factor.regenerate_recovery_codes")
    async def regenerate_recovery_codes(
        self, user_id: str
    ) -> Result[RecoveryCodesRegenerated]:
        """Replace every recovery code; all previous codes stop working."""
        if await self._store.get(user_id) is None:
            return Result.fail(ErrorCode.NOT_ENROLLED, "2FA is not enabled")

        codes = generate_recovery_code_set(self._codes.count, self._codes.length)
        hashes = await self._hash_codes(codes)
        if not await self._store.replace_recovery_codes(user_id, hashes):
            return Result.fail(ErrorCode.NOT_ENROLLED, "2FA is not enabled")

        logger.info("Recovery codes regenerated for user %s", user_id)
        return Result.ok(
            RecoveryCodesRegenerated(
                recovery_codes=tuple(codes), regenerated_at=self._clock()
            )
        )

    @catch_infrastructure_faults("two_factor.get_status")
    async def get_status(self, user_id: str) -> Result[TwoFactorStatus]:
        credential = await self._store.get(user_id)
        if credential is None:
            return Result.ok(TwoFactorStatus(enabled=False))
        return Result.ok(
            TwoFactorStatus(
                enabled=True,
                enrolled_at=credential.enrolled_at,
                recovery_codes_remaining=len(credential.recovery_code_hashes),
                last_verified_at=credential.last_verified_at,
            )
        )

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def _locked(locked_until: datetime | None) -> Result[VerificationOutcome]:
        return Result.fail(
            ErrorCode.ACCOUNT_LOCKED,
            "Too many failed attempts, try again later",
            locked_until=locked_until,
        )

    async def _hash_codes(self, codes: Sequence[str]) -> list[str]:
        # bcrypt is CPU bound; keep it off the event loop
        return await asyncio.to_thread(
            lambda: [self._crypto.hash_secret(code) for code in codes]
        )

    def _find_matching_hash(self, hashes: Sequence[str], code: str) -> str | None:
        # Salted hashes cannot be indexed, so every hash is checked in turn
        for hashed in hashes:
            if self._crypto.verify_secret(hashed, code):
                return hashed
        return None


__all__: list[str] = ["TwoFactorService"]
