"""Tests for TwoFactorService: enrollment, lockout and recovery codes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import timedelta

import pytest
import pytest_asyncio

from authcore.config import LockoutPolicy
from authcore.result import ErrorCode
from authcore.totp import TotpEngine
from authcore.two_factor import (
    CodeType,
    InMemoryTwoFactorStore,
    TwoFactorCredential,
    TwoFactorService,
)


@pytest.fixture
def engine(clock) -> TotpEngine:
    return TotpEngine(clock=clock.timestamp)


@pytest.fixture
def service(two_factor_store, engine, crypto, clock) -> TwoFactorService:
    return TwoFactorService(
        store=two_factor_store,
        engine=engine,
        crypto=crypto,
        render_qr=False,
        clock=clock,
    )


@pytest_asyncio.fixture
async def enrolled(service: TwoFactorService, engine: TotpEngine, rfc_secret: str):
    """Enroll ``user-1`` with the RFC secret; yields the recovery codes."""
    token = engine.generate_token(rfc_secret).value
    result = await service.complete_enrollment("user-1", token, rfc_secret)
    assert result, result
    return list(result.value.recovery_codes)


def _wrong_token(engine: TotpEngine, secret: str) -> str:
    # Five steps ahead is outside the default window of one
    return engine.generate_token(secret, offset=5).value


@pytest.mark.asyncio
class TestEnrollment:
    async def test_start_returns_secret_and_uri(self, service: TwoFactorService):
        result = await service.start_enrollment("user-1", "alice@example.com")

        assert result
        assert result.value.account_name == "alice@example.com"
        assert result.value.uri.startswith("otpauth://totp/AuthCore:alice@example.com")
        assert f"secret={result.value.secret}" in result.value.uri
        assert result.value.qr_code is None

    async def test_start_persists_nothing(self, service, two_factor_store):
        await service.start_enrollment("user-1", "alice@example.com")
        assert await two_factor_store.get("user-1") is None

    async def test_start_renders_qr_by_default(
        self, two_factor_store, engine, crypto
    ):
        service = TwoFactorService(store=two_factor_store, engine=engine, crypto=crypto)
        result = await service.start_enrollment("user-1", "alice@example.com")
        assert result.value.qr_code.startswith("data:image/png;base64,")

    async def test_complete_stores_encrypted_secret_and_hashed_codes(
        self, service, two_factor_store, crypto, enrolled, rfc_secret, clock
    ):
        credential = await two_factor_store.get("user-1")

        assert credential.encrypted_secret != rfc_secret
        assert crypto.decrypt_secret(credential.encrypted_secret) == rfc_secret
        assert len(enrolled) == 8
        assert all(len(code) == 10 for code in enrolled)
        assert len(credential.recovery_code_hashes) == 8
        assert not set(enrolled) & set(credential.recovery_code_hashes)
        assert credential.enrolled_at == clock()
        assert credential.failed_attempts == 0

    async def test_complete_with_wrong_token(self, service, engine, rfc_secret):
        result = await service.complete_enrollment(
            "user-1", _wrong_token(engine, rfc_secret), rfc_secret
        )
        assert result.code is ErrorCode.VERIFICATION_FAILED

    async def test_complete_with_malformed_token(self, service, rfc_secret):
        result = await service.complete_enrollment("user-1", "12ab", rfc_secret)
        assert result.code is ErrorCode.INVALID_TOKEN

    async def test_complete_with_invalid_secret(self, service):
        result = await service.complete_enrollment("user-1", "123456", "bad secret")
        assert result.code is ErrorCode.INVALID_SECRET

    async def test_already_enrolled(self, service, engine, enrolled, rfc_secret):
        token = engine.generate_token(rfc_secret).value

        start = await service.start_enrollment("user-1", "alice@example.com")
        complete = await service.complete_enrollment("user-1", token, rfc_secret)

        assert start.code is ErrorCode.ALREADY_ENROLLED
        assert complete.code is ErrorCode.ALREADY_ENROLLED


@pytest.mark.asyncio
class TestVerifyToken:
    async def test_not_enrolled(self, service):
        result = await service.verify_token("nobody", "123456")
        assert result.code is ErrorCode.NOT_ENROLLED

    async def test_valid_token(self, service, engine, enrolled, rfc_secret, clock):
        result = await service.verify_token(
            "user-1", engine.generate_token(rfc_secret).value
        )

        assert result.value.valid
        assert result.value.code_type is CodeType.TOTP
        status = await service.get_status("user-1")
        assert status.value.last_verified_at == clock()

    async def test_wrong_token_reports_remaining_attempts(
        self, service, engine, enrolled, rfc_secret
    ):
        wrong = _wrong_token(engine, rfc_secret)

        first = await service.verify_token("user-1", wrong)
        second = await service.verify_token("user-1", wrong)

        assert not first.value.valid
        assert first.value.remaining_attempts == 2
        assert second.value.remaining_attempts == 1

    async def test_third_failure_locks(
        self, service, engine, enrolled, rfc_secret, clock, two_factor_store
    ):
        wrong = _wrong_token(engine, rfc_secret)
        for _ in range(2):
            await service.verify_token("user-1", wrong)

        third = await service.verify_token("user-1", wrong)

        assert third.code is ErrorCode.ACCOUNT_LOCKED
        assert third.error.details["locked_until"] == clock() + timedelta(minutes=15)
        credential = await two_factor_store.get("user-1")
        assert credential.failed_attempts == 3

    async def test_locked_account_rejects_correct_token(
        self, service, engine, enrolled, rfc_secret
    ):
        wrong = _wrong_token(engine, rfc_secret)
        for _ in range(3):
            await service.verify_token("user-1", wrong)

        result = await service.verify_token(
            "user-1", engine.generate_token(rfc_secret).value
        )

        assert result.code is ErrorCode.ACCOUNT_LOCKED

    async def test_lock_expires_and_correct_token_resets(
        self, service, engine, enrolled, rfc_secret, clock, two_factor_store
    ):
        wrong = _wrong_token(engine, rfc_secret)
        for _ in range(3):
            await service.verify_token("user-1", wrong)

        clock.advance(minutes=15, seconds=1)
        result = await service.verify_token(
            "user-1", engine.generate_token(rfc_secret).value
        )

        assert result.value.valid
        credential = await two_factor_store.get("user-1")
        assert credential.failed_attempts == 0
        assert credential.locked_until is None

    async def test_wrong_token_after_lock_expiry_relocks(
        self, service, engine, enrolled, rfc_secret, clock
    ):
        """The counter is not reset by expiry, so one more miss locks again."""
        for _ in range(3):
            await service.verify_token("user-1", _wrong_token(engine, rfc_secret))

        clock.advance(minutes=16)
        result = await service.verify_token("user-1", _wrong_token(engine, rfc_secret))

        assert result.code is ErrorCode.ACCOUNT_LOCKED
        assert result.error.details["locked_until"] == clock() + timedelta(minutes=15)

    async def test_malformed_token_does_not_count(
        self, service, enrolled, two_factor_store
    ):
        result = await service.verify_token("user-1", "abc")

        assert result.code is ErrorCode.INVALID_TOKEN
        credential = await two_factor_store.get("user-1")
        assert credential.failed_attempts == 0

    async def test_custom_lockout_policy(
        self, two_factor_store, engine, crypto, clock, rfc_secret
    ):
        service = TwoFactorService(
            store=two_factor_store,
            engine=engine,
            crypto=crypto,
            lockout=LockoutPolicy(
                max_failed_attempts=1, lock_duration=timedelta(minutes=5)
            ),
            render_qr=False,
            clock=clock,
        )
        token = engine.generate_token(rfc_secret).value
        await service.complete_enrollment("user-1", token, rfc_secret)

        result = await service.verify_token("user-1", _wrong_token(engine, rfc_secret))

        assert result.code is ErrorCode.ACCOUNT_LOCKED
        assert result.error.details["locked_until"] == clock() + timedelta(minutes=5)

    async def test_concurrent_failures_are_all_counted(
        self, service, engine, enrolled, rfc_secret, two_factor_store
    ):
        """Failure counting is a store-side increment, not read-modify-write."""
        wrong = _wrong_token(engine, rfc_secret)

        results = await asyncio.gather(
            *(service.verify_token("user-1", wrong) for _ in range(5))
        )

        credential = await two_factor_store.get("user-1")
        assert credential.failed_attempts >= 3
        assert any(r.code is ErrorCode.ACCOUNT_LOCKED for r in results)
        assert not any(r and r.value.valid for r in results)

    async def test_correct_token_cannot_lift_lock_set_after_read(
        self, engine, crypto, clock, rfc_secret
    ):
        """Failures landing between the read and the reset keep the lock."""

        class RacingStore(InMemoryTwoFactorStore):
            race = False

            async def get(self, user_id):
                credential = await super().get(user_id)
                if self.race:
                    self.race = False
                    for _ in range(3):
                        await self.register_failure(
                            user_id,
                            threshold=3,
                            lock_until=clock() + timedelta(minutes=15),
                        )
                return credential

        store = RacingStore()
        service = TwoFactorService(
            store=store, engine=engine, crypto=crypto, render_qr=False, clock=clock
        )
        token = engine.generate_token(rfc_secret).value
        assert await service.complete_enrollment("user-1", token, rfc_secret)

        store.race = True
        result = await service.verify_token("user-1", token)

        assert result.code is ErrorCode.ACCOUNT_LOCKED
        assert result.error.details["locked_until"] == clock() + timedelta(minutes=15)
        credential = await store.get("user-1")
        assert credential.failed_attempts == 3
        assert credential.lockout.is_locked(clock())
        assert credential.last_verified_at is None

    async def test_burst_with_one_correct_token_ends_locked(
        self, service, engine, enrolled, rfc_secret, two_factor_store, clock
    ):
        wrong = _wrong_token(engine, rfc_secret)
        correct = engine.generate_token(rfc_secret).value

        await asyncio.gather(
            *(service.verify_token("user-1", wrong) for _ in range(6)),
            service.verify_token("user-1", correct),
        )

        credential = await two_factor_store.get("user-1")
        assert credential.lockout.is_locked(clock())


@pytest.mark.asyncio
class TestInMemoryLockoutStore:
    async def test_reset_refused_while_locked(self, two_factor_store, clock):
        await two_factor_store.create(
            TwoFactorCredential(
                user_id="user-1",
                encrypted_secret="ciphertext",
                recovery_code_hashes=(),
                enrolled_at=clock(),
            )
        )
        lock_until = clock() + timedelta(minutes=15)
        for _ in range(3):
            await two_factor_store.register_failure(
                "user-1", threshold=3, lock_until=lock_until
            )

        assert not await two_factor_store.reset_failures("user-1", verified_at=clock())
        assert (await two_factor_store.get("user-1")).locked_until == lock_until

        assert await two_factor_store.reset_failures(
            "user-1", verified_at=lock_until
        )
        credential = await two_factor_store.get("user-1")
        assert credential.failed_attempts == 0
        assert credential.locked_until is None

    async def test_reset_unknown_user(self, two_factor_store, clock):
        assert not await two_factor_store.reset_failures("nobody", verified_at=clock())


@pytest.mark.asyncio
class TestRecoveryCodes:
    async def test_code_is_single_use(self, service, enrolled):
        code = enrolled[0]

        first = await service.verify_recovery_code("user-1", code)
        second = await service.verify_recovery_code("user-1", code)

        assert first.value.valid
        assert first.value.code_type is CodeType.RECOVERY
        assert not second.value.valid

    async def test_input_is_normalized(self, service, enrolled):
        code = enrolled[1]
        typed = f" {code[:5].lower()}-{code[5:].lower()} "

        result = await service.verify_recovery_code("user-1", typed)

        assert result.value.valid

    async def test_unknown_code(self, service, enrolled):
        unknown = "Z" * 10
        while unknown in enrolled:
            unknown = unknown[:-1] + "Y"

        result = await service.verify_recovery_code("user-1", unknown)

        assert not result.value.valid

    async def test_malformed_code(self, service, enrolled):
        result = await service.verify_recovery_code("user-1", "ABC")
        assert result.code is ErrorCode.INVALID_TOKEN

    async def test_does_not_touch_lockout(
        self, service, engine, enrolled, rfc_secret, two_factor_store
    ):
        for _ in range(3):
            await service.verify_token("user-1", _wrong_token(engine, rfc_secret))

        result = await service.verify_recovery_code("user-1", enrolled[0])

        assert result.value.valid
        credential = await two_factor_store.get("user-1")
        assert credential.failed_attempts == 3

    async def test_not_enrolled(self, service):
        result = await service.verify_recovery_code("nobody", "ABCDEFGHIJ")
        assert result.code is ErrorCode.NOT_ENROLLED

    async def test_regenerate_invalidates_old_codes(self, service, enrolled, clock):
        regenerated = await service.regenerate_recovery_codes("user-1")

        assert regenerated.value.regenerated_at == clock()
        assert len(regenerated.value.recovery_codes) == 8
        old = await service.verify_recovery_code("user-1", enrolled[0])
        new = await service.verify_recovery_code(
            "user-1", regenerated.value.recovery_codes[0]
        )
        assert not old.value.valid
        assert new.value.valid

    async def test_regenerate_not_enrolled(self, service):
        result = await service.regenerate_recovery_codes("nobody")
        assert result.code is ErrorCode.NOT_ENROLLED


@pytest.mark.asyncio
class TestLifecycle:
    async def test_status_not_enrolled(self, service):
        status = await service.get_status("nobody")

        assert status.value.enabled is False
        assert status.value.recovery_codes_remaining == 0

    async def test_status_counts_remaining_codes(self, service, enrolled, clock):
        await service.verify_recovery_code("user-1", enrolled[0])

        status = await service.get_status("user-1")

        assert status.value.enabled
        assert status.value.enrolled_at == clock()
        assert status.value.recovery_codes_remaining == 7

    async def test_disable_removes_everything(
        self, service, enrolled, two_factor_store
    ):
        result = await service.disable("user-1")

        assert result.value is True
        assert await two_factor_store.get("user-1") is None
        assert (await service.get_status("user-1")).value.enabled is False

    async def test_disable_not_enrolled(self, service):
        result = await service.disable("nobody")
        assert result.code is ErrorCode.NOT_ENROLLED


@pytest.mark.asyncio
class TestInfrastructureFaults:
    async def test_store_failure_is_internal(
        self, engine, crypto, caplog: pytest.LogCaptureFixture
    ):
        class BrokenStore(InMemoryTwoFactorStore):
            async def get(self, user_id):
                raise ConnectionError("db down")

        service = TwoFactorService(store=BrokenStore(), engine=engine, crypto=crypto)

        with caplog.at_level(logging.ERROR):
            result = await service.get_status("user-1")

        assert result.code is ErrorCode.INTERNAL
        assert "two_factor.get_status" in caplog.text

    async def test_undecryptable_secret_is_internal(
        self, service, enrolled, two_factor_store
    ):
        credential = await two_factor_store.get("user-1")
        two_factor_store._credentials["user-1"] = replace(
            credential, encrypted_secret="garbage"
        )

        result = await service.verify_token("user-1", "123456")

        assert result.code is ErrorCode.INTERNAL
