"""SQLAlchemy implementations of the credential store ports.

Every mutation that can race is a single SQL statement:

- failure counting is ``UPDATE ... RETURNING`` (PostgreSQL, SQLite >= 3.35,
  MariaDB >= 10.5),
- a successful verification resets the counter only ``WHERE`` no lock is
  active, so the lock check and the reset are one statement,
- recovery-code consumption is a ``DELETE`` whose rowcount decides the
  winner,
- signature counters use compare-and-set (``WHERE counter = :expected``).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import case, delete, func, literal, or_, select, update
from sqlalchemy.exc import IntegrityError

from ...exceptions import DuplicateCredentialError
from ...two_factor.models import LockoutState, TwoFactorCredential
from ...two_factor.ports import ITwoFactorCredentialStore
from ...webauthn.models import WebAuthnCredential
from ...webauthn.ports import IWebAuthnCredentialStore
from .models import (
    RecoveryCodeRow,
    TwoFactorCredentialRow,
    UTCDateTime,
    WebAuthnCredentialRow,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger("authcore.sqlalchemy")


# ═══════════════════════════════════════════════════════════════
# TWO-FACTOR
# ═══════════════════════════════════════════════════════════════


class SQLAlchemyTwoFactorStore(ITwoFactorCredentialStore):
    """Persistent TOTP credential store.

    Example:
        ```python
        engine = create_async_engine("postgresql+asyncpg://...")
        store = SQLAlchemyTwoFactorStore(
            async_sessionmaker(engine, expire_on_commit=False)
        )
        ```
    """

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        """
        Initialize the store with a session factory.

        Args:
            session_factory: Factory creating new AsyncSession instances.
        """
        self._session_factory = session_factory

    async def get(self, user_id: str) -> TwoFactorCredential | None:
        async with self._session_factory() as session:
            row = await session.get(TwoFactorCredentialRow, user_id)
            if row is None:
                return None
            hashes = await session.scalars(
                select(RecoveryCodeRow.code_hash)
                .where(RecoveryCodeRow.user_id == user_id)
                .order_by(RecoveryCodeRow.id)
            )
            return TwoFactorCredential(
                user_id=row.user_id,
                encrypted_secret=row.encrypted_secret,
                recovery_code_hashes=tuple(hashes),
                enrolled_at=row.enrolled_at,
                failed_attempts=row.failed_attempts,
                locked_until=row.locked_until,
                last_verified_at=row.last_verified_at,
            )

    async def create(self, credential: TwoFactorCredential) -> bool:
        try:
            async with self._session_factory() as session, session.begin():
                session.add(
                    TwoFactorCredentialRow(
                        user_id=credential.user_id,
                        encrypted_secret=credential.encrypted_secret,
                        enrolled_at=credential.enrolled_at,
                        failed_attempts=credential.failed_attempts,
                        locked_until=credential.locked_until,
                        last_verified_at=credential.last_verified_at,
                    )
                )
                await session.flush()
                session.add_all(
                    RecoveryCodeRow(user_id=credential.user_id, code_hash=code_hash)
                    for code_hash in credential.recovery_code_hashes
                )
        except IntegrityError:
            logger.info(
                "Two-factor credential already exists for %s", credential.user_id
            )
            return False
        return True

    async def delete(self, user_id: str) -> bool:
        async with self._session_factory() as session, session.begin():
            await session.execute(
                delete(RecoveryCodeRow).where(RecoveryCodeRow.user_id == user_id)
            )
            result = await session.execute(
                delete(TwoFactorCredentialRow).where(
                    TwoFactorCredentialRow.user_id == user_id
                )
            )
            return result.rowcount > 0  # type: ignore[attr-defined]

    async def replace_recovery_codes(
        self, user_id: str, code_hashes: Sequence[str]
    ) -> bool:
        async with self._session_factory() as session, session.begin():
            exists = await session.scalar(
                select(TwoFactorCredentialRow.user_id)
                .where(TwoFactorCredentialRow.user_id == user_id)
                .with_for_update()
            )
            if exists is None:
                return False
            await session.execute(
                delete(RecoveryCodeRow).where(RecoveryCodeRow.user_id == user_id)
            )
            session.add_all(
                RecoveryCodeRow(user_id=user_id, code_hash=code_hash)
                for code_hash in code_hashes
            )
            return True

    async def consume_recovery_code(self, user_id: str, code_hash: str) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                delete(RecoveryCodeRow).where(
                    RecoveryCodeRow.user_id == user_id,
                    RecoveryCodeRow.code_hash == code_hash,
                )
            )
            return result.rowcount == 1  # type: ignore[attr-defined]

    async def register_failure(
        self,
        user_id: str,
        *,
        threshold: int,
        lock_until: datetime,
    ) -> LockoutState | None:
        table = TwoFactorCredentialRow
        attempts = table.failed_attempts + 1
        stmt = (
            update(table)
            .where(table.user_id == user_id)
            .values(
                failed_attempts=attempts,
                locked_until=case(
                    (attempts >= threshold, literal(lock_until, UTCDateTime())),
                    else_=table.locked_until,
                ),
            )
            .returning(table.failed_attempts, table.locked_until)
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as session, session.begin():
            row = (await session.execute(stmt)).first()
        if row is None:
            return None
        return LockoutState(failed_attempts=row[0], locked_until=row[1])

    async def reset_failures(self, user_id: str, *, verified_at: datetime) -> bool:
        table = TwoFactorCredentialRow
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(table)
                .where(
                    table.user_id == user_id,
                    or_(
                        table.locked_until.is_(None),
                        table.locked_until <= verified_at,
                    ),
                )
                .values(
                    failed_attempts=0, locked_until=None, last_verified_at=verified_at
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1  # type: ignore[attr-defined]


# ═══════════════════════════════════════════════════════════════
# WEBAUTHN
# ═══════════════════════════════════════════════════════════════


def _to_credential(row: WebAuthnCredentialRow) -> WebAuthnCredential:
    return WebAuthnCredential(
        id=row.id,
        user_id=row.user_id,
        credential_id=row.credential_id,
        public_key=row.public_key,
        counter=row.counter,
        created_at=row.created_at,
        transports=tuple(row.transports or ()),
        device_name=row.device_name,
        aaguid=row.aaguid,
        last_used_at=row.last_used_at,
    )


class SQLAlchemyWebAuthnStore(IWebAuthnCredentialStore):
    """Persistent WebAuthn credential store."""

    def __init__(self, session_factory: Callable[[], AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, credential: WebAuthnCredential) -> None:
        try:
            async with self._session_factory() as session, session.begin():
                session.add(
                    WebAuthnCredentialRow(
                        id=credential.id,
                        user_id=credential.user_id,
                        credential_id=credential.credential_id,
                        public_key=credential.public_key,
                        counter=credential.counter,
                        transports=list(credential.transports),
                        device_name=credential.device_name,
                        aaguid=credential.aaguid,
                        created_at=credential.created_at,
                        last_used_at=credential.last_used_at,
                    )
                )
        except IntegrityError as e:
            raise DuplicateCredentialError(
                f"Duplicate credential_id {credential.credential_id!r}"
            ) from e

    async def find_by_id(self, id: str) -> WebAuthnCredential | None:
        async with self._session_factory() as session:
            row = await session.get(WebAuthnCredentialRow, id)
            return _to_credential(row) if row else None

    async def find_by_credential_id(
        self, credential_id: str
    ) -> WebAuthnCredential | None:
        async with self._session_factory() as session:
            row = await session.scalar(
                select(WebAuthnCredentialRow).where(
                    WebAuthnCredentialRow.credential_id == credential_id
                )
            )
            return _to_credential(row) if row else None

    async def list_by_user(self, user_id: str) -> list[WebAuthnCredential]:
        async with self._session_factory() as session:
            rows = await session.scalars(
                select(WebAuthnCredentialRow)
                .where(WebAuthnCredentialRow.user_id == user_id)
                .order_by(WebAuthnCredentialRow.created_at)
            )
            return [_to_credential(row) for row in rows]

    async def count_by_user(self, user_id: str) -> int:
        async with self._session_factory() as session:
            count = await session.scalar(
                select(func.count())
                .select_from(WebAuthnCredentialRow)
                .where(WebAuthnCredentialRow.user_id == user_id)
            )
            return int(count or 0)

    async def update_counter(
        self,
        credential_id: str,
        *,
        expected_counter: int,
        new_counter: int,
        used_at: datetime,
    ) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(WebAuthnCredentialRow)
                .where(
                    WebAuthnCredentialRow.credential_id == credential_id,
                    WebAuthnCredentialRow.counter == expected_counter,
                )
                .values(counter=new_counter, last_used_at=used_at)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1  # type: ignore[attr-defined]

    async def update_name(self, id: str, device_name: str) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                update(WebAuthnCredentialRow)
                .where(WebAuthnCredentialRow.id == id)
                .values(device_name=device_name)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1  # type: ignore[attr-defined]

    async def delete(self, id: str) -> bool:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                delete(WebAuthnCredentialRow).where(WebAuthnCredentialRow.id == id)
            )
            return result.rowcount == 1  # type: ignore[attr-defined]


__all__: list[str] = ["SQLAlchemyTwoFactorStore", "SQLAlchemyWebAuthnStore"]
