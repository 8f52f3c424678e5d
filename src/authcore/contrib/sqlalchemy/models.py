"""SQLAlchemy table models for two-factor and WebAuthn credentials."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UTCDateTime(TypeDecorator[datetime]):
    """Timezone-aware UTC timestamps on every dialect.

    SQLite has no native timezone support and hands back naive values;
    those are re-tagged as UTC on load so they compare with
    ``datetime.now(timezone.utc)``.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Any) -> Any:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError("Naive datetimes are not accepted; use UTC")
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Any, dialect: Any) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for authcore tables.

    Include ``Base.metadata`` in your migrations, or call
    ``Base.metadata.create_all`` for tests.
    """


class TwoFactorCredentialRow(Base):
    __tablename__ = "two_factor_credentials"

    user_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    encrypted_secret: Mapped[str] = mapped_column(Text)
    enrolled_at: Mapped[datetime] = mapped_column(UTCDateTime)
    failed_attempts: Mapped[int] = mapped_column(Integer, default=0)
    locked_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_verified_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True
    )


class RecoveryCodeRow(Base):
    """One bcrypt hash per row so consumption is a single DELETE."""

    __tablename__ = "two_factor_recovery_codes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("two_factor_credentials.user_id", ondelete="CASCADE"),
    )
    code_hash: Mapped[str] = mapped_column(String(255))

    __table_args__ = (Index("ix_two_factor_recovery_codes_user", "user_id"),)


class WebAuthnCredentialRow(Base):
    __tablename__ = "webauthn_credentials"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(255), index=True)
    credential_id: Mapped[str] = mapped_column(String(1024), unique=True)
    public_key: Mapped[str] = mapped_column(Text)
    counter: Mapped[int] = mapped_column(Integer, default=0)
    transports: Mapped[list[str]] = mapped_column(JSON, default=list)
    device_name: Mapped[str] = mapped_column(String(255), default="Unknown Device")
    aaguid: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime)
    last_used_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    __table_args__ = (
        CheckConstraint("counter >= 0", name="ck_webauthn_credentials_counter"),
    )


__all__: list[str] = [
    "Base",
    "UTCDateTime",
    "TwoFactorCredentialRow",
    "RecoveryCodeRow",
    "WebAuthnCredentialRow",
]
