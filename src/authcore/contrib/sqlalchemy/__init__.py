"""SQLAlchemy (async) adapters for the credential stores."""

from .models import (
    Base,
    RecoveryCodeRow,
    TwoFactorCredentialRow,
    UTCDateTime,
    WebAuthnCredentialRow,
)
from .stores import SQLAlchemyTwoFactorStore, SQLAlchemyWebAuthnStore

__all__: list[str] = [
    "Base",
    "UTCDateTime",
    "TwoFactorCredentialRow",
    "RecoveryCodeRow",
    "WebAuthnCredentialRow",
    "SQLAlchemyTwoFactorStore",
    "SQLAlchemyWebAuthnStore",
]
