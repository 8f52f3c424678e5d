"""Exceptions raised for unexpected faults.

Expected business conditions (wrong code, locked account, replayed
assertion...) are *not* exceptions: they travel as
:class:`~authcore.result.Result` failures. The classes below cover the
remaining cases, which orchestrators report as an opaque internal error.
"""

from __future__ import annotations

# ═══════════════════════════════════════════════════════════════
# BASE ERROR
# ═══════════════════════════════════════════════════════════════


class AuthCoreError(Exception):
    """Root exception for the entire authcore package."""


class ConfigurationError(AuthCoreError):
    """Raised when a configuration object holds invalid values."""


# ═══════════════════════════════════════════════════════════════
# CRYPTOGRAPHY ERRORS
# ═══════════════════════════════════════════════════════════════


class CryptoError(AuthCoreError):
    """Base class for cryptographic primitive failures."""


class DecryptionFailedError(CryptoError):
    """Raised when a ciphertext cannot be decrypted.

    Covers malformed encoding, authentication tag mismatch and a wrong
    master key. Decryption never returns partial plaintext.
    """


# ═══════════════════════════════════════════════════════════════
# INFRASTRUCTURE ERRORS
# ═══════════════════════════════════════════════════════════════


class StoreError(AuthCoreError):
    """Raised by store adapters when the backing service misbehaves."""


class ChallengeStoreError(StoreError):
    """Raised when the ephemeral challenge store cannot be reached."""


class CredentialStoreError(StoreError):
    """Raised when the durable credential store cannot be reached."""


class DuplicateCredentialError(CredentialStoreError):
    """Raised when a WebAuthn credential id is already registered."""


__all__: list[str] = [
    "AuthCoreError",
    "ConfigurationError",
    "CryptoError",
    "DecryptionFailedError",
    "StoreError",
    "ChallengeStoreError",
    "CredentialStoreError",
    "DuplicateCredentialError",
]
