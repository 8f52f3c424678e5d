"""Cryptographic primitives shared by every authcore service.

- `cipher`: AES-256-GCM encryption of secrets at rest
- `hasher`: bcrypt hashing of recovery codes
- `randomness`: secure random strings and recovery codes
- `pkce`: RFC 7636 verifier/challenge derivation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .cipher import SecretCipher
from .hasher import SecretHasher
from .pkce import (
    PKCEPair,
    create_pkce_pair,
    generate_pkce_challenge,
    generate_pkce_verifier,
    verify_pkce_challenge,
)
from .randomness import (
    RECOVERY_CODE_ALPHABET,
    generate_recovery_code,
    generate_recovery_code_set,
    normalize_recovery_code,
    secure_random_base64,
    secure_random_hex,
)

if TYPE_CHECKING:
    from ..config import CryptoConfig


class CryptoPrimitives:
    """Bundles the cipher and hasher configured from one :class:`CryptoConfig`.

    Orchestrators depend on this object rather than on the individual
    helpers so tests can swap in a cheap bcrypt cost.

    Example:
        ```python
        crypto = CryptoPrimitives.from_config(CryptoConfig.from_env())
        stored = crypto.encrypt_secret("JBSWY3DPEHPK3PXP")
        ```
    """

    def __init__(self, cipher: SecretCipher, hasher: SecretHasher) -> None:
        self.cipher = cipher
        self.hasher = hasher

    @classmethod
    def from_config(cls, config: CryptoConfig) -> CryptoPrimitives:
        return cls(
            SecretCipher(config.master_key),
            SecretHasher(rounds=config.bcrypt_rounds),
        )

    def encrypt_secret(self, plaintext: str) -> str:
        return self.cipher.encrypt_secret(plaintext)

    def decrypt_secret(self, encoded: str) -> str:
        return self.cipher.decrypt_secret(encoded)

    def hash_secret(self, secret: str) -> str:
        return self.hasher.hash_secret(secret)

    def verify_secret(self, hashed: str, secret: str) -> bool:
        return self.hasher.verify_secret(hashed, secret)


__all__: list[str] = [
    "CryptoPrimitives",
    "SecretCipher",
    "SecretHasher",
    "PKCEPair",
    "create_pkce_pair",
    "generate_pkce_challenge",
    "generate_pkce_verifier",
    "verify_pkce_challenge",
    "RECOVERY_CODE_ALPHABET",
    "generate_recovery_code",
    "generate_recovery_code_set",
    "normalize_recovery_code",
    "secure_random_base64",
    "secure_random_hex",
]
