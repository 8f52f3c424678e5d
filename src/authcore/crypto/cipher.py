"""Authenticated encryption of secrets at rest.

AES-256-GCM keyed by the SHA-256 digest of a configured master key.
Every call draws a fresh 96-bit nonce; the encoded output is
``<nonce hex>:<tag hex>:<ciphertext hex>``.
"""

from __future__ import annotations

import hashlib
import secrets

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..exceptions import DecryptionFailedError

NONCE_SIZE = 12
TAG_SIZE = 16


def derive_key(master_key: str) -> bytes:
    """Derive the 256-bit AES key from the master key."""
    return hashlib.sha256(master_key.encode("utf-8")).digest()


class SecretCipher:
    """Encrypts and decrypts short secrets such as TOTP seeds.

    Example:
        ```python
        cipher = SecretCipher(master_key)
        stored = cipher.encrypt_secret(totp_secret)
        assert cipher.decrypt_secret(stored) == totp_secret
        ```
    """

    def __init__(self, master_key: str) -> None:
        self._aead = AESGCM(derive_key(master_key))

    def encrypt_secret(self, plaintext: str) -> str:
        """Encrypt *plaintext* under a fresh random nonce.

        Args:
            plaintext: Secret to protect.

        Returns:
            Encoded ``nonce:tag:ciphertext`` string.
        """
        nonce = secrets.token_bytes(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, plaintext.encode("utf-8"), None)
        ciphertext, tag = sealed[:-TAG_SIZE], sealed[-TAG_SIZE:]
        return f"{nonce.hex()}:{tag.hex()}:{ciphertext.hex()}"

    def decrypt_secret(self, encoded: str) -> str:
        """Decrypt a value produced by :meth:`encrypt_secret`.

        Raises:
            DecryptionFailedError: On malformed encoding, tag mismatch or
                wrong key.
        """
        parts = encoded.split(":")
        if len(parts) != 3:
            raise DecryptionFailedError("Malformed ciphertext encoding")

        try:
            nonce, tag, ciphertext = (bytes.fromhex(part) for part in parts)
        except ValueError as e:
            raise DecryptionFailedError("Malformed ciphertext encoding") from e

        if len(nonce) != NONCE_SIZE or len(tag) != TAG_SIZE:
            raise DecryptionFailedError("Malformed ciphertext encoding")

        try:
            plaintext = self._aead.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise DecryptionFailedError("Ciphertext failed authentication") from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionFailedError("Decrypted secret is not valid UTF-8") from e


__all__: list[str] = ["SecretCipher", "derive_key", "NONCE_SIZE", "TAG_SIZE"]
