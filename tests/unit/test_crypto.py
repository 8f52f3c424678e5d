"""Tests for the cipher, hasher and random helpers."""

from __future__ import annotations

import re

import pytest

from authcore.config import CryptoConfig
from authcore.crypto import (
    RECOVERY_CODE_ALPHABET,
    CryptoPrimitives,
    SecretCipher,
    SecretHasher,
    generate_recovery_code,
    generate_recovery_code_set,
    normalize_recovery_code,
    secure_random_base64,
    secure_random_hex,
)
from authcore.exceptions import DecryptionFailedError

ENCODED = re.compile(r"^[0-9a-f]{24}:[0-9a-f]{32}:[0-9a-f]*$")


class TestSecretCipher:
    @pytest.fixture
    def cipher(self) -> SecretCipher:
        return SecretCipher("master-key")

    def test_encrypt_then_decrypt(self, cipher: SecretCipher) -> None:
        stored = cipher.encrypt_secret("JBSWY3DPEHPK3PXP")

        assert ENCODED.match(stored)
        assert cipher.decrypt_secret(stored) == "JBSWY3DPEHPK3PXP"

    def test_fresh_nonce_per_call(self, cipher: SecretCipher) -> None:
        """The same plaintext never encrypts to the same string twice."""
        assert cipher.encrypt_secret("same") != cipher.encrypt_secret("same")

    def test_wrong_key_fails(self, cipher: SecretCipher) -> None:
        stored = cipher.encrypt_secret("secret")
        with pytest.raises(DecryptionFailedError, match="authentication"):
            SecretCipher("other-key").decrypt_secret(stored)

    def test_tampered_ciphertext_fails(self, cipher: SecretCipher) -> None:
        nonce, tag, ciphertext = cipher.encrypt_secret("secret").split(":")
        flipped = f"{int(ciphertext[0], 16) ^ 1:x}" + ciphertext[1:]
        with pytest.raises(DecryptionFailedError):
            cipher.decrypt_secret(f"{nonce}:{tag}:{flipped}")

    @pytest.mark.parametrize(
        "encoded",
        ["", "abc", "a:b", "zz:zz:zz", "00:" + "0" * 32 + ":00"],
    )
    def test_malformed_input_fails(self, cipher: SecretCipher, encoded: str) -> None:
        with pytest.raises(DecryptionFailedError, match="Malformed"):
            cipher.decrypt_secret(encoded)


class TestSecretHasher:
    @pytest.fixture
    def hasher(self) -> SecretHasher:
        return SecretHasher(rounds=4)

    def test_hash_and_verify(self, hasher: SecretHasher) -> None:
        hashed = hasher.hash_secret("ABCDEF1234")

        assert hashed.startswith("$2b$04$")
        assert hasher.verify_secret(hashed, "ABCDEF1234")
        assert not hasher.verify_secret(hashed, "ABCDEF1235")

    def test_hashes_are_salted(self, hasher: SecretHasher) -> None:
        assert hasher.hash_secret("same") != hasher.hash_secret("same")

    def test_malformed_hash_never_matches(self, hasher: SecretHasher) -> None:
        assert not hasher.verify_secret("not-a-bcrypt-hash", "anything")

    def test_needs_rehash_when_cost_increases(self, hasher: SecretHasher) -> None:
        hashed = hasher.hash_secret("code")

        assert not hasher.needs_rehash(hashed)
        assert SecretHasher(rounds=5).needs_rehash(hashed)


class TestRandomHelpers:
    def test_hex_and_base64_lengths(self) -> None:
        assert len(secure_random_hex(16)) == 32
        assert len(secure_random_base64(12)) == 16

    def test_recovery_code_alphabet(self) -> None:
        code = generate_recovery_code()

        assert len(code) == 10
        assert set(code) <= set(RECOVERY_CODE_ALPHABET)

    def test_recovery_code_set_is_distinct(self) -> None:
        codes = generate_recovery_code_set(8, 10)

        assert len(codes) == 8
        assert len(set(codes)) == 8

    def test_normalize_recovery_code(self) -> None:
        assert normalize_recovery_code("  ab12-cd34 ef ") == "AB12CD34EF"


class TestCryptoPrimitives:
    def test_from_config_wires_cost_factor(self) -> None:
        crypto = CryptoPrimitives.from_config(
            CryptoConfig(master_key="k", bcrypt_rounds=5)
        )

        hashed = crypto.hash_secret("CODE123456")

        assert hashed.startswith("$2b$05$")
        assert crypto.verify_secret(hashed, "CODE123456")
        assert crypto.decrypt_secret(crypto.encrypt_secret("s")) == "s"
