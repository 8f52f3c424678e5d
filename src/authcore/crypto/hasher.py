"""Salted hashing for recovery codes.

bcrypt with a configurable cost factor. Each hash embeds its own random
salt, so hashing the same input twice produces two different hashes and
stored hashes cannot be looked up by value.
"""

from __future__ import annotations

import bcrypt


class SecretHasher:
    """bcrypt hasher with cost-upgrade detection.

    Example:
        ```python
        hasher = SecretHasher(rounds=14)
        hashed = hasher.hash_secret("ABC123DEF456")

        if hasher.verify_secret(hashed, "ABC123DEF456"):
            if hasher.needs_rehash(hashed):
                hashed = hasher.hash_secret("ABC123DEF456")
        ```
    """

    def __init__(self, *, rounds: int = 14) -> None:
        """Initialize the hasher.

        Args:
            rounds: bcrypt cost factor (default 14, i.e. 2^14 iterations).
        """
        self.rounds = rounds

    def hash_secret(self, secret: str) -> str:
        """Hash *secret* with a fresh salt."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(secret.encode("utf-8"), salt).decode("ascii")

    def verify_secret(self, hashed: str, secret: str) -> bool:
        """Check *secret* against a stored hash.

        Returns:
            True if the secret matches. A malformed hash never matches.
        """
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("ascii"))
        except (ValueError, UnicodeEncodeError):
            # Invalid hash format or non-ASCII hash
            return False

    def needs_rehash(self, hashed: str) -> bool:
        """Return True if *hashed* was produced with fewer rounds than configured."""
        # bcrypt format: $2b$14$...
        parts = hashed.split("$")
        if len(parts) >= 3:
            try:
                return int(parts[2]) < self.rounds
            except ValueError:
                pass
        return False


__all__: list[str] = ["SecretHasher"]
