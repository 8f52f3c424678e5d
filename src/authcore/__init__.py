"""Authentication core for TOTP two-factor, WebAuthn and OAuth2 login.

Storage-agnostic services behind protocol ports. Production adapters for
SQLAlchemy and Redis live in :mod:`authcore.contrib`.
"""

from __future__ import annotations

# ── Challenges ──────────────────────────────────────────────────
from .challenges import (
    ChallengePurpose,
    IChallengeStore,
    InMemoryChallengeStore,
    discoverable_challenge_key,
    user_challenge_key,
)

# ── Configuration ───────────────────────────────────────────────
from .config import (
    CryptoConfig,
    LockoutPolicy,
    OAuthClientConfig,
    RecoveryCodePolicy,
    TotpConfig,
    WebAuthnConfig,
)

# ── Crypto ──────────────────────────────────────────────────────
from .crypto import CryptoPrimitives, SecretCipher, SecretHasher, create_pkce_pair

# ── Errors ──────────────────────────────────────────────────────
from .exceptions import (
    AuthCoreError,
    ChallengeStoreError,
    ConfigurationError,
    CredentialStoreError,
    CryptoError,
    DecryptionFailedError,
    DuplicateCredentialError,
    StoreError,
)

# ── OAuth ───────────────────────────────────────────────────────
from .oauth import (
    GitHubOAuthStrategy,
    GoogleOAuthStrategy,
    MicrosoftOAuthStrategy,
    OAuthProfile,
    OAuthProvider,
    OAuthStrategy,
    OAuthStrategyRegistry,
    OAuthTokens,
    create_strategy,
)
from .result import ErrorCode, Failure, Result

# ── TOTP / two-factor ───────────────────────────────────────────
from .totp import TotpEngine
from .two_factor import InMemoryTwoFactorStore, TwoFactorService

# ── WebAuthn ────────────────────────────────────────────────────
from .webauthn import InMemoryWebAuthnStore, PyWebAuthnVerifier, WebAuthnService

__version__ = "0.1.0"

__all__: list[str] = [
    # Results and errors
    "Result",
    "Failure",
    "ErrorCode",
    "AuthCoreError",
    "ConfigurationError",
    "CryptoError",
    "DecryptionFailedError",
    "StoreError",
    "ChallengeStoreError",
    "CredentialStoreError",
    "DuplicateCredentialError",
    # Configuration
    "CryptoConfig",
    "TotpConfig",
    "LockoutPolicy",
    "RecoveryCodePolicy",
    "WebAuthnConfig",
    "OAuthClientConfig",
    # Crypto
    "CryptoPrimitives",
    "SecretCipher",
    "SecretHasher",
    "create_pkce_pair",
    # Challenges
    "ChallengePurpose",
    "IChallengeStore",
    "InMemoryChallengeStore",
    "user_challenge_key",
    "discoverable_challenge_key",
    # Services
    "TotpEngine",
    "TwoFactorService",
    "InMemoryTwoFactorStore",
    "WebAuthnService",
    "PyWebAuthnVerifier",
    "InMemoryWebAuthnStore",
    # OAuth
    "OAuthProvider",
    "OAuthTokens",
    "OAuthProfile",
    "OAuthStrategy",
    "GoogleOAuthStrategy",
    "GitHubOAuthStrategy",
    "MicrosoftOAuthStrategy",
    "OAuthStrategyRegistry",
    "create_strategy",
]
