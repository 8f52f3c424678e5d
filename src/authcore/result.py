"""Result: typed, discriminated outcome of every authcore operation.

Orchestrators never raise for an expected business condition. They return
``Result.ok(value)`` or ``Result.fail(ErrorCode.X, message, **details)``
so the boundary layer can translate each code into a response directly.

Usage::

    result = await two_factor.verify_token(user_id, "123456")
    if not result:
        if result.error.code is ErrorCode.ACCOUNT_LOCKED:
            ...
    outcome = result.value
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, ParamSpec, TypeVar

logger = logging.getLogger("authcore.result")

T = TypeVar("T")
P = ParamSpec("P")


class ErrorCode(str, Enum):
    """Every failure an operation can report."""

    # TOTP engine
    INVALID_SECRET = "InvalidSecret"
    INVALID_TOKEN = "InvalidToken"

    # Two-factor lifecycle
    ALREADY_ENROLLED = "AlreadyEnrolled"
    NOT_ENROLLED = "NotEnrolled"
    ACCOUNT_LOCKED = "AccountLocked"
    VERIFICATION_FAILED = "VerificationFailed"

    # WebAuthn ceremonies
    CHALLENGE_NOT_FOUND = "ChallengeNotFound"
    DEVICE_LIMIT_EXCEEDED = "DeviceLimitExceeded"
    CREDENTIAL_NOT_FOUND = "CredentialNotFound"
    INVALID_CREDENTIAL = "InvalidCredential"
    COUNTER_MISMATCH = "CounterMismatch"

    # OAuth registry
    DUPLICATE_PROVIDER = "DuplicateProvider"
    UNKNOWN_PROVIDER = "UnknownProvider"

    # OAuth provider calls
    AUTH_URL_GENERATION_FAILED = "AuthUrlGenerationFailed"
    TOKEN_EXCHANGE_FAILED = "TokenExchangeFailed"
    PROFILE_FETCH_FAILED = "ProfileFetchFailed"
    TOKEN_REFRESH_FAILED = "TokenRefreshFailed"
    INVALID_RESPONSE = "InvalidResponse"
    NETWORK_ERROR = "NetworkError"

    INVALID_REQUEST = "InvalidRequest"
    INTERNAL = "Internal"


def default_details_factory() -> dict[str, Any]:
    """Factory for the mutable ``details`` default of :class:`Failure`."""
    return {}


@dataclass(frozen=True)
class Failure:
    """Describes why an operation did not succeed.

    Attributes:
        code: Discriminator the caller switches on.
        message: Human readable explanation, safe to show to the user.
        details: Extra structured data (``locked_until``, ``status_code``...).
    """

    code: ErrorCode
    message: str = ""
    details: dict[str, Any] = field(default_factory=default_details_factory)


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either a value or a :class:`Failure`, never both."""

    _value: T | None = None
    _error: Failure | None = None

    # ── Factory methods ──────────────────────────────────────────

    @classmethod
    def ok(cls, value: T) -> Result[T]:
        return cls(_value=value)

    @classmethod
    def fail(cls, code: ErrorCode, message: str = "", **details: Any) -> Result[T]:
        return cls(_error=Failure(code=code, message=message, details=details))

    @classmethod
    def from_failure(cls, failure: Failure) -> Result[T]:
        """Re-wrap another result's failure under a new value type."""
        return cls(_error=failure)

    # ── Accessors ────────────────────────────────────────────────

    @property
    def is_ok(self) -> bool:
        return self._error is None

    @property
    def value(self) -> T:
        if self._error is not None:
            raise RuntimeError(f"Result is a failure ({self._error.code.value})")
        return self._value  # type: ignore[return-value]

    @property
    def error(self) -> Failure:
        if self._error is None:
            raise RuntimeError("Result is a success and carries no error")
        return self._error

    @property
    def code(self) -> ErrorCode | None:
        """Shortcut for ``result.error.code``; ``None`` on success."""
        return None if self._error is None else self._error.code

    def __bool__(self) -> bool:
        return self.is_ok


def catch_infrastructure_faults(
    operation: str,
) -> Callable[[Callable[P, Awaitable[Result[T]]]], Callable[P, Awaitable[Result[T]]]]:
    """Turn unexpected exceptions into an opaque ``INTERNAL`` failure.

    The traceback is logged together with the operation name and the
    ``user_id`` argument when the wrapped function takes one. Argument
    values other than ``user_id`` are never logged, so secrets, tokens and
    recovery codes stay out of the log stream.

    Args:
        operation: Name used in the log record, e.g. ``"two_factor.verify_token"``.
    """

    def decorator(
        func: Callable[P, Awaitable[Result[T]]],
    ) -> Callable[P, Awaitable[Result[T]]]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> Result[T]:
            try:
                return await func(*args, **kwargs)
            except Exception:
                try:
                    user_id = signature.bind_partial(*args, **kwargs).arguments.get(
                        "user_id"
                    )
                except TypeError:
                    user_id = None
                logger.exception(
                    "Unexpected failure in %s (user_id=%s)", operation, user_id
                )
                return Result.fail(ErrorCode.INTERNAL, "Internal error")

        return wrapper

    return decorator


__all__: list[str] = [
    "ErrorCode",
    "Failure",
    "Result",
    "catch_infrastructure_faults",
]
