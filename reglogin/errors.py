"""Error types raised by the login flow.

Library code raises these; only the CLI turns them into messages and exit
codes.
"""

from __future__ import annotations


class LoginError(RuntimeError):
    """Base error for a failed login attempt."""


class InvalidArgumentError(LoginError):
    """Malformed server name, URL, or missing credential input."""


class AuthError(LoginError):
    """The registry rejected the credentials (4xx)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransientError(LoginError):
    """The registry answered with a server-side failure (5xx) or was unreachable."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetriesExhaustedError(TransientError):
    """Every probe attempt allowed by the retry policy failed transiently."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.attempts = attempts


class StoreError(LoginError):
    """The credential verified but could not be persisted."""


class StoreAccessDeniedError(StoreError):
    """The secure store is locked, unavailable, or denies the caller."""


class StoreIOError(StoreError):
    """Reading or writing the secure store failed."""
