"""Retrying connectivity probe.

Proves that a credential authenticates against a registry by pinging it
under an explicit :class:`RetryPolicy`. Only server-side failures (5xx) and
request errors are retried; a client-side rejection (4xx) is final, since
repeating a bad password only risks locking the account.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Protocol

import httpx

from reglogin.errors import AuthError, RetriesExhaustedError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_RETRY_INTERVAL = 0.3  # seconds


def retry_on_server_error(status: int) -> bool:
    """Default retry predicate: retry any 5xx response."""
    return status >= 500


class Pinger(Protocol):
    """Anything that can issue an authenticated ping and report its status."""

    def ping(self) -> int: ...


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to ping, how long to wait between pings, and which
    statuses are worth another attempt."""

    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    interval: float = DEFAULT_RETRY_INTERVAL
    should_retry: Callable[[int], bool] = retry_on_server_error
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.interval < 0:
            raise ValueError(f"interval must not be negative, got {self.interval}")


def _rejection_message(status: int) -> str:
    if status == 401:
        return "authentication failed: invalid username or password"
    if status == 403:
        return "authentication failed: access to the registry is forbidden"
    return f"registry rejected the login request (status {status})"


def probe(client: Pinger, policy: RetryPolicy | None = None) -> int:
    """Ping *client* until it succeeds, is rejected, or the policy runs out.

    Returns the number of attempts made on success.

    Raises
    ------
    AuthError
        The registry answered with a status the policy does not retry.
    RetriesExhaustedError
        Every attempt failed with a retryable status or a request error
        (connection failure, timeout, undecodable response).
    """
    policy = policy or RetryPolicy()
    last_status: int | None = None
    last_error: httpx.RequestError | None = None

    for attempt in range(1, policy.max_attempts + 1):
        try:
            status = client.ping()
        except httpx.RequestError as e:
            logger.debug("ping attempt %d/%d failed: %s", attempt, policy.max_attempts, e)
            last_status, last_error = None, e
        else:
            logger.debug("ping attempt %d/%d -> %d", attempt, policy.max_attempts, status)
            if 200 <= status < 300:
                return attempt
            if not policy.should_retry(status):
                raise AuthError(_rejection_message(status), status_code=status)
            last_status, last_error = status, None

        if attempt < policy.max_attempts:
            policy.sleep(policy.interval)

    if last_status is not None:
        message = (
            f"registry unavailable: status {last_status} after {policy.max_attempts} attempts"
        )
    else:
        message = f"registry request failed after {policy.max_attempts} attempts: {last_error}"
    raise RetriesExhaustedError(
        message, status_code=last_status, attempts=policy.max_attempts
    ) from last_error
