"""Retry orchestration: Tenacity-based attempts around a single send.

The agent hands :func:`run_with_retry` a zero-argument operation that performs
one complete send-check-decode-validate cycle.  Every failure the error
hierarchy marks as retryable (transport, status, decode, and by default
envelope validation) triggers a full re-execution of that cycle.

Design:
- **Bounded attempts**: 6 unless configured otherwise
- **Exponential backoff with jitter**: 100 ms base, up to 100 ms random jitter
- **Optional delay cap**: ``max_delay_seconds`` bounds each individual wait;
  0 leaves the backoff uncapped
- **Retry-After support**: a server hint on a status error takes precedence,
  bounded by ``max_retry_after_seconds`` (60 s by default)
- **Cancellation-aware sleeps**: waits go through the cancellation token, so
  cancelling aborts the loop with :class:`RequestCancelled` at once
- **Last error wins**: on exhaustion the final attempt's exception is raised as-is

Example:
    >>> from HttpAgent.retry import RetryOptions, run_with_retry
    >>> run_with_retry(lambda: None, RetryOptions(attempts=3))
"""

from __future__ import annotations

import email.utils
import logging
from datetime import datetime, timezone
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)
from tenacity.wait import wait_base

from .cancellation import CancellationToken
from .errors import UnexpectedStatusError, is_retryable_error

__all__ = [
    "DEFAULT_ATTEMPTS",
    "RetryOptions",
    "create_retry_policy",
    "run_with_retry",
]

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 6
BASE_DELAY_SECONDS = 0.1
MAX_JITTER_SECONDS = 0.1
DEFAULT_MAX_RETRY_AFTER_SECONDS = 60.0

T = TypeVar("T")


class RetryOptions(BaseModel):
    """Per-request retry policy.

    Attributes:
        attempts: Total attempts including the first; 0 selects the default (6).
        max_delay_seconds: Cap on a single backoff wait; 0 means no cap.
        retry_app_error: Whether envelope validation failures are retried.
        max_retry_after_seconds: Ceiling on a server-requested Retry-After wait.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    attempts: int = Field(default=0, ge=0)
    max_delay_seconds: float = Field(default=0.0, ge=0.0)
    retry_app_error: bool = True
    max_retry_after_seconds: float = Field(default=DEFAULT_MAX_RETRY_AFTER_SECONDS, gt=0.0)

    def effective_attempts(self) -> int:
        return self.attempts or DEFAULT_ATTEMPTS


def _parse_retry_after_value(value: Optional[str]) -> Optional[float]:
    """Convert a Retry-After header value into a delay in seconds."""
    if not value:
        return None

    try:
        delay = float(int(value))
    except ValueError:
        try:
            dt = email.utils.parsedate_to_datetime(value)
        except (TypeError, ValueError):
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        delay = (dt - datetime.now(timezone.utc)).total_seconds()

    return max(0.0, delay)


class _RetryAfterOrBackoff(wait_base):
    """Wait strategy that honours Retry-After before falling back to backoff."""

    def __init__(
        self,
        fallback_wait: wait_base,
        max_delay_seconds: float,
        max_retry_after_seconds: float = DEFAULT_MAX_RETRY_AFTER_SECONDS,
    ) -> None:
        self._fallback_wait = fallback_wait
        self._max_delay_seconds = max_delay_seconds
        self._max_retry_after_seconds = max_retry_after_seconds

    def __call__(self, retry_state: RetryCallState) -> float:
        delay = self._retry_after_delay(retry_state)
        if delay is None:
            delay = float(self._fallback_wait(retry_state))
        else:
            delay = min(delay, self._max_retry_after_seconds)
        if self._max_delay_seconds > 0:
            delay = min(delay, self._max_delay_seconds)
        return delay

    @staticmethod
    def _retry_after_delay(retry_state: RetryCallState) -> Optional[float]:
        outcome = retry_state.outcome
        if outcome is None:
            return None
        exc = outcome.exception()
        if isinstance(exc, UnexpectedStatusError):
            return _parse_retry_after_value(exc.headers.get("Retry-After"))
        return None


def create_retry_policy(
    options: RetryOptions,
    cancel_token: Optional[CancellationToken] = None,
) -> Retrying:
    """Create the Tenacity controller for ``options``.

    Args:
        options: Attempts, delay cap, and validation-retry flag
        cancel_token: Token whose ``sleep`` replaces ``time.sleep`` between attempts

    Returns:
        Configured Tenacity Retrying object
    """
    token = cancel_token or CancellationToken()
    retry_app_error = options.retry_app_error

    return Retrying(
        stop=stop_after_attempt(options.effective_attempts()),
        wait=_RetryAfterOrBackoff(
            fallback_wait=wait_exponential(multiplier=BASE_DELAY_SECONDS)
            + wait_random(0, MAX_JITTER_SECONDS),
            max_delay_seconds=options.max_delay_seconds,
            max_retry_after_seconds=options.max_retry_after_seconds,
        ),
        retry=retry_if_exception(
            lambda exc: is_retryable_error(exc, retry_app_error=retry_app_error)
        ),
        sleep=token.sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        # Re-raise the last attempt's exception instead of wrapping it in RetryError
        reraise=True,
    )


def run_with_retry(
    operation: Callable[[], T],
    options: RetryOptions,
    cancel_token: Optional[CancellationToken] = None,
) -> T:
    """Invoke ``operation`` until it succeeds, attempts run out, or the token fires.

    Raises:
        RequestCancelled: If the token is cancelled before or between attempts.
        Exception: The last attempt's error once attempts are exhausted.
    """
    token = cancel_token or CancellationToken()

    def _attempt() -> T:
        token.raise_if_cancelled()
        return operation()

    policy = create_retry_policy(options, token)
    return policy(_attempt)
