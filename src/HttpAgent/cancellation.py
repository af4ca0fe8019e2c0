"""Cooperative cancellation primitives shared by agents and the retry loop.

An agent threads one :class:`CancellationToken` through request construction
and the retry loop.  The token can be cancelled from any thread, optionally
carries a deadline, and interrupts inter-attempt sleeps immediately instead of
letting the backoff run to completion.  :class:`CancellationTokenGroup` fans a
single cancellation out to several agents issued together.
"""

from __future__ import annotations

import threading
import time
from typing import Optional

from .errors import RequestCancelled


class CancellationToken:
    """Thread-safe cancellation token for cooperative request cancellation.

    A token created without arguments never expires on its own and plays the
    role of a background context.  ``timeout`` sets a deadline relative to
    construction time.

    Examples:
        >>> token = CancellationToken()
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self, timeout: Optional[float] = None) -> None:
        """Initialize a new cancellation token."""
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be non-negative")
        self._is_cancelled = threading.Event()
        self._lock = threading.Lock()
        self._deadline = None if timeout is None else time.monotonic() + timeout
        self._reason = "request cancelled"

    def cancel(self, reason: str = "request cancelled") -> None:
        """Signal that cancellation has been requested."""
        with self._lock:
            if not self._is_cancelled.is_set():
                self._reason = reason
            self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        """Return ``True`` once cancelled or past the deadline."""
        if self._is_cancelled.is_set():
            return True
        remaining = self.remaining()
        return remaining is not None and remaining <= 0

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or ``None`` without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        """Raise :class:`RequestCancelled` when the token has fired."""
        if self._is_cancelled.is_set():
            raise RequestCancelled(self._reason)
        remaining = self.remaining()
        if remaining is not None and remaining <= 0:
            raise RequestCancelled("deadline exceeded")

    def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless the token fires first.

        Raises:
            RequestCancelled: If cancellation or the deadline interrupts the wait.
        """
        self.raise_if_cancelled()
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            if self._is_cancelled.wait(remaining):
                raise RequestCancelled(self._reason)
            raise RequestCancelled("deadline exceeded")
        if self._is_cancelled.wait(max(0.0, seconds)):
            raise RequestCancelled(self._reason)

    def reset(self) -> None:
        """Reset the cancellation flag.

        This should only be used for testing or when reusing tokens in
        controlled scenarios; the deadline is left untouched.
        """
        with self._lock:
            self._is_cancelled.clear()
            self._reason = "request cancelled"


class CancellationTokenGroup:
    """A group of cancellation tokens that can be cancelled together."""

    def __init__(self) -> None:
        self._tokens: list[CancellationToken] = []
        self._lock = threading.Lock()
        self._cancelled = False

    def add_token(self, token: CancellationToken) -> None:
        """Add ``token``; it is cancelled at once if the group already was."""
        with self._lock:
            self._tokens.append(token)
            if self._cancelled:
                token.cancel()

    def create_token(self, timeout: Optional[float] = None) -> CancellationToken:
        """Create a new token and add it to this group."""
        token = CancellationToken(timeout=timeout)
        self.add_token(token)
        return token

    def remove_token(self, token: CancellationToken) -> None:
        """Remove ``token`` from this group if it is present."""
        with self._lock:
            try:
                self._tokens.remove(token)
            except ValueError:
                pass

    def cancel_all(self, reason: str = "request cancelled") -> None:
        """Cancel all tokens in this group."""
        with self._lock:
            self._cancelled = True
            for token in self._tokens:
                token.cancel(reason)

    def is_any_cancelled(self) -> bool:
        with self._lock:
            return any(token.is_cancelled() for token in self._tokens)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)


__all__ = ["CancellationToken", "CancellationTokenGroup"]
