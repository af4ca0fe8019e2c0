# === NAVMAP v1 ===
# {
#   "module": "HttpAgent.errors",
#   "purpose": "Define the exception hierarchy raised while configuring, sending, and decoding requests",
#   "sections": [
#     {"id": "base", "name": "Base Exceptions", "anchor": "BAS", "kind": "api"},
#     {"id": "configuration", "name": "Configuration & Assembly Errors", "anchor": "CFG", "kind": "api"},
#     {"id": "transport", "name": "Transport & Status Errors", "anchor": "TRN", "kind": "api"},
#     {"id": "decode", "name": "Decode & Validation Errors", "anchor": "DEC", "kind": "api"},
#     {"id": "retry", "name": "Retry Classification", "anchor": "RTY", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
"""Exception hierarchy shared by request assembly, execution, and decoding.

A call to :meth:`HttpAgent.agent.Agent.do` either succeeds completely or raises
exactly one of the errors below.  Every class carries a ``retryable`` flag so
the retry orchestrator can tell transient failures (transport, status, decode,
envelope validation) from programming errors (bad options, malformed URLs,
body encoding failures) without a separate lookup table.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence

import httpx

__all__ = [
    "HttpAgentError",
    "ConfigurationError",
    "RequestBuildError",
    "RequestPreparationError",
    "RequestCancelled",
    "TransportError",
    "BodyReadError",
    "UnexpectedStatusError",
    "DecodeError",
    "ValidationFailure",
    "HybridHandlerError",
    "is_retryable_error",
]


class HttpAgentError(RuntimeError):
    """Base exception for every failure surfaced by an agent."""

    retryable: bool = False


class ConfigurationError(HttpAgentError):
    """Raised when an option cannot be applied to an agent."""


class RequestBuildError(HttpAgentError):
    """Raised when the method or URL cannot form a request."""


class RequestPreparationError(HttpAgentError):
    """Raised when a request pre-handler fails, for example while encoding a body."""


class RequestCancelled(HttpAgentError):
    """Raised when the cancellation token fires before the call completes."""


class TransportError(HttpAgentError):
    """Raised when the underlying client fails to deliver a request."""

    retryable = True


class BodyReadError(TransportError):
    """Raised when the response body cannot be read."""


class UnexpectedStatusError(HttpAgentError):
    """Raised when the response status is not one of the expected codes.

    The body is read eagerly when the error is built so the error stays
    self-contained after the response is closed.  If reading fails, the read
    failure is kept in :attr:`read_error` instead of the body.
    """

    retryable = True

    def __init__(
        self,
        status_code: int,
        expected_status_codes: Sequence[int],
        *,
        body: bytes = b"",
        read_error: Optional[BaseException] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self.expected_status_codes = tuple(expected_status_codes)
        self.body = body
        self.read_error = read_error
        self.headers = httpx.Headers(headers or {})
        super().__init__(self._render())

    @classmethod
    def from_response(
        cls, expected_status_codes: Sequence[int], response: httpx.Response
    ) -> "UnexpectedStatusError":
        """Build the error from ``response``, consuming its body."""

        try:
            body = response.read()
        except (httpx.HTTPError, httpx.StreamError, OSError) as exc:
            return cls(
                response.status_code,
                expected_status_codes,
                read_error=exc,
                headers=response.headers,
            )
        return cls(
            response.status_code,
            expected_status_codes,
            body=body,
            headers=response.headers,
        )

    def _render(self) -> str:
        expected = list(self.expected_status_codes)
        if self.read_error is not None:
            return (
                f"http code[{self.status_code}] is not expected({expected}) "
                f"and read body failed: {self.read_error}"
            )
        text = self.body.decode("utf-8", errors="replace")
        return f"http code[{self.status_code}] is not expected({expected}), body: {text}"


class DecodeError(HttpAgentError):
    """Raised when a response payload cannot be decoded into its target."""

    retryable = True

    def __init__(self, message: str, *, body: bytes = b"") -> None:
        super().__init__(message)
        self.body = body


class ValidationFailure(HttpAgentError):
    """Raised when an envelope wrapper rejects an otherwise well-formed payload."""

    retryable = True


class HybridHandlerError(HttpAgentError):
    """Raised when one of the handlers of a hybrid chain fails.

    ``index`` is the position of the predicate whose handler failed; the
    original exception is chained as ``__cause__``.
    """

    def __init__(self, index: int, error: BaseException) -> None:
        super().__init__(f"hybrid resp handle failed at {index}, err: {error}")
        self.index = index
        self.error = error

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return is_retryable_error(self.error)


def is_retryable_error(exc: BaseException, *, retry_app_error: bool = True) -> bool:
    """Return ``True`` when ``exc`` should trigger another attempt.

    Errors outside the hierarchy come from custom handlers and are retried;
    only the non-retryable members of the hierarchy stop the loop early.
    """

    if isinstance(exc, HybridHandlerError):
        return is_retryable_error(exc.error, retry_app_error=retry_app_error)
    if isinstance(exc, ValidationFailure):
        return retry_app_error
    if isinstance(exc, HttpAgentError):
        return bool(exc.retryable)
    return isinstance(exc, Exception)
