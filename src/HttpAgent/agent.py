# === NAVMAP v1 ===
# {
#   "module": "HttpAgent.agent",
#   "purpose": "Agent configuration aggregate, execution engine, method factories, and agent options",
#   "sections": [
#     {"id": "agent", "name": "Agent", "anchor": "class-agent", "kind": "class"},
#     {"id": "factories", "name": "get / post / put / patch / delete", "anchor": "function-get", "kind": "function"},
#     {"id": "options", "name": "Agent options", "anchor": "function-expected-status-codes", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Agent: a configurable, not-yet-executed HTTP request.

An agent is created by a method factory with a URL and a list of options, and
runs when :meth:`Agent.do` is called::

    result = Result()
    get("https://api.example.com/items", JsonResp(result), retry(attempts=3)).do()

``do()`` applies the queued options in order, assembles the request, sends it
(through the retry orchestrator when a retry policy is set), checks the status
code against the expected set, and hands the response to the configured
handler.  It returns ``None`` on success and raises a single
:class:`~HttpAgent.errors.HttpAgentError` otherwise.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, List, Optional, Sequence

import httpx

from .assembler import ReqPreHandler, RequestDraft, assemble
from .cancellation import CancellationToken
from .decoding import ensure_output_slot
from .errors import (
    ConfigurationError,
    HttpAgentError,
    RequestCancelled,
    TransportError,
    UnexpectedStatusError,
)
from .logging_utils import redact_url
from .network import get_http_client
from .retry import RetryOptions, run_with_retry
from .settings import get_settings
from .wrappers import Wrapper

__all__ = [
    "Agent",
    "AgentOp",
    "DEFAULT_EXPECTED_STATUS_CODES",
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "expected_status_codes",
    "cancel_token",
    "retry",
    "resp_wrapper",
    "custom_resp_handler",
    "use_client",
]

logger = logging.getLogger(__name__)

AgentOp = Callable[["Agent"], None]

DEFAULT_EXPECTED_STATUS_CODES = (200,)


class Agent:
    """Mutable request configuration plus the execution engine.

    Attributes are set by options while :meth:`do` applies them; an agent must
    not be executed from several threads at once.
    """

    def __init__(self, method: str, url: str, *ops: AgentOp) -> None:
        self.method = method
        self.url = url
        self.cancel_token: Optional[CancellationToken] = None
        self.pre_handlers: List[ReqPreHandler] = []
        self.resp_handler: Any = None
        self.resp_wrapper: Optional[Wrapper] = None
        self.client: Optional[httpx.Client] = None
        self.expected_status_codes: Sequence[int] = ()
        self.retry_options: Optional[RetryOptions] = None
        self._pending_ops: List[AgentOp] = list(ops)

    def ops(self, *ops: AgentOp) -> "Agent":
        """Queue more options; they run after the ones already queued."""
        self._pending_ops.extend(ops)
        return self

    def do(self) -> None:
        """Execute the request.

        Raises:
            ConfigurationError: An option could not be applied.
            RequestBuildError: The method or URL is malformed.
            RequestPreparationError: A pre-handler (header/body encoder) failed.
            TransportError: The client could not deliver the request.
            UnexpectedStatusError: The status code is not in the expected set.
            DecodeError: The payload could not be decoded into its target.
            ValidationFailure: The response wrapper rejected the payload.
            RequestCancelled: The cancellation token fired.
        """
        self._apply_pending_ops()
        if not self.expected_status_codes:
            self.expected_status_codes = DEFAULT_EXPECTED_STATUS_CODES
        if self.cancel_token is None:
            self.cancel_token = CancellationToken()

        draft = assemble(self.method, self.url, self.pre_handlers)

        if self.client is None:
            self.client = get_http_client()

        client, token = self.client, self.cancel_token
        if self.retry_options is None:
            self._send_once(client, token, draft)
            return
        run_with_retry(lambda: self._send_once(client, token, draft), self.retry_options, token)

    def _apply_pending_ops(self) -> None:
        while self._pending_ops:
            op = self._pending_ops.pop(0)
            try:
                op(self)
            except HttpAgentError:
                raise
            except Exception as exc:
                raise ConfigurationError(f"apply option {op!r} failed: {exc}") from exc

    def _send_once(
        self, client: httpx.Client, token: CancellationToken, draft: RequestDraft
    ) -> None:
        token.raise_if_cancelled()

        request = draft.build(client, timeout=token.remaining())
        logger.debug(
            "sending request",
            extra={"method": request.method, "url_redacted": redact_url(request.url)},
        )
        try:
            response = client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise TransportError(f"request do failed: {exc}") from exc

        try:
            if token.is_cancelled():
                raise RequestCancelled("request cancelled while in flight")
            if response.status_code not in self.expected_status_codes:
                raise UnexpectedStatusError.from_response(self.expected_status_codes, response)
            logger.debug(
                "response accepted",
                extra={"status": response.status_code, "url_redacted": redact_url(request.url)},
            )
            if self.resp_handler is not None:
                self.resp_handler.handle(response, self.resp_wrapper)
        finally:
            response.close()


# ============================================================================
# Factories
# ============================================================================


def get(url: str, *ops: AgentOp) -> Agent:
    """Start a request with GET."""
    return Agent("GET", url, *ops)


def post(url: str, *ops: AgentOp) -> Agent:
    """Start a request with POST."""
    return Agent("POST", url, *ops)


def put(url: str, *ops: AgentOp) -> Agent:
    """Start a request with PUT."""
    return Agent("PUT", url, *ops)


def patch(url: str, *ops: AgentOp) -> Agent:
    """Start a request with PATCH."""
    return Agent("PATCH", url, *ops)


def delete(url: str, *ops: AgentOp) -> Agent:
    """Start a request with DELETE."""
    return Agent("DELETE", url, *ops)


# ============================================================================
# Options
# ============================================================================


def expected_status_codes(*codes: int | Iterable[int]) -> AgentOp:
    """Replace the accepted status codes (default: 200 only)."""

    def _apply(agent: Agent) -> None:
        flat: List[int] = []
        for code in codes:
            if isinstance(code, int):
                flat.append(code)
            elif isinstance(code, Iterable) and not isinstance(code, (str, bytes)):
                flat.extend(code)
            else:
                raise ConfigurationError(f"invalid expected status code {code!r}")
        for code in flat:
            if isinstance(code, bool) or not isinstance(code, int) or not 100 <= code <= 599:
                raise ConfigurationError(f"invalid expected status code {code!r}")
        agent.expected_status_codes = tuple(flat)

    return _apply


def cancel_token(token: CancellationToken) -> AgentOp:
    """Use ``token`` to cancel the request and any pending retry delay."""

    def _apply(agent: Agent) -> None:
        if not isinstance(token, CancellationToken):
            raise ConfigurationError("cancel_token expects a CancellationToken")
        agent.cancel_token = token

    return _apply


def retry(options: Optional[RetryOptions] = None, **overrides: Any) -> AgentOp:
    """Retry the whole send-decode-validate cycle on retryable failures.

    Without arguments the defaults come from the ``retry`` settings section;
    keyword overrides (``attempts``, ``max_delay_seconds``,
    ``retry_app_error``, ``max_retry_after_seconds``) are applied on top.
    """

    def _apply(agent: Agent) -> None:
        base = options
        if base is None:
            defaults = get_settings().retry
            base = RetryOptions(
                attempts=defaults.attempts,
                max_delay_seconds=defaults.max_delay_seconds,
                retry_app_error=defaults.retry_app_error,
                max_retry_after_seconds=defaults.max_retry_after_seconds,
            )
        if not overrides:
            agent.retry_options = base
            return
        try:
            agent.retry_options = RetryOptions.model_validate({**base.model_dump(), **overrides})
        except ValueError as exc:
            raise ConfigurationError(f"invalid retry options: {exc}") from exc

    return _apply


def resp_wrapper(wrapper: Wrapper) -> AgentOp:
    """Decode responses through ``wrapper`` and validate them with it."""

    def _apply(agent: Agent) -> None:
        ensure_output_slot(wrapper, "response wrapper")
        if not callable(getattr(wrapper, "set_data", None)) or not callable(
            getattr(wrapper, "validate", None)
        ):
            raise ConfigurationError("response wrapper must provide set_data() and validate()")
        agent.resp_wrapper = wrapper

    return _apply


def custom_resp_handler(handler: Any) -> AgentOp:
    """Use ``handler`` (anything with ``handle(response, wrapper)``) for responses."""

    def _apply(agent: Agent) -> None:
        if not callable(getattr(handler, "handle", None)):
            raise ConfigurationError("response handler must provide handle(response, wrapper)")
        check = getattr(handler, "check", None)
        if callable(check):
            check()
        agent.resp_handler = handler

    return _apply


def use_client(client: httpx.Client) -> AgentOp:
    """Send through ``client`` instead of the shared default client."""

    def _apply(agent: Agent) -> None:
        if not isinstance(client, httpx.Client):
            raise ConfigurationError("use_client expects an httpx.Client")
        agent.client = client

    return _apply
