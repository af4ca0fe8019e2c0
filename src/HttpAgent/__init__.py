"""Fluent HTTP request builder.

Compose a request from reusable options, execute it once, and let a pluggable
handler decode (and optionally validate) the response::

    >>> from HttpAgent import JsonResp, get, retry
    >>> payload = {}
    >>> get("https://httpbin.org/get", JsonResp(payload), retry(attempts=3)).do()  # doctest: +SKIP

Modules:
- agent: ``Agent``, method factories, and agent-level options
- assembler: request drafts and ordered pre-handlers
- request_options: header setters and JSON / form / text body encoders
- handlers: raw, JSON, and hybrid response handlers
- wrappers: response envelopes validated after decoding
- decoding: output slots and in-place population of decoded values
- retry: Tenacity-based retry orchestration
- cancellation: cooperative cancellation tokens
- errors: exception hierarchy
- settings / logging_utils / network: configuration, logging, default client
"""

from HttpAgent.agent import (
    DEFAULT_EXPECTED_STATUS_CODES,
    Agent,
    AgentOp,
    cancel_token,
    custom_resp_handler,
    delete,
    expected_status_codes,
    get,
    patch,
    post,
    put,
    resp_wrapper,
    retry,
    use_client,
)
from HttpAgent.assembler import RequestDraft
from HttpAgent.cancellation import CancellationToken, CancellationTokenGroup
from HttpAgent.decoding import Ref
from HttpAgent.errors import (
    BodyReadError,
    ConfigurationError,
    DecodeError,
    HttpAgentError,
    HybridHandlerError,
    RequestBuildError,
    RequestCancelled,
    RequestPreparationError,
    TransportError,
    UnexpectedStatusError,
    ValidationFailure,
)
from HttpAgent.handlers import (
    HybridResp,
    JsonResp,
    RawResp,
    RespHandler,
    RespHandlerPredicate,
    content_type_contains,
    status_in,
)
from HttpAgent.request_options import form_req, json_req, set_headers, text_req
from HttpAgent.retry import RetryOptions
from HttpAgent.wrappers import CodeMsgEnvelope, Wrapper

__version__ = "0.1.0"

__all__ = [
    # Construction & execution
    "Agent",
    "AgentOp",
    "DEFAULT_EXPECTED_STATUS_CODES",
    "get",
    "post",
    "put",
    "patch",
    "delete",
    # Options
    "expected_status_codes",
    "cancel_token",
    "retry",
    "resp_wrapper",
    "custom_resp_handler",
    "use_client",
    "set_headers",
    "json_req",
    "form_req",
    "text_req",
    # Request assembly
    "RequestDraft",
    # Response handling
    "RespHandler",
    "RawResp",
    "JsonResp",
    "HybridResp",
    "RespHandlerPredicate",
    "status_in",
    "content_type_contains",
    "Wrapper",
    "CodeMsgEnvelope",
    "Ref",
    # Retry & cancellation
    "RetryOptions",
    "CancellationToken",
    "CancellationTokenGroup",
    # Errors
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
    "__version__",
]
