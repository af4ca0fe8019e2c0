# === NAVMAP v1 ===
# {
#   "module": "HttpAgent.handlers",
#   "purpose": "Response handler chain: raw capture, JSON decoding, and predicate-dispatched hybrids",
#   "sections": [
#     {"id": "resphandler", "name": "RespHandler", "anchor": "class-resphandler", "kind": "class"},
#     {"id": "rawresp", "name": "RawResp", "anchor": "class-rawresp", "kind": "class"},
#     {"id": "jsonresp", "name": "JsonResp", "anchor": "class-jsonresp", "kind": "class"},
#     {"id": "hybridresp", "name": "HybridResp", "anchor": "class-hybridresp", "kind": "class"},
#     {"id": "predicates", "name": "status_in / content_type_contains", "anchor": "function-status-in", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Response handlers.

A handler runs after the status check and owns everything that happens to the
response payload.  Every handler is also an option: passing one to an agent
factory registers it as that agent's handler (the last one registered wins).

Usually :class:`JsonResp`, :class:`RawResp` and :class:`HybridResp` cover the
common cases; subclass :class:`RespHandler` or pass any object with a
``handle(response, wrapper)`` method to :func:`HttpAgent.agent.custom_resp_handler`
for anything else.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, NamedTuple, Optional, Sequence, Tuple, Union

import httpx

from .decoding import ensure_output_slot, populate
from .errors import (
    BodyReadError,
    DecodeError,
    HybridHandlerError,
    ValidationFailure,
)
from .wrappers import Wrapper

if TYPE_CHECKING:  # pragma: no cover
    from .agent import Agent

__all__ = [
    "RespHandler",
    "RawResp",
    "JsonResp",
    "HybridResp",
    "RespHandlerPredicate",
    "status_in",
    "content_type_contains",
]

logger = logging.getLogger(__name__)

Predicate = Callable[[httpx.Response], bool]


class RespHandler(ABC):
    """Base class for response handlers that double as agent options."""

    @abstractmethod
    def handle(self, response: httpx.Response, wrapper: Optional[Wrapper]) -> None:
        """Consume ``response``; raise on decode or validation failure."""

    def check(self) -> None:
        """Validate handler configuration before any request is sent."""

    def __call__(self, agent: "Agent") -> None:
        self.check()
        agent.resp_handler = self


def _read_body(response: httpx.Response) -> bytes:
    try:
        return response.read()
    except (httpx.HTTPError, httpx.StreamError, OSError) as exc:
        raise BodyReadError(f"read http body failed: {exc}") from exc


class RawResp(RespHandler):
    """Capture the response and its raw body without decoding.

    After a successful call ``response`` holds the ``httpx.Response`` (closed,
    metadata only) and ``body`` the full payload bytes.  ``keep_body=False``
    skips reading the body.
    """

    def __init__(self, *, keep_body: bool = True) -> None:
        self.keep_body = keep_body
        self.response: Optional[httpx.Response] = None
        self.body: Optional[bytes] = None

    def handle(self, response: httpx.Response, wrapper: Optional[Wrapper]) -> None:
        self.response = response
        if self.keep_body:
            self.body = _read_body(response)


class JsonResp(RespHandler):
    """Decode a JSON response into ``target`` in place.

    ``target`` must be an output slot (see :mod:`HttpAgent.decoding`); the
    check runs when the handler is applied to an agent, before any I/O.
    """

    def __init__(self, target: Any) -> None:
        self.target = target

    def check(self) -> None:
        ensure_output_slot(self.target, "result payload")

    def handle(self, response: httpx.Response, wrapper: Optional[Wrapper]) -> None:
        destination = self.target
        if wrapper is not None:
            wrapper.set_data(self.target)
            destination = wrapper

        # Read everything up front: the raw text is needed for the error message
        # when decoding fails.
        body = _read_body(response)
        try:
            decoded = json.loads(body)
            populate(destination, decoded)
        except (ValueError, DecodeError) as exc:
            text = body.decode("utf-8", errors="replace")
            raise DecodeError(f"unmarshal body failed: {exc}, body: {text}", body=body) from exc

        if wrapper is None:
            return
        try:
            wrapper.validate()
        except ValidationFailure:
            raise
        except Exception as exc:
            raise ValidationFailure(f"response wrapper rejected payload: {exc}") from exc


class RespHandlerPredicate(NamedTuple):
    """Pairs a predicate over the response with the handler to run when it matches."""

    predicate: Predicate
    resp_handler: Any


class HybridResp(RespHandler):
    """Run every handler whose predicate matches the response, in order.

    Useful when the same endpoint answers with different payload formats, e.g.
    JSON for success codes and plain text otherwise.  The first failing
    handler aborts the chain with a :class:`HybridHandlerError` naming its
    position.
    """

    def __init__(
        self,
        *predicates: Union[RespHandlerPredicate, Tuple[Predicate, Any]],
    ) -> None:
        self.predicates: Sequence[RespHandlerPredicate] = tuple(
            RespHandlerPredicate(*p) for p in predicates
        )

    def check(self) -> None:
        for p in self.predicates:
            check = getattr(p.resp_handler, "check", None)
            if callable(check):
                check()

    def handle(self, response: httpx.Response, wrapper: Optional[Wrapper]) -> None:
        for i, p in enumerate(self.predicates):
            if not p.predicate(response):
                continue
            logger.debug("hybrid predicate matched", extra={"index": i})
            try:
                p.resp_handler.handle(response, wrapper)
            except Exception as exc:
                raise HybridHandlerError(i, exc) from exc


def status_in(*codes: int) -> Predicate:
    """Predicate matching responses whose status code is one of ``codes``."""

    wanted = frozenset(codes)
    return lambda response: response.status_code in wanted


def content_type_contains(fragment: str) -> Predicate:
    """Predicate matching responses whose ``Content-Type`` contains ``fragment``."""

    lowered = fragment.lower()
    return lambda response: lowered in response.headers.get("Content-Type", "").lower()
