"""Options that register request pre-handlers: headers and body encoders.

Each function returns an option; applying the option appends one pre-handler to
the agent, so the pre-handlers run in the order the options were given.  Body
encoders set ``Content-Type`` and the body in the same step.
"""

from __future__ import annotations

import dataclasses
import json
from typing import TYPE_CHECKING, Any, Callable, Mapping, Sequence, Tuple, Union
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel

from .assembler import RequestDraft
from .errors import RequestPreparationError

if TYPE_CHECKING:  # pragma: no cover
    from .agent import Agent

__all__ = ["set_headers", "json_req", "form_req", "text_req", "encode_form"]

AgentOp = Callable[["Agent"], None]
FormValues = Mapping[str, Union[str, Sequence[str]]]

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"
TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"


def set_headers(
    headers: Mapping[str, str] | Sequence[Tuple[str, str]] | httpx.Headers,
    *,
    replace: bool = False,
) -> AgentOp:
    """Merge ``headers`` into the request, or replace all headers with ``replace=True``.

    A merged header name replaces every earlier value of that name; repeated
    names in ``headers`` itself are all sent.
    """

    snapshot = httpx.Headers(headers)

    def _pre_handle(draft: RequestDraft) -> None:
        if replace:
            draft.headers = httpx.Headers(snapshot)
            return
        incoming = {key.lower() for key in snapshot.keys()}
        kept = [(k, v) for k, v in draft.headers.multi_items() if k.lower() not in incoming]
        draft.headers = httpx.Headers(kept + snapshot.multi_items())

    def _apply(agent: "Agent") -> None:
        agent.pre_handlers.append(_pre_handle)

    return _apply


def text_req(text: str) -> AgentOp:
    """Send ``text`` as a UTF-8 ``text/plain`` body."""

    def _pre_handle(draft: RequestDraft) -> None:
        draft.set_body(text.encode("utf-8"), TEXT_CONTENT_TYPE)

    def _apply(agent: "Agent") -> None:
        agent.pre_handlers.append(_pre_handle)

    return _apply


def json_req(body: Any) -> AgentOp:
    """Send ``body`` encoded as JSON.

    Pydantic models and dataclasses are converted to plain data first.
    """

    def _pre_handle(draft: RequestDraft) -> None:
        try:
            payload = json.dumps(_to_jsonable(body), ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            raise RequestPreparationError(f"json marshal failed: {exc}") from exc
        draft.set_body(payload.encode("utf-8"), JSON_CONTENT_TYPE)

    def _apply(agent: "Agent") -> None:
        agent.pre_handlers.append(_pre_handle)

    return _apply


def form_req(values: FormValues) -> AgentOp:
    """Send ``values`` form-encoded.

    For GET the encoded form goes into the query string, appended with ``&``
    when a query is already present.  Every other method carries it as the
    body.
    """

    def _pre_handle(draft: RequestDraft) -> RequestDraft:
        encoded = encode_form(values)
        if draft.method == "GET":
            existing = draft.url.query.decode("ascii")
            query = f"{existing}&{encoded}" if existing else encoded
            draft.url = draft.url.copy_with(query=query.encode("ascii"))
            return draft
        draft.set_body(encoded.encode("ascii"), FORM_CONTENT_TYPE)
        return draft

    def _apply(agent: "Agent") -> None:
        agent.pre_handlers.append(_pre_handle)

    return _apply


def encode_form(values: FormValues) -> str:
    """URL-encode ``values`` with keys sorted; sequences repeat their key."""

    pairs = []
    for key in sorted(values):
        value = values[key]
        if isinstance(value, (str, bytes)):
            pairs.append((key, value))
        else:
            pairs.extend((key, item) for item in value)
    return urlencode(pairs)


def _to_jsonable(body: Any) -> Any:
    if isinstance(body, BaseModel):
        return body.model_dump(mode="json", by_alias=True)
    if dataclasses.is_dataclass(body) and not isinstance(body, type):
        return dataclasses.asdict(body)
    return body
