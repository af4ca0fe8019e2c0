"""Request assembly: method + URL + ordered pre-handlers.

The assembler produces a :class:`RequestDraft`, a mutable description of the
outbound request.  Pre-handlers run strictly in registration order and either
edit the draft in place (returning ``None``), return a replacement draft, or
raise to abort before any network I/O.  The draft is turned into an
``httpx.Request`` through ``client.build_request()`` for every attempt, so the
client's default headers and timeouts apply and ``Content-Length`` always
matches the final body.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import httpx

from .errors import HttpAgentError, RequestBuildError, RequestPreparationError

__all__ = ["RequestDraft", "ReqPreHandler", "assemble"]

logger = logging.getLogger(__name__)

# RFC 9110 token characters.
_METHOD_RE = re.compile(r"[!#$%&'*+.^_`|~0-9A-Za-z-]+")


@dataclass
class RequestDraft:
    """Partially built outbound request."""

    method: str
    url: httpx.URL
    headers: httpx.Headers = field(default_factory=httpx.Headers)
    content: Optional[bytes] = None

    def set_body(self, content: bytes, content_type: str) -> None:
        """Replace the body and its ``Content-Type`` together."""
        self.headers["Content-Type"] = content_type
        self.content = content

    def build(self, client: httpx.Client, *, timeout: Optional[float] = None) -> httpx.Request:
        """Create the ``httpx.Request`` for one attempt."""
        kwargs = {}
        if timeout is not None:
            kwargs["timeout"] = httpx.Timeout(timeout)
        return client.build_request(
            self.method,
            self.url,
            headers=self.headers,
            content=self.content,
            **kwargs,
        )


ReqPreHandler = Callable[[RequestDraft], Optional[RequestDraft]]


def assemble(method: str, url: str | httpx.URL, pre_handlers: Iterable[ReqPreHandler]) -> RequestDraft:
    """Build a draft for ``method``/``url`` and run ``pre_handlers`` over it.

    Raises:
        RequestBuildError: If the method or URL is malformed.
        RequestPreparationError: If a pre-handler fails with a non-agent error.
    """

    if not isinstance(method, str) or not _METHOD_RE.fullmatch(method):
        raise RequestBuildError(f"new request failed: invalid method {method!r}")
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise RequestBuildError(f"new request failed: {exc}") from exc
    if not parsed.scheme or not parsed.host:
        raise RequestBuildError(f"new request failed: URL {str(parsed)!r} is not absolute")

    draft = RequestDraft(method=method.upper(), url=parsed)
    for position, handler in enumerate(pre_handlers):
        try:
            replacement = handler(draft)
        except HttpAgentError:
            raise
        except Exception as exc:
            raise RequestPreparationError(f"request pre-handler {position} failed: {exc}") from exc
        if replacement is not None:
            draft = replacement

    logger.debug(
        "request assembled",
        extra={"method": draft.method, "host": draft.url.host, "has_body": draft.content is not None},
    )
    return draft
