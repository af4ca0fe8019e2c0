"""HTTP network layer instrumentation.

Builds HTTPX event hooks that time every request issued through the default
client and log one ``net.request`` record per response, with the query string
redacted from the logged URL.
"""

import logging
import time
from typing import Any

from HttpAgent.logging_utils import redact_url

logger = logging.getLogger(__name__)


def create_http_event_hooks() -> dict:
    """Create HTTPX event hooks for request telemetry.

    Returns:
        Dict with 'request' and 'response' hooks for an HTTPX client

    Usage:
        >>> import httpx
        >>> hooks = create_http_event_hooks()
        >>> client = httpx.Client(event_hooks=hooks)
    """

    def on_request(request: Any) -> None:
        request.extensions["t0_perf"] = time.perf_counter()

    def on_response(response: Any) -> None:
        request = response.request
        started = request.extensions.get("t0_perf")
        if started is None:
            return
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        logger.debug(
            "net.request",
            extra={
                "method": request.method,
                "url_redacted": redact_url(request.url),
                "host": request.url.host or "unknown",
                "status": response.status_code,
                "http_version": response.http_version,
                "elapsed_ms": round(elapsed_ms, 3),
            },
        )

    return {
        "request": [on_request],
        "response": [on_response],
    }


__all__ = [
    "create_http_event_hooks",
]
