"""Network subsystem: the shared default HTTPX client and its instrumentation.

Modules:
- client: HTTPX client factory with lazy, PID-aware singleton
- instrumentation: Request/response hooks logging ``net.request`` records

Example:
    >>> from HttpAgent.network import get_http_client, close_http_client
    >>> client = get_http_client()
    >>> close_http_client()  # at process shutdown or test cleanup
"""

from HttpAgent.network.client import (
    close_http_client,
    get_http_client,
    reset_http_client,
)
from HttpAgent.network.instrumentation import create_http_event_hooks

__all__ = [
    "get_http_client",
    "close_http_client",
    "reset_http_client",
    "create_http_event_hooks",
]
