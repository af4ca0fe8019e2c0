# === NAVMAP v1 ===
# {
#   "module": "HttpAgent.network.client",
#   "purpose": "Shared default HTTPX client used when an agent has no explicit client.",
#   "sections": [
#     {"id": "get-http-client", "name": "get_http_client", "anchor": "function-get-http-client", "kind": "function"},
#     {"id": "close-http-client", "name": "close_http_client", "anchor": "function-close-http-client", "kind": "function"},
#     {"id": "reset-http-client", "name": "reset_http_client", "anchor": "function-reset-http-client", "kind": "function"},
#     {"id": "create-http-client", "name": "_create_http_client", "anchor": "function-create-http-client", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Shared HTTPX client factory.

Agents borrow this client when none was supplied with ``use_client()``.

Key design:
- **Lazy initialization**: Client created on first use, not at import time.
- **Config binding**: Client is bound to the settings fingerprint seen at
  creation. If settings change later, a warning is logged once and the client
  is **not** rebuilt; call :func:`reset_http_client` to pick up new settings.
- **PID-aware**: A forked child detects the PID change and rebuilds the client
  on first use instead of sharing sockets with its parent.
- **Thread-safe**: Creation is guarded by a lock; the client itself is safe to
  share between threads.
"""

import logging
import os
import threading

import httpx

from HttpAgent.network.instrumentation import create_http_event_hooks
from HttpAgent.settings import HttpSettings, get_settings

logger = logging.getLogger(__name__)


_client: httpx.Client | None = None
_client_lock = threading.Lock()
_client_bind_hash: str | None = None
_client_bind_pid: int | None = None
_config_hash_mismatch_warned = False


def get_http_client() -> httpx.Client:
    """Get or create the shared HTTPX client.

    Behavior:
        - First call: Creates client, binds to current config hash and PID.
        - Subsequent calls: Returns same client.
        - Settings changed after bind: Logs warning once, does not rebuild.
        - Process forked: Child detects PID change, rebuilds client.
    """
    global _client, _client_bind_hash, _client_bind_pid, _config_hash_mismatch_warned

    with _client_lock:
        settings = get_settings()
        current_hash = settings.config_hash()

        if _client is not None and _client_bind_pid == os.getpid():
            if current_hash != _client_bind_hash and not _config_hash_mismatch_warned:
                logger.warning(
                    "Settings changed after the HTTP client was initialized; "
                    "continuing with bound client. Reset via reset_http_client() if desired.",
                    extra={"bind_hash": _client_bind_hash, "current_hash": current_hash},
                )
                _config_hash_mismatch_warned = True
            return _client

        if _client is not None:
            logger.debug("Process forked; closing old HTTP client and rebuilding.")
            try:
                _client.close()
            except Exception as e:  # noqa: BLE001 - sockets may belong to the parent
                logger.debug(f"Error closing old client: {e}")
            _client = None

        _client = _create_http_client(settings.http)
        _client_bind_hash = current_hash
        _client_bind_pid = os.getpid()
        _config_hash_mismatch_warned = False

        logger.debug(
            "HTTP client initialized",
            extra={"config_hash": _client_bind_hash, "pid": _client_bind_pid},
        )
        return _client


def close_http_client() -> None:
    """Close the shared client and release resources.

    Safe to call multiple times or when no client has been created.
    """
    global _client

    with _client_lock:
        if _client is not None:
            try:
                _client.close()
                logger.debug("HTTP client closed")
            finally:
                _client = None


def reset_http_client() -> None:
    """Reset the shared client (primarily for testing)."""
    global _client_bind_hash, _client_bind_pid, _config_hash_mismatch_warned

    close_http_client()
    _client_bind_hash = None
    _client_bind_pid = None
    _config_hash_mismatch_warned = False


def _create_http_client(cfg: HttpSettings) -> httpx.Client:
    """Create an HTTPX client from ``cfg`` with instrumentation hooks attached."""
    client = httpx.Client(
        timeout=httpx.Timeout(
            connect=cfg.timeout_connect,
            read=cfg.timeout_read,
            write=cfg.timeout_write,
            pool=cfg.timeout_pool,
        ),
        limits=httpx.Limits(
            max_connections=cfg.pool_max_connections,
            max_keepalive_connections=cfg.pool_keepalive_max,
            keepalive_expiry=cfg.keepalive_expiry,
        ),
        http2=cfg.http2,
        follow_redirects=cfg.follow_redirects,
        trust_env=cfg.trust_env,
        headers={"User-Agent": cfg.user_agent},
        event_hooks=create_http_event_hooks(),
    )

    logger.debug(
        "HTTPX client created",
        extra={
            "http2": cfg.http2,
            "max_connections": cfg.pool_max_connections,
            "max_keepalive": cfg.pool_keepalive_max,
        },
    )
    return client


__all__ = [
    "get_http_client",
    "close_http_client",
    "reset_http_client",
]
