"""Structured logging helpers shared across HttpAgent components."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Dict, Mapping, Optional
from urllib.parse import urlparse, urlunparse

from .settings import get_settings

__all__ = [
    "JSONFormatter",
    "mask_sensitive_data",
    "redact_url",
    "setup_logging",
]

_SENSITIVE_KEYS = {
    "authorization",
    "proxy-authorization",
    "cookie",
    "set-cookie",
    "x-api-key",
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
}

_LOGGER_NAME = "HttpAgent"


def mask_sensitive_data(payload: Mapping[str, object]) -> Dict[str, object]:
    """Return a copy of ``payload`` with credential-like values masked.

    Examples:
        >>> mask_sensitive_data({"Authorization": "Bearer x", "status": "ok"})
        {'Authorization': '***masked***', 'status': 'ok'}
    """
    masked: Dict[str, object] = {}
    for key, value in payload.items():
        lower = str(key).lower()
        if lower in _SENSITIVE_KEYS:
            masked[key] = "***masked***"
        elif isinstance(value, Mapping):
            masked[key] = mask_sensitive_data(value)
        elif isinstance(value, str) and "apikey" in value.lower():
            masked[key] = "***masked***"
        else:
            masked[key] = value
    return masked


def redact_url(url: object) -> str:
    """Strip query string and fragment from ``url``, keeping scheme, host and path."""
    try:
        parsed = urlparse(str(url))
        return urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))
    except ValueError:
        return "[URL_REDACTION_FAILED]"


class JSONFormatter(logging.Formatter):
    """Formatter emitting masked JSON log entries."""

    _RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        """Render ``record`` as a single JSON line."""

        now = datetime.now(timezone.utc)
        payload: Dict[str, object] = {
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in self._RESERVED and not key.startswith("_"):
                payload[key] = value
        if hasattr(record, "extra_fields") and isinstance(record.extra_fields, dict):
            payload.update(record.extra_fields)
            payload.pop("extra_fields", None)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(mask_sensitive_data(payload), default=str)


def setup_logging(
    *,
    level: Optional[str] = None,
    json_logs: Optional[bool] = None,
    stream: Optional[IO[str]] = None,
    propagate: bool = True,
) -> logging.Logger:
    """Configure the ``HttpAgent`` logger with a single managed handler.

    ``level`` and ``json_logs`` default to the ``logging`` settings section
    (``HTTPAGENT_LOGGING__LEVEL``, ``HTTPAGENT_LOGGING__EMIT_JSON_LOGS``).
    Calling this again replaces the handler installed by the previous call and
    leaves handlers added by the application untouched.
    """

    config = get_settings().logging
    if json_logs is None:
        json_logs = config.emit_json_logs

    logger = logging.getLogger(_LOGGER_NAME)
    if level is None:
        logger.setLevel(config.level_int())
    else:
        logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        if getattr(handler, "_httpagent_managed", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    handler._httpagent_managed = True  # type: ignore[attr-defined]
    logger.addHandler(handler)

    logger.propagate = propagate
    return logger
