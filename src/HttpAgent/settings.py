# === NAVMAP v1 ===
# {
#   "module": "HttpAgent.settings",
#   "purpose": "Pydantic settings models for the default client, retry defaults, and logging",
#   "sections": [
#     {"id": "httpsettings", "name": "HttpSettings", "anchor": "class-httpsettings", "kind": "class"},
#     {"id": "retrysettings", "name": "RetrySettings", "anchor": "class-retrysettings", "kind": "class"},
#     {"id": "loggingsettings", "name": "LoggingSettings", "anchor": "class-loggingsettings", "kind": "class"},
#     {"id": "agentsettings", "name": "AgentSettings", "anchor": "class-agentsettings", "kind": "class"},
#     {"id": "get-settings", "name": "get_settings", "anchor": "function-get-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""Configuration models for HttpAgent.

Settings are frozen pydantic v2 models grouped by domain and aggregated by
:class:`AgentSettings`, which reads overrides from ``HTTPAGENT_*`` environment
variables (nested fields use ``__``, e.g. ``HTTPAGENT_HTTP__TIMEOUT_READ=10``).
The aggregate is cached process-wide; :func:`reset_settings` drops the cache
so tests can change the environment between cases.
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "HttpSettings",
    "RetrySettings",
    "LoggingSettings",
    "AgentSettings",
    "get_settings",
    "reset_settings",
]


class HttpSettings(BaseModel):
    """Settings for the shared default HTTPX client.

    Controls timeouts, pool limits, HTTP/2, redirects, user agent, and proxy
    trust behavior.  Agents given an explicit client ignore these.
    """

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    http2: bool = Field(default=False, description="Enable HTTP/2 support (requires h2)")
    timeout_connect: float = Field(default=5.0, gt=0.0, le=60.0, description="Connect timeout in seconds")
    timeout_read: float = Field(default=30.0, gt=0.0, le=300.0, description="Read timeout in seconds")
    timeout_write: float = Field(default=30.0, gt=0.0, le=300.0, description="Write timeout in seconds")
    timeout_pool: float = Field(
        default=5.0, gt=0.0, le=60.0, description="Acquire-from-pool timeout in seconds"
    )
    pool_max_connections: int = Field(default=64, ge=1, le=1024, description="Max concurrent connections")
    pool_keepalive_max: int = Field(default=20, ge=0, le=1024, description="Keepalive pool size")
    keepalive_expiry: float = Field(
        default=30.0, ge=0.0, le=600.0, description="Idle connection expiry in seconds"
    )
    follow_redirects: bool = Field(default=True, description="Follow 3xx responses automatically")
    trust_env: bool = Field(
        default=True,
        description="Honor HTTP(S)_PROXY and NO_PROXY environment variables",
    )
    user_agent: str = Field(default="HttpAgent/0.1", description="User-Agent header value")


class RetrySettings(BaseModel):
    """Defaults used by ``retry()`` when called without explicit options."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    attempts: int = Field(default=6, ge=1, le=100, description="Attempts per call")
    max_delay_seconds: float = Field(
        default=0.0,
        ge=0.0,
        le=3600.0,
        description="Cap on a single backoff delay; 0 disables the cap",
    )
    retry_app_error: bool = Field(
        default=True,
        description="Retry when an envelope wrapper rejects the payload",
    )
    max_retry_after_seconds: float = Field(
        default=60.0,
        gt=0.0,
        le=3600.0,
        description="Ceiling on a server-requested Retry-After wait",
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    emit_json_logs: bool = Field(
        default=False,
        description="Emit JSON-formatted logs (legacy configs may use 'json')",
        validation_alias=AliasChoices("emit_json_logs", "json"),
    )

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize and validate logging level."""
        upper = str(v).upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}, got '{v}'")
        return upper

    def level_int(self) -> int:
        """Convert level string to logging module integer."""
        return logging.getLevelName(self.level)


class AgentSettings(BaseSettings):
    """Top-level settings aggregate read from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="HTTPAGENT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    http: HttpSettings = Field(default_factory=HttpSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def config_hash(self) -> str:
        """Return a stable fingerprint of the effective configuration."""
        payload = json.dumps(self.model_dump(mode="json"), sort_keys=True)
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


_SETTINGS: Optional[AgentSettings] = None
_SETTINGS_LOCK = threading.Lock()


def get_settings() -> AgentSettings:
    """Return the cached process-wide settings, loading them on first use."""

    global _SETTINGS  # noqa: PLW0603

    with _SETTINGS_LOCK:
        if _SETTINGS is None:
            _SETTINGS = AgentSettings()
        return _SETTINGS


def reset_settings() -> None:
    """Drop the cached settings so the next lookup re-reads the environment."""

    global _SETTINGS  # noqa: PLW0603

    with _SETTINGS_LOCK:
        _SETTINGS = None
