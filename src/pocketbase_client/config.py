"""
Configuration for the PocketBase client.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator

SDK_VERSION = "0.1.0"

DEFAULT_LANG = "en-US"
DEFAULT_TIMEOUT = 30.0
DEFAULT_CONNECT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = f"pocketbase-client-python/{SDK_VERSION}"

REALTIME_PATH = "/api/realtime"
BATCH_PATH = "/api/batch"
OAUTH2_REDIRECT_PATH = "/api/oauth2-redirect"
OAUTH2_TOPIC = "@oauth2"
CONNECT_EVENT = "PB_CONNECT"

# Reconnect delays in milliseconds, indexed by attempt number.
DEFAULT_RETRY_DELAYS: tuple[int, ...] = (200, 300, 500, 1000, 1200, 1500, 2000)

logger = logging.getLogger("pocketbase_client")

DebugFn = Callable[[str, Any], None]


class RealtimeConfig(BaseModel):
    """Realtime (server-sent events) connection settings."""

    transport: Literal["streaming", "polling"] = "streaming"
    max_reconnect_attempts: int | None = Field(default=None, ge=0)
    retry_delays: tuple[int, ...] = DEFAULT_RETRY_DELAYS
    poll_interval: float = Field(default=0.1, gt=0)
    connect_timeout: float = Field(default=DEFAULT_CONNECT_TIMEOUT, gt=0)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @field_validator("retry_delays")
    @classmethod
    def _check_retry_delays(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if not value:
            raise ValueError("retry_delays must not be empty")
        if any(delay <= 0 for delay in value):
            raise ValueError("retry_delays must be positive")
        return value


class PocketBaseClientConfig(BaseModel):
    """User facing client configuration."""

    base_url: str = Field(..., min_length=1)
    lang: str = DEFAULT_LANG
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    headers: dict[str, str] = Field(default_factory=dict)
    user_agent: str = DEFAULT_USER_AGENT
    debug: bool = False
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)

    model_config = ConfigDict(frozen=True, extra="forbid")


@dataclass
class ResolvedConfig:
    """Configuration with defaults applied, as consumed by the internals."""

    base_url: str
    lang: str
    timeout: float
    headers: dict[str, str]
    user_agent: str
    realtime: RealtimeConfig
    debug_fn: DebugFn | None = None


def _log_debug(message: str, data: Any = None) -> None:
    if data is None:
        logger.debug(message)
    else:
        logger.debug("%s %s", message, json.dumps(data, default=str))


def resolve_config(config: PocketBaseClientConfig) -> ResolvedConfig:
    """Apply defaults and normalize a user configuration."""
    return ResolvedConfig(
        base_url=config.base_url.rstrip("/"),
        lang=config.lang,
        timeout=config.timeout,
        headers=dict(config.headers),
        user_agent=config.user_agent,
        realtime=config.realtime,
        debug_fn=_log_debug if config.debug else None,
    )


def validate_config(config: ResolvedConfig) -> None:
    """Raise ``ValueError`` if the resolved configuration is unusable."""
    parsed = urlparse(config.base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(f"base_url must be an absolute http(s) URL, got {config.base_url!r}")
