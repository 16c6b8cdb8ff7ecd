"""Unified configuration schema for localsync.

Defines Pydantic models for the YAML config structure with dedicated
sections for the remote source, the sync schedule, local storage and
logging, plus an adapter that flattens them into the fallback dict
consumed by ``config.load_config()``.

Usage:
    from localsync.config_schema import build_config, yaml_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=yaml_fallbacks(unified))
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RemoteConfig(BaseModel):
    """Remote source settings.

    All fields are optional so env vars and CLI args can supply them at
    runtime instead.
    """

    url: str | None = Field(
        default=None, description="Remote collection URL"
    )
    fetch_limit: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Remote items fetched per cycle (1-1000)",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0,
        description="HTTP read timeout in seconds",
    )
    push_on_create: bool = Field(
        default=True,
        description="Push newly created local records to the remote",
    )

    model_config = {"frozen": True}


class ScheduleConfig(BaseModel):
    """Sync scheduler timing."""

    interval_ms: int = Field(
        default=30_000,
        ge=1000,
        description="Milliseconds between sync cycles",
    )
    warmup_ms: int = Field(
        default=800,
        ge=0,
        description="Delay before the first cycle after start",
    )

    model_config = {"frozen": True}


class StorageConfig(BaseModel):
    """Local persistence settings."""

    state_dir: str | None = Field(
        default=None, description="Directory for records/conflicts JSON"
    )
    seed_defaults: bool = Field(
        default=True,
        description="Populate an empty store with sample records",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str | None = Field(default=None, description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    sync: ScheduleConfig = Field(default_factory=ScheduleConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> load_config() fallbacks
# ---------------------------------------------------------------------------


def yaml_fallbacks(unified: UnifiedConfig) -> dict[str, Any]:
    """Flatten *unified* into the keyword names used by ``Config``.

    ``None`` values are dropped so they never shadow built-in defaults.
    """
    flat = {
        "remote_url": unified.remote.url,
        "fetch_limit": unified.remote.fetch_limit,
        "request_timeout": unified.remote.request_timeout,
        "push_on_create": unified.remote.push_on_create,
        "sync_interval_ms": unified.sync.interval_ms,
        "warmup_delay_ms": unified.sync.warmup_ms,
        "state_dir": unified.storage.state_dir,
        "seed_defaults": unified.storage.seed_defaults,
        "log_level": unified.logging.level,
        "log_file": unified.logging.file,
    }
    return {k: v for k, v in flat.items() if v is not None}
