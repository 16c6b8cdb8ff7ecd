"""Lifespan management for the sync service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from .config import load_config
from .config_loader import discover_config_files, load_hierarchical_config
from .config_schema import build_config, yaml_fallbacks
from .sync.engine import SyncService
from .sync.errors import PersistenceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def service_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[SyncService]:
    """
    Build a ``SyncService`` from all configuration sources and close it on exit.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config files if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Open the persisted record store and conflict ledger

    On shutdown:
    - Stop the scheduler, wait for in-flight pushes and close the HTTP session

    Args:
        config_overrides: Optional dict with values from the CLI
            (remote_url, state_dir, sync_interval_ms, debug).

    Yields:
        The ready ``SyncService``.

    Raises:
        RuntimeError: If configuration is invalid or persisted state is unreadable.
    """
    overrides = config_overrides or {}
    try:
        load_dotenv()

        fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        if config_files:
            unified = build_config(load_hierarchical_config())
            fallbacks = yaml_fallbacks(unified)
            logger.info("Configuration file: %s", config_files[0])

        config = load_config(
            remote_url=overrides.get("remote_url"),
            state_dir=overrides.get("state_dir"),
            sync_interval_ms=overrides.get("sync_interval_ms"),
            debug=overrides.get("debug", False),
            yaml_fallbacks=fallbacks,
        )
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        raise RuntimeError(f"Configuration error: {e}") from e

    logger.info(
        "Remote: %s, state directory: %s", config.remote_url, config.state_dir
    )

    try:
        service = SyncService(config)
    except PersistenceError as e:
        logger.error("Cannot open persisted state: %s", e)
        raise RuntimeError(f"Cannot open persisted state: {e}") from e

    try:
        yield service
    finally:
        await service.close()
        logger.info("Sync service closed")
