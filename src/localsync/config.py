"""Runtime configuration for localsync.

Reads settings from CLI args, environment variables, .env files, and YAML
config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    LOCALSYNC_REMOTE_URL: Remote collection URL (optional, default: JSONPlaceholder posts)
    LOCALSYNC_STATE_DIR: Directory for persisted state (optional, default: .localsync)
    LOCALSYNC_SYNC_INTERVAL_MS: Milliseconds between sync cycles (optional, default: 30000)
    LOCALSYNC_FETCH_LIMIT: Remote items fetched per cycle (optional, default: 10)
    LOCALSYNC_REQUEST_TIMEOUT: HTTP read timeout in seconds (optional, default: 10)
    LOCALSYNC_PUSH_ON_CREATE: Push new local records to the remote (optional, default: true)
    LOCALSYNC_DEBUG: Enable debug logging (optional, default: false)
    LOG_LEVEL: Log level name; beats ``logging.level`` in YAML (optional)
    LOG_FILE: Log file path; beats ``logging.file`` in YAML (optional)

The logging fields are applied by the CLI once the config is loaded.
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_URL = "https://jsonplaceholder.typicode.com/posts"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Config:
    remote_url: str = DEFAULT_REMOTE_URL
    state_dir: str = ".localsync"
    sync_interval_ms: int = 30_000
    warmup_delay_ms: int = 800
    fetch_limit: int = 10
    request_timeout: float = 10.0
    push_on_create: bool = True
    seed_defaults: bool = True
    debug: bool = False
    log_level: str | None = None
    log_file: str | None = None


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the URL format is invalid or a number is out of range.
    """
    config.remote_url = config.remote_url.strip()

    if not config.remote_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid remote URL '{config.remote_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.remote_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid remote URL '{config.remote_url}': URL must include a hostname"
        )

    config.remote_url = config.remote_url.removesuffix("/")

    if not config.state_dir.strip():
        raise ValueError("State directory cannot be empty.")

    if config.sync_interval_ms < 1000:
        raise ValueError(
            f"Invalid sync interval {config.sync_interval_ms}ms: must be at least 1000"
        )

    if config.warmup_delay_ms < 0:
        raise ValueError(
            f"Invalid warm-up delay {config.warmup_delay_ms}ms: must not be negative"
        )

    if not (1 <= config.fetch_limit <= 1000):
        raise ValueError(
            f"Invalid fetch limit {config.fetch_limit}: must be between 1 and 1000"
        )

    if config.request_timeout <= 0:
        raise ValueError(
            f"Invalid request timeout {config.request_timeout}: must be positive"
        )

    if config.log_level is not None:
        config.log_level = config.log_level.strip().upper()
        if config.log_level not in _LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{config.log_level}': must be one of "
                + ", ".join(_LOG_LEVELS)
            )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_number_env(key: str, cast: type, fallback, default):
    """Return a number from env var > YAML fallback > default."""
    raw = os.getenv(key)
    if raw is not None:
        try:
            return cast(raw)
        except ValueError:
            raise ValueError(
                f"Invalid {key} '{raw}': must be a number"
            ) from None
    if fallback is not None:
        return cast(fallback)
    return default


def load_config(
    remote_url: str | None = None,
    state_dir: str | None = None,
    sync_interval_ms: int | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        remote_url: Override remote URL.
        state_dir: Override state directory.
        sync_interval_ms: Override the sync interval.
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Flat dict of values from the YAML config file
            (see ``config_schema.yaml_fallbacks()``).

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If any value is malformed or out of range.
    """
    fb = yaml_fallbacks or {}
    defaults = Config()

    # --- String fields: CLI > env > YAML > default ---

    final_url = (
        remote_url
        or os.getenv("LOCALSYNC_REMOTE_URL")
        or fb.get("remote_url")
        or defaults.remote_url
    )
    final_state_dir = (
        state_dir
        or os.getenv("LOCALSYNC_STATE_DIR")
        or fb.get("state_dir")
        or defaults.state_dir
    )

    # --- Numeric fields: CLI > env > YAML > default ---

    if sync_interval_ms is not None:
        final_interval = sync_interval_ms
    else:
        final_interval = _get_number_env(
            "LOCALSYNC_SYNC_INTERVAL_MS",
            int,
            fb.get("sync_interval_ms"),
            defaults.sync_interval_ms,
        )
    final_fetch_limit = _get_number_env(
        "LOCALSYNC_FETCH_LIMIT",
        int,
        fb.get("fetch_limit"),
        defaults.fetch_limit,
    )
    final_timeout = _get_number_env(
        "LOCALSYNC_REQUEST_TIMEOUT",
        float,
        fb.get("request_timeout"),
        defaults.request_timeout,
    )
    final_warmup = int(fb.get("warmup_delay_ms", defaults.warmup_delay_ms))

    # --- Boolean fields: CLI > env > YAML > default ---

    env_push = _get_bool_env("LOCALSYNC_PUSH_ON_CREATE")
    if env_push is not None:
        final_push = env_push
    else:
        final_push = bool(fb.get("push_on_create", defaults.push_on_create))

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("LOCALSYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        remote_url=final_url,
        state_dir=final_state_dir,
        sync_interval_ms=final_interval,
        warmup_delay_ms=final_warmup,
        fetch_limit=final_fetch_limit,
        request_timeout=final_timeout,
        push_on_create=final_push,
        seed_defaults=bool(fb.get("seed_defaults", defaults.seed_defaults)),
        debug=final_debug,
        log_level=os.getenv("LOG_LEVEL") or fb.get("log_level"),
        log_file=os.getenv("LOG_FILE") or fb.get("log_file"),
    )

    validate_config(config)

    return config
