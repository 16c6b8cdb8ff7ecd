"""
YAML configuration files for localsync.

Config files are optional.  When present they are looked up by convention,
merged section by section (the project file beats the global one), and
every string value may reference the environment as ``${VAR}`` or
``${VAR:-default}``.  A value can also be pulled from another file with
``!include other.yml``, resolved relative to the including file.

Usage:
    from localsync.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()   # {} when no file exists
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LOCALSYNC_CONFIG"

PROJECT_CONFIG_NAMES = ("config.yml", "config.yaml")
STATE_DIR_NAME = ".localsync"

# ${NAME} or ${NAME:-fallback}
_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<fallback>.*?))?\}")


# ---------------------------------------------------------------------------
# Environment references
# ---------------------------------------------------------------------------


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` / ``${VAR:-default}`` references in *value*.

    An unset or empty variable expands to its fallback, or to ``""`` when
    none is given.
    """
    return _ENV_REF.sub(
        lambda m: os.environ.get(m["name"]) or m["fallback"] or "",
        value,
    )


def _interpolate_recursive(obj: Any) -> Any:
    """Apply ``interpolate_env_vars`` to every string inside *obj*."""
    if isinstance(obj, dict):
        return {key: _interpolate_recursive(val) for key, val in obj.items()}
    if isinstance(obj, list):
        return list(map(_interpolate_recursive, obj))
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    return obj


# ---------------------------------------------------------------------------
# !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!include``.

    Each loader carries the chain of files that led to it, so an include
    cycle is reported instead of recursing forever.  ``yaml.SafeLoader``
    itself is left untouched.
    """

    def __init__(self, stream, chain: tuple[Path, ...] = ()) -> None:
        super().__init__(stream)
        self.chain = chain

    def include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node))
        if not target.is_absolute():
            target = self.chain[-1].parent / target
        target = target.resolve()

        if target in self.chain:
            cycle = " -> ".join(map(str, (*self.chain, target)))
            raise ValueError(f"Circular include detected: {cycle}")
        if not target.is_file():
            raise FileNotFoundError(
                f"Include file not found: {target} "
                f"(referenced from {self.chain[-1]})"
            )
        return _load_yaml_with_includes(target, _chain=self.chain)


ConfigLoader.add_constructor("!include", ConfigLoader.include)


def _load_yaml_with_includes(
    path: Path, *, _chain: tuple[Path, ...] = ()
) -> Any:
    """Parse one YAML file, following ``!include`` directives."""
    path = Path(path).resolve()
    with path.open(encoding="utf-8") as fh:
        loader = ConfigLoader(fh, chain=(*_chain, path))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def _candidate_paths() -> list[Path]:
    explicit = os.environ.get(CONFIG_ENV_VAR)
    project_dir = Path.cwd() / STATE_DIR_NAME
    return [
        *([Path(explicit).expanduser().resolve()] if explicit else []),
        *(project_dir / name for name in PROJECT_CONFIG_NAMES),
        Path.home() / ".config" / "localsync" / "config.yml",
    ]


def discover_config_files() -> list[Path]:
    """Return the config files that exist, highest precedence first.

    Looked up in this order:
        1. the file named by ``LOCALSYNC_CONFIG``
        2. ``./.localsync/config.yml``
        3. ``./.localsync/config.yaml``
        4. ``~/.config/localsync/config.yml``
    """
    return [p for p in _candidate_paths() if p.is_file()]


# ---------------------------------------------------------------------------
# Starter file
# ---------------------------------------------------------------------------

_STARTER_CONFIG = """\
# localsync configuration
#
# Settings can also be given via environment variables:
#   LOCALSYNC_REMOTE_URL, LOCALSYNC_STATE_DIR, LOCALSYNC_SYNC_INTERVAL_MS,
#   LOCALSYNC_FETCH_LIMIT, LOCALSYNC_REQUEST_TIMEOUT, LOCALSYNC_PUSH_ON_CREATE
#
# remote:
#   url: https://jsonplaceholder.typicode.com/posts
#   fetch_limit: 10
#   request_timeout: 10
#   push_on_create: true
#
# sync:
#   interval_ms: 30000
#   warmup_ms: 800
#
# storage:
#   state_dir: .localsync
#   seed_defaults: true
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none exists.

    Args:
        target: Where to write the starter.  Defaults to
            ``./.localsync/config.yml``.
    """
    found = discover_config_files()
    if found:
        return found[0]

    path = target or Path.cwd() / STATE_DIR_NAME / PROJECT_CONFIG_NAMES[0]
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Wrote starter config to %s", path)
    return path


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered config file into one raw dict.

    Top-level sections from a higher-precedence file replace the same
    section from a lower one wholesale.  Environment references are
    expanded once, after the merge.  Returns ``{}`` when no file exists.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Reading config file %s", path)
        data = _load_yaml_with_includes(path)
        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring config file %s: non-dict root (%s)",
                path,
                type(data).__name__,
            )
            continue
        merged.update(data)

    return _interpolate_recursive(merged)
