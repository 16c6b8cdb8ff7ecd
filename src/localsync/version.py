"""Detect a stale install whose code and declared version disagree."""

import tomllib
from importlib import metadata
from pathlib import Path

DIST_NAME = "localsync"


def _source_version() -> tuple[str | None, str]:
    """Return (version, origin) from pyproject.toml or installed metadata."""
    pyproject_path = Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data.get("project", {}).get("version"), "pyproject.toml"

    try:
        return metadata.version(DIST_NAME), "installed metadata"
    except metadata.PackageNotFoundError:
        return None, "installed metadata"


def check_version_consistency() -> tuple[bool, str]:
    """Compare the runtime ``__version__`` with the declared one.

    The declared version comes from the source tree's pyproject.toml when
    running from a checkout, otherwise from the installed distribution.
    An editable install left behind after a version bump shows up here.

    Returns:
        ``(is_consistent, message)``.
    """
    from . import __version__ as runtime_version

    try:
        source_version, origin = _source_version()
    except (OSError, tomllib.TOMLDecodeError) as e:
        return False, f"Failed to read version from pyproject.toml: {e}"

    if source_version is None:
        return False, f"No declared version found in {origin}"

    if runtime_version != source_version:
        return False, (
            f"Version mismatch: runtime {runtime_version}, "
            f"{origin} {source_version}. Reinstall with: pip install -e ."
        )

    return True, f"Version verified: {runtime_version}"
