"""Persistence layer for JSON state blobs.

Each piece of persisted state lives under its own key in the state
directory (``.localsync/`` by default): ``records`` is written to
``records.json`` and ``conflicts`` to ``conflicts.json``.  Blobs are read
once at start-up and rewritten wholesale on every mutating operation.

Key design choices:

* **Atomic writes** -- ``save()`` writes to a temp file then calls
  ``os.replace()`` so readers see either the old blob or the new one,
  never a partial write.
* **Typed failures** -- any ``OSError`` or undecodable JSON is raised as
  ``PersistenceError`` so callers can tell persistence apart from
  programming errors.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .errors import PersistenceError

logger = logging.getLogger(__name__)


class StateFile:
    """Load and save JSON blobs by key.

    Args:
        state_dir: Directory where the blobs are stored.  Created lazily on
            the first ``save()``.
    """

    def __init__(self, state_dir: Path) -> None:
        self._state_dir = Path(state_dir)

    @property
    def state_dir(self) -> Path:
        return self._state_dir

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def exists(self, key: str) -> bool:
        """Return ``True`` if a blob has been written for *key*."""
        return self._path(key).exists()

    def load(self, key: str) -> Any | None:
        """Load the blob stored under *key*.

        Returns:
            The decoded JSON value, or ``None`` if nothing is stored.

        Raises:
            PersistenceError: If the file cannot be read or decoded.
        """
        path = self._path(key)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as fh:
                return json.load(fh)
        except (OSError, ValueError) as exc:
            raise PersistenceError(
                f"Cannot read state '{key}' from {path}: {exc}"
            ) from exc

    def save(self, key: str, data: Any) -> None:
        """Persist *data* under *key* atomically.

        Writes to a temporary file in the same directory then atomically
        replaces the target.  Creates the state directory if needed.

        Raises:
            PersistenceError: If the blob cannot be written.
        """
        target = self._path(key)
        try:
            self._state_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self._state_dir), suffix=".tmp"
            )
        except OSError as exc:
            raise PersistenceError(
                f"Cannot write state '{key}' to {target}: {exc}"
            ) from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2)
            os.replace(tmp_path, target)
        except BaseException as exc:
            # Clean up temp file on any failure.
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            if isinstance(exc, (OSError, TypeError, ValueError)):
                raise PersistenceError(
                    f"Cannot write state '{key}' to {target}: {exc}"
                ) from exc
            raise
        logger.debug("Saved state '%s' to %s", key, target)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _path(self, key: str) -> Path:
        return self._state_dir / f"{key}.json"
