"""Pydantic models for the synchronization engine.

Defines the core data contracts used across all sync modules:

- ``Origin``: Provenance of a record's current value.
- ``Record``: One synchronized unit of content.
- ``Resolution`` / ``ResolutionChoice``: Outcome of, and input to, manual
  conflict resolution.
- ``ConflictEntry``: Frozen snapshot of a detected divergence.
- ``SyncStatus`` / ``SyncSummary``: Outcome of one reconciliation cycle.
- ``ReconcileResult``: Output of the merge engine.

All models are frozen (immutable); updates go through ``model_copy``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, model_validator

CONTENT_FIELDS: tuple[str, ...] = ("text", "author", "category")


def utc_now() -> str:
    """Return the current UTC time as an ISO 8601 string."""
    return datetime.now(timezone.utc).isoformat()


class Origin(str, Enum):
    """Which side last determined a record's content."""

    LOCAL = "local"
    REMOTE = "remote"


class Record(BaseModel):
    """A single synchronized record.

    Attributes:
        id: Identifier, unique within the store.  Local records use the
            ``local-`` prefix, remote-derived ones ``remote-``.
        text: Record body.
        author: Record author.
        category: Free-form category label.
        updated_at: ISO 8601 timestamp of the last modification.
        origin: Provenance of the current value.
    """

    id: str
    text: str
    author: str
    category: str
    updated_at: str
    origin: Origin = Origin.LOCAL

    model_config = {"frozen": True}

    def same_content(self, other: Record) -> bool:
        """Return ``True`` if the visible content fields are equal."""
        return all(
            getattr(self, name) == getattr(other, name)
            for name in CONTENT_FIELDS
        )


class Resolution(str, Enum):
    """Recorded outcome of a conflict."""

    NONE = "none"
    KEPT_LOCAL = "kept_local"
    KEPT_REMOTE = "kept_remote"


class ResolutionChoice(str, Enum):
    """Choice passed to ``ConflictLedger.resolve()``."""

    KEEP_LOCAL = "keep_local"
    KEEP_REMOTE = "keep_remote"

    @property
    def resolution(self) -> Resolution:
        if self is ResolutionChoice.KEEP_LOCAL:
            return Resolution.KEPT_LOCAL
        return Resolution.KEPT_REMOTE

    @property
    def origin(self) -> Origin:
        if self is ResolutionChoice.KEEP_LOCAL:
            return Origin.LOCAL
        return Origin.REMOTE


class ConflictEntry(BaseModel):
    """Snapshot of a content mismatch between local and remote.

    Attributes:
        record_id: Identifier of the record in contention.
        local_version: Local value at detection time.
        remote_version: Remote value at detection time.
        detected_at: ISO 8601 timestamp of detection.
        resolved: Whether a manual resolution has been applied.
        resolution: Which side was kept; ``NONE`` while unresolved.
    """

    record_id: str
    local_version: Record
    remote_version: Record
    detected_at: str
    resolved: bool = False
    resolution: Resolution = Resolution.NONE

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_resolution(self) -> ConflictEntry:
        if self.resolved != (self.resolution is not Resolution.NONE):
            raise ValueError(
                "resolution must be set exactly when resolved is true"
            )
        return self


class SyncStatus(str, Enum):
    """Terminal status of a sync cycle."""

    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient-failure"


class SyncSummary(BaseModel):
    """Counts and status for one reconciliation cycle.

    Attributes:
        added: Remote records inserted because no local record matched.
        updated: Local records replaced by a differing remote value.
        conflicts: Conflict entries produced (equal to ``updated``).
        converged: Records whose content already matched.
        status: Terminal status of the cycle.
        error: Failure description for ``TRANSIENT_FAILURE`` cycles.
        started_at: ISO 8601 timestamp when the cycle started.
        completed_at: ISO 8601 timestamp when the cycle finished.
    """

    added: int = 0
    updated: int = 0
    conflicts: int = 0
    converged: int = 0
    status: SyncStatus = SyncStatus.SUCCESS
    error: str | None = None
    started_at: str | None = None
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def ok(self) -> bool:
        return self.status is SyncStatus.SUCCESS

    def counts(self) -> dict[str, int]:
        """Return the ``added``/``updated``/``conflicts`` triple as a dict."""
        return {
            "added": self.added,
            "updated": self.updated,
            "conflicts": self.conflicts,
        }


class ReconcileResult(BaseModel):
    """Output of ``merger.reconcile()``.

    Attributes:
        updated_records: The complete record collection after the merge.
        conflicts: New conflict entries, in detection order.
        summary: Counts for the merge.
    """

    updated_records: list[Record] = []
    conflicts: list[ConflictEntry] = []
    summary: SyncSummary = SyncSummary()

    model_config = {"frozen": True}
