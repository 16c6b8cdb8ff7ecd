"""Merge engine: reconcile a remote batch against the local collection.

``reconcile()`` is a pure function.  It never touches the store or the
ledger; the sync cycle applies its result afterwards with one
``replace_all()`` and one ledger ``extend()``.

Per remote record, against the working map of records by id:

1. **Added** -- no local record shares the id; the remote record is
   inserted as-is.
2. **Converged** -- ``text``, ``author`` and ``category`` all match; the
   content is kept, ``updated_at`` is taken from the remote and
   ``origin`` becomes ``REMOTE``.
3. **Conflict** -- any content field differs; the remote wins, and a
   ``ConflictEntry`` holding both pre-replacement snapshots is produced.
   Counts as both ``updated`` and ``conflicts``.

Timestamps never decide a conflict on their own.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .models import (
    ConflictEntry,
    Origin,
    ReconcileResult,
    Record,
    SyncSummary,
    utc_now,
)

logger = logging.getLogger(__name__)


def reconcile(
    local_records: Iterable[Record],
    remote_records: Iterable[Record],
    now: str | None = None,
) -> ReconcileResult:
    """Merge *remote_records* into *local_records*.

    Args:
        local_records: Current store contents.
        remote_records: Normalized remote batch.
        now: Detection timestamp for new conflict entries (default: now).

    Returns:
        A ``ReconcileResult`` with the full merged collection (local order
        preserved, new records appended in batch order), the new conflict
        entries and the summary counts.
    """
    detected_at = now or utc_now()
    merged: dict[str, Record] = {}
    for record in local_records:
        merged[record.id] = record

    conflicts: list[ConflictEntry] = []
    added = updated = converged = 0

    for remote in remote_records:
        remote = _as_remote(remote)
        local = merged.get(remote.id)

        if local is None:
            merged[remote.id] = remote
            added += 1
            continue

        if local.same_content(remote):
            merged[remote.id] = local.model_copy(
                update={
                    "updated_at": remote.updated_at,
                    "origin": Origin.REMOTE,
                }
            )
            converged += 1
            continue

        logger.info("Conflict on %s: remote version wins", remote.id)
        conflicts.append(
            ConflictEntry(
                record_id=remote.id,
                local_version=local,
                remote_version=remote,
                detected_at=detected_at,
            )
        )
        merged[remote.id] = remote
        updated += 1

    summary = SyncSummary(
        added=added,
        updated=updated,
        conflicts=len(conflicts),
        converged=converged,
    )
    return ReconcileResult(
        updated_records=list(merged.values()),
        conflicts=conflicts,
        summary=summary,
    )


def _as_remote(record: Record) -> Record:
    if record.origin is Origin.REMOTE:
        return record
    return record.model_copy(update={"origin": Origin.REMOTE})
