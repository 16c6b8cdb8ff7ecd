"""Sync report formatting functions.

Provides human-readable and machine-readable output for collaborators:

- ``format_sync_summary`` -- one-line status after a cycle.
- ``format_records`` -- record listing.
- ``format_conflict_history`` -- conflict ledger listing with both sides.
- ``summary_to_json`` / ``conflict_to_json`` -- structured dicts.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .models import Resolution

if TYPE_CHECKING:
    from .models import ConflictEntry, Record, SyncSummary

_RESOLUTION_LABELS = {
    Resolution.NONE: "No",
    Resolution.KEPT_LOCAL: "Yes (kept local)",
    Resolution.KEPT_REMOTE: "Yes (kept remote)",
}


def format_sync_summary(summary: SyncSummary) -> str:
    """Format the status line shown after a cycle.

    Args:
        summary: The cycle's summary.

    Returns:
        ``"Synced with remote: +1 new, 0 updated, 0 conflicts resolved
        (remote wins)."`` on success, ``"Sync failed: <error>"`` otherwise.
    """
    if not summary.ok:
        return f"Sync failed: {summary.error or 'unknown error'}"
    return (
        f"Synced with remote: +{summary.added} new, "
        f"{summary.updated} updated, "
        f"{summary.conflicts} conflicts resolved (remote wins)."
    )


def format_record(record: Record) -> str:
    """Format one record as ``"text" -- author . category [origin]``."""
    return (
        f'"{record.text}" -- {record.author} · {record.category} '
        f"[{record.origin.value}]"
    )


def format_records(records: list[Record]) -> str:
    """Format a record listing, one record per line."""
    if not records:
        return "No records to display."
    return "\n".join(f"{r.id}: {format_record(r)}" for r in records)


def format_conflict_history(entries: list[ConflictEntry]) -> str:
    """Format the conflict ledger, newest first, with both versions.

    Indexes match the ones accepted by ``resolve_conflict()``.
    """
    if not entries:
        return "No conflicts recorded."

    unresolved = sum(1 for e in entries if not e.resolved)
    lines = [f"Conflicts: {len(entries)} ({unresolved} unresolved)", ""]
    for i, entry in enumerate(entries):
        lines.append(f"[{i}] {entry.record_id}")
        lines.append(f"  Local:  {format_record(entry.local_version)}")
        lines.append(f"  Remote: {format_record(entry.remote_version)}")
        lines.append(
            f"  Detected: {entry.detected_at} · "
            f"Resolved: {_RESOLUTION_LABELS[entry.resolution]}"
        )
        lines.append("")
    return "\n".join(lines).rstrip()


def summary_to_json(summary: SyncSummary) -> dict[str, Any]:
    """Convert a summary to a JSON-serialisable dict."""
    return {
        "status": summary.status.value,
        "added": summary.added,
        "updated": summary.updated,
        "conflicts": summary.conflicts,
        "converged": summary.converged,
        "error": summary.error,
        "started_at": summary.started_at,
        "completed_at": summary.completed_at,
        "message": format_sync_summary(summary),
    }


def conflict_to_json(index: int, entry: ConflictEntry) -> dict[str, Any]:
    """Convert a ledger entry to a JSON-serialisable dict."""
    data = entry.model_dump(mode="json")
    data["index"] = index
    return data
