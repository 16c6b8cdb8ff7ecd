"""Local-first synchronization and conflict-resolution engine.

Keeps a local record collection consistent with one remote authoritative
source.  Divergent records are resolved remote-wins automatically and
logged in a conflict ledger, where each entry can be resolved manually
exactly once.

Modules:

- ``engine``    -- ``SyncService``: owns the components below and exposes
  the collaborator operations.
- ``store``     -- ``RecordStore``: persisted, id-unique record collection.
- ``ledger``    -- ``ConflictLedger``: newest-first conflict history.
- ``merger``    -- ``reconcile()``: pure merge of a remote batch.
- ``adapter``   -- ``RemoteSourceAdapter``: remote fetch/push and item
  normalization.
- ``scheduler`` -- ``SyncScheduler``: periodic, single-flight cycle driver.
- ``state``     -- ``StateFile``: atomic JSON blob persistence.
- ``models``    -- ``Record``, ``ConflictEntry``, ``SyncSummary`` and enums.
- ``errors``    -- ``SyncError`` hierarchy.
- ``reporter``  -- Human-readable and JSON formatting.

Usage example
-------------
::

    import asyncio
    from localsync.config import Config
    from localsync.sync import ResolutionChoice, SyncService, format_sync_summary

    async def main():
        service = SyncService(Config(state_dir=".localsync"))
        service.add_summary_listener(
            lambda s: print(format_sync_summary(s))
        )
        await service.add_local_record("Hello", "Me", "Notes")
        await service.trigger_now()
        if service.unresolved_count():
            service.resolve_conflict(0, ResolutionChoice.KEEP_LOCAL)
        await service.close()

    asyncio.run(main())
"""

from .adapter import RemoteSourceAdapter
from .engine import SyncService
from .errors import (
    InvalidReferenceError,
    MalformedPayloadError,
    NetworkError,
    PersistenceError,
    SyncError,
)
from .ledger import ConflictLedger
from .merger import reconcile
from .models import (
    ConflictEntry,
    Origin,
    ReconcileResult,
    Record,
    Resolution,
    ResolutionChoice,
    SyncStatus,
    SyncSummary,
)
from .reporter import (
    format_conflict_history,
    format_records,
    format_sync_summary,
    summary_to_json,
)
from .scheduler import SyncScheduler
from .state import StateFile
from .store import RecordStore

__all__ = [
    "ConflictEntry",
    "ConflictLedger",
    "InvalidReferenceError",
    "MalformedPayloadError",
    "NetworkError",
    "Origin",
    "PersistenceError",
    "ReconcileResult",
    "Record",
    "RecordStore",
    "RemoteSourceAdapter",
    "Resolution",
    "ResolutionChoice",
    "StateFile",
    "SyncError",
    "SyncScheduler",
    "SyncService",
    "SyncStatus",
    "SyncSummary",
    "format_conflict_history",
    "format_records",
    "format_sync_summary",
    "reconcile",
    "summary_to_json",
]
