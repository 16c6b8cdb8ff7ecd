"""Sync service: the single object that owns all synchronization state.

``SyncService`` ties together the record store, conflict ledger, remote
adapter and scheduler, and is the only surface collaborators (CLI, UI)
talk to.  One cycle:

1. Fetch the remote batch through the adapter.
2. On ``NetworkError``, report a transient-failure summary and stop; no
   store or ledger mutation happens.
3. Reconcile the batch against the store's current snapshot.
4. Prepend new conflict entries to the ledger.
5. Write the merged collection with one ``replace_all()``.  If that write
   fails, the ledger is rolled back and ``PersistenceError`` propagates.
6. Notify summary (and, when conflicts were found, ledger) listeners.

Manual resolution goes straight to the ledger, outside any cycle.  If a
cycle is suspended on the network while a resolution is applied, the
cycle's later write replaces the store wholesale from its own snapshot;
the last write wins.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from ..config import Config
from ..core.client import RemoteClient
from ..validators import validate_record_fields
from .adapter import RemoteSourceAdapter
from .errors import NetworkError, PersistenceError
from .ledger import ConflictLedger
from .merger import reconcile
from .models import (
    ConflictEntry,
    Origin,
    ReconcileResult,
    Record,
    ResolutionChoice,
    SyncStatus,
    SyncSummary,
    utc_now,
)
from .scheduler import SyncScheduler
from .state import StateFile
from .store import RecordStore, default_seed, local_record_id

logger = logging.getLogger(__name__)

SummaryListener = Callable[[SyncSummary], None]
LedgerListener = Callable[[list[ConflictEntry]], None]


class SyncService:
    """Local-first synchronizer for one store and one remote source.

    Args:
        config: Runtime configuration.
        adapter: Remote adapter; built from a ``RemoteClient`` when omitted.
        state: Blob storage; defaults to ``config.state_dir``.
    """

    def __init__(
        self,
        config: Config,
        adapter: RemoteSourceAdapter | None = None,
        state: StateFile | None = None,
    ) -> None:
        self.config = config
        self.adapter = adapter or RemoteSourceAdapter(RemoteClient(config))

        self._state = state or StateFile(Path(config.state_dir))
        self._store = RecordStore(
            self._state,
            seed=default_seed() if config.seed_defaults else None,
        )
        self._ledger = ConflictLedger(self._state, self._store)
        self.scheduler = SyncScheduler(
            self.run_cycle, warmup_delay_ms=config.warmup_delay_ms
        )

        self._summary_listeners: list[SummaryListener] = []
        self._ledger_listeners: list[LedgerListener] = []
        self._pending_pushes: set[asyncio.Task] = set()
        self.last_summary: SyncSummary | None = None

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def all_records(self) -> list[Record]:
        """Return every stored record."""
        return self._store.load_all()

    def conflict_history(self) -> list[ConflictEntry]:
        """Return conflict entries, most recent first."""
        return self._ledger.entries()

    def unresolved_count(self) -> int:
        """Return the number of unresolved conflicts."""
        return self._ledger.unresolved_count()

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_summary_listener(self, listener: SummaryListener) -> None:
        """Call *listener* with the summary at the end of every cycle."""
        self._summary_listeners.append(listener)

    def remove_summary_listener(self, listener: SummaryListener) -> None:
        self._summary_listeners.remove(listener)

    def add_ledger_listener(self, listener: LedgerListener) -> None:
        """Call *listener* with the full history whenever the ledger changes."""
        self._ledger_listeners.append(listener)

    def remove_ledger_listener(self, listener: LedgerListener) -> None:
        self._ledger_listeners.remove(listener)

    # ------------------------------------------------------------------
    # Collaborator operations
    # ------------------------------------------------------------------

    async def add_local_record(
        self, text: str, author: str, category: str
    ) -> Record:
        """Create, persist and return a new local record.

        When ``push_on_create`` is enabled the record is also pushed to the
        remote in the background; a failed push is only logged.

        Raises:
            ValueError: If a field is blank.
            PersistenceError: If the store cannot be written.
        """
        text, author, category = validate_record_fields(text, author, category)
        now = datetime.now(timezone.utc)
        record_id = local_record_id(now)
        while record_id in self._store:
            now += timedelta(milliseconds=1)
            record_id = local_record_id(now)

        record = Record(
            id=record_id,
            text=text,
            author=author,
            category=category,
            updated_at=utc_now(),
            origin=Origin.LOCAL,
        )
        self._store.upsert(record)
        logger.info("Added local record %s", record.id)

        if self.config.push_on_create:
            task = asyncio.get_running_loop().create_task(
                self._push(record)
            )
            self._pending_pushes.add(task)
            task.add_done_callback(self._pending_pushes.discard)
        return record

    async def trigger_now(self) -> SyncSummary | None:
        """Request an immediate cycle; ``None`` if one is already running."""
        return await self.scheduler.trigger_now()

    def resolve_conflict(
        self, index: int, choice: ResolutionChoice
    ) -> ConflictEntry:
        """Resolve conflict *index* by keeping the chosen side.

        Raises:
            InvalidReferenceError: If *index* is unknown or already resolved.
            PersistenceError: If the store or ledger cannot be written.
        """
        entry = self._ledger.resolve(index, choice)
        self._notify_ledger()
        return entry

    def clear_conflicts(self) -> None:
        """Drop the whole conflict history."""
        self._ledger.clear()
        self._notify_ledger()

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def start(self, interval_ms: int | None = None) -> None:
        """Start periodic cycles (default interval from config)."""
        self.scheduler.start(interval_ms or self.config.sync_interval_ms)

    def stop(self) -> None:
        """Stop periodic cycles."""
        self.scheduler.stop()

    async def close(self) -> None:
        """Stop the scheduler, wait for pending work and close the client."""
        self.stop()
        await self.scheduler.wait_idle()
        if self._pending_pushes:
            await asyncio.gather(
                *self._pending_pushes, return_exceptions=True
            )
        close = getattr(self.adapter.client, "close", None)
        if close is not None:
            close()

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def run_cycle(self) -> SyncSummary:
        """Execute one fetch / reconcile / apply cycle.

        Normally invoked through the scheduler, which enforces the
        single-flight rule.

        Raises:
            PersistenceError: If the merged state cannot be written.
        """
        started_at = utc_now()
        logger.info("Sync cycle started")

        try:
            remote_records = await self.adapter.fetch_remote(
                self.config.fetch_limit
            )
        except NetworkError as exc:
            logger.warning("Sync cycle failed: %s", exc)
            summary = SyncSummary(
                status=SyncStatus.TRANSIENT_FAILURE,
                error=str(exc),
                started_at=started_at,
                completed_at=utc_now(),
            )
            self._notify_summary(summary)
            return summary

        result = reconcile(self._store.load_all(), remote_records)
        self._apply(result)

        summary = result.summary.model_copy(
            update={"started_at": started_at, "completed_at": utc_now()}
        )
        logger.info(
            "Sync cycle finished: +%d new, %d updated, %d conflicts",
            summary.added,
            summary.updated,
            summary.conflicts,
        )
        self._notify_summary(summary)
        if result.conflicts:
            self._notify_ledger()
        return summary

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply(self, result: ReconcileResult) -> None:
        """Write conflicts, then the merged collection.

        The ledger goes first so an overwritten local version is always
        recorded before the store drops it.  If the store write then fails,
        the ledger is rolled back and the error propagates.
        """
        if not result.conflicts:
            self._store.replace_all(result.updated_records)
            return

        previous = self._ledger.entries()
        self._ledger.extend(result.conflicts)
        try:
            self._store.replace_all(result.updated_records)
        except PersistenceError:
            try:
                self._ledger.restore(previous)
            except PersistenceError:
                # Store is untouched, so the next cycle re-detects these
                logger.exception("Could not roll back conflict ledger")
            raise

    async def _push(self, record: Record) -> None:
        try:
            await self.adapter.push(record)
        except NetworkError as exc:
            logger.warning("Ignoring failed push: %s", exc)

    def _notify_summary(self, summary: SyncSummary) -> None:
        self.last_summary = summary
        for listener in list(self._summary_listeners):
            try:
                listener(summary)
            except Exception:
                logger.exception("Summary listener %r failed", listener)

    def _notify_ledger(self) -> None:
        entries = self._ledger.entries()
        for listener in list(self._ledger_listeners):
            try:
                listener(entries)
            except Exception:
                logger.exception("Ledger listener %r failed", listener)
