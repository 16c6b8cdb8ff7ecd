"""Conflict ledger: ordered, persisted history of detected conflicts.

Entries are kept newest first because collaborators show the most recent
divergence at the top.  Each entry can be resolved exactly once; resolving
writes the chosen snapshot back through ``RecordStore.upsert()``.

Entries are frozen models.  Marking one resolved replaces it in the list
with an updated copy, and the list is persisted before the in-memory copy
is swapped.  If that write fails after the store was already updated, the
record is put back as it was.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from .errors import InvalidReferenceError, PersistenceError
from .models import ConflictEntry, Record, ResolutionChoice, utc_now
from .state import StateFile
from .store import RecordStore

logger = logging.getLogger(__name__)

CONFLICTS_KEY = "conflicts"


class ConflictLedger:
    """Newest-first history of ``ConflictEntry`` objects.

    Args:
        state: Blob storage for the ``conflicts`` key.
        store: Record store that resolutions are applied to.

    Raises:
        PersistenceError: If the stored history cannot be decoded.
    """

    def __init__(self, state: StateFile, store: RecordStore) -> None:
        self._state = state
        self._store = store
        self._entries: list[ConflictEntry] = []

        raw = state.load(CONFLICTS_KEY)
        if raw is not None:
            try:
                self._entries = [
                    ConflictEntry.model_validate(item) for item in raw
                ]
            except (TypeError, ValidationError) as exc:
                raise PersistenceError(
                    f"Stored conflict history is corrupt: {exc}"
                ) from exc

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def entries(self) -> list[ConflictEntry]:
        """Return the history, most recent first."""
        return list(self._entries)

    def unresolved_count(self) -> int:
        """Return the number of entries that are not yet resolved."""
        return sum(1 for e in self._entries if not e.resolved)

    def __len__(self) -> int:
        return len(self._entries)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append(self, entry: ConflictEntry) -> None:
        """Add *entry* at the front of the history."""
        self.extend([entry])

    def extend(self, entries: Iterable[ConflictEntry]) -> None:
        """Add a batch at the front, keeping the batch's own order."""
        batch = list(entries)
        if not batch:
            return
        self._commit(batch + self._entries)

    def resolve(
        self, index: int, choice: ResolutionChoice
    ) -> ConflictEntry:
        """Resolve the entry at *index* by keeping one side.

        If the record still exists in the store, it is overwritten with the
        chosen snapshot, a fresh ``updated_at`` and the matching origin.  A
        record deleted since detection is left alone; the entry is still
        marked resolved.

        Args:
            index: Position in ``entries()`` (0 is the newest).
            choice: ``KEEP_LOCAL`` or ``KEEP_REMOTE``.

        Returns:
            The resolved entry.

        Raises:
            InvalidReferenceError: If *index* is out of range or the entry
                is already resolved.
            PersistenceError: If the store or ledger write fails.
        """
        choice = ResolutionChoice(choice)
        if isinstance(index, bool) or not 0 <= index < len(self._entries):
            raise InvalidReferenceError(index, "does not exist")
        entry = self._entries[index]
        if entry.resolved:
            raise InvalidReferenceError(index, "is already resolved")

        chosen = (
            entry.local_version
            if choice is ResolutionChoice.KEEP_LOCAL
            else entry.remote_version
        )
        previous = self._store.get(entry.record_id)
        if previous is not None:
            self._store.upsert(
                chosen.model_copy(
                    update={"updated_at": utc_now(), "origin": choice.origin}
                )
            )
        else:
            logger.info(
                "Record %s no longer exists; resolving conflict #%d "
                "without a store write",
                entry.record_id,
                index,
            )

        resolved = entry.model_copy(
            update={"resolved": True, "resolution": choice.resolution}
        )
        new_entries = list(self._entries)
        new_entries[index] = resolved
        try:
            self._commit(new_entries)
        except PersistenceError:
            if previous is not None:
                self._rollback_record(previous)
            raise
        logger.info(
            "Conflict #%d on %s resolved: %s",
            index,
            entry.record_id,
            choice.resolution.value,
        )
        return resolved

    def clear(self) -> None:
        """Drop the whole history."""
        self._commit([])

    def restore(self, entries: Iterable[ConflictEntry]) -> None:
        """Persist *entries* as the whole history, replacing the current one.

        Used to roll back an ``extend()`` whose cycle failed later on.
        """
        self._commit(list(entries))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _rollback_record(self, previous: Record) -> None:
        try:
            self._store.upsert(previous)
        except PersistenceError:
            logger.exception(
                "Could not restore %s after a failed ledger write", previous.id
            )

    def _commit(self, entries: list[ConflictEntry]) -> None:
        self._state.save(
            CONFLICTS_KEY, [e.model_dump(mode="json") for e in entries]
        )
        self._entries = entries
