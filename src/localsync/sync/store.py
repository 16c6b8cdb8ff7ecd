"""Durable record collection.

``RecordStore`` owns the synchronized records.  All mutations go through
``replace_all()`` or ``upsert()``; each writes the whole collection to the
``records`` blob before the in-memory copy is swapped, so a failed write
leaves the store exactly as it was last persisted.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from .errors import PersistenceError
from .models import Origin, Record
from .state import StateFile

logger = logging.getLogger(__name__)

RECORDS_KEY = "records"

_SEED_CONTENT: tuple[tuple[str, str, str], ...] = (
    (
        "The best way to get started is to quit talking and begin doing.",
        "Walt Disney",
        "Motivation",
    ),
    (
        "Life is what happens when you're busy making other plans.",
        "John Lennon",
        "Life",
    ),
    (
        "Your time is limited, so don't waste it living someone else's life.",
        "Steve Jobs",
        "Inspiration",
    ),
)


def local_record_id(moment: datetime | None = None) -> str:
    """Return a ``local-<epoch ms>`` identifier for *moment* (default: now)."""
    moment = moment or datetime.now(timezone.utc)
    return f"local-{int(moment.timestamp() * 1000)}"


def default_seed(moment: datetime | None = None) -> list[Record]:
    """Build the sample records used to populate an empty store."""
    moment = moment or datetime.now(timezone.utc)
    stamp = moment.isoformat()
    count = len(_SEED_CONTENT)
    return [
        Record(
            id=local_record_id(moment - timedelta(milliseconds=count - i)),
            text=text,
            author=author,
            category=category,
            updated_at=stamp,
            origin=Origin.LOCAL,
        )
        for i, (text, author, category) in enumerate(_SEED_CONTENT)
    ]


class RecordStore:
    """Persisted, id-unique collection of ``Record`` objects.

    Args:
        state: Blob storage shared with the conflict ledger.
        seed: Records to persist when no collection has been stored yet.
            ``None`` starts empty.

    Raises:
        PersistenceError: If the stored collection cannot be read or
            decoded.
    """

    def __init__(
        self, state: StateFile, seed: Iterable[Record] | None = None
    ) -> None:
        self._state = state
        self._records: list[Record] = []

        raw = state.load(RECORDS_KEY)
        if raw is None:
            if seed is not None:
                self.replace_all(seed)
                logger.info(
                    "Seeded record store with %d records", len(self._records)
                )
            return

        try:
            records = [Record.model_validate(item) for item in raw]
        except (TypeError, ValidationError) as exc:
            raise PersistenceError(
                f"Stored records are corrupt: {exc}"
            ) from exc
        self._records = _dedupe(records)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def load_all(self) -> list[Record]:
        """Return a snapshot of every record, in stored order."""
        return list(self._records)

    def get(self, record_id: str) -> Record | None:
        """Return the record with *record_id*, or ``None`` if absent."""
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def __contains__(self, record_id: object) -> bool:
        return any(r.id == record_id for r in self._records)

    def __len__(self) -> int:
        return len(self._records)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def replace_all(self, records: Iterable[Record]) -> None:
        """Persist *records* as the complete collection.

        Raises:
            PersistenceError: If the write fails; the store is unchanged.
        """
        new_records = _dedupe(records)
        self._persist(new_records)
        self._records = new_records

    def upsert(self, record: Record) -> None:
        """Replace the record sharing *record*'s id, or append it.

        Raises:
            PersistenceError: If the write fails; the store is unchanged.
        """
        new_records = list(self._records)
        for i, existing in enumerate(new_records):
            if existing.id == record.id:
                new_records[i] = record
                break
        else:
            new_records.append(record)
        self._persist(new_records)
        self._records = new_records

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _persist(self, records: list[Record]) -> None:
        self._state.save(
            RECORDS_KEY, [r.model_dump(mode="json") for r in records]
        )


def _dedupe(records: Iterable[Record]) -> list[Record]:
    """Keep one record per id; a later duplicate replaces the earlier one."""
    by_id: dict[str, int] = {}
    result: list[Record] = []
    for record in records:
        if record.id in by_id:
            logger.warning("Duplicate record id %s collapsed", record.id)
            result[by_id[record.id]] = record
        else:
            by_id[record.id] = len(result)
            result.append(record)
    return result
