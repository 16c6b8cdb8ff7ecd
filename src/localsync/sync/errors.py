"""Exception hierarchy for the synchronization engine."""


class SyncError(Exception):
    """Base class for all localsync errors."""


class NetworkError(SyncError):
    """The remote call failed or returned a non-success status.

    Aborts the current cycle only; the next scheduled tick retries.
    """


class MalformedPayloadError(SyncError):
    """A single remote item could not be normalized into a ``Record``."""


class InvalidReferenceError(SyncError):
    """A conflict index is out of range or already resolved."""

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Conflict #{index} {reason}")


class PersistenceError(SyncError):
    """Persisted state could not be written or read back."""
