"""localsync: local-first record synchronizer with conflict tracking."""

__version__ = "0.1.0"
