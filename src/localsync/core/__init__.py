"""HTTP transport and async bridging shared by the sync engine and CLI."""

from .async_utils import run_sync
from .client import RemoteClient

__all__ = ["RemoteClient", "run_sync"]
