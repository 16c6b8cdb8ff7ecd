"""Remote source adapter.

Translates remote-shaped items into canonical ``Record`` objects and
pushes newly created local records.  Holds no local state.

Remote item shape (JSONPlaceholder posts)::

    {"id": 7, "title": "...", "body": "...", "userId": 1}

Mapping:

* ``id`` becomes ``"remote-<id>"`` so repeated fetches of the same item
  always map to the same local id.
* ``text`` is ``title``, falling back to ``body``, then ``"Untitled"``.
* ``author`` and ``category`` are the fixed placeholder ``"API"``.
* ``updated_at`` is the fetch time; ``origin`` is ``REMOTE``.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from ..core.async_utils import run_sync
from ..core.client import RemoteClient
from .errors import MalformedPayloadError, NetworkError
from .models import Origin, Record, utc_now

logger = logging.getLogger(__name__)

REMOTE_ID_PREFIX = "remote-"
PLACEHOLDER_TEXT = "Untitled"
PLACEHOLDER_AUTHOR = "API"
PLACEHOLDER_CATEGORY = "API"
PUSH_USER_ID = 1


def remote_record_id(native_id: Any) -> str:
    """Return the canonical id for a remote item's native id.

    Raises:
        MalformedPayloadError: If *native_id* is missing or not an
            integer / non-empty string.
    """
    if isinstance(native_id, bool) or native_id is None:
        raise MalformedPayloadError(f"invalid remote id: {native_id!r}")
    if isinstance(native_id, int):
        return f"{REMOTE_ID_PREFIX}{native_id}"
    if isinstance(native_id, str) and native_id.strip():
        return f"{REMOTE_ID_PREFIX}{native_id.strip()}"
    raise MalformedPayloadError(f"invalid remote id: {native_id!r}")


def normalize_remote_item(item: Any, fetched_at: str) -> Record:
    """Convert one remote item into a ``Record``.

    Raises:
        MalformedPayloadError: If *item* is not an object, has no usable
            id, or has non-string text fields.
    """
    if not isinstance(item, dict):
        raise MalformedPayloadError(
            f"expected an object, got {type(item).__name__}"
        )
    record_id = remote_record_id(item.get("id"))

    text = item.get("title") or item.get("body") or PLACEHOLDER_TEXT
    if not isinstance(text, str):
        raise MalformedPayloadError(
            f"{record_id}: text must be a string, got {type(text).__name__}"
        )

    return Record(
        id=record_id,
        text=text,
        author=PLACEHOLDER_AUTHOR,
        category=PLACEHOLDER_CATEGORY,
        updated_at=fetched_at,
        origin=Origin.REMOTE,
    )


def push_payload(record: Record) -> dict[str, Any]:
    """Build the POST body for *record*."""
    return {
        "title": record.text,
        "body": record.author,
        "userId": PUSH_USER_ID,
    }


class RemoteSourceAdapter:
    """Fetch and push records through a ``RemoteClient``.

    Args:
        client: Blocking HTTP client; calls run in a worker thread.
    """

    def __init__(self, client: RemoteClient) -> None:
        self.client = client

    async def fetch_remote(self, limit: int) -> list[Record]:
        """Fetch up to *limit* remote items as records.

        Malformed items are dropped with a warning; the rest of the batch
        is returned.

        Raises:
            NetworkError: If the request fails, returns a non-success
                status, or the body is not a JSON array.
        """
        try:
            payload = await run_sync(self.client.list_items, limit)
        except requests.RequestException as exc:
            raise NetworkError(f"Remote fetch failed: {exc}") from exc
        except ValueError as exc:
            raise NetworkError(
                f"Remote response is not valid JSON: {exc}"
            ) from exc

        if not isinstance(payload, list):
            raise NetworkError(
                f"Remote response must be a JSON array, got {type(payload).__name__}"
            )

        fetched_at = utc_now()
        records: list[Record] = []
        for item in payload:
            try:
                records.append(normalize_remote_item(item, fetched_at))
            except MalformedPayloadError as exc:
                logger.warning("Dropping malformed remote item: %s", exc)
        logger.debug(
            "Fetched %d remote records (%d dropped)",
            len(records),
            len(payload) - len(records),
        )
        return records

    async def push(self, record: Record) -> None:
        """Send *record* to the remote.

        The remote does not retain pushes, so nothing is read back and
        local state is never changed by the outcome.

        Raises:
            NetworkError: If the request fails.
        """
        try:
            await run_sync(self.client.create_item, push_payload(record))
        except requests.RequestException as exc:
            raise NetworkError(
                f"Push of {record.id} failed: {exc}"
            ) from exc
        logger.debug("Pushed %s to remote", record.id)
