"""Bridge from the event loop to the blocking HTTP client."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Await ``func(*args, **kwargs)`` on a worker thread.

    Only the wrapped call leaves the loop thread; its result (or
    exception) is delivered back to the awaiting coroutine, so store and
    ledger mutations after the ``await`` still happen on the loop.

    Example:
        items = await run_sync(client.list_items, 10)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
