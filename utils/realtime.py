"""
Live subscription bridge.

Turns store change notifications into refetch calls. One LiveSubscription
watches one table, or one row of it, and calls ``on_change`` for every
insert/update/delete. A coroutine returned by ``on_change`` is scheduled on
the running loop and not awaited by the event source.
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, Optional, Set

logger = logging.getLogger(__name__)


class LiveSubscription:
    """
    Scoped change subscription.

    Every ``open()`` must be paired with ``close()``; use ``async with`` where
    the lifetime is a single block. ``close()`` is idempotent.
    """

    def __init__(
        self,
        store,
        table: str,
        on_change: Callable[[], Any],
        row_id: Optional[str] = None,
        event: str = "*",
    ):
        self.store = store
        self.table = table
        self.on_change = on_change
        self.row_id = row_id
        self.event = event
        self.events_received = 0
        self._handle = None
        self._inflight: Set[asyncio.Task] = set()

    @property
    def scope(self) -> str:
        return f"{self.table}:{self.row_id}" if self.row_id else self.table

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    async def open(self) -> "LiveSubscription":
        if self._handle is None:
            self._handle = await self.store.subscribe(
                self.table, self._dispatch, row_id=self.row_id, event=self.event
            )
        return self

    async def close(self) -> None:
        handle, self._handle = self._handle, None
        if handle is None:
            return
        await self.store.unsubscribe(handle)
        logger.info(f"Released subscription on {self.scope}")

    async def __aenter__(self) -> "LiveSubscription":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _dispatch(self, payload: Optional[Dict[str, Any]] = None) -> None:
        self.events_received += 1
        event_type = (payload or {}).get("eventType") or (payload or {}).get("type") or "change"
        logger.debug(f"{event_type} on {self.scope}")

        result = self.on_change()
        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._inflight.add(task)
            task.add_done_callback(self._finish)

    def _finish(self, task: asyncio.Task) -> None:
        self._inflight.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Refetch after change on {self.scope} failed: {task.exception()}")
