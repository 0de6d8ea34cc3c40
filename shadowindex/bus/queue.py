"""Broadcast bus decoupling the indexing scheduler from its consumers."""

from __future__ import annotations

import asyncio
from typing import Callable

from loguru import logger

from shadowindex.bus.events import DataCallback, IndexEvent, StatusCallback

EventHandler = Callable[[IndexEvent], None]


class IndexEventBus:
    """
    Delivers index events in publish order to every observer.

    Two single-slot callbacks (status, data) mirror the simple "one handler of
    each kind" contract; setting one replaces the previous. Any number of
    additional observers can attach with subscribe() or open_stream().
    A raising handler is logged and skipped; it never stops delivery.
    """

    def __init__(self) -> None:
        self._status_callback: StatusCallback | None = None
        self._data_callback: DataCallback | None = None
        self._subscribers: list[EventHandler] = []

    def set_status_callback(self, callback: StatusCallback | None) -> None:
        self._status_callback = callback

    def set_data_callback(self, callback: DataCallback | None) -> None:
        self._data_callback = callback

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """Attach an observer for all events. Returns a function that detaches it."""
        self._subscribers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._subscribers:
                self._subscribers.remove(handler)

        return _unsubscribe

    def open_stream(self) -> tuple[asyncio.Queue[IndexEvent], Callable[[], None]]:
        """Subscribe an unbounded asyncio queue; returns (queue, unsubscribe)."""
        q: asyncio.Queue[IndexEvent] = asyncio.Queue()
        return q, self.subscribe(q.put_nowait)

    def publish(self, event: IndexEvent) -> None:
        if event.kind == "status" and self._status_callback is not None and event.status is not None:
            self._safe_call("status callback", self._status_callback, event.document_id, event.status)
        elif event.kind == "data" and self._data_callback is not None:
            self._safe_call("data callback", self._data_callback, event.document_id, event.chunks)
        for handler in list(self._subscribers):
            self._safe_call("subscriber", handler, event)

    @staticmethod
    def _safe_call(name: str, fn: Callable[..., None], *args: object) -> None:
        try:
            fn(*args)
        except Exception as e:
            logger.warning(f"Index event {name} raised: {e}")
