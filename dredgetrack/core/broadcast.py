"""Broadcast hub: fans state-change events out to live observers.

Each observer gets an unbounded queue and a pump task that drains it to
the transport. ``broadcast`` only enqueues, so a slow or half-closed
observer never blocks the writer path or the other observers. Observers
are removed only when their transport reports closure (``unregister``).
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Protocol

import structlog

from dredgetrack.core.errors import TransportFailure

if TYPE_CHECKING:
    from dredgetrack.core.stats import ServerStats

log = structlog.get_logger()


class Observer(Protocol):
    """Port: one viewer connection."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...


@dataclass(eq=False)
class Subscription:
    observer: Observer
    queue: asyncio.Queue
    task: asyncio.Task | None = None


class BroadcastHub:
    """Tracks observer subscriptions and fans out JSON events."""

    def __init__(self, stats: ServerStats | None = None) -> None:
        self._subs: set[Subscription] = set()
        self._stats = stats

    @property
    def observer_count(self) -> int:
        return len(self._subs)

    def register(self, observer: Observer, initial: Iterable[dict] = ()) -> Subscription:
        """Add an observer, queueing ``initial`` ahead of any later event.

        Must be called from the event loop. Registration and the initial
        snapshot happen without an await in between, so no event is lost
        or duplicated between the snapshot and live fan-out.
        """
        sub = Subscription(observer=observer, queue=asyncio.Queue())
        for message in initial:
            sub.queue.put_nowait(json.dumps(message))
        self._subs.add(sub)
        sub.task = asyncio.create_task(self._pump(sub))
        self._update_count()
        log.info("observer_connected", observers=len(self._subs))
        return sub

    def unregister(self, sub: Subscription) -> None:
        """Drop an observer whose transport closed. Pending events are discarded."""
        if sub not in self._subs:
            return
        self._subs.discard(sub)
        if sub.task is not None:
            sub.task.cancel()
        while not sub.queue.empty():
            sub.queue.get_nowait()
            sub.queue.task_done()
        self._update_count()
        log.info("observer_disconnected", observers=len(self._subs))

    def broadcast(self, message: dict) -> int:
        """Queue ``message`` for every live observer. Returns the fan-out size."""
        data = json.dumps(message)
        subs = list(self._subs)
        for sub in subs:
            sub.queue.put_nowait(data)
        if self._stats is not None:
            self._stats.record_broadcast()
        log.debug("event_broadcast", type=message.get("type"),
                  action=message.get("action"), observers=len(subs))
        return len(subs)

    async def drain(self) -> None:
        """Wait until every queued event has been handed to its transport."""
        await asyncio.gather(*(sub.queue.join() for sub in list(self._subs)))

    async def close(self) -> None:
        """Cancel all pump tasks (shutdown)."""
        subs = list(self._subs)
        for sub in subs:
            self.unregister(sub)
        tasks = [sub.task for sub in subs if sub.task is not None]
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _pump(self, sub: Subscription) -> None:
        while True:
            data = await sub.queue.get()
            try:
                if await self._deliver(sub.observer, data) and self._stats is not None:
                    self._stats.record_delivery()
            except TransportFailure as exc:
                log.warning("observer_send_failed", error=str(exc))
                if self._stats is not None:
                    self._stats.record_send_failure()
            finally:
                sub.queue.task_done()

    @staticmethod
    async def _deliver(observer: Observer, data: str) -> bool:
        # Not open-ready: skip silently, the close notification will follow.
        if not observer.is_open:
            return False
        try:
            await observer.send_text(data)
        except Exception as exc:
            raise TransportFailure(f"{type(exc).__name__}: {exc}") from exc
        return True

    def _update_count(self) -> None:
        if self._stats is not None:
            self._stats.update_observers(len(self._subs))
