"""Mark registry: operator-placed reference marks.

Ids come from a counter that only moves forward, so a deleted id is never
handed out again. ``clear_all`` is the one exception: it resets the
counter and ids restart at 1.

Every mutation writes the whole registry to storage before the change is
broadcast. A failed write is logged and counted; the in-memory change
is kept and still broadcast.
"""

from __future__ import annotations

import asyncio
import dataclasses
import threading
import time
from datetime import datetime, timezone
from numbers import Real
from typing import TYPE_CHECKING, Callable, Iterable

import structlog

from dredgetrack.core.errors import NotFound, PersistenceFailure, ValidationError
from dredgetrack.core.models import Mark

if TYPE_CHECKING:
    from dredgetrack.core.broadcast import BroadcastHub, Observer, Subscription
    from dredgetrack.core.stats import ServerStats
    from dredgetrack.storage.base import MarkStorage

log = structlog.get_logger()


def _is_number(value: object) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


class MarkRegistry:
    """Ordered mark collection with serialized, durable mutations."""

    def __init__(
        self,
        storage: MarkStorage,
        hub: BroadcastHub,
        stats: ServerStats | None = None,
    ) -> None:
        self._storage = storage
        self._hub = hub
        self._stats = stats
        # _mutex serializes whole mutations (persist + broadcast included);
        # _lock guards the in-memory collection for readers.
        self._mutex = asyncio.Lock()
        self._lock = threading.Lock()
        self._marks: list[Mark] = []
        self._counter = 0

    @property
    def counter(self) -> int:
        with self._lock:
            return self._counter

    def load(self) -> None:
        """Restore the registry from storage. Unreadable data starts empty."""
        try:
            data = self._storage.load_marks()
        except PersistenceFailure:
            log.error("marks_load_failed", exc_info=True)
            return
        if not data:
            return
        try:
            marks = [Mark.from_dict(m) for m in data.get("marks", [])]
        except (KeyError, TypeError, ValueError):
            log.error("marks_load_failed", reason="malformed mark record", exc_info=True)
            return
        counter = int(data.get("markCounter", 0))
        # Never hand out an id that is still on disk.
        counter = max([counter] + [m.id for m in marks])
        with self._lock:
            self._marks = marks
            self._counter = counter
        log.info("marks_loaded", count=len(marks), counter=counter)

    def list(self) -> list[Mark]:
        with self._lock:
            return list(self._marks)

    def as_dicts(self) -> list[dict]:
        return [m.to_dict() for m in self.list()]

    async def subscribe(
        self,
        observer: Observer,
        initial: Callable[[], Iterable[dict]] | None = None,
    ) -> Subscription:
        """Register ``observer`` on the hub, queueing ``initial()`` then the mark list.

        Holds the mutation lock, so a change that is still being written
        shows up either in the snapshot or as a later event, never both.
        ``initial`` is evaluated under the lock with no await before
        registration.
        """
        async with self._mutex:
            messages = list(initial()) if initial is not None else []
            messages.append({"type": "marks", "data": self.as_dicts()})
            return self._hub.register(observer, initial=messages)

    def get(self, mark_id: int) -> Mark:
        with self._lock:
            for mark in self._marks:
                if mark.id == mark_id:
                    return mark
        raise NotFound(f"mark {mark_id} not found")

    async def create(
        self,
        latitude: float | None,
        longitude: float | None,
        h_acc: float | None = None,
        label: str | None = None,
    ) -> Mark:
        if latitude is None or longitude is None:
            raise ValidationError("latitude and longitude are required")
        if not _is_number(latitude) or not _is_number(longitude):
            raise ValidationError("latitude and longitude must be numbers")
        if h_acc is not None and not _is_number(h_acc):
            raise ValidationError("h_acc must be a number")
        if label is not None and not isinstance(label, str):
            raise ValidationError("label must be a string")

        async with self._mutex:
            now = datetime.now(timezone.utc)
            with self._lock:
                self._counter += 1
                mark = Mark(
                    id=self._counter,
                    label=label or f"RM_{self._counter}",
                    latitude=latitude,
                    longitude=longitude,
                    h_acc=h_acc,
                    timestamp=now.isoformat(),
                    created_at=int(time.time() * 1000),
                )
                self._marks.append(mark)
            await self._persist()
            log.info("mark_created", id=mark.id, label=mark.label,
                     lat=round(latitude, 9), lon=round(longitude, 9))
            self._hub.broadcast({"type": "mark", "action": "create", "data": mark.to_dict()})
            return mark

    async def delete(self, mark_id: int) -> None:
        async with self._mutex:
            with self._lock:
                index = next(
                    (i for i, m in enumerate(self._marks) if m.id == mark_id), None,
                )
                if index is None:
                    raise NotFound(f"mark {mark_id} not found")
                deleted = self._marks.pop(index)
            await self._persist()
            log.info("mark_deleted", id=deleted.id, label=deleted.label)
            self._hub.broadcast({"type": "mark", "action": "delete", "data": {"id": mark_id}})

    async def update(self, mark_id: int, label: str | None) -> Mark:
        """Rename a mark. An empty label leaves it unchanged."""
        if label is not None and not isinstance(label, str):
            raise ValidationError("label must be a string")

        async with self._mutex:
            with self._lock:
                index = next(
                    (i for i, m in enumerate(self._marks) if m.id == mark_id), None,
                )
                if index is None:
                    raise NotFound(f"mark {mark_id} not found")
                mark = self._marks[index]
                if label:
                    # Replace rather than mutate; earlier reads keep their copy.
                    mark = dataclasses.replace(mark, label=label)
                    self._marks[index] = mark
                data = mark.to_dict()
            await self._persist()
            log.info("mark_updated", id=mark_id, label=data["label"])
            self._hub.broadcast({"type": "mark", "action": "update", "data": data})
            return mark

    async def clear_all(self) -> int:
        """Remove every mark and reset the id counter. Returns how many were removed."""
        async with self._mutex:
            with self._lock:
                count = len(self._marks)
                self._marks = []
                self._counter = 0
            await self._persist()
            log.info("marks_cleared", count=count)
            self._hub.broadcast({"type": "mark", "action": "clear", "data": {"deleted": count}})
            return count

    async def _persist(self) -> None:
        with self._lock:
            snapshot = {
                "marks": [m.to_dict() for m in self._marks],
                "markCounter": self._counter,
            }
        if self._stats is not None:
            self._stats.record_mark_mutation()
        try:
            await asyncio.to_thread(self._storage.save_marks, snapshot)
        except PersistenceFailure:
            log.error("marks_persist_failed", count=len(snapshot["marks"]), exc_info=True)
            if self._stats is not None:
                self._stats.record_persistence_error()
