"""Staleness monitor: advisory "no recent fix" state for observers."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from dredgetrack.core.broadcast import BroadcastHub
    from dredgetrack.core.position import PositionStore

log = structlog.get_logger()

LIVE = "live"
STALE = "stale"


class StalenessMonitor:
    """Polls the position store and broadcasts live/stale transitions."""

    def __init__(
        self,
        store: PositionStore,
        hub: BroadcastHub,
        timeout_seconds: float = 10.0,
        check_interval: float = 1.0,
    ) -> None:
        self._store = store
        self._hub = hub
        self.timeout_seconds = timeout_seconds
        self.check_interval = check_interval
        self._state: str | None = None

    def is_stale(self) -> bool:
        age = self._store.seconds_since_update()
        return age is not None and age > self.timeout_seconds

    def check(self) -> str | None:
        """Evaluate once; broadcast and return the new state on a transition."""
        current = self._store.current()
        if current is None:
            return None
        state = STALE if self.is_stale() else LIVE
        if state == self._state:
            return None
        self._state = state
        self._hub.broadcast({
            "type": "status",
            "data": {"state": state, "last_update": current.last_update.isoformat()},
        })
        log.info("position_" + state, last_update=current.last_update.isoformat())
        return state

    async def run(self) -> None:
        """Poll forever. Runs as a background task."""
        log.info("staleness_monitor_started", timeout_s=self.timeout_seconds)
        while True:
            self.check()
            await asyncio.sleep(self.check_interval)
