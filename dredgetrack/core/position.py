"""Position state store: the single current-state record.

Every ingested fix replaces the record (last write wins); there is no
ordering or age check and no history. Staleness is derived from
``last_update`` by the caller.
"""

from __future__ import annotations

import threading
import time
from datetime import datetime, timezone

from dredgetrack.core.models import Fix, PositionState


class PositionStore:
    """Thread-safe holder of the latest PositionState."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state: PositionState | None = None

    def ingest(self, fix: Fix) -> PositionState:
        """Accept a fix unconditionally and stamp its receipt time."""
        state = PositionState(
            fix=fix,
            last_update=datetime.now(timezone.utc),
            received_monotonic=time.monotonic(),
        )
        with self._lock:
            self._state = state
        return state

    def current(self) -> PositionState | None:
        """The latest state, or None before the first fix."""
        with self._lock:
            return self._state

    def seconds_since_update(self) -> float | None:
        state = self.current()
        if state is None:
            return None
        return time.monotonic() - state.received_monotonic
