"""Fix processor: the position ingestion pipeline.

store (always) -> trail recorder (RTK fixed, live mode only) -> broadcast.
This is the core business logic; it depends on the components it is
given, not on the web layer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from dredgetrack.core.models import fix_status

if TYPE_CHECKING:
    from dredgetrack.core.broadcast import BroadcastHub
    from dredgetrack.core.models import Fix, OperatorSettings, PositionState
    from dredgetrack.core.position import PositionStore
    from dredgetrack.core.stats import ServerStats
    from dredgetrack.core.trails import TrailRecorder

log = structlog.get_logger()


def _fmt(value: float | None, digits: int) -> str:
    return "--" if value is None else f"{value:.{digits}f}"


class FixProcessor:
    """Applies each incoming fix to state, trails and observers, in that order."""

    def __init__(
        self,
        store: PositionStore,
        recorder: TrailRecorder,
        hub: BroadcastHub,
        settings: OperatorSettings,
        stats: ServerStats,
    ) -> None:
        self._store = store
        self._recorder = recorder
        self._hub = hub
        self._settings = settings
        self._stats = stats

    def process(self, fix: Fix) -> PositionState:
        """Ingest one fix. Never rejects; missing fields stay unknown."""
        state = self._store.ingest(fix)
        self._stats.record_fix(rtk_fixed=fix.is_rtk_fixed)

        admitted = False
        if fix.is_rtk_fixed and fix.has_position and self._settings.is_live:
            admitted = self._recorder.on_fix(fix, self._settings.heading)

        self._hub.broadcast({"type": "position", "data": state.to_dict()})

        log.info("fix_ingested",
                 firmware=fix.firmware_version,
                 lat=_fmt(fix.latitude, 7),
                 lon=_fmt(fix.longitude, 7),
                 status=fix_status(fix.fix_type, fix.carr_soln),
                 fixed_rate=fix.fixed_rate,
                 battery=fix.battery_pct,
                 trail_admitted=admitted)
        return state
