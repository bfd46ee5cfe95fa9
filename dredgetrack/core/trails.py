"""Trail recorder: decimated history of where the dredge has worked.

Three sequences grow together, one entry per admitted sample:
- piloting: antenna track, ``[lon, lat]``
- suction:  nozzle tip track, ``[lon, lat]``
- tailings: deposit zone Polygon Feature at that sample

A sample is admitted only if it lies at least ``min_distance_m`` from the
last admitted piloting point (or if it is the first). Growth is otherwise
unbounded.

Persistence is debounced: admissions set a dirty flag and wake the
background writer, which waits ``persist_interval`` seconds and then
writes one snapshot. At most one write happens per interval; a crash
loses at most that interval's points. A failed write marks the trails
dirty again and is retried on the next cycle.
"""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

from dredgetrack.core.errors import PersistenceFailure
from dredgetrack.core.geometry import (
    VehicleGeometry,
    haversine_m,
    suction_tip_position,
    tailings_polygon,
)

if TYPE_CHECKING:
    from dredgetrack.core.models import Fix
    from dredgetrack.core.stats import ServerStats
    from dredgetrack.storage.base import TrailStorage

log = structlog.get_logger()

DEFAULT_MIN_DISTANCE_M = 0.5
DEFAULT_PERSIST_INTERVAL_S = 5.0


class TrailRecorder:
    """Admits fixes into the three trails and schedules their persistence."""

    def __init__(
        self,
        geometry: VehicleGeometry,
        storage: TrailStorage,
        stats: ServerStats | None = None,
        min_distance_m: float = DEFAULT_MIN_DISTANCE_M,
        persist_interval: float = DEFAULT_PERSIST_INTERVAL_S,
    ) -> None:
        self._geometry = geometry
        self._storage = storage
        self._stats = stats
        self.min_distance_m = min_distance_m
        self.persist_interval = persist_interval

        self._lock = threading.Lock()
        self._piloting: list[list[float]] = []
        self._suction: list[list[float]] = []
        self._tailings: list[dict] = []
        self._dirty = False
        self._wake = asyncio.Event()
        self._io_lock = asyncio.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._piloting)

    def load(self) -> None:
        """Restore trails from storage. A missing or unreadable file starts empty."""
        try:
            data = self._storage.load_trails()
        except PersistenceFailure:
            log.error("trails_load_failed", exc_info=True)
            return
        if not data:
            return
        with self._lock:
            self._piloting = list(data.get("piloting", []))
            self._suction = list(data.get("suction", []))
            self._tailings = list(data.get("tailings", []))
        log.info("trails_loaded", points=len(self._piloting))

    def on_fix(self, fix: Fix, heading: float) -> bool:
        """Consider one trusted fix. Returns True if it was admitted.

        The caller decides trust (RTK fixed, live mode); this only applies
        the distance threshold.
        """
        lat, lon = fix.latitude, fix.longitude
        if lat is None or lon is None:
            return False

        with self._lock:
            if self._piloting:
                last_lon, last_lat = self._piloting[-1]
                distance = haversine_m(last_lat, last_lon, lat, lon)
                admitted = distance >= self.min_distance_m
            else:
                distance = None
                admitted = True

            if admitted:
                self._piloting.append([lon, lat])
                self._suction.append(suction_tip_position(lat, lon, heading, self._geometry))
                self._tailings.append(tailings_polygon(lat, lon, heading, self._geometry))
                self._dirty = True
                points = len(self._piloting)

        if self._stats is not None:
            self._stats.record_trail_decision(admitted)
        if admitted:
            self._wake.set()
            log.debug("trail_point_admitted", points=points,
                      distance_m=round(distance, 3) if distance is not None else None)
        return admitted

    def snapshot(self) -> dict:
        """Raw sequences in the persisted layout (copies)."""
        with self._lock:
            return {
                "piloting": [list(p) for p in self._piloting],
                "suction": [list(p) for p in self._suction],
                "tailings": list(self._tailings),
            }

    def export(self) -> dict:
        """Raw sequences plus ready-to-render GeoJSON. Read-only."""
        trails = self.snapshot()
        return {
            "exported": datetime.now(timezone.utc).isoformat(),
            "trails": trails,
            "geojson": {
                "piloting": {
                    "type": "Feature",
                    "properties": {"name": "Piloting Trail"},
                    "geometry": {"type": "LineString", "coordinates": trails["piloting"]},
                },
                "suction": {
                    "type": "Feature",
                    "properties": {"name": "Suction Trail"},
                    "geometry": {"type": "LineString", "coordinates": trails["suction"]},
                },
                "tailings": {
                    "type": "FeatureCollection",
                    "features": trails["tailings"],
                },
            },
        }

    async def clear(self) -> int:
        """Empty all trails and delete the persisted copy. Returns points removed.

        Waits for an in-flight write, so the deleted file cannot be
        written back by a snapshot taken before the clear.
        """
        async with self._io_lock:
            with self._lock:
                removed = len(self._piloting)
                self._piloting = []
                self._suction = []
                self._tailings = []
                self._dirty = False
            try:
                await asyncio.to_thread(self._storage.delete_trails)
            except PersistenceFailure:
                log.error("trails_delete_failed", exc_info=True)
                if self._stats is not None:
                    self._stats.record_persistence_error()
        log.info("trails_cleared", points=removed)
        return removed

    async def flush(self) -> bool:
        """Write a snapshot now if anything changed since the last write."""
        async with self._io_lock:
            with self._lock:
                if not self._dirty:
                    return False
                self._dirty = False
            snapshot = self.snapshot()
            try:
                await asyncio.to_thread(self._storage.save_trails, snapshot)
            except PersistenceFailure:
                log.error("trails_persist_failed", points=len(snapshot["piloting"]),
                          exc_info=True)
                if self._stats is not None:
                    self._stats.record_persistence_error()
                # Retry on the writer's next cycle.
                with self._lock:
                    self._dirty = True
                self._wake.set()
                return False
        log.debug("trails_persisted", points=len(snapshot["piloting"]))
        return True

    async def run_persistence(self) -> None:
        """Debounced writer. Runs as a background task."""
        log.info("trail_writer_started", interval_s=self.persist_interval)
        while True:
            await self._wake.wait()
            self._wake.clear()
            await asyncio.sleep(self.persist_interval)
            await self.flush()
