"""Tests for the fix ingestion pipeline."""

from __future__ import annotations

import math

import pytest

from conftest import FakeObserver, MemoryStorage
from dredgetrack.core.broadcast import BroadcastHub
from dredgetrack.core.geometry import EARTH_RADIUS_M, VehicleGeometry
from dredgetrack.core.models import Fix, OperatorSettings
from dredgetrack.core.position import PositionStore
from dredgetrack.core.processor import FixProcessor
from dredgetrack.core.stats import ServerStats
from dredgetrack.core.trails import TrailRecorder

TEN_METERS_NORTH = math.degrees(10.0 / EARTH_RADIUS_M)


def _pipeline(settings: OperatorSettings | None = None):
    stats = ServerStats()
    store = PositionStore()
    hub = BroadcastHub(stats=stats)
    recorder = TrailRecorder(VehicleGeometry(), MemoryStorage(), stats=stats)
    processor = FixProcessor(store, recorder, hub, settings or OperatorSettings(), stats)
    return processor, store, recorder, hub, stats


def test_end_to_end_scenario():
    processor, store, recorder, _, _ = _pipeline()

    processor.process(Fix(latitude=45.0, longitude=-122.0, carr_soln=2,
                          fixed_count=10, float_count=0, hour=1, minute=0, second=0))
    state = store.current()
    assert state.fixed_rate == "100.0"
    assert state.timestamp == "01:00:00 UTC"
    assert len(recorder) == 1

    processor.process(Fix(latitude=45.0 + TEN_METERS_NORTH, longitude=-122.0, carr_soln=2,
                          fixed_count=11, float_count=0, hour=1, minute=0, second=1))
    assert len(recorder) == 2


def test_float_fix_updates_state_but_not_trail():
    processor, store, recorder, _, stats = _pipeline()
    processor.process(Fix(latitude=45.0, longitude=-122.0, carr_soln=1))
    assert store.current().fix.carr_soln == 1
    assert len(recorder) == 0
    assert stats.snapshot()["fixes_received"] == 1
    assert stats.snapshot()["fixes_rtk_fixed"] == 0


def test_test_location_mode_suspends_recording():
    settings = OperatorSettings(location_mode="nome")
    processor, store, recorder, _, _ = _pipeline(settings)
    processor.process(Fix(latitude=45.0, longitude=-122.0, carr_soln=2))
    assert store.current() is not None
    assert len(recorder) == 0

    settings.location_mode = "live"
    processor.process(Fix(latitude=45.0, longitude=-122.0, carr_soln=2))
    assert len(recorder) == 1


def test_heading_feeds_trail_geometry():
    settings = OperatorSettings(heading=0)
    processor, _, recorder, _, _ = _pipeline(settings)
    processor.process(Fix(latitude=45.0, longitude=-122.0, carr_soln=2))
    settings.heading = 180
    processor.process(Fix(latitude=45.0 + TEN_METERS_NORTH, longitude=-122.0, carr_soln=2))

    suction = recorder.snapshot()["suction"]
    # Nozzle tip is ahead of the antenna: north at heading 0, south at 180.
    assert suction[0][1] > 45.0
    assert suction[1][1] < 45.0 + TEN_METERS_NORTH


def test_fix_without_coordinates_is_accepted():
    processor, store, recorder, _, _ = _pipeline()
    processor.process(Fix(carr_soln=2, num_sv=4))
    assert store.current().fix.latitude is None
    assert len(recorder) == 0


@pytest.mark.asyncio
async def test_position_event_fanned_out():
    processor, _, _, hub, _ = _pipeline()
    observers = [FakeObserver() for _ in range(3)]
    for obs in observers:
        hub.register(obs)

    processor.process(Fix(latitude=45.0, longitude=-122.0, carr_soln=2, fix_type=3))
    await hub.drain()

    for obs in observers:
        assert len(obs.received) == 1
        event = obs.received[0]
        assert event["type"] == "position"
        assert event["data"]["fix_status"] == "RTK FIXED"
        assert event["data"]["latitude"] == 45.0
    await hub.close()
