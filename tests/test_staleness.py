"""Tests for the staleness monitor."""

from __future__ import annotations

import time

import pytest

from conftest import FakeObserver
from dredgetrack.core.broadcast import BroadcastHub
from dredgetrack.core.models import Fix
from dredgetrack.core.position import PositionStore
from dredgetrack.core.staleness import StalenessMonitor


@pytest.mark.asyncio
async def test_transitions_are_broadcast_once():
    store = PositionStore()
    hub = BroadcastHub()
    observer = FakeObserver()
    hub.register(observer)
    monitor = StalenessMonitor(store, hub, timeout_seconds=0.05)

    assert monitor.check() is None  # no fix yet

    store.ingest(Fix(latitude=45.0, longitude=-122.0))
    assert monitor.check() == "live"
    assert monitor.check() is None

    time.sleep(0.1)
    assert monitor.is_stale() is True
    assert monitor.check() == "stale"

    store.ingest(Fix(latitude=45.0, longitude=-122.0))
    assert monitor.check() == "live"

    await hub.drain()
    assert [m["data"]["state"] for m in observer.received] == ["live", "stale", "live"]
    assert all(m["type"] == "status" for m in observer.received)
    await hub.close()
