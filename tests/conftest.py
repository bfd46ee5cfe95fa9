"""Shared test fixtures."""

from __future__ import annotations

import json
import threading

import pytest
from httpx import ASGITransport, AsyncClient

import dredgetrack.main as main_module
from dredgetrack.config import AppConfig
from dredgetrack.core.errors import PersistenceFailure


@pytest.fixture(autouse=True)
def _init_server(tmp_path):
    """Initialize server singletons for every test, using a temp directory."""
    config = AppConfig()
    config.storage.data_dir = str(tmp_path / "data")
    config.logging.level = "warning"

    main_module._setup_logging(config)
    main_module.build_services(config)

    yield

    main_module.reset_services()


@pytest.fixture
async def client():
    from dredgetrack.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


class FakeObserver:
    """In-memory observer that records every delivered event."""

    def __init__(self, is_open: bool = True, fail: bool = False) -> None:
        self.is_open = is_open
        self.fail = fail
        self.received: list[dict] = []

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise ConnectionResetError("peer went away")
        self.received.append(json.loads(data))


class MemoryStorage:
    """MarkStorage/TrailStorage double that keeps every write."""

    def __init__(self, marks: dict | None = None, trails: dict | None = None,
                 fail_writes: bool = False) -> None:
        self.marks = marks
        self.trails = trails
        self.fail_writes = fail_writes
        self.mark_writes: list[dict] = []
        self.trail_writes: list[dict] = []
        self.trail_deletes = 0

    def load_marks(self) -> dict | None:
        return self.marks

    def save_marks(self, snapshot: dict) -> None:
        if self.fail_writes:
            raise PersistenceFailure("disk full")
        self.mark_writes.append(snapshot)
        self.marks = snapshot

    def load_trails(self) -> dict | None:
        return self.trails

    def save_trails(self, snapshot: dict) -> None:
        if self.fail_writes:
            raise PersistenceFailure("disk full")
        self.trail_writes.append(snapshot)
        self.trails = snapshot

    def delete_trails(self) -> None:
        self.trail_deletes += 1
        self.trails = None


class GatedStorage(MemoryStorage):
    """MemoryStorage whose writes block until ``release`` is set."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def _gate(self) -> None:
        self.entered.set()
        self.release.wait(timeout=5)

    def save_marks(self, snapshot: dict) -> None:
        self._gate()
        super().save_marks(snapshot)

    def save_trails(self, snapshot: dict) -> None:
        self._gate()
        super().save_trails(snapshot)


@pytest.fixture
def memory_storage():
    return MemoryStorage()


def fix_payload(**overrides) -> dict:
    """A complete rover JSON body, RTK fixed at 45N 122W."""
    payload = {
        "latitude": 45.0,
        "longitude": -122.0,
        "altitude": 12.5,
        "h_acc": 0.014,
        "v_acc": 0.021,
        "fix_type": 3,
        "carr_soln": 2,
        "num_sv": 24,
        "rtcm_bytes": 20480,
        "fixed_count": 10,
        "float_count": 0,
        "battery_pct": 87,
        "firmware_version": "1.0.0",
        "hour": 1,
        "min": 0,
        "sec": 0,
    }
    payload.update(overrides)
    return payload
