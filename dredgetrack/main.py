"""DredgeTrack server: main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, storage, and API layers.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from dredgetrack.api.marks import router as marks_router
from dredgetrack.api.monitoring import router as monitoring_router
from dredgetrack.api.position import router as position_router
from dredgetrack.api.settings import router as settings_router
from dredgetrack.api.trails import router as trails_router
from dredgetrack.api.ws import router as ws_router
from dredgetrack.config import AppConfig, load_config
from dredgetrack.core.broadcast import BroadcastHub
from dredgetrack.core.marks import MarkRegistry
from dredgetrack.core.models import OperatorSettings
from dredgetrack.core.position import PositionStore
from dredgetrack.core.processor import FixProcessor
from dredgetrack.core.staleness import StalenessMonitor
from dredgetrack.core.stats import ServerStats
from dredgetrack.core.trails import TrailRecorder
from dredgetrack.storage.file_storage import JsonFileStorage

log = structlog.get_logger()

# Module-level singletons (set during startup)
_config: AppConfig | None = None
_stats: ServerStats | None = None
_settings: OperatorSettings | None = None
_store: PositionStore | None = None
_hub: BroadcastHub | None = None
_recorder: TrailRecorder | None = None
_registry: MarkRegistry | None = None
_processor: FixProcessor | None = None
_monitor: StalenessMonitor | None = None
_storage: JsonFileStorage | None = None


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def get_stats() -> ServerStats:
    assert _stats is not None, "Server not initialized"
    return _stats


def get_settings() -> OperatorSettings:
    assert _settings is not None, "Server not initialized"
    return _settings


def get_store() -> PositionStore:
    assert _store is not None, "Server not initialized"
    return _store


def get_hub() -> BroadcastHub:
    assert _hub is not None, "Server not initialized"
    return _hub


def get_recorder() -> TrailRecorder:
    assert _recorder is not None, "Server not initialized"
    return _recorder


def get_registry() -> MarkRegistry:
    assert _registry is not None, "Server not initialized"
    return _registry


def get_processor() -> FixProcessor:
    assert _processor is not None, "Server not initialized"
    return _processor


def get_monitor() -> StalenessMonitor:
    assert _monitor is not None, "Server not initialized"
    return _monitor


def get_storage() -> JsonFileStorage:
    assert _storage is not None, "Server not initialized"
    return _storage


def _setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


def build_services(config: AppConfig) -> None:
    """Create every component from ``config`` and install the singletons."""
    global _config, _stats, _settings, _store, _hub, _recorder, _registry
    global _processor, _monitor, _storage

    config.vehicle.validate()

    _config = config
    _stats = ServerStats()
    _settings = OperatorSettings()
    _storage = JsonFileStorage(
        data_dir=config.storage.data_dir,
        marks_file=config.storage.marks_file,
        trails_file=config.storage.trails_file,
    )
    _store = PositionStore()
    _hub = BroadcastHub(stats=_stats)
    _recorder = TrailRecorder(
        geometry=config.vehicle,
        storage=_storage,
        stats=_stats,
        min_distance_m=config.trails.min_distance_m,
        persist_interval=config.trails.persist_interval_seconds,
    )
    _registry = MarkRegistry(storage=_storage, hub=_hub, stats=_stats)
    _processor = FixProcessor(
        store=_store, recorder=_recorder, hub=_hub, settings=_settings, stats=_stats,
    )
    _monitor = StalenessMonitor(
        store=_store,
        hub=_hub,
        timeout_seconds=config.staleness.timeout_seconds,
        check_interval=config.staleness.check_interval_seconds,
    )

    _registry.load()
    _recorder.load()


def reset_services() -> None:
    global _config, _stats, _settings, _store, _hub, _recorder, _registry
    global _processor, _monitor, _storage

    _config = _stats = _settings = _store = _hub = None
    _recorder = _registry = _processor = _monitor = _storage = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    config = load_config()
    _setup_logging(config)

    log.info("server_starting",
             env=config.server.env,
             data_dir=config.storage.data_dir,
             min_trail_distance_m=config.trails.min_distance_m)

    build_services(config)
    recorder, monitor, hub = get_recorder(), get_monitor(), get_hub()

    # Background tasks: debounced trail writer and staleness poll
    tasks = [
        asyncio.create_task(recorder.run_persistence()),
        asyncio.create_task(monitor.run()),
    ]

    log.info("server_started",
             host=config.server.host,
             port=config.server.port)

    yield

    # Shutdown
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
    await recorder.flush()
    await hub.close()
    reset_services()
    log.info("server_stopped")


app = FastAPI(
    title="DredgeTrack",
    description="RTK dredge position tracking server",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(position_router)
app.include_router(marks_router)
app.include_router(trails_router)
app.include_router(settings_router)
app.include_router(monitoring_router)
app.include_router(ws_router)


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    config = load_config()
    uvicorn.run(
        "dredgetrack.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level,
    )
