"""Health check and monitoring endpoints."""

from __future__ import annotations

import os
import shutil

from fastapi import APIRouter

router = APIRouter(prefix="/api")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from dredgetrack.main import get_hub, get_monitor, get_stats, get_storage, get_store

    data_dir = get_storage().data_dir
    try:
        disk = shutil.disk_usage(data_dir if data_dir.exists() else ".")
        disk_free_gb = round(disk.free / (1024 ** 3), 1)
        storage_writable = os.access(data_dir, os.W_OK)
    except OSError:
        disk_free_gb = -1
        storage_writable = False

    state = get_store().current()
    return {
        "status": "ok",
        "version": "0.1.0",
        "uptime_seconds": get_stats().snapshot()["uptime_seconds"],
        "clients": get_hub().observer_count,
        "lastUpdate": state.last_update.isoformat() if state is not None else None,
        "stale": get_monitor().is_stale(),
        "storage_writable": storage_writable,
        "disk_free_gb": disk_free_gb,
    }


@router.get("/stats")
async def stats() -> dict:
    """Counters for fixes, trail decisions, mark mutations and fan-out."""
    from dredgetrack.main import get_stats

    return get_stats().snapshot()
