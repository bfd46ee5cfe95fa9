"""Trail export and reset endpoints."""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

router = APIRouter(prefix="/api")


@router.get("/trails")
async def export_trails() -> JSONResponse:
    """Return raw trails plus GeoJSON for the piloting, suction and tailings layers."""
    from dredgetrack.main import get_recorder

    return JSONResponse(content=get_recorder().export())


@router.delete("/trails")
async def clear_trails() -> JSONResponse:
    """Erase all recorded trails, including the copy on disk. Irreversible."""
    from dredgetrack.main import get_recorder

    removed = await get_recorder().clear()
    return JSONResponse(content={"success": True, "deleted": removed})
