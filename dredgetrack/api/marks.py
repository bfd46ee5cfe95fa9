"""Reference mark API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from dredgetrack.api.position import error_response, read_json_object
from dredgetrack.core.errors import NotFound, ValidationError

router = APIRouter(prefix="/api")


@router.get("/marks")
async def list_marks() -> JSONResponse:
    from dredgetrack.main import get_registry

    return JSONResponse(content=get_registry().as_dicts())


@router.post("/marks")
async def create_mark(request: Request) -> JSONResponse:
    """Create a mark.

    Body: {"latitude": 45.1, "longitude": -122.1, "h_acc": 0.014, "label": "BENCH_A"}
    Only latitude and longitude are required.
    """
    from dredgetrack.main import get_registry

    try:
        body = await read_json_object(request)
        mark = await get_registry().create(
            latitude=body.get("latitude"),
            longitude=body.get("longitude"),
            h_acc=body.get("h_acc"),
            label=body.get("label"),
        )
    except ValidationError as exc:
        return error_response(exc, 400)
    return JSONResponse(content=mark.to_dict())


@router.delete("/marks/{mark_id}")
async def delete_mark(mark_id: int) -> JSONResponse:
    from dredgetrack.main import get_registry

    try:
        await get_registry().delete(mark_id)
    except NotFound as exc:
        return error_response(exc, 404)
    return JSONResponse(content={"success": True})


@router.patch("/marks/{mark_id}")
async def update_mark(mark_id: int, request: Request) -> JSONResponse:
    """Rename a mark. Body: {"label": "BENCH_A"}"""
    from dredgetrack.main import get_registry

    try:
        body = await read_json_object(request)
        mark = await get_registry().update(mark_id, body.get("label"))
    except ValidationError as exc:
        return error_response(exc, 400)
    except NotFound as exc:
        return error_response(exc, 404)
    return JSONResponse(content=mark.to_dict())


@router.delete("/marks")
async def clear_marks() -> JSONResponse:
    """Delete every mark. Ids restart from 1 afterwards."""
    from dredgetrack.main import get_registry

    deleted = await get_registry().clear_all()
    return JSONResponse(content={"success": True, "deleted": deleted})
