"""Position API endpoints.

This is the thin FastAPI adapter for the rover. It parses the JSON body
into a Fix and hands it to the processor.
"""

from __future__ import annotations

import json
from numbers import Real

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from dredgetrack.core.errors import ValidationError
from dredgetrack.core.models import EMPTY_POSITION, Fix

router = APIRouter(prefix="/api")

_NUMERIC_FIELDS = (
    "latitude", "longitude", "altitude", "h_acc", "v_acc", "fix_type",
    "carr_soln", "num_sv", "rtcm_bytes", "fixed_count", "float_count",
    "battery_pct", "hour", "min", "sec",
)


def _parse_fix(body: dict) -> Fix:
    """Build a Fix from the rover's JSON. Absent or null fields stay None."""
    for key in _NUMERIC_FIELDS:
        value = body.get(key)
        if value is not None and (not isinstance(value, Real) or isinstance(value, bool)):
            raise ValidationError(f"{key} must be a number or null")

    firmware = body.get("firmware_version")
    return Fix(
        latitude=body.get("latitude"),
        longitude=body.get("longitude"),
        altitude=body.get("altitude"),
        h_acc=body.get("h_acc"),
        v_acc=body.get("v_acc"),
        fix_type=body.get("fix_type"),
        carr_soln=body.get("carr_soln"),
        num_sv=body.get("num_sv"),
        rtcm_bytes=body.get("rtcm_bytes"),
        fixed_count=body.get("fixed_count"),
        float_count=body.get("float_count"),
        battery_pct=body.get("battery_pct"),
        firmware_version=str(firmware) if firmware is not None else None,
        hour=body.get("hour"),
        minute=body.get("min"),
        second=body.get("sec"),
    )


async def read_json_object(request: Request) -> dict:
    """Decode a JSON object body, raising ValidationError otherwise."""
    try:
        body = json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("invalid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("body must be a JSON object")
    return body


def error_response(exc: Exception, status_code: int) -> JSONResponse:
    return JSONResponse(content={"error": str(exc)}, status_code=status_code)


@router.post("/position")
async def receive_position(request: Request) -> JSONResponse:
    """Receive one fix from the rover."""
    from dredgetrack.main import get_processor

    try:
        fix = _parse_fix(await read_json_object(request))
    except ValidationError as exc:
        return error_response(exc, 400)

    get_processor().process(fix)
    return JSONResponse(content={"success": True})


@router.get("/position")
async def current_position() -> JSONResponse:
    """Latest state, for clients that poll instead of subscribing."""
    from dredgetrack.main import get_store

    state = get_store().current()
    if state is None:
        return JSONResponse(content=dict(EMPTY_POSITION))
    return JSONResponse(content=state.to_dict())
