"""Operator settings (heading, location mode) and the footprint they drive."""

from __future__ import annotations

from numbers import Real

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from dredgetrack.api.position import error_response, read_json_object
from dredgetrack.core.errors import ValidationError
from dredgetrack.core.geometry import footprint
from dredgetrack.core.models import LIVE_MODE

router = APIRouter(prefix="/api")


def _settings_payload() -> dict:
    from dredgetrack.main import get_config, get_settings

    settings = get_settings()
    return {
        "heading": settings.heading,
        "location_mode": settings.location_mode,
        "location_modes": [LIVE_MODE, *get_config().locations],
    }


@router.get("/settings")
async def read_settings() -> JSONResponse:
    return JSONResponse(content=_settings_payload())


@router.put("/settings")
async def update_settings(request: Request) -> JSONResponse:
    """Set heading and/or location mode.

    Body: {"heading": 270, "location_mode": "live"}
    Heading is degrees clockwise from true north, wrapped into [0, 360).
    """
    from dredgetrack.main import get_config, get_settings

    settings = get_settings()
    try:
        body = await read_json_object(request)
        heading = body.get("heading")
        mode = body.get("location_mode")
        if heading is not None and (not isinstance(heading, Real) or isinstance(heading, bool)):
            raise ValidationError("heading must be a number")
        if mode is not None and mode != LIVE_MODE and mode not in get_config().locations:
            raise ValidationError(f"unknown location_mode {mode!r}")
    except ValidationError as exc:
        return error_response(exc, 400)

    if heading is not None:
        settings.heading = float(heading) % 360
    if mode is not None:
        settings.location_mode = mode
    return JSONResponse(content=_settings_payload())


@router.get("/footprint")
async def current_footprint() -> JSONResponse:
    """Dredge hull, nozzle, suction tip, tailings zone and heading as GeoJSON."""
    from dredgetrack.main import get_config, get_settings, get_store

    config = get_config()
    settings = get_settings()

    if settings.is_live:
        state = get_store().current()
        if state is None or not state.fix.has_position:
            return JSONResponse(content={"error": "no position yet"}, status_code=404)
        lat, lon = state.fix.latitude, state.fix.longitude
    else:
        lat, lon = config.locations[settings.location_mode]

    return JSONResponse(
        content=footprint(lat, lon, settings.heading, config.vehicle),
        media_type="application/geo+json",
    )
