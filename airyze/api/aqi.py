"""Current AQI endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from airyze.core.context import AppContext, get_context
from airyze.core.errors import AppError, ValidationError
from airyze.schemas.aqi import BatchRequest
from airyze.services.aqi_service import format_aqi_response

router = APIRouter(prefix="/api/aqi", tags=["aqi"])

MAX_BATCH = 50


@router.get("")
def get_aqi(
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    ctx: AppContext = Depends(get_context),
):
    """Current AQI, category and general advice for one coordinate."""
    if lat is None or lon is None:
        raise ValidationError("lat & lon are required")
    if not -90 <= lat <= 90:
        raise ValidationError("Invalid latitude. Must be between -90 and 90")
    if not -180 <= lon <= 180:
        raise ValidationError("Invalid longitude. Must be between -180 and 180")
    return format_aqi_response(ctx.aqi_client.fetch(lat, lon))


@router.post("/batch")
async def get_aqi_batch(data: BatchRequest, ctx: AppContext = Depends(get_context)):
    """Fetch up to 50 coordinates concurrently; a failed coordinate carries its own error."""
    if data.coordinates is None:
        raise ValidationError("coordinates array is required")
    if not data.coordinates:
        raise ValidationError("coordinates array cannot be empty")
    if len(data.coordinates) > MAX_BATCH:
        raise ValidationError(f"Maximum {MAX_BATCH} coordinates allowed per request")

    readings = await ctx.aqi_client.fetch_many([(c.lat, c.lon) for c in data.coordinates])
    results = []
    for coord, reading in zip(data.coordinates, readings):
        if isinstance(reading, Exception):
            message = reading.message if isinstance(reading, AppError) else str(reading)
            results.append({"lat": coord.lat, "lon": coord.lon, "error": message})
        else:
            results.append({"lat": coord.lat, "lon": coord.lon, **format_aqi_response(reading)})
    return {"results": results}
