"""City board: current AQI for the major Pakistani cities."""

from __future__ import annotations

import logging
import time
from typing import Iterable

from fastapi import APIRouter, Depends

from airyze.core.context import AppContext, get_context
from airyze.core.errors import ValidationError
from airyze.data.cities import CITIES, City, find_city
from airyze.schemas.aqi import CitySelection
from airyze.services.aqi_service import format_aqi_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pak_cities", tags=["cities"])

BOARD_CACHE_KEY = "pak_cities"


async def _board(ctx: AppContext, cities: Iterable[City]) -> list[dict]:
    cities = list(cities)
    readings = await ctx.aqi_client.fetch_many([(c.lat, c.lon) for c in cities])
    updated_at = int(time.time())
    board = []
    for city, reading in zip(cities, readings):
        if isinstance(reading, Exception):
            logger.error("Error fetching AQI for %s: %s", city.name, reading)
            board.append({"name": city.name, "error": "Failed to fetch AQI data", "updatedAt": updated_at})
            continue
        formatted = format_aqi_response(reading)
        board.append({
            "name": city.name,
            "aqi": formatted["aqi"],
            "category": formatted["category"],
            "color": formatted["color"],
            "components": formatted["components"],
            "updatedAt": updated_at,
        })
    return board


@router.get("")
async def get_major_cities(ctx: AppContext = Depends(get_context)):
    cached = ctx.city_cache.get(BOARD_CACHE_KEY)
    if cached is not None:
        return cached
    board = await _board(ctx, CITIES)
    ctx.city_cache.set(BOARD_CACHE_KEY, board)
    return board


@router.post("/selected")
async def get_selected_cities(data: CitySelection, ctx: AppContext = Depends(get_context)):
    """Board for a caller-chosen subset of the major cities; unknown names are ignored."""
    if data.cities is None:
        raise ValidationError("cities array is required")
    selected = [city for city in (find_city(n) for n in data.cities) if city]
    if not selected:
        raise ValidationError("No valid cities found")
    return await _board(ctx, selected)
