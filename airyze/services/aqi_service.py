"""Current AQI lookups against OpenWeather and the AQI category tables."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable

import httpx
from pydantic import ValidationError as PydanticValidationError

from airyze.core.errors import ConfigError, UpstreamError
from airyze.schemas.aqi import AQIReading

logger = logging.getLogger(__name__)

CATEGORIES: dict[int, dict[str, str]] = {
    1: {"level": "Good", "color": "green", "description": "Air quality is satisfactory"},
    2: {"level": "Fair", "color": "lightgreen", "description": "Air quality is acceptable"},
    3: {"level": "Moderate", "color": "yellow", "description": "Air quality is moderate"},
    4: {"level": "Poor", "color": "orange", "description": "Air quality is poor"},
    5: {"level": "Very Poor", "color": "red", "description": "Air quality is very poor"},
}

HEALTH_RECOMMENDATIONS: dict[int, list[str]] = {
    1: [
        "Air quality is good. Enjoy outdoor activities!",
        "No health precautions needed.",
        "Perfect day for exercise outdoors.",
    ],
    2: [
        "Air quality is acceptable.",
        "Sensitive individuals should consider limiting prolonged outdoor exertion.",
        "Generally safe for outdoor activities.",
    ],
    3: [
        "Sensitive groups should reduce prolonged outdoor exertion.",
        "Consider wearing a mask if you have respiratory conditions.",
        "Monitor air quality if planning extended outdoor activities.",
    ],
    4: [
        "Everyone should reduce prolonged outdoor exertion.",
        "Wear a mask when going outside.",
        "Keep windows closed.",
        "Use air purifiers indoors if available.",
        "Sensitive groups should avoid outdoor activities.",
    ],
    5: [
        "Avoid outdoor activities.",
        "Wear N95 masks if you must go outside.",
        "Keep all windows and doors closed.",
        "Use air purifiers.",
        "Seek medical attention if experiencing respiratory symptoms.",
        "Stay indoors as much as possible.",
    ],
}

MODERATE = 3


def aqi_category(aqi: int | None) -> dict[str, str]:
    """Category for an AQI level; unknown levels fall back to Moderate."""
    return CATEGORIES.get(aqi, CATEGORIES[MODERATE])  # type: ignore[arg-type]


def health_recommendations(aqi: int | None) -> list[str]:
    return list(HEALTH_RECOMMENDATIONS.get(aqi, HEALTH_RECOMMENDATIONS[MODERATE]))  # type: ignore[arg-type]


def estimate_aqi(pm2_5: float | None, pm10: float | None) -> int:
    """Rough 1..5 index from particulate concentrations (ug/m3)."""
    pm25 = pm2_5 or 0
    pm10 = pm10 or 0
    if pm25 <= 12 and pm10 <= 54:
        return 1
    if pm25 <= 35.4 and pm10 <= 154:
        return 2
    if pm25 <= 55.4 and pm10 <= 254:
        return 3
    if pm25 <= 150.4 and pm10 <= 354:
        return 4
    return 5


def format_aqi_response(reading: AQIReading) -> dict[str, Any]:
    category = aqi_category(reading.aqi)
    return {
        "success": True,
        "aqi": reading.aqi,
        "category": category["level"],
        "color": category["color"],
        "description": category["description"],
        "components": reading.components.model_dump(),
        "recommendations": health_recommendations(reading.aqi),
    }


class OpenWeatherClient:
    """Fetch current air pollution for a coordinate.

    Raises ConfigError when no key is set and UpstreamError when the
    provider fails or returns an unusable body. No retries.
    """

    def __init__(
        self,
        api_key: str,
        url: str,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def _params(self, lat: float, lon: float) -> dict[str, Any]:
        if not self.api_key:
            raise ConfigError("OpenWeather API key is not configured")
        return {"lat": lat, "lon": lon, "appid": self.api_key}

    def fetch(self, lat: float, lon: float) -> AQIReading:
        params = self._params(lat, lon)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(self.url, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Unable to reach OpenWeather: {exc.__class__.__name__}") from exc
        return self._parse(response)

    async def fetch_async(self, client: httpx.AsyncClient, lat: float, lon: float) -> AQIReading:
        params = self._params(lat, lon)
        try:
            response = await client.get(self.url, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Unable to reach OpenWeather: {exc.__class__.__name__}") from exc
        return self._parse(response)

    async def fetch_many(self, coordinates: Iterable[tuple[float, float]]) -> list[AQIReading | Exception]:
        """Fetch all coordinates concurrently; failures are returned in place, not raised."""
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            tasks = [self.fetch_async(client, lat, lon) for lat, lon in coordinates]
            return await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    def _parse(response: httpx.Response) -> AQIReading:
        if response.status_code >= 400:
            message = _provider_message(response)
            logger.warning("OpenWeather returned %s: %s", response.status_code, message)
            raise UpstreamError(f"OpenWeather request failed ({response.status_code}): {message}")
        try:
            entry = response.json()["list"][0]
            return AQIReading(aqi=entry["main"]["aqi"], components=entry.get("components") or {})
        except (ValueError, KeyError, IndexError, TypeError, PydanticValidationError) as exc:
            raise UpstreamError("Invalid response from OpenWeather") from exc


def _provider_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or "request failed"
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return response.reason_phrase or "request failed"
