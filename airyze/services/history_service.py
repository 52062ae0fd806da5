"""Stored AQI history and Open-Meteo historical backfill."""

from __future__ import annotations

import logging
import math
import time
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable

import httpx
from sqlalchemy import select
from sqlalchemy.orm import Session

from airyze.core.errors import UpstreamError
from airyze.data.cities import CITIES, City
from airyze.db.errors import db_errors
from airyze.models.aqi_record import AQIRecord
from airyze.schemas.aqi import AQIRecordCreate

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 30


def insert_record(db: Session, data: AQIRecordCreate) -> AQIRecord:
    values = data.model_dump(exclude_none=True)
    record = AQIRecord(**values)
    with db_errors(db):
        db.add(record)
        db.commit()
    db.refresh(record)
    return record


def history_for_city(db: Session, city: str, limit: int = HISTORY_LIMIT) -> list[AQIRecord]:
    """Newest-first readings stored for ``city``."""
    stmt = (
        select(AQIRecord)
        .where(AQIRecord.location_name == city)
        .order_by(AQIRecord.timestamp.desc(), AQIRecord.id.desc())
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def european_to_level(european_aqi: float | None) -> int:
    """Collapse the 0..100+ European AQI onto the 1..5 scale."""
    if european_aqi is None:
        return 3
    return max(1, min(5, math.ceil(european_aqi / 20)))


class OpenMeteoClient:
    """Hourly historical air quality from the Open-Meteo API (no key needed)."""

    def __init__(self, url: str, timeout: float = 15.0, transport: httpx.BaseTransport | None = None):
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def hourly(self, lat: float, lon: float, fields: Iterable[str], days: int = 30, today: date | None = None) -> dict[str, list]:
        end = today or date.today()
        start = end - timedelta(days=days)
        params = {
            "latitude": lat,
            "longitude": lon,
            "start_date": start.isoformat(),
            "end_date": end.isoformat(),
            "hourly": ",".join(fields),
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.get(self.url, params=params)
                response.raise_for_status()
                body = response.json()
        except httpx.HTTPError as exc:
            raise UpstreamError(f"Failed to fetch historical AQI: {exc.__class__.__name__}") from exc
        except ValueError as exc:
            raise UpstreamError("Invalid response from Open-Meteo API") from exc

        hourly = body.get("hourly") if isinstance(body, dict) else None
        if not isinstance(hourly, dict) or not isinstance(hourly.get("time"), list):
            raise UpstreamError("Invalid response from Open-Meteo API")
        return hourly

    def daily_us_aqi(self, lat: float, lon: float, days: int = 30) -> list[dict[str, Any]]:
        """Daily mean US AQI, oldest day first."""
        hourly = self.hourly(lat, lon, ("pm10", "pm2_5", "us_aqi"), days=days)
        values = hourly.get("us_aqi") or []
        buckets: dict[str, list[float]] = defaultdict(list)
        for index, stamp in enumerate(hourly["time"]):
            value = values[index] if index < len(values) else None
            if value is not None:
                buckets[stamp.split("T")[0]].append(value)
        return [{"date": day, "aqi": round(sum(v) / len(v))} for day, v in sorted(buckets.items())]

    def noon_readings(self, lat: float, lon: float, days: int = 30) -> list[dict[str, Any]]:
        """One reading per day, taken at 12:00."""
        fields = (
            "pm10", "pm2_5", "carbon_monoxide", "nitrogen_dioxide",
            "sulphur_dioxide", "ozone", "european_aqi",
        )
        hourly = self.hourly(lat, lon, fields, days=days)
        times = hourly["time"]

        def at(field: str, index: int) -> float | None:
            series = hourly.get(field) or []
            return series[index] if index < len(series) else None

        readings = []
        for day_start in range(0, len(times), 24):
            noon = day_start + 12
            if noon >= len(times):
                break
            readings.append({
                "timestamp": datetime.fromisoformat(times[noon]),
                "pm2_5": at("pm2_5", noon) or 0,
                "pm10": at("pm10", noon) or 0,
                "co": at("carbon_monoxide", noon) or 0,
                "no2": at("nitrogen_dioxide", noon) or 0,
                "so2": at("sulphur_dioxide", noon) or 0,
                "o3": at("ozone", noon) or 0,
                "aqi": european_to_level(at("european_aqi", noon)) if "european_aqi" in hourly else 3,
            })
        return readings


def store_city_history(
    db: Session,
    client: OpenMeteoClient,
    cities: Iterable[City] = CITIES,
    days: int = 30,
    delay_seconds: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, int]:
    """Backfill ``days`` of noon readings per city. A failing city is logged and skipped."""
    stored: dict[str, int] = {}
    for city in cities:
        try:
            readings = client.noon_readings(city.lat, city.lon, days=days)
        except UpstreamError as exc:
            logger.error("Historical fetch failed for %s: %s", city.name, exc.message)
            continue
        with db_errors(db):
            for reading in readings:
                db.add(AQIRecord(location_name=city.name, lat=city.lat, lon=city.lon, no=0, nh3=0, **reading))
            db.commit()
        stored[city.name] = len(readings)
        logger.info("Stored %s records for %s", len(readings), city.name)
        if delay_seconds:
            sleep(delay_seconds)
    return stored
