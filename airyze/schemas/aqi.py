"""AQI reading and history schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

POLLUTANTS = ("co", "no", "no2", "o3", "so2", "pm2_5", "pm10", "nh3")


class PollutantComponents(BaseModel):
    co: float | None = None
    no: float | None = None
    no2: float | None = None
    o3: float | None = None
    so2: float | None = None
    pm2_5: float | None = None
    pm10: float | None = None
    nh3: float | None = None


class AQIReading(BaseModel):
    """Normalized current-conditions reading: OpenWeather's 1..5 index plus concentrations."""

    aqi: int = Field(ge=1, le=5)
    components: PollutantComponents = Field(default_factory=PollutantComponents)


class Coordinate(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)


class BatchRequest(BaseModel):
    coordinates: list[Coordinate] | None = None


class CitySelection(BaseModel):
    cities: list[str] | None = None


class AQIRecordCreate(BaseModel):
    location_name: str = Field(min_length=1)
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    aqi: int = Field(ge=1, le=5)
    co: float | None = None
    no: float | None = None
    no2: float | None = None
    o3: float | None = None
    so2: float | None = None
    pm2_5: float | None = None
    pm10: float | None = None
    nh3: float | None = None
    timestamp: datetime | None = None


class AQIRecordResponse(AQIRecordCreate):
    id: int
    timestamp: datetime

    model_config = {"from_attributes": True}


class DailyAQI(BaseModel):
    date: str
    aqi: int
