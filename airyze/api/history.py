"""Stored and historical AQI endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from airyze.core.context import AppContext, get_context
from airyze.core.errors import NotFoundError, ValidationError
from airyze.db.session import get_db
from airyze.models.aqi_record import AQIRecord
from airyze.schemas.aqi import AQIRecordCreate, AQIRecordResponse, DailyAQI
from airyze.services.history_service import history_for_city, insert_record, store_city_history

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("/city", response_model=list[AQIRecordResponse])
def get_city_history(city: str | None = Query(default=None), db: Session = Depends(get_db)):
    """Stored readings for a city, newest first (max 30)."""
    if not city:
        raise ValidationError("City name is required")
    return history_for_city(db, city)


@router.get("", response_model=list[DailyAQI])
def get_coordinate_history(
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    ctx: AppContext = Depends(get_context),
):
    """Daily mean US AQI for the last 30 days from Open-Meteo."""
    if lat is None or lon is None:
        raise ValidationError("Latitude and longitude are required")
    return ctx.history_client.daily_us_aqi(lat, lon, days=ctx.settings.history_days)


@router.post("", response_model=AQIRecordResponse, status_code=status.HTTP_201_CREATED)
def create_record(data: AQIRecordCreate, db: Session = Depends(get_db)):
    return insert_record(db, data)


@router.post("/fetch")
def fetch_history(db: Session = Depends(get_db), ctx: AppContext = Depends(get_context)):
    """Backfill noon readings for every major city."""
    stored = store_city_history(
        db,
        ctx.history_client,
        days=ctx.settings.history_days,
        delay_seconds=ctx.settings.history_fetch_delay_seconds,
    )
    return {"message": "Historical AQI stored successfully", "stored": stored}


@router.get("/{record_id}", response_model=AQIRecordResponse)
def get_record(record_id: int, db: Session = Depends(get_db)):
    record = db.get(AQIRecord, record_id)
    if record is None:
        raise NotFoundError("Record not found")
    return record
