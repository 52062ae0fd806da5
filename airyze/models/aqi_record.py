"""Stored AQI readings."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from airyze.db.base import Base
from airyze.models.user import utcnow


class AQIRecord(Base):
    """Append-only AQI measurement for a named location."""

    __tablename__ = "aqi_data"
    __table_args__ = (Index("ix_aqi_data_location_timestamp", "location_name", "timestamp"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    location_name: Mapped[str] = mapped_column(String(120), nullable=False)
    lat: Mapped[float] = mapped_column(Float, nullable=False)
    lon: Mapped[float] = mapped_column(Float, nullable=False)
    aqi: Mapped[int] = mapped_column(Integer, nullable=False)  # 1..5
    co: Mapped[float | None] = mapped_column(Float, nullable=True)
    no: Mapped[float | None] = mapped_column(Float, nullable=True)
    no2: Mapped[float | None] = mapped_column(Float, nullable=True)
    o3: Mapped[float | None] = mapped_column(Float, nullable=True)
    so2: Mapped[float | None] = mapped_column(Float, nullable=True)
    pm2_5: Mapped[float | None] = mapped_column(Float, nullable=True)
    pm10: Mapped[float | None] = mapped_column(Float, nullable=True)
    nh3: Mapped[float | None] = mapped_column(Float, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
