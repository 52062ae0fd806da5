"""User model."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from airyze.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # bcrypt hash
    city: Mapped[str] = mapped_column(String(120), nullable=False)
    last_aqi: Mapped[int | None] = mapped_column(Integer, nullable=True)
    # {age_group, health_conditions, activity_level, primary_city}
    health_profile: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    # {on_change, daily_time, instant_button}
    alert_prefs: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    badges: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
