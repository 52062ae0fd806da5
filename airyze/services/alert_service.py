"""Per-user AQI alert pipeline: fetch, personalize, send, persist.

The same pipeline serves the hourly daily-report pass, the 30-minute
change-detection pass and on-demand instant alerts.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from airyze.core.errors import ForbiddenError, NotFoundError, ValidationError
from airyze.data.cities import City, find_city
from airyze.models.user import User
from airyze.schemas.aqi import AQIReading
from airyze.services.aqi_service import OpenWeatherClient, health_recommendations
from airyze.services.email_service import Mailer, render_alert_email
from airyze.services.personalization_service import (
    RecommendationEngine,
    health_specific_advice,
    personal_note,
)

logger = logging.getLogger(__name__)

DEFAULT_ALERT_PREFS: dict[str, Any] = {"on_change": True, "daily_time": "08:00", "instant_button": True}


def alert_prefs(user: User) -> dict[str, Any]:
    return {**DEFAULT_ALERT_PREFS, **(user.alert_prefs or {})}


def preferred_hour(prefs: dict[str, Any]) -> int | None:
    try:
        return int(str(prefs.get("daily_time") or DEFAULT_ALERT_PREFS["daily_time"]).split(":")[0])
    except ValueError:
        return None


@dataclass
class PassSummary:
    sent: int = 0
    skipped: int = 0
    failed: int = 0


class AlertDispatcher:
    def __init__(
        self,
        aqi_client: OpenWeatherClient,
        engine: RecommendationEngine,
        mailer: Mailer,
        dashboard_base_url: str = "",
    ):
        self.aqi_client = aqi_client
        self.engine = engine
        self.mailer = mailer
        self.dashboard_base_url = dashboard_base_url.rstrip("/")

    def compose(self, user: User, reading: AQIReading, kind: str) -> tuple[str, str]:
        """Subject and HTML body, personalized when the user has a health profile."""
        profile = user.health_profile
        aqi = reading.aqi
        recommendations = health_recommendations(aqi)
        prose = None
        note = None
        sections: list[dict[str, Any]] = []

        if profile:
            prose = self.engine.email_content(profile, aqi, kind)
            recommendations, _ = self.engine.recommend(profile, aqi, reading.components.model_dump())
            sections = health_specific_advice(profile, aqi)
            if prose is None:
                note = personal_note(profile, aqi)

        dashboard_url = f"{self.dashboard_base_url}/auth/track-alert/{user.id}" if self.dashboard_base_url else None
        return render_alert_email(
            name=user.name,
            city=user.city,
            aqi=aqi,
            kind=kind,
            recommendations=recommendations,
            personalized=bool(profile),
            prose=prose,
            personal_note=note,
            health_sections=sections,
            dashboard_url=dashboard_url,
        )

    def deliver(self, db: Session, user: User, city: City, kind: str, reading: AQIReading | None = None) -> AQIReading:
        """Send one alert and record the AQI it reported."""
        if reading is None:
            reading = self.aqi_client.fetch(city.lat, city.lon)
        subject, html = self.compose(user, reading, kind)
        self.mailer.send(user.email, subject, html)
        user.last_aqi = reading.aqi
        db.commit()
        logger.info("Sent %s alert to user %s (AQI %s)", kind, user.id, reading.aqi)
        return reading

    def send_instant(self, db: Session, user_id: int) -> AQIReading:
        user = db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not alert_prefs(user)["instant_button"]:
            raise ForbiddenError("Instant alerts are disabled for this user")
        city = find_city(user.city)
        if city is None:
            raise ValidationError(f"City '{user.city}' is not supported")
        return self.deliver(db, user, city, "instant")

    def run_daily_pass(
        self,
        db: Session,
        now: datetime,
        delay_seconds: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> PassSummary:
        """Send the daily report to every user whose preferred hour is ``now.hour``."""
        summary = PassSummary()
        for user in db.execute(select(User).order_by(User.id)).scalars().all():
            if preferred_hour(alert_prefs(user)) != now.hour:
                continue
            city = find_city(user.city)
            if city is None:
                logger.info("Skipping daily alert for user %s: unknown city %r", user.id, user.city)
                summary.skipped += 1
                continue
            try:
                self.deliver(db, user, city, "daily")
                summary.sent += 1
            except Exception:  # noqa: BLE001
                db.rollback()
                logger.exception("Daily alert failed for user %s", user.id)
                summary.failed += 1
            if delay_seconds:
                sleep(delay_seconds)
        logger.info("Daily alert pass at hour %s: %s", now.hour, summary)
        return summary

    def run_change_pass(
        self,
        db: Session,
        delay_seconds: float = 0.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> PassSummary:
        """Alert users whose city's AQI moved away from the last value they were told."""
        summary = PassSummary()
        stmt = select(User).where(User.last_aqi.is_not(None)).order_by(User.id)
        for user in db.execute(stmt).scalars().all():
            if not alert_prefs(user)["on_change"]:
                summary.skipped += 1
                continue
            city = find_city(user.city)
            if city is None:
                summary.skipped += 1
                continue
            try:
                reading = self.aqi_client.fetch(city.lat, city.lon)
                if reading.aqi != user.last_aqi:
                    self.deliver(db, user, city, "change", reading=reading)
                    summary.sent += 1
                else:
                    summary.skipped += 1
            except Exception:  # noqa: BLE001
                db.rollback()
                logger.exception("Change alert failed for user %s", user.id)
                summary.failed += 1
            if delay_seconds:
                sleep(delay_seconds)
        logger.info("Change alert pass: %s", summary)
        return summary
