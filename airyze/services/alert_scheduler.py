"""Background scheduling for alert passes and cache sweeps."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from airyze.services.alert_service import AlertDispatcher, PassSummary

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "daily_aqi_alerts"
CHANGE_JOB_ID = "aqi_change_alerts"


class AlertScheduler:
    """Owns a BackgroundScheduler with the two alert jobs plus periodic sweeps.

    Jobs open their own session from ``session_factory``; a pass that is
    still running when its next tick fires is not started twice.
    """

    def __init__(
        self,
        dispatcher: AlertDispatcher,
        session_factory: Callable[[], Session],
        timezone: str = "UTC",
        user_delay_seconds: float = 1.0,
    ):
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.tz = ZoneInfo(timezone)
        self.user_delay_seconds = user_delay_seconds
        self._scheduler = BackgroundScheduler(timezone=self.tz, daemon=True)
        self._sweeps: list[tuple[str, Callable[[], object], float]] = []

    def add_sweep(self, name: str, func: Callable[[], object], every_seconds: float) -> None:
        self._sweeps.append((name, func, every_seconds))

    def start(self) -> None:
        if self._scheduler.running:
            logger.info("Alert scheduler already running")
            return

        self._scheduler.add_job(
            self.run_daily,
            trigger=CronTrigger(minute=0, timezone=self.tz),
            id=DAILY_JOB_ID,
            name="Daily AQI alerts (hourly tick)",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._scheduler.add_job(
            self.run_change_detection,
            trigger=CronTrigger(minute="*/30", timezone=self.tz),
            id=CHANGE_JOB_ID,
            name="AQI change alerts",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        for name, func, every_seconds in self._sweeps:
            self._scheduler.add_job(
                func,
                trigger=IntervalTrigger(seconds=every_seconds),
                id=f"sweep_{name}",
                name=f"Sweep {name}",
                replace_existing=True,
                max_instances=1,
            )

        self._scheduler.start()
        logger.info("Alert scheduler started: %s", ", ".join(self.job_ids()))

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Alert scheduler stopped")

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def job_ids(self) -> list[str]:
        return [job.id for job in self._scheduler.get_jobs()]

    def run_daily(self) -> PassSummary:
        with self.session_factory() as db:
            return self.dispatcher.run_daily_pass(db, now=datetime.now(self.tz), delay_seconds=self.user_delay_seconds)

    def run_change_detection(self) -> PassSummary:
        with self.session_factory() as db:
            return self.dispatcher.run_change_pass(db, delay_seconds=self.user_delay_seconds)
