"""SQLAlchemy models."""

from __future__ import annotations

from airyze.models.aqi_record import AQIRecord
from airyze.models.poll import Poll, PollVote
from airyze.models.report import ReportVote, UserReport
from airyze.models.user import User

__all__ = [
    "User",
    "AQIRecord",
    "Poll",
    "PollVote",
    "ReportVote",
    "UserReport",
]
