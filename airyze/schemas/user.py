"""User, health profile, alert preference and badge schemas."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

AgeGroup = Literal["under_12", "13_18", "19_40", "41_60", "60_plus"]
HealthCondition = Literal["asthma", "heart_issues", "allergies", "pregnant", "young_children", "none"]
ActivityLevel = Literal["mostly_indoors", "light_exercise", "running_cycling", "heavy_sports"]

DAILY_TIME_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")


class SignupRequest(BaseModel):
    name: str | None = None
    email: EmailStr | None = None
    password: str | None = None
    city: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    city: str
    last_aqi: int | None = None
    health_profile: dict[str, Any] | None = None
    alert_prefs: dict[str, Any] | None = None
    badges: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime

    model_config = {"from_attributes": True}


class HealthProfile(BaseModel):
    age_group: AgeGroup
    health_conditions: list[HealthCondition]
    activity_level: ActivityLevel
    primary_city: str = Field(min_length=1)


class AlertPrefs(BaseModel):
    on_change: bool = True
    daily_time: str = "08:00"
    instant_button: bool = True

    @field_validator("daily_time")
    @classmethod
    def validate_daily_time(cls, v: str) -> str:
        if not DAILY_TIME_RE.match(v):
            raise ValueError("Invalid daily_time format. Use HH:MM (e.g., 08:00)")
        return v


class AlertPrefsUpdate(BaseModel):
    on_change: bool | None = None
    daily_time: str | None = None
    instant_button: bool | None = None

    @field_validator("daily_time")
    @classmethod
    def validate_daily_time(cls, v: str | None) -> str | None:
        if v and not DAILY_TIME_RE.match(v):
            raise ValueError("Invalid daily_time format. Use HH:MM (e.g., 08:00)")
        return v


class Badge(BaseModel):
    name: str = Field(min_length=1)
    earned: str = Field(min_length=1)
    progress: int | float | list[Any]

    model_config = {"extra": "allow"}


class BadgesUpdate(BaseModel):
    badges: list[Badge]
