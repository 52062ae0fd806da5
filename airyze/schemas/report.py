"""Community report schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ReportCreate(BaseModel):
    user_id: int | None = None
    lat: float | None = Field(default=None, ge=-90, le=90)
    lon: float | None = Field(default=None, ge=-180, le=180)
    description: str | None = None
    photo_url: str | None = None


class ReportResponse(BaseModel):
    id: int
    user_id: int
    lat: float
    lon: float
    description: str
    photo_url: str | None = None
    upvotes: int
    downvotes: int
    timestamp: datetime

    model_config = {"from_attributes": True}


class ReportVoteResponse(BaseModel):
    id: int
    report_id: int
    user_id: int
    vote_type: str
    created_at: datetime

    model_config = {"from_attributes": True}
