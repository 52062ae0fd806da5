"""Poll schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class PollCreate(BaseModel):
    user_id: int | None = None
    question: str | None = None
    options: list[str] | None = None


class PollResponse(BaseModel):
    id: int
    question: str
    options: list[str]
    votes: dict[str, int]
    created_at: datetime

    model_config = {"from_attributes": True}


class PollVoteRequest(BaseModel):
    user_id: int | None = None
    option: str | None = None


class PollVoteResponse(BaseModel):
    id: int
    poll_id: int
    user_id: int
    option: str
    created_at: datetime

    model_config = {"from_attributes": True}
