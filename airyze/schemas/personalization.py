"""Personalization, chatbot and engagement request schemas."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ProfileInput(BaseModel):
    """Loosely typed health profile as sent by clients."""

    age_group: str | None = None
    health_conditions: list[str] = Field(default_factory=list)
    activity_level: str | None = None
    primary_city: str | None = None


class AQIInput(BaseModel):
    aqi: float | None = None
    components: dict[str, float | None] = Field(default_factory=dict)

    @field_validator("aqi")
    @classmethod
    def floor_aqi(cls, v: float | None) -> int | None:
        return None if v is None else math.floor(v)


class QuizScore(BaseModel):
    score: float | None = None


class RecommendationRequest(BaseModel):
    health_profile: ProfileInput | None = Field(default=None, alias="healthProfile")
    aqi_data: AQIInput | None = Field(default=None, alias="aqiData")
    completed_quizzes: list[str] = Field(default_factory=list, alias="completedQuizzes")
    quiz_scores: dict[str, QuizScore] = Field(default_factory=dict, alias="quizScores")

    model_config = {"populate_by_name": True}


class RecommendationResponse(BaseModel):
    general: list[str]
    health_specific: list[str]
    quiz_insights: list[str]
    aqi_level: int
    source: str


class WelcomeRequest(BaseModel):
    health_profile: ProfileInput | None = Field(default=None, alias="healthProfile")
    current_aqi: AQIInput | None = Field(default=None, alias="currentAQI")

    model_config = {"populate_by_name": True}


class ChatContext(BaseModel):
    current_aqi: int | None = Field(default=None, alias="currentAQI")
    city: str | None = None
    pollutants: dict[str, float | None] | None = None

    model_config = {"populate_by_name": True}


class ChatMessageRequest(BaseModel):
    message: str | None = None
    session_id: str | None = Field(default=None, alias="sessionId")
    context: ChatContext = Field(default_factory=ChatContext)

    model_config = {"populate_by_name": True}


class ChatClearRequest(BaseModel):
    session_id: str | None = Field(default=None, alias="sessionId")

    model_config = {"populate_by_name": True}


class BadgeInfo(BaseModel):
    id: str | None = None
    name: str | None = None
    description: str | None = None
    threshold: float | None = None

    model_config = {"extra": "allow"}


class BadgeCongratsRequest(BaseModel):
    badge: BadgeInfo | None = None
    user_profile: ProfileInput | None = Field(default=None, alias="userProfile")
    progress: Any = None

    model_config = {"populate_by_name": True}


class QuizInfo(BaseModel):
    id: str | None = None
    title: str | None = None

    model_config = {"extra": "allow"}


class QuizQuestion(BaseModel):
    id: str | int | None = None
    question: str = ""
    options: list[str] = Field(default_factory=list)
    correct_index: int | None = Field(default=None, alias="correctIndex")
    explanation: str | None = None

    model_config = {"populate_by_name": True, "extra": "allow"}


class QuizFeedbackRequest(BaseModel):
    quiz: QuizInfo | None = None
    score: float | None = None
    incorrect_questions: list[QuizQuestion] = Field(default_factory=list, alias="incorrectQuestions")
    user_profile: ProfileInput | None = Field(default=None, alias="userProfile")
    current_aqi: int | None = Field(default=None, alias="currentAqi")

    model_config = {"populate_by_name": True}


class QuizExplanationRequest(BaseModel):
    question: QuizQuestion | None = None
    user_profile: ProfileInput | None = Field(default=None, alias="userProfile")

    model_config = {"populate_by_name": True}


class QuizRecommendationRequest(BaseModel):
    user_profile: ProfileInput | None = Field(default=None, alias="userProfile")
    completed_quizzes: list[str] = Field(default_factory=list, alias="completedQuizzes")
    current_aqi: int | None = Field(default=None, alias="currentAqi")

    model_config = {"populate_by_name": True}


class BadgeMotivationRequest(BaseModel):
    badge: BadgeInfo | None = None
    current_progress: float | None = Field(default=None, alias="currentProgress")
    user_profile: ProfileInput | None = Field(default=None, alias="userProfile")

    model_config = {"populate_by_name": True}


class BadgeSummaryRequest(BaseModel):
    earned_badges: list[BadgeInfo] | None = Field(default=None, alias="earnedBadges")
    total_badges: int | None = Field(default=None, alias="totalBadges")
    user_profile: ProfileInput | None = Field(default=None, alias="userProfile")

    model_config = {"populate_by_name": True}
