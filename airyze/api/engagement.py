"""Badge and quiz messages. These answer even when no AI provider is reachable."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from airyze.core.context import AppContext, get_context
from airyze.core.errors import ValidationError
from airyze.schemas.personalization import (
    BadgeCongratsRequest,
    BadgeMotivationRequest,
    BadgeSummaryRequest,
    ProfileInput,
    QuizExplanationRequest,
    QuizFeedbackRequest,
    QuizRecommendationRequest,
)

router = APIRouter(prefix="/api/gemini", tags=["engagement"])

DEFAULT_AQI = 3


def _profile(profile: ProfileInput | None) -> dict | None:
    return profile.model_dump() if profile else None


@router.post("/badge-congrats")
def badge_congrats(data: BadgeCongratsRequest, ctx: AppContext = Depends(get_context)):
    if data.badge is None or not data.badge.id:
        raise ValidationError("Badge information is required")
    message = ctx.engagement.badge_congrats(data.badge.model_dump(), _profile(data.user_profile), data.progress)
    return {"message": message}


@router.post("/quiz-feedback")
def quiz_feedback(data: QuizFeedbackRequest, ctx: AppContext = Depends(get_context)):
    if data.quiz is None or data.score is None:
        raise ValidationError("Quiz and score are required")
    feedback = ctx.engagement.quiz_feedback(
        data.quiz.model_dump(),
        data.score,
        [q.model_dump() for q in data.incorrect_questions],
        _profile(data.user_profile),
        data.current_aqi or DEFAULT_AQI,
    )
    return {"feedback": feedback}


@router.post("/quiz-explanation")
def quiz_explanation(data: QuizExplanationRequest, ctx: AppContext = Depends(get_context)):
    if data.question is None:
        raise ValidationError("Question is required")
    explanation = ctx.engagement.quiz_explanation(
        data.question.model_dump(by_alias=True),
        _profile(data.user_profile),
    )
    return {"explanation": explanation}


@router.post("/quiz-recommendation")
def quiz_recommendation(data: QuizRecommendationRequest, ctx: AppContext = Depends(get_context)):
    recommendation = ctx.engagement.quiz_recommendation(
        _profile(data.user_profile),
        data.completed_quizzes,
        data.current_aqi or DEFAULT_AQI,
    )
    return {"recommendation": recommendation}


@router.post("/badge-motivation")
def badge_motivation(data: BadgeMotivationRequest, ctx: AppContext = Depends(get_context)):
    if data.badge is None or data.current_progress is None:
        raise ValidationError("Badge and progress are required")
    motivation = ctx.engagement.badge_motivation(
        data.badge.model_dump(),
        data.current_progress,
        _profile(data.user_profile),
    )
    return {"motivation": motivation}


@router.post("/badge-summary")
def badge_summary(data: BadgeSummaryRequest, ctx: AppContext = Depends(get_context)):
    if data.earned_badges is None or data.total_badges is None:
        raise ValidationError("Badge collection data is required")
    summary = ctx.engagement.badge_summary(
        [b.model_dump() for b in data.earned_badges],
        data.total_badges,
        _profile(data.user_profile),
    )
    return {"summary": summary}
