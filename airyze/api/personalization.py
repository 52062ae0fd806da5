"""Personalized recommendations and welcome messages."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from airyze.core.context import AppContext, get_context
from airyze.core.errors import ValidationError
from airyze.schemas.personalization import RecommendationRequest, RecommendationResponse, WelcomeRequest
from airyze.services.personalization_service import quiz_insights

router = APIRouter(prefix="/api/personalization", tags=["personalization"])


@router.post("/recommendations", response_model=RecommendationResponse)
def get_recommendations(data: RecommendationRequest, ctx: AppContext = Depends(get_context)):
    """AI recommendations when a provider answers, rule tables otherwise."""
    if data.aqi_data is None or not data.aqi_data.aqi:
        raise ValidationError("AQI data is required")
    aqi = data.aqi_data.aqi
    profile = data.health_profile.model_dump() if data.health_profile else None
    scores = {quiz: score.model_dump() for quiz, score in data.quiz_scores.items()}

    recommendations, source = ctx.engine.recommend(
        profile,
        aqi,
        data.aqi_data.components,
        data.completed_quizzes,
        scores,
    )
    insights = quiz_insights(data.completed_quizzes, scores, aqi) if data.completed_quizzes else []
    return RecommendationResponse(
        general=recommendations[:3],
        health_specific=recommendations[3:],
        quiz_insights=insights,
        aqi_level=aqi,
        source=source,
    )


@router.post("/welcome")
def get_welcome_message(data: WelcomeRequest, ctx: AppContext = Depends(get_context)):
    if data.current_aqi is None or not data.current_aqi.aqi:
        raise ValidationError("Current AQI data is required")
    profile = data.health_profile.model_dump() if data.health_profile else None
    message = ctx.engine.welcome_message(profile, data.current_aqi.aqi, data.current_aqi.components)
    return {"message": message}
