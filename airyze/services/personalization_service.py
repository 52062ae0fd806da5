"""Personalized health recommendations.

AI-generated content is cached per profile shape and AQI level. When no
provider answers, deterministic rule tables take over.
"""

from __future__ import annotations

import hashlib
import json
import logging
import math
import re
from typing import Any, Callable, Mapping, Sequence

from airyze.core.cache import TTLCache
from airyze.services.ai_service import AIChain

logger = logging.getLogger(__name__)

HEALTH_ADVICE_RULES: dict[str, dict[int, list[str]]] = {
    "asthma": {
        2: ["Carry your rescue inhaler", "Consider wearing a mask if exercising outdoors"],
        3: ["Wear an N95 mask outdoors", "Avoid outdoor exercise", "Keep rescue inhaler handy at all times"],
        4: ["Stay indoors as much as possible", "Use air purifier", "Monitor symptoms closely", "Have rescue inhaler ready"],
        5: ["Avoid all outdoor activities", "Keep windows closed", "Use air purifier continuously", "Seek medical attention if symptoms worsen"],
    },
    "heart_issues": {
        2: ["Limit strenuous activities", "Monitor how you feel during activities"],
        3: ["Reduce outdoor time", "Avoid heavy exercise", "Stay hydrated", "Take frequent breaks"],
        4: ["Stay indoors", "Monitor symptoms", "Avoid all strenuous activities", "Consult doctor if experiencing chest discomfort"],
        5: ["Avoid all outdoor activities", "Rest and stay calm", "Monitor symptoms closely", "Seek immediate medical attention if symptoms occur"],
    },
    "young_children": {
        2: ["Limit outdoor playtime", "Keep windows closed during peak pollution hours"],
        3: ["Keep children indoors", "Close all windows", "Limit outdoor playtime to essential only"],
        4: ["Keep children indoors all day", "Use air purifier in children's rooms", "Monitor for any breathing difficulties"],
        5: ["Do not let children go outside", "Keep all windows closed", "Use air purifier", "Seek medical attention if breathing difficulties occur"],
    },
    "pregnant": {
        2: ["Limit outdoor activities", "Stay hydrated", "Avoid peak traffic hours"],
        3: ["Reduce outdoor exposure", "Wear a mask if going outside", "Rest frequently"],
        4: ["Stay indoors", "Use air purifier", "Monitor how you feel", "Consult doctor if concerned"],
        5: ["Avoid all outdoor activities", "Keep windows closed", "Rest and stay hydrated", "Seek medical advice if experiencing any discomfort"],
    },
    "allergies": {
        2: ["Take allergy medication as prescribed", "Keep windows closed", "Shower after being outdoors"],
        3: ["Wear a mask outdoors", "Use air purifier indoors", "Avoid outdoor activities during peak hours"],
        4: ["Stay indoors", "Monitor allergy symptoms", "Use air purifier", "Keep all windows closed"],
        5: ["Avoid all outdoor activities", "Use air purifier continuously", "Consult doctor if symptoms worsen"],
    },
}

ELDERLY_ADVICE: dict[int, list[str]] = {
    2: ["Limit outdoor activities", "Monitor how you feel", "Stay hydrated"],
    3: ["Reduce outdoor time", "Avoid strenuous activities", "Take frequent breaks"],
    4: ["Stay indoors", "Monitor symptoms closely", "Have medications ready", "Avoid all strenuous activities"],
    5: ["Avoid all outdoor activities", "Rest and stay calm", "Monitor health closely", "Seek medical attention if needed"],
}

ACTIVITY_ADVICE: dict[str, dict[int, list[str]]] = {
    "heavy_sports": {
        2: ["Consider indoor training today", "Reduce intensity of outdoor workouts"],
        3: ["Move workout indoors", "Avoid outdoor cardio", "Reduce training intensity"],
        4: ["Train indoors only", "Avoid all outdoor exercise", "Consider rest day"],
        5: ["Rest day recommended", "No outdoor activities", "Light indoor stretching only"],
    },
    "running_cycling": {
        2: ["Consider shorter outdoor sessions", "Avoid peak traffic hours"],
        3: ["Move to indoor alternatives", "Use gym or indoor track", "Reduce intensity"],
        4: ["Indoor exercise only", "Use treadmill or stationary bike", "Reduce workout duration"],
        5: ["No outdoor exercise", "Light indoor activity only", "Consider rest day"],
    },
    "light_exercise": {
        2: ["Limit outdoor walking", "Choose less polluted routes"],
        3: ["Walk indoors (mall, gym)", "Reduce outdoor time", "Wear a mask if going out"],
        4: ["Stay indoors", "Do indoor stretching or yoga", "Avoid outdoor walks"],
        5: ["Stay indoors", "Light indoor movement only", "Rest and relax"],
    },
}

GENERAL_RECOMMENDATIONS: dict[int, list[str]] = {
    1: [
        "Air quality is good! Enjoy outdoor activities",
        "Great day for exercise and outdoor sports",
        "Keep windows open for fresh air",
    ],
    2: [
        "Air quality is acceptable for most people",
        "Sensitive individuals should limit prolonged outdoor activities",
        "Consider wearing a mask during heavy exercise",
    ],
    3: [
        "Reduce prolonged outdoor activities",
        "Wear a mask when going outside",
        "Keep windows closed",
        "Use air purifier if available",
    ],
    4: [
        "Avoid prolonged outdoor activities",
        "Wear N95 mask if you must go outside",
        "Keep all windows closed",
        "Use air purifier indoors",
        "Limit physical exertion",
    ],
    5: [
        "Stay indoors as much as possible",
        "Avoid all outdoor activities",
        "Keep all windows and doors closed",
        "Use air purifier continuously",
        "Seek medical attention if experiencing symptoms",
    ],
}

PERSONAL_NOTES: tuple[tuple[str, str], ...] = (
    ("asthma", "Given your asthma, please take extra precautions today."),
    ("heart_issues", "With your heart condition, it's important to avoid strenuous activities."),
    ("young_children", "Keep children indoors today to protect their developing lungs."),
    ("pregnant", "As an expectant mother, please minimize outdoor exposure."),
    ("allergies", "Your allergies may be aggravated by current air quality."),
)
ELDERLY_NOTE = "Please take it easy and avoid outdoor activities."

QUIZ_NAMES = {
    "kids_adventure": "Kids' Air Adventure",
    "asthma_smart": "Asthma-Smart Quiz",
    "senior_safety": "Senior Citizen Safety Quiz",
    "athlete_quiz": "Outdoor Athlete Quiz",
    "general_knowledge": "General Knowledge Quiz",
}
QUIZ_TOPICS = {
    "kids_adventure": "children",
    "asthma_smart": "asthma",
    "senior_safety": "seniors",
    "athlete_quiz": "athletes",
    "general_knowledge": "general",
}

MAX_RECOMMENDATIONS = 8
MODERATE = 3

Profile = Mapping[str, Any]


def _tier(table: Mapping[int, list[str]], aqi: int) -> list[str]:
    return table.get(aqi) or table[MODERATE]


def _conditions(profile: Profile | None) -> list[str]:
    return [c for c in (profile or {}).get("health_conditions") or [] if c != "none"]


def rule_based_recommendations(profile: Profile | None, aqi: int) -> list[str]:
    """Deterministic advice from the rule tables, deduplicated and capped at eight."""
    recommendations = list(_tier(GENERAL_RECOMMENDATIONS, aqi))

    if profile:
        if profile.get("age_group") == "60_plus" and aqi >= 2:
            recommendations.extend(_tier(ELDERLY_ADVICE, aqi))

        for condition in _conditions(profile):
            table = HEALTH_ADVICE_RULES.get(condition)
            if table and aqi >= 2:
                recommendations.extend(_tier(table, aqi))

        activity = profile.get("activity_level")
        if activity and activity != "mostly_indoors" and aqi >= 2:
            table = ACTIVITY_ADVICE.get(activity)
            if table:
                recommendations.extend(_tier(table, aqi))

    return list(dict.fromkeys(recommendations))[:MAX_RECOMMENDATIONS]


def health_specific_advice(profile: Profile | None, aqi: int) -> list[dict[str, Any]]:
    """Titled advice sections for email bodies, one per condition plus an elderly section."""
    if not profile or aqi < 2:
        return []
    sections = []
    for condition in _conditions(profile):
        advice = HEALTH_ADVICE_RULES.get(condition, {}).get(aqi)
        if advice:
            sections.append({"title": f"For your {condition.replace('_', ' ').title()}:", "advice": advice})
    if profile.get("age_group") == "60_plus" and ELDERLY_ADVICE.get(aqi):
        sections.append({"title": "Age-Specific Guidance:", "advice": ELDERLY_ADVICE[aqi]})
    return sections


def personal_note(profile: Profile | None, aqi: int) -> str | None:
    """Short health alert shown at Moderate or worse for users with conditions."""
    conditions = _conditions(profile)
    if not conditions or aqi < 3:
        return None
    messages = [text for condition, text in PERSONAL_NOTES if condition in conditions]
    if (profile or {}).get("age_group") == "60_plus":
        messages.append(ELDERLY_NOTE)
    return " ".join(messages) or None


def quiz_insights(completed_quizzes: Sequence[str], quiz_scores: Mapping[str, Any], aqi: int) -> list[str]:
    topics = {QUIZ_TOPICS[q] for q in completed_quizzes if q in QUIZ_TOPICS}
    insights = []

    if "asthma" in topics:
        if aqi >= 3:
            insights.append("Based on your Asthma-Smart Quiz: Keep your rescue inhaler handy and consider staying indoors today.")
        else:
            insights.append("Based on your Asthma-Smart Quiz: Good air quality today! A great time for light outdoor activities.")

    if "seniors" in topics:
        if aqi >= 3:
            insights.append("Based on your Senior Safety Quiz: Consider postponing your morning walk until air quality improves.")
        else:
            insights.append("Based on your Senior Safety Quiz: Perfect conditions for your morning walk! Early hours are best.")

    if "athletes" in topics:
        if aqi >= 4:
            insights.append("Based on your Athlete Quiz: Move your training indoors today. Try yoga or strength training.")
        elif aqi == 3:
            insights.append("Based on your Athlete Quiz: Reduce training intensity and breathe through your nose to filter particles.")
        else:
            insights.append("Based on your Athlete Quiz: Great conditions for outdoor training! Stay hydrated and monitor how you feel.")

    if "children" in topics:
        if aqi >= 4:
            insights.append("Based on your Kids' Quiz: Keep children indoors today. Use air purifiers if available.")
        elif aqi == 3:
            insights.append("Based on your Kids' Quiz: Limit outdoor playtime and watch for any breathing difficulties.")

    scores = [_score_of(v) for v in quiz_scores.values()]
    if scores and sum(scores) / len(scores) >= 80 and len(completed_quizzes) >= 3:
        insights.append("Your quiz knowledge is excellent! You're well-equipped to make informed decisions about air quality.")

    return insights[:3]


def _score_of(value: Any) -> float:
    if isinstance(value, Mapping):
        return float(value.get("score") or 0)
    return float(getattr(value, "score", None) or 0)


def welcome_fallback(profile: Profile | None, aqi: int) -> str:
    sensitive = bool(_conditions(profile))
    messages = {
        1: (
            "Great news! The air quality is excellent today. Perfect conditions for outdoor activities!",
            "Great news! The air quality is excellent today. Enjoy your outdoor activities!",
        ),
        2: (
            "Air quality is fair today. Most activities are fine, but stay aware of how you feel.",
            "Air quality is fair today. Good conditions for most outdoor activities.",
        ),
        3: (
            "Air quality is moderate today. Consider limiting prolonged outdoor activities.",
            "Air quality is moderate today. Most people can enjoy outdoor activities, but sensitive groups should be cautious.",
        ),
        4: (
            "Air quality is poor today. Stay indoors and avoid strenuous activities.",
            "Air quality is poor today. Consider limiting outdoor activities and wearing a mask if needed.",
        ),
    }
    very_poor = (
        "Air quality is very poor today. Stay indoors, use air purifiers, and monitor your symptoms closely.",
        "Air quality is very poor today. Avoid all outdoor activities and stay indoors with windows closed.",
    )
    with_conditions, without = messages.get(aqi, very_poor)
    return with_conditions if sensitive else without


def cache_key(profile: Profile | None, aqi: float | None, kind: str, extra: Any = None) -> str:
    """Stable key over the profile fields that shape generated content."""
    profile = profile or {}
    raw = {
        "age": profile.get("age_group"),
        "conditions": sorted(profile.get("health_conditions") or []),
        "activity": profile.get("activity_level"),
        "aqi": math.floor(aqi) if aqi is not None else None,
        "type": kind,
        "extra": extra,
    }
    return hashlib.sha256(json.dumps(raw, sort_keys=True, default=str).encode()).hexdigest()


_LIST_ITEM_RE = re.compile(r"^(?:\d+\.|[-*•])\s*(.+)$")


def parse_recommendations(text: str) -> list[str]:
    """Pull list items out of model output, falling back to its longer sentences."""
    items = []
    for line in text.splitlines():
        match = _LIST_ITEM_RE.match(line.strip())
        if match:
            items.append(match.group(1).strip())
    if items:
        return items
    sentences = [s.strip() for s in re.split(r"[.!?]+", text) if len(s.strip()) > 20]
    return sentences[:5]


def build_recommendations_prompt(
    profile: Profile | None,
    aqi: int,
    components: Mapping[str, Any] | None,
    completed_quizzes: Sequence[str] = (),
    quiz_scores: Mapping[str, Any] | None = None,
) -> str:
    profile = profile or {}
    pollutants = components or {}
    conditions = ", ".join(profile.get("health_conditions") or []) or "none"

    quiz_context = ""
    if completed_quizzes:
        scores = quiz_scores or {}
        quiz_list = ", ".join(
            f"{QUIZ_NAMES.get(q, q)} (Score: {_score_text(scores.get(q))}%)" for q in completed_quizzes
        )
        quiz_context = (
            f"\nCompleted Quizzes: {quiz_list}\n"
            "Note: The user has demonstrated knowledge in these areas. Prioritize recommendations that "
            "build on their quiz learning and reinforce key concepts from the quizzes they completed."
        )

    return (
        "Generate personalized air quality health recommendations for a user with the following profile:\n\n"
        f"Age Group: {profile.get('age_group') or 'unknown'}\n"
        f"Health Conditions: {conditions}\n"
        f"Activity Level: {profile.get('activity_level') or 'unknown'}\n"
        f"Current AQI: {aqi} (1=Good, 2=Fair, 3=Moderate, 4=Poor, 5=Very Poor)\n"
        f"Primary Pollutants: PM2.5={pollutants.get('pm2_5') or 'N/A'} ug/m3, "
        f"PM10={pollutants.get('pm10') or 'N/A'} ug/m3, NO2={pollutants.get('no2') or 'N/A'} ug/m3"
        f"{quiz_context}\n\n"
        "Provide 3-5 specific, actionable recommendations tailored to this user's situation. "
        "Format as a numbered list. Be concise and practical. Focus on immediate actions they can take today."
    )


def _score_text(value: Any) -> str:
    if value is None:
        return "N/A"
    score = _score_of(value)
    return f"{score:g}" if score else "N/A"


def build_email_prompt(profile: Profile | None, aqi: int, kind: str) -> str:
    profile = profile or {}
    conditions = ", ".join(profile.get("health_conditions") or []) or "none"
    alert_label = {"daily": "Daily Report", "instant": "On-Demand Report"}.get(kind, "AQI Change Alert")
    return (
        "Generate a personalized air quality email message for a user with the following profile:\n\n"
        f"Age Group: {profile.get('age_group') or 'adult'}\n"
        f"Health Conditions: {conditions}\n"
        f"Current AQI: {aqi} (1=Good, 2=Fair, 3=Moderate, 4=Poor, 5=Very Poor)\n"
        f"Alert Type: {alert_label}\n\n"
        "Write a friendly, personalized message (2-3 paragraphs) that:\n"
        "1. Opens warmly without a greeting line, the user's name, or a city name\n"
        "2. Explains the current air quality situation in simple terms\n"
        "3. Provides 2-3 health-specific recommendations based on their conditions\n"
        "4. Ends with an encouraging note\n\n"
        "Keep it conversational and supportive. Avoid medical jargon."
    )


class RecommendationEngine:
    """AI-first personalization with a shared response cache."""

    def __init__(self, chain: AIChain, cache: TTLCache):
        self.chain = chain
        self.cache = cache

    def cached(self, key: str, produce: Callable[[], Any]) -> Any:
        """Return the cached value for ``key`` or store whatever ``produce`` yields (None is not cached)."""
        value = self.cache.get(key)
        if value is not None:
            return value
        value = produce()
        if value:
            self.cache.set(key, value)
            return value
        return None

    def ai_recommendations(
        self,
        profile: Profile | None,
        aqi: int,
        components: Mapping[str, Any] | None = None,
        completed_quizzes: Sequence[str] = (),
        quiz_scores: Mapping[str, Any] | None = None,
    ) -> list[str] | None:
        key = cache_key(profile, aqi, "recommendations", extra=",".join(sorted(completed_quizzes)))

        def produce() -> list[str] | None:
            prompt = build_recommendations_prompt(profile, aqi, components, completed_quizzes, quiz_scores)
            text = self.chain.generate(prompt)
            return parse_recommendations(text) if text else None

        return self.cached(key, produce)

    def recommend(
        self,
        profile: Profile | None,
        aqi: int,
        components: Mapping[str, Any] | None = None,
        completed_quizzes: Sequence[str] = (),
        quiz_scores: Mapping[str, Any] | None = None,
    ) -> tuple[list[str], str]:
        """Return ``(recommendations, source)`` where source is "ai" or "rules"."""
        strategies: list[tuple[str, Callable[[], list[str] | None]]] = [
            ("ai", lambda: self.ai_recommendations(profile, aqi, components, completed_quizzes, quiz_scores)),
            ("rules", lambda: rule_based_recommendations(profile, aqi)),
        ]
        for source, strategy in strategies:
            recommendations = strategy()
            if recommendations:
                return recommendations, source
        return [], "rules"

    def email_content(self, profile: Profile | None, aqi: int, kind: str) -> str | None:
        """AI-written email prose, or None when no provider answered.

        The prose is shared between users with the same profile and AQI, so it
        never carries a name or city; the template renders those.
        """
        key = cache_key(profile, aqi, f"email_{kind}")
        return self.cached(key, lambda: self.chain.generate(build_email_prompt(profile, aqi, kind)))

    def welcome_message(self, profile: Profile | None, aqi: int, components: Mapping[str, Any] | None = None) -> str:
        key = cache_key(profile, aqi, "welcome")

        def produce() -> list[str] | None:
            text = self.chain.generate(build_recommendations_prompt(profile, aqi, components))
            return parse_recommendations(text) if text else None

        recommendations = self.cached(key, produce)
        if recommendations:
            return recommendations[0]
        return welcome_fallback(profile, aqi)
