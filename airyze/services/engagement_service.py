"""Short AI-written messages for badges and quizzes, with static fallbacks.

Every function here returns something usable: when the AI chain has no
answer the static message for the same situation is returned instead.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from airyze.services.personalization_service import Profile, RecommendationEngine, cache_key

logger = logging.getLogger(__name__)

QUIZ_IDS = ("kids_adventure", "asthma_smart", "senior_safety", "athlete_quiz", "general_knowledge")
DEFAULT_QUIZ_REASON = "This quiz matches your profile and interests."

BADGE_CONGRATS = {
    "daily_streak_7": "Amazing! You've checked AQI for 7 days straight! Keep up this healthy habit! 🔥",
    "weekly_streak_4": "Incredible dedication! A full month of AQI monitoring shows real commitment to your health! 👑",
    "report_contributor": "Thank you for contributing to the community! Your reports help everyone stay informed! 📝",
    "upvoter": "Your positive engagement makes our community better! Keep spreading good vibes! 👍",
    "downvoter": "Thanks for keeping our data quality high! Your vigilance is appreciated! 👎",
    "quiz_master": "Congratulations! You're now an air quality expert! Your knowledge will keep you safe! 🎓",
    "alert_responder": "You're staying on top of air quality changes! Great job being proactive! 📧",
    "city_explorer": "You're a true explorer! Understanding air quality across cities is valuable! 🌍",
}
DEFAULT_BADGE_CONGRATS = "Congratulations on earning this badge! Keep up the great work!"

# (quiz id, profile predicate, reason)
_QUIZ_MATCHERS = (
    ("asthma_smart", lambda p: "asthma" in (p.get("health_conditions") or []),
     "This quiz is tailored for managing asthma with air quality awareness."),
    ("senior_safety", lambda p: p.get("age_group") == "60_plus",
     "Learn important air quality safety tips for seniors."),
    ("kids_adventure", lambda p: p.get("age_group") == "under_12",
     "A fun way to learn about air quality!"),
    ("athlete_quiz", lambda p: p.get("activity_level") in ("heavy_sports", "running_cycling"),
     "Optimize your training with air quality knowledge."),
)


def _conditions_text(profile: Profile | None) -> str:
    return ", ".join((profile or {}).get("health_conditions") or []) or "none"


def _percent(part: float, whole: float) -> int:
    return round(part / whole * 100) if whole else 0


def static_badge_congrats(badge_id: str | None) -> str:
    return BADGE_CONGRATS.get(badge_id or "", DEFAULT_BADGE_CONGRATS)


def static_quiz_feedback(score: float) -> str:
    if score == 100:
        return "Perfect score! You have excellent knowledge of air quality. Keep using this knowledge to protect your health!"
    if score >= 80:
        return "Great job! You have a strong understanding of air quality. Review the questions you missed to become an expert!"
    if score >= 60:
        return "Good effort! You're on the right track. Review the explanations to strengthen your knowledge."
    return "Thanks for taking the quiz! Review the explanations carefully and try again to improve your score."


def available_quizzes(completed: Sequence[str]) -> list[str]:
    return [quiz_id for quiz_id in QUIZ_IDS if quiz_id not in completed]


def static_quiz_recommendation(profile: Profile | None, completed: Sequence[str] = ()) -> dict[str, str]:
    available = available_quizzes(completed)
    if not available:
        return {"quizId": "general_knowledge", "reason": "Refresh your knowledge with this comprehensive quiz!"}
    profile = profile or {}
    for quiz_id, matches, reason in _QUIZ_MATCHERS:
        if quiz_id in available and matches(profile):
            return {"quizId": quiz_id, "reason": reason}
    return {"quizId": available[0], "reason": DEFAULT_QUIZ_REASON}


def static_badge_motivation(name: str | None, threshold: float, progress: float) -> str:
    remaining = _number(threshold - progress)
    percentage = _percent(progress, threshold)
    if percentage >= 80:
        return f"You're almost there! Just {remaining} more to earn the {name} badge! 🎯"
    if percentage >= 50:
        return f"Halfway there! {remaining} more to go for the {name} badge! Keep it up! 💪"
    return f"Great start! {remaining} more to earn the {name} badge! You can do it! 🌟"


def static_badge_summary(earned_count: int, total: int) -> str:
    percentage = _percent(earned_count, total)
    if total and earned_count >= total:
        return f"Amazing! You've earned all {total} badges! You're a true air quality champion! 🏆"
    if percentage >= 75:
        return f"Impressive! You've earned {earned_count} out of {total} badges ({percentage}%). Just a few more to go! 🌟"
    if percentage >= 50:
        return f"Great progress! You've earned {earned_count} out of {total} badges ({percentage}%). Keep up the momentum! 💪"
    if earned_count > 0:
        return f"Good start! You've earned {earned_count} out of {total} badges ({percentage}%). Keep engaging to earn more! 🎯"
    return f"Start your badge collection journey! There are {total} badges waiting to be earned! 🚀"


def _number(value: float) -> int | float:
    return int(value) if float(value).is_integer() else value


class EngagementWriter:
    """Badge and quiz copy backed by the shared recommendation cache."""

    def __init__(self, engine: RecommendationEngine):
        self.engine = engine

    def _ask(self, key: str, prompt: str) -> str | None:
        return self.engine.cached(key, lambda: self.engine.chain.generate(prompt))

    def badge_congrats(self, badge: Mapping[str, Any], profile: Profile | None, progress: Any) -> str:
        key = cache_key(profile, None, "badge_congrats", extra=badge.get("id"))
        prompt = (
            f'Generate a short, enthusiastic congratulations message (2-3 sentences) for a user who just earned '
            f'the "{badge.get("name")}" badge in an air quality monitoring app.\n\n'
            "User context:\n"
            f"- Age group: {(profile or {}).get('age_group') or 'user'}\n"
            f"- Health conditions: {_conditions_text(profile)}\n"
            f"- Badge earned: {badge.get('name')} - {badge.get('description')}\n"
            f"- Progress: {progress}/{badge.get('threshold')}\n\n"
            "Make it personal, motivating, and relevant to their health profile. Keep it under 50 words."
        )
        return self._ask(key, prompt) or static_badge_congrats(badge.get("id"))

    def quiz_feedback(
        self,
        quiz: Mapping[str, Any],
        score: float,
        incorrect_questions: Sequence[Mapping[str, Any]],
        profile: Profile | None,
        current_aqi: int = 3,
    ) -> str:
        # Scores are bucketed by 20% so similar results share an answer.
        key = cache_key(profile, current_aqi, "quiz_feedback", extra=[quiz.get("id"), int(score // 20) * 20])
        missed = "; ".join(q.get("question", "") for q in incorrect_questions)
        prompt = (
            f'Generate personalized feedback for a user who completed the "{quiz.get("title")}" quiz.\n\n'
            "User profile:\n"
            f"- Age: {(profile or {}).get('age_group') or 'adult'}\n"
            f"- Health conditions: {_conditions_text(profile)}\n"
            f"- City: {(profile or {}).get('primary_city') or 'your city'}\n\n"
            "Quiz results:\n"
            f"- Score: {_number(score)}%\n"
            f"- Questions answered incorrectly: {missed or 'None - perfect score!'}\n"
            f"- Current AQI in their city: {current_aqi}\n\n"
            "Provide encouraging feedback, brief tips on the topics they missed, and how this applies to "
            "their current air quality. Keep it supportive, practical, and under 100 words."
        )
        return self._ask(key, prompt) or static_quiz_feedback(score)

    def quiz_explanation(self, question: Mapping[str, Any], profile: Profile | None) -> str:
        basic = question.get("explanation") or "Review the correct answer above."
        options = question.get("options") or []
        index = question.get("correctIndex")
        correct = options[index] if isinstance(index, int) and 0 <= index < len(options) else "N/A"
        key = cache_key(profile, None, "quiz_explanation", extra=question.get("id") or question.get("question"))
        prompt = (
            "Enhance this air quality quiz explanation for a user:\n\n"
            f"Question: {question.get('question')}\n"
            f"Correct Answer: {correct}\n"
            f"Basic Explanation: {basic}\n\n"
            "User profile:\n"
            f"- Age: {(profile or {}).get('age_group') or 'adult'}\n"
            f"- Health conditions: {_conditions_text(profile)}\n\n"
            "Make it relevant to their age group and health conditions and add one practical tip. "
            "Keep it conversational and under 60 words."
        )
        return self._ask(key, prompt) or basic

    def quiz_recommendation(self, profile: Profile | None, completed: Sequence[str], current_aqi: int = 3) -> dict[str, str]:
        available = available_quizzes(completed)
        if not available:
            return static_quiz_recommendation(profile, completed)

        key = cache_key(profile, current_aqi, "quiz_recommendation", extra=sorted(completed))
        schema = {
            "type": "object",
            "required": ["quizId", "reason"],
            "properties": {
                "quizId": {"type": "string", "enum": available},
                "reason": {"type": "string"},
            },
        }
        prompt = (
            "Recommend the most relevant air quality quiz for this user:\n\n"
            "User profile:\n"
            f"- Age: {(profile or {}).get('age_group') or 'adult'}\n"
            f"- Health conditions: {_conditions_text(profile)}\n"
            f"- Activity level: {(profile or {}).get('activity_level') or 'moderate'}\n"
            f"- Current AQI: {current_aqi}\n"
            f"- Completed quizzes: {', '.join(completed) or 'none'}\n\n"
            "Available quizzes:\n"
            "- kids_adventure: Fun quiz for children\n"
            "- asthma_smart: Essential knowledge for asthma management\n"
            "- senior_safety: Air quality safety for older adults\n"
            "- athlete_quiz: Optimize training with air quality awareness\n"
            "- general_knowledge: Test your air quality knowledge\n\n"
            "Give the quiz id and a one sentence reason."
        )
        answer = self.engine.cached(key, lambda: self.engine.chain.generate_structured(prompt, schema))
        if answer:
            return {"quizId": answer["quizId"], "reason": answer.get("reason") or DEFAULT_QUIZ_REASON}
        return static_quiz_recommendation(profile, completed)

    def badge_motivation(self, badge: Mapping[str, Any], progress: float, profile: Profile | None) -> str:
        threshold = badge.get("threshold") or 0
        percent = _percent(progress, threshold)
        key = cache_key(profile, None, "badge_motivation", extra=[badge.get("id"), percent // 25 * 25])
        prompt = (
            f'Generate a short motivational message (1-2 sentences) for a user working toward the "{badge.get("name")}" badge.\n\n'
            f"Badge: {badge.get('name')} - {badge.get('description')}\n"
            f"Progress: {_number(progress)}/{_number(threshold)} ({percent}% complete)\n"
            f"Remaining: {_number(threshold - progress)} more to go\n\n"
            "Make it encouraging and specific to what they need to do. Keep it under 40 words."
        )
        return self._ask(key, prompt) or static_badge_motivation(badge.get("name"), threshold, progress)

    def badge_summary(self, earned: Sequence[Mapping[str, Any]], total: int, profile: Profile | None) -> str:
        names = ", ".join(str(b.get("name")) for b in earned if b.get("name")) or "none yet"
        key = cache_key(profile, None, "badge_summary", extra=[len(earned), total])
        prompt = (
            "Summarize a user's badge collection in an air quality monitoring app in 2 sentences.\n\n"
            f"Badges earned: {len(earned)} of {total} ({_percent(len(earned), total)}%)\n"
            f"Earned badges: {names}\n"
            f"Age group: {(profile or {}).get('age_group') or 'user'}\n\n"
            "Celebrate their progress and suggest what to aim for next. Keep it under 50 words."
        )
        return self._ask(key, prompt) or static_badge_summary(len(earned), total)
