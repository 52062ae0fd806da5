"""Badge and quiz messages."""

import pytest

from airyze.services.engagement_service import (
    QUIZ_IDS,
    static_badge_congrats,
    static_badge_motivation,
    static_badge_summary,
    static_quiz_feedback,
    static_quiz_recommendation,
)

ASTHMA = {"age_group": "19_40", "health_conditions": ["asthma"], "activity_level": "light_exercise"}


def test_static_badge_congrats():
    assert static_badge_congrats("quiz_master").startswith("Congratulations! You're now an air quality expert")
    assert static_badge_congrats("mystery") == "Congratulations on earning this badge! Keep up the great work!"


@pytest.mark.parametrize("score,start", [
    (100, "Perfect score!"),
    (85, "Great job!"),
    (60, "Good effort!"),
    (20, "Thanks for taking the quiz!"),
])
def test_static_quiz_feedback(score, start):
    assert static_quiz_feedback(score).startswith(start)


def test_static_quiz_recommendation():
    assert static_quiz_recommendation(ASTHMA)["quizId"] == "asthma_smart"
    assert static_quiz_recommendation({"age_group": "60_plus"})["quizId"] == "senior_safety"
    assert static_quiz_recommendation({"activity_level": "running_cycling"})["quizId"] == "athlete_quiz"
    assert static_quiz_recommendation(ASTHMA, ["asthma_smart"]) == {
        "quizId": "kids_adventure",
        "reason": "This quiz matches your profile and interests.",
    }
    assert static_quiz_recommendation(None, QUIZ_IDS) == {
        "quizId": "general_knowledge",
        "reason": "Refresh your knowledge with this comprehensive quiz!",
    }


def test_static_badge_motivation():
    assert static_badge_motivation("Quiz Master", 10, 9) == "You're almost there! Just 1 more to earn the Quiz Master badge! 🎯"
    assert static_badge_motivation("Quiz Master", 10, 5).startswith("Halfway there! 5 more")
    assert static_badge_motivation("Quiz Master", 10, 1).startswith("Great start! 9 more")


def test_static_badge_summary():
    assert static_badge_summary(8, 8).startswith("Amazing! You've earned all 8 badges!")
    assert static_badge_summary(3, 4).startswith("Impressive! You've earned 3 out of 4 badges (75%)")
    assert static_badge_summary(1, 8).startswith("Good start!")
    assert static_badge_summary(0, 8) == "Start your badge collection journey! There are 8 badges waiting to be earned! 🚀"


BADGE = {"id": "city_explorer", "name": "City Explorer", "description": "Check 5 cities", "threshold": 5}


def test_endpoints_fall_back_without_ai(client):
    r = client.post("/api/gemini/badge-congrats", json={"badge": BADGE, "progress": 5})
    assert r.json()["message"].startswith("You're a true explorer!")

    r = client.post("/api/gemini/quiz-feedback", json={"quiz": {"id": "asthma_smart", "title": "Asthma"}, "score": 70})
    assert r.json()["feedback"].startswith("Good effort!")

    question = {"id": 1, "question": "Best mask?", "options": ["Cloth", "N95"], "correctIndex": 1, "explanation": "N95 filters PM2.5."}
    r = client.post("/api/gemini/quiz-explanation", json={"question": question})
    assert r.json()["explanation"] == "N95 filters PM2.5."

    r = client.post("/api/gemini/quiz-recommendation", json={"userProfile": ASTHMA, "completedQuizzes": []})
    assert r.json()["recommendation"]["quizId"] == "asthma_smart"

    r = client.post("/api/gemini/badge-motivation", json={"badge": BADGE, "currentProgress": 4})
    assert r.json()["motivation"].startswith("You're almost there! Just 1 more")

    r = client.post("/api/gemini/badge-summary", json={"earnedBadges": [BADGE], "totalBadges": 8})
    assert r.json()["summary"].startswith("Good start! You've earned 1 out of 8 badges (12%)")


def test_endpoints_use_ai_when_available(client, ai_provider):
    ai_provider.text = "Nice work, explorer!"
    r = client.post("/api/gemini/badge-congrats", json={"badge": BADGE, "userProfile": ASTHMA, "progress": 5})
    assert r.json()["message"] == "Nice work, explorer!"
    assert '"City Explorer" badge' in ai_provider.prompts[0]

    question = {"id": 2, "question": "Best mask?", "options": ["Cloth", "N95"], "correctIndex": 1}
    r = client.post("/api/gemini/quiz-explanation", json={"question": question, "userProfile": ASTHMA})
    assert r.json()["explanation"] == "Nice work, explorer!"
    assert "Correct Answer: N95" in ai_provider.prompts[-1]


def test_quiz_recommendation_from_ai(client, ai_provider):
    ai_provider.text = '{"quizId": "senior_safety", "reason": "Useful for your parents."}'
    r = client.post("/api/gemini/quiz-recommendation", json={"userProfile": ASTHMA, "completedQuizzes": ["asthma_smart"]})
    assert r.json()["recommendation"] == {"quizId": "senior_safety", "reason": "Useful for your parents."}


def test_quiz_recommendation_rejects_completed_quiz(client, ai_provider):
    ai_provider.text = '{"quizId": "asthma_smart", "reason": "Again!"}'
    r = client.post("/api/gemini/quiz-recommendation", json={"userProfile": ASTHMA, "completedQuizzes": ["asthma_smart"]})
    assert r.json()["recommendation"]["quizId"] == "kids_adventure"


def test_ai_answers_are_cached(client, ai_provider):
    ai_provider.text = "First summary"
    body = {"earnedBadges": [BADGE], "totalBadges": 8}
    assert client.post("/api/gemini/badge-summary", json=body).json()["summary"] == "First summary"
    ai_provider.text = "Second summary"
    assert client.post("/api/gemini/badge-summary", json=body).json()["summary"] == "First summary"
    assert len(ai_provider.prompts) == 1


@pytest.mark.parametrize("path,payload,message", [
    ("/api/gemini/badge-congrats", {}, "Badge information is required"),
    ("/api/gemini/quiz-feedback", {"quiz": {"id": "x"}}, "Quiz and score are required"),
    ("/api/gemini/quiz-explanation", {}, "Question is required"),
    ("/api/gemini/badge-motivation", {"badge": BADGE}, "Badge and progress are required"),
    ("/api/gemini/badge-summary", {"totalBadges": 3}, "Badge collection data is required"),
])
def test_engagement_validation(client, path, payload, message):
    r = client.post(path, json=payload)
    assert r.status_code == 400
    assert r.json()["error"] == message
