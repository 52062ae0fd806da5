"""Air-quality chatbot."""

import threading
import time

import pytest

from airyze.core.cache import TTLCache
from airyze.services.chatbot_service import ConversationStore, build_chat_prompt, fallback_reply


@pytest.mark.parametrize("message,start", [
    ("What does AQI mean?", "AQI stands for Air Quality Index"),
    ("tell me about PM2.5", "PM2.5 refers to tiny particles"),
    ("What are the health effects?", "Air pollution can affect your health"),
    ("Can I go for a jog?", "With AQI at 4, outdoor exercise is NOT recommended"),
    ("Which mask works?", "For air pollution protection"),
])
def test_fallback_keywords(message, start):
    assert fallback_reply(message, {"currentAQI": 4, "city": "Lahore"}).startswith(start)


def test_fallback_protection_depends_on_level():
    assert fallback_reply("how do I stay safe", {"currentAQI": 1}).startswith("Good news!")
    assert fallback_reply("how do I stay safe", {}).startswith("With moderate air quality (AQI 3)")
    assert fallback_reply("how do I stay safe", {"currentAQI": 5}).startswith("With poor air quality (AQI 5)")


def test_fallback_default_mentions_city():
    reply = fallback_reply("hello", {"currentAQI": 2, "city": "Multan"})
    assert "Your current AQI in Multan is 2 (Fair)." in reply
    assert reply.endswith("What would you like to know?")
    assert "Your current AQI" not in fallback_reply("hello")


def test_store_keeps_last_messages():
    store = ConversationStore(TTLCache(60), max_messages=4)
    for n in range(6):
        store.append("s1", "user", f"m{n}")
    assert [m["content"] for m in store.history("s1")] == ["m2", "m3", "m4", "m5"]
    store.clear("s1")
    assert store.history("s1") == []


class SlowCache(TTLCache):
    def get(self, key, default=None):
        value = super().get(key, default)
        time.sleep(0.005)
        return value


def test_store_keeps_concurrent_appends():
    store = ConversationStore(SlowCache(60), max_messages=50)
    threads = [threading.Thread(target=store.append, args=("s1", "user", f"m{n}")) for n in range(20)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(m["content"] for m in store.history("s1")) == sorted(f"m{n}" for n in range(20))


def test_prompt_includes_context_and_history():
    prompt = build_chat_prompt(
        "And tomorrow?",
        [{"role": "user", "content": "Is it smoggy?"}, {"role": "assistant", "content": "Yes."}],
        {"currentAQI": 4, "city": "Lahore", "pollutants": {"pm2_5": 80.5, "pm10": None}},
    )
    assert "- User's City: Lahore" in prompt
    assert "- Current AQI: 4 (Poor)" in prompt
    assert "PM2.5: 80.5" in prompt and "PM10" not in prompt
    assert "User: Is it smoggy?\nAssistant: Yes." in prompt
    assert prompt.endswith("User: And tomorrow?\n\nAssistant:")


def test_message_endpoint_falls_back_without_ai(client, ctx):
    r = client.post("/api/chatbot/message", json={"message": "What does AQI mean?", "sessionId": "abc"})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["sessionId"] == "abc"
    assert body["response"].startswith("AQI stands for")
    assert ctx.conversations.history("abc") == []


def test_message_endpoint_records_ai_turns(client, ctx, ai_provider):
    ai_provider.text = "It is moderately polluted."
    payload = {"message": "How is the air?", "sessionId": "s-1", "context": {"currentAQI": 3, "city": "Karachi"}}
    r = client.post("/api/chatbot/message", json=payload)
    assert r.json()["response"] == "It is moderately polluted."
    assert "- User's City: Karachi" in ai_provider.prompts[0]

    client.post("/api/chatbot/message", json={"message": "Should I run?", "sessionId": "s-1"})
    assert "User: How is the air?" in ai_provider.prompts[1]
    assert len(ctx.conversations.history("s-1")) == 4

    r = client.post("/api/chatbot/clear", json={"sessionId": "s-1"})
    assert r.json() == {"success": True, "message": "Conversation history cleared"}
    assert ctx.conversations.history("s-1") == []


@pytest.mark.parametrize("path,payload,message", [
    ("/api/chatbot/message", {"sessionId": "x"}, "Message is required"),
    ("/api/chatbot/message", {"message": "   ", "sessionId": "x"}, "Message is required"),
    ("/api/chatbot/message", {"message": "hi"}, "Session ID is required"),
    ("/api/chatbot/clear", {}, "Session ID is required"),
])
def test_chat_validation(client, path, payload, message):
    r = client.post(path, json=payload)
    assert r.status_code == 400
    assert r.json()["error"] == message
