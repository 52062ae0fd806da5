"""AI providers and the fallback chain."""

import json

import httpx
import pytest

from airyze.core.config import Settings
from airyze.services.ai_service import AIChain, AIServiceError, GroqProvider, build_providers

GROQ_URL = "http://groq.test/v1/chat/completions"


def _groq(handler, api_key="gsk-test"):
    return GroqProvider(api_key=api_key, model="test-model", url=GROQ_URL, transport=httpx.MockTransport(handler))


def test_groq_sends_chat_completion():
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"choices": [{"message": {"content": "Stay indoors."}}]})

    text = _groq(handler).generate("How is the air?", temperature=0.2, max_tokens=50)
    assert text == "Stay indoors."
    assert seen["auth"] == "Bearer gsk-test"
    assert seen["body"]["model"] == "test-model"
    assert seen["body"]["messages"] == [{"role": "user", "content": "How is the air?"}]
    assert seen["body"]["max_tokens"] == 50


def test_groq_without_key_fails_fast():
    with pytest.raises(AIServiceError, match="GROQ_API_KEY"):
        _groq(lambda r: httpx.Response(200), api_key="").generate("hi")


@pytest.mark.parametrize("response", [
    httpx.Response(500, json={"error": "down"}),
    httpx.Response(200, json={"choices": []}),
    httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]}),
])
def test_groq_bad_responses_raise(response):
    with pytest.raises(AIServiceError):
        _groq(lambda r: response).generate("hi")


def test_chain_falls_through_in_order(make_provider):
    first = make_provider("first")
    second = make_provider("second", text="from second")
    third = make_provider("third", text="from third")
    assert AIChain([first, second, third]).generate("prompt") == "from second"
    assert first.prompts == ["prompt"]
    assert third.prompts == []


def test_chain_returns_none_when_all_fail(make_provider):
    assert AIChain([make_provider("a"), make_provider("b")]).generate("prompt") is None
    assert AIChain([]).generate("prompt") is None


SCHEMA = {
    "type": "object",
    "properties": {"quizId": {"type": "string", "enum": ["asthma_smart", "general_knowledge"]}},
    "required": ["quizId"],
}


def test_structured_output_strips_fences(make_provider):
    provider = make_provider(text='```json\n{"quizId": "asthma_smart", "reason": "fits"}\n```')
    result = AIChain([provider]).generate_structured("Pick a quiz", SCHEMA)
    assert result == {"quizId": "asthma_smart", "reason": "fits"}
    assert "JSON schema" in provider.prompts[0]


def test_structured_output_skips_invalid_answers(make_provider):
    not_json = make_provider("a", text="I recommend the asthma quiz")
    off_enum = make_provider("b", text='{"quizId": "cooking"}')
    good = make_provider("c", text='{"quizId": "general_knowledge"}')
    assert AIChain([not_json, off_enum, good]).generate_structured("Pick", SCHEMA) == {"quizId": "general_knowledge"}
    assert AIChain([not_json, off_enum]).generate_structured("Pick", SCHEMA) is None


def test_build_providers_follows_configured_order():
    settings = Settings(ai_providers="Gemini, groq, nonsense")
    assert [p.name for p in build_providers(settings)] == ["gemini", "groq"]
