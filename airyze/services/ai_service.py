"""Generative AI providers (Groq + Gemini) and the ordered fallback chain."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable

import httpx

from airyze.core.config import Settings

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    """Raised when a provider cannot produce usable output."""


class GroqProvider:
    """Groq chat completions over its OpenAI-compatible REST endpoint."""

    name = "groq"

    def __init__(
        self,
        api_key: str,
        model: str,
        url: str,
        timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def generate(self, prompt: str, *, temperature: float = 0.7, max_tokens: int = 1024, timeout: float | None = None) -> str:
        if not self.api_key:
            raise AIServiceError("GROQ_API_KEY is not configured")

        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            with httpx.Client(timeout=timeout or self.timeout, transport=self._transport) as client:
                response = client.post(self.url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise AIServiceError(f"Groq request failed: {exc}") from exc

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise AIServiceError("Invalid response format from Groq API") from exc

        if not isinstance(content, str) or not content.strip():
            raise AIServiceError("Groq returned an empty response")
        return content


class GeminiProvider:
    """Gemini text generation through the google-genai SDK."""

    name = "gemini"

    def __init__(self, api_key: str, model: str, timeout: float = 20.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def generate(self, prompt: str, *, temperature: float = 0.7, max_tokens: int = 1024, timeout: float | None = None) -> str:
        if not self.api_key:
            raise AIServiceError("GEMINI_API_KEY is not configured")

        try:
            from google import genai
            from google.genai import errors, types
        except ImportError as exc:
            raise AIServiceError("Gemini SDK is not installed. Add 'google-genai' to dependencies.") from exc

        client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=int((timeout or self.timeout) * 1000)),
        )

        try:
            response = client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=temperature,
                    top_k=40,
                    top_p=0.95,
                    max_output_tokens=max_tokens,
                ),
            )
        except (errors.APIError, httpx.HTTPError) as exc:
            raise AIServiceError(f"Gemini request failed: {exc}") from exc

        text = getattr(response, "text", None)
        if not text:
            raise AIServiceError("Gemini returned an empty response")
        return text


class AIChain:
    """Providers tried in order; the first usable answer wins.

    ``generate`` returns None instead of raising when every provider fails so
    callers can switch to their rule-based content.
    """

    def __init__(self, providers: Iterable[Any]):
        self.providers = list(providers)

    def generate(self, prompt: str, **options: Any) -> str | None:
        for provider in self.providers:
            try:
                text = provider.generate(prompt, **options)
            except AIServiceError as exc:
                logger.warning("AI provider %s failed: %s", provider.name, exc)
                continue
            logger.debug("AI provider %s answered", provider.name)
            return text
        logger.info("No AI provider available, using fallback content")
        return None

    def generate_structured(self, prompt: str, schema: dict[str, Any], **options: Any) -> dict[str, Any] | None:
        """Like ``generate`` but the answer must be a JSON object matching ``schema``."""
        full_prompt = _build_structured_prompt(prompt, schema)
        for provider in self.providers:
            try:
                raw = provider.generate(full_prompt, **options)
                parsed = _parse_provider_output(raw)
                _validate_against_schema(parsed, schema)
            except AIServiceError as exc:
                logger.warning("AI provider %s failed: %s", provider.name, exc)
                continue
            except ValueError as exc:
                logger.warning("AI provider %s returned invalid JSON: %s", provider.name, exc)
                continue
            return parsed
        return None


def build_providers(settings: Settings) -> list[Any]:
    """Instantiate providers in the configured order."""
    factories = {
        "groq": lambda: GroqProvider(
            api_key=settings.groq_api_key,
            model=settings.groq_model,
            url=settings.groq_url,
            timeout=settings.ai_timeout_seconds,
        ),
        "gemini": lambda: GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.ai_timeout_seconds,
        ),
    }
    providers = []
    for name in settings.ai_provider_order:
        factory = factories.get(name)
        if factory is None:
            logger.warning("Ignoring unknown AI provider '%s'", name)
            continue
        providers.append(factory())
    return providers


def _build_structured_prompt(prompt: str, schema: dict[str, Any]) -> str:
    return (
        f"{prompt}\n\n"
        "Return only JSON that matches this schema exactly, with no commentary.\n"
        f"JSON schema:\n{json.dumps(schema, ensure_ascii=True)}"
    )


def _parse_provider_output(raw: str) -> dict[str, Any]:
    normalized = _strip_code_fences(raw)

    try:
        parsed = json.loads(normalized)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON: {exc.msg}") from exc

    if not isinstance(parsed, dict):
        raise ValueError("JSON must be an object")

    return parsed


def _strip_code_fences(text: str) -> str:
    """Normalize fenced markdown JSON to plain JSON text."""
    stripped = text.strip()
    if not stripped.startswith("```"):
        return stripped

    lines = stripped.splitlines()
    if len(lines) >= 2 and lines[0].startswith("```") and lines[-1].strip() == "```":
        return "\n".join(lines[1:-1]).strip()

    return stripped


def _validate_against_schema(data: dict[str, Any], schema: dict[str, Any]) -> None:
    for key in schema.get("required", []):
        if key not in data:
            raise ValueError(f"missing required field '{key}'")

    for key, field_schema in schema.get("properties", {}).items():
        if key not in data:
            continue
        expected = field_schema.get("type")
        if expected == "string" and not isinstance(data[key], str):
            raise ValueError(f"{key}: expected type 'string'")
        enum = field_schema.get("enum")
        if enum is not None and data[key] not in enum:
            raise ValueError(f"{key}: must be one of {', '.join(map(str, enum))}")
