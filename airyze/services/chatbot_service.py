"""Air-quality chatbot: prompt assembly, per-session history and offline answers."""

from __future__ import annotations

import logging
import threading
from typing import Any, Mapping

from airyze.core.cache import TTLCache
from airyze.services.ai_service import AIChain
from airyze.services.aqi_service import aqi_category

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are an AI assistant for Airyze AQI Monitor, an air quality monitoring application. Your role is to help users understand air quality, health impacts, and provide actionable advice.

Key information:
- AQI Scale: 1=Good (Green), 2=Fair (Light Green), 3=Moderate (Yellow), 4=Poor (Orange), 5=Very Poor (Red)
- Main pollutants: PM2.5, PM10, O3 (Ozone), NO2, SO2, CO
- The app monitors air quality in Pakistan and worldwide
- Users can get real-time AQI data, historical trends, and personalized health recommendations

Guidelines:
- Be friendly, helpful, and conversational
- Provide accurate information about air quality and health
- Give practical, actionable advice
- If asked about medical conditions, remind users to consult healthcare professionals
- Keep responses concise (2-4 paragraphs max)
- Use simple language, avoid technical jargon unless asked
- If you don't know something, admit it honestly"""

CHAT_TEMPERATURE = 0.8
CHAT_MAX_TOKENS = 800


class ConversationStore:
    """Last ``max_messages`` turns per session, expiring with the backing cache's TTL."""

    def __init__(self, cache: TTLCache, max_messages: int = 10):
        self.cache = cache
        self.max_messages = max_messages
        self._lock = threading.Lock()

    def history(self, session_id: str) -> list[dict[str, str]]:
        return list(self.cache.get(session_id) or [])

    def append(self, session_id: str, role: str, content: str) -> None:
        with self._lock:
            messages = self.history(session_id)
            messages.append({"role": role, "content": content})
            self.cache.set(session_id, messages[-self.max_messages:])

    def clear(self, session_id: str) -> None:
        with self._lock:
            self.cache.pop(session_id)


def _level_name(aqi: Any) -> str:
    return aqi_category(aqi)["level"] if aqi in (1, 2, 3, 4, 5) else "Unknown"


def _format_pollutants(pollutants: Mapping[str, Any]) -> str:
    parts = []
    for key, label in (("pm2_5", "PM2.5"), ("pm10", "PM10"), ("o3", "O3")):
        if pollutants.get(key):
            parts.append(f"{label}: {pollutants[key]}μg/m³")
    return ", ".join(parts) or "N/A"


def build_chat_prompt(message: str, history: list[dict[str, str]], context: Mapping[str, Any] | None = None) -> str:
    context = context or {}
    lines = [SYSTEM_PROMPT, ""]

    current = context.get("currentAQI")
    if current:
        lines.append("Current Context:")
        lines.append(f"- User's City: {context.get('city') or 'Unknown'}")
        lines.append(f"- Current AQI: {current} ({_level_name(current)})")
        if context.get("pollutants"):
            lines.append(f"- Main Pollutants: {_format_pollutants(context['pollutants'])}")
        lines.append("")

    if history:
        lines.append("Previous conversation:")
        for turn in history:
            speaker = "User" if turn["role"] == "user" else "Assistant"
            lines.append(f"{speaker}: {turn['content']}")
        lines.append("")

    lines.append(f"User: {message}\n\nAssistant:")
    return "\n".join(lines)


def fallback_reply(message: str, context: Mapping[str, Any] | None = None) -> str:
    """Keyword-matched answer used when no AI provider is reachable."""
    context = context or {}
    msg = message.lower()
    current = context.get("currentAQI")
    aqi = current or 3
    where = (
        f"Your current AQI in {context.get('city') or 'your city'} is {current} ({_level_name(current)})."
        if current
        else ""
    )

    if "aqi" in msg and any(word in msg for word in ("mean", "what", "explain")):
        return (
            "AQI stands for Air Quality Index. It's a number from 1 to 5 that tells you how clean or polluted the air is:\n\n"
            "• 1 (Good) - Green: Air quality is great!\n"
            "• 2 (Fair) - Light Green: Air quality is acceptable\n"
            "• 3 (Moderate) - Yellow: Sensitive people should be careful\n"
            "• 4 (Poor) - Orange: Everyone should limit outdoor activities\n"
            "• 5 (Very Poor) - Red: Health alert! Stay indoors\n\n" + where
        ).strip()

    if "pm2.5" in msg or "pm 2.5" in msg:
        return (
            "PM2.5 refers to tiny particles in the air that are 2.5 micrometers or smaller. These particles can:\n\n"
            "• Penetrate deep into your lungs\n"
            "• Enter your bloodstream\n"
            "• Cause respiratory and heart problems\n\n"
            "Protection tips:\n"
            "• Wear N95 masks outdoors\n"
            "• Use air purifiers indoors\n"
            "• Avoid outdoor exercise when levels are high"
        )

    if "health" in msg and any(word in msg for word in ("effect", "impact", "risk")):
        return (
            "Air pollution can affect your health in several ways:\n\n"
            "**Short-term effects:**\n"
            "• Eye, nose, and throat irritation\n"
            "• Coughing and difficulty breathing\n"
            "• Worsening of asthma\n\n"
            "**Long-term effects:**\n"
            "• Chronic respiratory diseases\n"
            "• Heart disease\n"
            "• Reduced lung function\n\n"
            "People most at risk: children, elderly, pregnant women, and those with existing health conditions."
        )

    if any(word in msg for word in ("protect", "safe", "what should i do")):
        if aqi <= 2:
            return (
                f"Good news! With AQI at {aqi}, the air quality is good. You can:\n"
                "• Enjoy outdoor activities\n• Exercise outside\n• Keep windows open for ventilation"
            )
        if aqi == 3:
            return (
                f"With moderate air quality (AQI {aqi}), here's what you should do:\n\n"
                "• Limit prolonged outdoor activities\n"
                "• Sensitive groups should reduce outdoor exercise\n"
                "• Close windows during peak pollution hours\n"
                "• Use air purifiers indoors"
            )
        return (
            f"With poor air quality (AQI {aqi}), take these precautions:\n\n"
            "• Stay indoors as much as possible\n"
            "• Keep windows and doors closed\n"
            "• Wear N95 masks if you must go outside\n"
            "• Avoid outdoor exercise"
        )

    if any(word in msg for word in ("exercise", "jog", "run", "workout")):
        if aqi <= 2:
            return f"Yes, it's safe to exercise outdoors! With AQI at {aqi}, you can enjoy your workout. Just stay hydrated."
        if aqi == 3:
            return (
                f"With AQI at {aqi}, you can exercise but with caution:\n"
                "• Reduce intensity and duration\n"
                "• Consider indoor exercise instead\n"
                "• If you have asthma or heart conditions, exercise indoors"
            )
        return (
            f"With AQI at {aqi}, outdoor exercise is NOT recommended. Instead:\n"
            "• Exercise indoors (home workout, gym)\n"
            "• Do yoga or stretching\n"
            "• Wait for better air quality"
        )

    if "mask" in msg:
        return (
            "For air pollution protection:\n\n"
            "**Best masks:**\n• N95 or N99 respirators\n• KN95 masks\n\n"
            "**Not effective:**\n• Cloth masks\n• Surgical masks offer limited protection\n\n"
            "**Tips:**\n• Ensure proper fit with no gaps\n• Replace when breathing becomes difficult"
        )

    return (
        "I'm here to help with air quality questions! You can ask me about:\n\n"
        "• What AQI means and how to read it\n"
        "• Health effects of air pollution\n"
        "• How to protect yourself\n"
        "• When it's safe to exercise outdoors\n"
        "• Information about pollutants (PM2.5, PM10, O3, etc.)\n\n"
        + (f"{where}\n\n" if where else "")
        + "What would you like to know?"
    )


def generate_reply(
    chain: AIChain,
    store: ConversationStore,
    message: str,
    session_id: str,
    context: Mapping[str, Any] | None = None,
    timeout: float | None = None,
) -> str:
    """Answer from the AI chain, recording the turn; offline answers are not recorded."""
    prompt = build_chat_prompt(message, store.history(session_id), context)
    reply = chain.generate(prompt, temperature=CHAT_TEMPERATURE, max_tokens=CHAT_MAX_TOKENS, timeout=timeout)
    if reply is None:
        logger.info("Chat session %s answered from fallback rules", session_id)
        return fallback_reply(message, context)
    store.append(session_id, "user", message)
    store.append(session_id, "assistant", reply)
    return reply
