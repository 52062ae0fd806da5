"""Process-wide collaborators built once at startup and shared by requests."""

from __future__ import annotations

from dataclasses import dataclass, field

from fastapi import Request

from airyze.core.cache import TTLCache
from airyze.core.config import Settings
from airyze.db.session import SessionLocal
from airyze.services.ai_service import AIChain, build_providers
from airyze.services.alert_scheduler import AlertScheduler
from airyze.services.alert_service import AlertDispatcher
from airyze.services.aqi_service import OpenWeatherClient
from airyze.services.chatbot_service import ConversationStore
from airyze.services.email_service import Mailer
from airyze.services.engagement_service import EngagementWriter
from airyze.services.history_service import OpenMeteoClient
from airyze.services.personalization_service import RecommendationEngine


@dataclass
class AppContext:
    settings: Settings
    aqi_client: OpenWeatherClient
    history_client: OpenMeteoClient
    chain: AIChain
    engine: RecommendationEngine
    engagement: EngagementWriter
    conversations: ConversationStore
    mailer: Mailer
    dispatcher: AlertDispatcher
    city_cache: TTLCache
    scheduler: AlertScheduler | None = None
    caches: dict[str, TTLCache] = field(default_factory=dict)


def build_context(
    settings: Settings,
    *,
    chain: AIChain | None = None,
    mailer: Mailer | None = None,
    aqi_client: OpenWeatherClient | None = None,
    history_client: OpenMeteoClient | None = None,
) -> AppContext:
    """Wire every collaborator from settings; passed-in ones replace the defaults."""
    ai_cache = TTLCache(settings.ai_cache_ttl_seconds, max_entries=settings.ai_cache_max_entries)
    city_cache = TTLCache(settings.city_cache_ttl_seconds, max_entries=16)
    chat_cache = TTLCache(settings.chat_history_ttl_seconds, max_entries=settings.ai_cache_max_entries)

    chain = chain or AIChain(build_providers(settings))
    mailer = mailer or Mailer.from_settings(settings)
    aqi_client = aqi_client or OpenWeatherClient(
        api_key=settings.openweather_api_key,
        url=settings.openweather_url,
        timeout=settings.http_timeout_seconds,
    )
    engine = RecommendationEngine(chain, ai_cache)
    dispatcher = AlertDispatcher(aqi_client, engine, mailer, dashboard_base_url=settings.public_base_url)

    ctx = AppContext(
        settings=settings,
        aqi_client=aqi_client,
        history_client=history_client or OpenMeteoClient(settings.open_meteo_url, timeout=settings.http_timeout_seconds),
        chain=chain,
        engine=engine,
        engagement=EngagementWriter(engine),
        conversations=ConversationStore(chat_cache, max_messages=settings.chat_history_max_messages),
        mailer=mailer,
        dispatcher=dispatcher,
        city_cache=city_cache,
        caches={"ai": ai_cache, "city": city_cache, "chat": chat_cache},
    )

    if settings.alerts_scheduler_enabled:
        scheduler = AlertScheduler(
            dispatcher,
            SessionLocal,
            timezone=settings.alerts_timezone,
            user_delay_seconds=settings.alerts_user_delay_seconds,
        )
        scheduler.add_sweep("ai_cache", ai_cache.sweep, settings.ai_cache_ttl_seconds)
        scheduler.add_sweep("chat_history", chat_cache.sweep, settings.chat_sweep_seconds)
        ctx.scheduler = scheduler
    return ctx


def get_context(request: Request) -> AppContext:
    return request.app.state.context
