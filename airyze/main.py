"""airyze FastAPI application."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from airyze.api import alerts, aqi, auth, chatbot, cities, engagement, health, history, personalization, polls, reports
from airyze.core.config import settings
from airyze.core.context import build_context
from airyze.core.errors import register_exception_handlers

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared context and run the alert scheduler for the app's lifetime."""
    if getattr(app.state, "context", None) is None:
        app.state.context = build_context(settings)
    ctx = app.state.context
    if ctx.scheduler is not None:
        ctx.scheduler.start()
    logger.info("%s started", settings.app_name)
    yield
    if ctx.scheduler is not None:
        ctx.scheduler.shutdown()
    logger.info("%s stopped", settings.app_name)


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(aqi.router)
app.include_router(history.router)
app.include_router(cities.router)
app.include_router(reports.router)
app.include_router(polls.router)
app.include_router(alerts.router)
app.include_router(personalization.router)
app.include_router(chatbot.router)
app.include_router(engagement.router)
