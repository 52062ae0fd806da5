"""Engine, session factory and the request-scoped session dependency."""

from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from airyze.core.config import settings


def engine_options(url: str) -> dict[str, Any]:
    # SQLite connections are shared with the scheduler thread.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_size": 5, "max_overflow": 10}


engine = create_engine(settings.database_url, echo=settings.debug, **engine_options(settings.database_url))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Yield a session for one request; alert jobs open their own from SessionLocal."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
