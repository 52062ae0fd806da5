"""Pytest fixtures."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ["ALERTS_SCHEDULER_ENABLED"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from airyze.core.config import Settings
from airyze.core.context import build_context, get_context
from airyze.core.errors import UpstreamError
from airyze.db.base import Base
from airyze.models import AQIRecord, Poll, PollVote, ReportVote, User, UserReport  # noqa: F401 - register for create_all
from airyze.main import app
from airyze.db.session import get_db
from airyze.schemas.aqi import AQIReading
from airyze.services.ai_service import AIChain, AIServiceError
from airyze.services.email_service import Mailer

TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeProvider:
    """AI provider returning canned text, or failing when ``text`` is None."""

    def __init__(self, name="fake", text=None):
        self.name = name
        self.text = text
        self.prompts = []

    def generate(self, prompt, **options):
        self.prompts.append(prompt)
        if self.text is None:
            raise AIServiceError(f"{self.name} unavailable")
        return self.text


class StubAQIClient:
    """Stands in for OpenWeatherClient; coordinates in ``failing`` raise UpstreamError."""

    def __init__(self, aqi=2):
        self.aqi = aqi
        self.failing = set()
        self.calls = []

    def fetch(self, lat, lon):
        self.calls.append((lat, lon))
        if (lat, lon) in self.failing:
            raise UpstreamError("OpenWeather request failed (500): boom")
        return AQIReading(aqi=self.aqi, components={"pm2_5": 30.5, "pm10": 60.0, "no2": 12.0})

    async def fetch_many(self, coordinates):
        results = []
        for lat, lon in coordinates:
            try:
                results.append(self.fetch(lat, lon))
            except UpstreamError as exc:
                results.append(exc)
        return results


class RecordingMailer(Mailer):
    def __init__(self):
        super().__init__(host="smtp.test", port=587, user="", password="", mock_mode=True)
        self.sent = []

    def send(self, to_addr, subject, html):
        self.sent.append({"to": to_addr, "subject": subject, "html": html})


def clear_tables():
    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture(scope="session")
def setup_db():
    """Create tables once for test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(setup_db):
    session = TestingSessionLocal()
    yield session
    session.close()
    clear_tables()


@pytest.fixture
def ai_provider():
    return FakeProvider()


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def aqi_client():
    return StubAQIClient()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def ctx(ai_provider, aqi_client, mailer):
    settings = Settings(
        database_url=TEST_DATABASE_URL,
        alerts_scheduler_enabled=False,
        alerts_user_delay_seconds=0,
        history_fetch_delay_seconds=0,
    )
    return build_context(settings, chain=AIChain([ai_provider]), mailer=mailer, aqi_client=aqi_client)


@pytest.fixture
def client(setup_db, ctx):
    """Test client with overridden DB and context."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_context] = lambda: ctx
    app.state.context = ctx
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    app.state.context = None
    clear_tables()


@pytest.fixture
def make_user(client):
    """Sign up a user and return its JSON."""
    counter = {"n": 0}

    def _make(city="Lahore", **extra):
        counter["n"] += 1
        body = {
            "name": extra.pop("name", f"User {counter['n']}"),
            "email": extra.pop("email", f"user{counter['n']}@test.com"),
            "password": extra.pop("password", "secret123"),
            "city": city,
        }
        r = client.post("/auth/signup", json=body)
        assert r.status_code == 201, r.text
        return r.json()["user"]

    return _make
