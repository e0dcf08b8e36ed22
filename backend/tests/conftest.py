"""
Shared fixtures: an in-memory SQLite database per test and isolated settings.
"""
from datetime import datetime
from typing import Any
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.core.db import Base, utcnow
from app.models import UsageLog, User
from app.services.orchestrator import GenerationOrchestrator
from app.schemas.briefs import GenerationResult

from tests.fixtures.fakes import FakeProvider
from tests.fixtures.profile_fixtures import GENERATION_PAYLOAD, make_profile


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        RAPIDAPI_KEY="test-rapidapi-key",
        PROXYCURL_API_KEY="test-proxycurl-key",
        ANTHROPIC_API_KEY="test-anthropic-key",
        GROQ_API_KEY="test-groq-key",
    )


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, autoflush=False, autocommit=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(plan: str = "free", **fields: Any) -> User:
        counter["n"] += 1
        now = utcnow()
        user = User(
            external_id=fields.pop("external_id", f"user_{counter['n']}"),
            plan=plan,
            created_at=now,
            updated_at=now,
            **fields,
        )
        db.add(user)
        db.commit()
        return user

    return _make


@pytest.fixture
def add_usage(db):
    def _add(user: User, action: str, count: int = 1, at: datetime | None = None) -> None:
        for _ in range(count):
            db.add(UsageLog(user_id=user.id, action=action, meta={}, created_at=at or utcnow()))
        db.commit()

    return _add


@pytest.fixture
def make_orchestrator(settings):
    def _make(primary: FakeProvider | None = None, secondary: FakeProvider | None = None):
        primary = primary or FakeProvider("claude", GENERATION_PAYLOAD)
        secondary = secondary or FakeProvider("groq", GENERATION_PAYLOAD)
        return GenerationOrchestrator(primary, secondary, settings=settings), primary, secondary

    return _make


@pytest.fixture
def fake_fetcher():
    fetcher = MagicMock()
    fetcher.fetch.return_value = make_profile()
    return fetcher


@pytest.fixture
def generation_result() -> GenerationResult:
    return GenerationResult.model_validate(GENERATION_PAYLOAD)
