"""Shared fixtures: in-memory SQLite database, fake LLM and fake providers."""
import asyncio
from typing import Any, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.dependencies import get_db, get_provider_registry, get_version_generator
from app.engine.version_generator import VersionGenerator
from app.integrations.openai_client import Completion
from app.integrations.providers import PlatformProvider, ProviderRegistry, SendResult
from app.main import create_app
from app.models import Base, Campaign
from app.models.enums import Platform, UserRole
from app.services.messages import Actor, MessageService

AUTHOR = Actor(user_id="author-1", role=UserRole.FIELD_DIRECTOR)
APPROVER = Actor(user_id="approver-1", role=UserRole.COMMUNICATIONS_DIRECTOR)
ADMIN = Actor(user_id="admin-1", role=UserRole.ADMIN)

CANDIDATE_PROFILE = {
    "personal": {"preferred_name": "Jane", "current_residence": "Springfield", "languages": ["English", "Spanish"]},
    "political": {"years_in_politics": 8},
    "campaign": {"campaign_theme": "Stronger Together", "campaign_slogan": "Jane for the People"},
    "communication": {"speaking_style": "direct", "key_messages": ["Jobs", "Schools"]},
}


class FakeLLM:
    """Stands in for OpenAIClient; records every completion request."""

    def __init__(self, content: str = "Subject: Standing with working families\n\nWe fight for you.", error=None):
        self.content = content
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, prompt, system=None, temperature=0.7, max_tokens=1000):
        self.calls.append({"prompt": prompt, "system": system, "max_tokens": max_tokens})
        if self.error is not None:
            raise self.error
        return Completion(content=self.content, model="fake-model", usage={"total_tokens": 42})


class FakeProvider(PlatformProvider):
    """Provider with a scripted outcome."""

    name = "fake"

    def __init__(self, result: Optional[SendResult] = None, error=None, delay: float = 0):
        super().__init__()
        self.result = result or SendResult.sent("ext-123")
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def send(self, recipients, subject, content, metadata):
        self.calls.append({"recipients": recipients, "subject": subject, "content": content, "metadata": metadata})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
async def campaign(db):
    campaign = Campaign(
        name="Jane 2026",
        candidate_name="Jane Doe",
        office="State Senate",
        key_positions={"healthcare": "Expand access"},
        profile=CANDIDATE_PROFILE,
        provider_settings={"EMAIL": {"recipients": ["list@example.com"]}},
    )
    db.add(campaign)
    await db.commit()
    return campaign


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def providers(provider):
    return ProviderRegistry({Platform.EMAIL: provider})


@pytest.fixture
def service(db, fake_llm):
    return MessageService(db, generator=VersionGenerator(openai_client=fake_llm))


@pytest.fixture
async def client(session_maker, fake_llm, providers):
    app = create_app()

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_provider_registry] = lambda: providers
    app.dependency_overrides[get_version_generator] = lambda: VersionGenerator(openai_client=fake_llm)

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
