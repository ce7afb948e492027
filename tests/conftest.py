"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from storytime.api.dependencies import get_story_generator
from storytime.config import Settings, get_settings
from storytime.domain.result import Ok
from storytime.infrastructure.database import get_session, transaction
from storytime.infrastructure.models import Base, UserModel
from storytime.infrastructure.together_client import TogetherClient
from storytime.main import app
from storytime.repositories.user_repo import hash_token
from storytime.services.prompt_builder import PromptBuilder, PromptTemplate
from storytime.services.story_generator import StoryGenerator

from factories import DRAGON_STORY, IMAGE_URL, OTHER_TOKEN, TEST_TOKEN


@pytest.fixture
def test_settings() -> Settings:
    """Deterministic settings, independent of the developer's .env."""
    return Settings(_env_file=None, together_api_key="test-key")


@pytest.fixture
async def test_engine(tmp_path):
    """Create test database engine (file-backed SQLite, one connection per session)."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def test_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def user(session_factory) -> UserModel:
    """A user holding TEST_TOKEN, plus a second user holding OTHER_TOKEN."""
    async with session_factory() as session:
        user = UserModel(name="Tim", email="tim@example.com", api_token_hash=hash_token(TEST_TOKEN))
        other = UserModel(
            name="Other", email="other@example.com", api_token_hash=hash_token(OTHER_TOKEN)
        )
        session.add_all([user, other])
        await session.commit()
        return user


@pytest.fixture
def provider_client() -> TogetherClient:
    """Provider client with both network calls replaced by AsyncMocks.

    Defaults: text succeeds with DRAGON_STORY, image succeeds with IMAGE_URL.
    """
    client = TogetherClient(api_key="test-key", base_url="https://api.together.xyz/v1")
    client.generate_text = AsyncMock(return_value=Ok(DRAGON_STORY))
    client.generate_image = AsyncMock(return_value=Ok(IMAGE_URL))
    return client


@pytest.fixture
def prompt_builder() -> PromptBuilder:
    return PromptBuilder(
        PromptTemplate(
            version="test",
            system="You write children's stories.",
            user_template="**[Conversation]:**\n{conversation}\n\nConversation:",
            image_template="Cover art for: {conversation}",
        )
    )


@pytest.fixture
def generator(provider_client, prompt_builder, session_factory, test_settings) -> StoryGenerator:
    return StoryGenerator(
        client=provider_client,
        prompt_builder=prompt_builder,
        session_factory=session_factory,
        settings=test_settings,
    )


@pytest.fixture
async def client(
    session_factory, generator, test_settings
) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client wired to the test database and mocked providers."""

    async def _get_test_session() -> AsyncGenerator[AsyncSession, None]:
        async with transaction(session_factory) as session:
            yield session

    app.dependency_overrides[get_session] = _get_test_session
    app.dependency_overrides[get_story_generator] = lambda: generator
    app.dependency_overrides[get_settings] = lambda: test_settings

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
