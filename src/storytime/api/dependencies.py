"""FastAPI dependency injection providers."""

import logging
from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from storytime.config import Settings, get_settings
from storytime.infrastructure.database import async_session_factory, get_session
from storytime.infrastructure.models import UserModel
from storytime.infrastructure.together_client import TogetherClient
from storytime.repositories.story_repo import StoryRepository
from storytime.repositories.user_repo import UserRepository
from storytime.services.prompt_builder import PromptBuilder, get_template
from storytime.services.story_generator import StoryGenerator

logger = logging.getLogger(__name__)

# Type alias for database session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

# --- Bearer token authentication ---

_bearer = HTTPBearer(auto_error=False)
BearerDep = Annotated[HTTPAuthorizationCredentials | None, Security(_bearer)]


async def get_optional_user(
    credentials: BearerDep,
    session: SessionDep,
) -> UserModel | None:
    """Resolve the bearer token to a user, or None when absent/invalid."""
    if credentials is None:
        return None
    return await UserRepository(session).get_by_token(credentials.credentials)


OptionalUserDep = Annotated[UserModel | None, Depends(get_optional_user)]


async def get_current_user(user: OptionalUserDep) -> UserModel:
    """Require an authenticated user."""
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthenticated.")
    return user


CurrentUserDep = Annotated[UserModel, Depends(get_current_user)]


async def get_generation_owner(user: OptionalUserDep, settings: SettingsDep) -> int:
    """Resolve the owner id for a generated story once, at the API boundary.

    Outside production, ALLOW_ANONYMOUS_GENERATION attributes unauthenticated
    requests to ANONYMOUS_OWNER_ID.
    """
    if user is not None:
        return user.id
    if settings.anonymous_generation_enabled:
        logger.warning(
            f"Unauthenticated generation attributed to owner {settings.anonymous_owner_id}"
        )
        return settings.anonymous_owner_id
    raise HTTPException(status_code=401, detail="Unauthenticated.")


OwnerIdDep = Annotated[int, Depends(get_generation_owner)]


async def get_story_repository(
    session: SessionDep,
) -> AsyncGenerator[StoryRepository, None]:
    """Provide StoryRepository instance."""
    yield StoryRepository(session)


@lru_cache
def get_together_client() -> TogetherClient:
    """Shared provider client; its HTTP session is reused across requests."""
    return TogetherClient()


def get_story_generator() -> StoryGenerator:
    """Provide StoryGenerator wired to the configured prompt template."""
    settings = get_settings()
    return StoryGenerator(
        client=get_together_client(),
        prompt_builder=PromptBuilder(get_template(settings.story_prompt_version)),
        session_factory=async_session_factory,
        settings=settings,
    )


# Type aliases for commonly used dependencies
StoryRepoDep = Annotated[StoryRepository, Depends(get_story_repository)]
StoryGeneratorDep = Annotated[StoryGenerator, Depends(get_story_generator)]
