"""Story generation endpoint."""

import asyncio
import logging

from fastapi import APIRouter

from storytime.api.dependencies import OwnerIdDep, SettingsDep, StoryGeneratorDep
from storytime.api.v1.schemas import (
    ErrorResponse,
    GeneratedStory,
    StoryGenerateRequest,
    StoryGenerateResponse,
)
from storytime.domain.errors import StoryGenerationError
from storytime.domain.story import GenerationOptions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/stories", tags=["generation"])


@router.post(
    "/generate",
    response_model=StoryGenerateResponse,
    responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def generate_story(
    request: StoryGenerateRequest,
    owner_id: OwnerIdDep,
    generator: StoryGeneratorDep,
    settings: SettingsDep,
) -> StoryGenerateResponse:
    """Generate a story (text plus optional cover image) from a transcript."""
    defaults = GenerationOptions(
        max_tokens=settings.default_max_tokens,
        temperature=settings.default_temperature,
    )
    options = request.options.to_domain(defaults) if request.options is not None else defaults

    try:
        result = await asyncio.wait_for(
            generator.generate(request.transcript, options, owner_id),
            timeout=settings.generation_timeout_seconds,
        )
    except TimeoutError as e:
        logger.error(
            f"Story generation exceeded {settings.generation_timeout_seconds}s for owner {owner_id}"
        )
        raise StoryGenerationError() from e

    return StoryGenerateResponse(data=GeneratedStory(story=result.body))
