"""Story generation pipeline: prompt, text, image, merge, title, persist."""

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from storytime.config import Settings, get_settings
from storytime.domain.errors import PersistenceError, ProviderError, StoryGenerationError
from storytime.domain.result import Err, Ok, Result
from storytime.domain.story import GenerationOptions, Story, StoryDraft, merge_image
from storytime.infrastructure.database import transaction
from storytime.infrastructure.together_client import TogetherClient
from storytime.repositories.story_repo import StoryRepository
from storytime.services.prompt_builder import PromptBuilder
from storytime.services.title_extractor import extract_title

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Outcome of one pipeline run.

    story is None when the text was generated but could not be saved.
    """

    body: str
    title: str
    image_url: str | None
    story: Story | None


class StoryGenerator:
    """Coordinates a single synchronous story generation request.

    Stages:
    1. Prompt built from the transcript
    2. Text generated (required, failure aborts with StoryGenerationError)
    3. Image attempted (best-effort, failure only logged)
    4. Title taken from the raw text, then image markup merged into the body
    5. Story persisted in its own transaction (failure only logged)

    Holds no per-request state, so one instance can serve all requests.
    """

    def __init__(
        self,
        client: TogetherClient,
        prompt_builder: PromptBuilder,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
    ) -> None:
        self.client = client
        self.prompt_builder = prompt_builder
        self.session_factory = session_factory
        self.settings = settings or get_settings()

    async def generate(
        self,
        transcript: str,
        options: GenerationOptions,
        owner_id: int,
    ) -> GenerationResult:
        """Run the pipeline for an already validated transcript.

        Args:
            transcript: Non-empty conversation transcript
            options: Text generation parameters
            owner_id: User the story is attributed to

        Returns:
            GenerationResult with the merged body

        Raises:
            ConfigurationError: Provider credentials are missing
            StoryGenerationError: The text provider call failed
        """
        self.client.ensure_configured()
        logger.info(
            f"Generating story for owner {owner_id}: transcript={len(transcript)} chars, "
            f"max_tokens={options.max_tokens}, temperature={options.temperature}"
        )

        prompts = self.prompt_builder.build(transcript)
        logger.info("Stage prompt_built")

        image_task: asyncio.Task[Result[str, ProviderError]] | None = None
        if self.settings.story_image_enabled and self.settings.story_concurrent_image:
            image_task = asyncio.create_task(self._generate_image(transcript))

        try:
            text_result = await self.client.generate_text(
                system_prompt=prompts.system,
                user_prompt=prompts.user,
                max_tokens=options.max_tokens,
                temperature=options.temperature,
            )
            if isinstance(text_result, Err):
                error = text_result.error
                logger.error(
                    f"Stage text_failed: kind={error.kind.value} "
                    f"status={error.provider_status} body={error.provider_body}"
                )
                raise StoryGenerationError(error)

            text = text_result.value
            logger.info(f"Stage text_generated ({len(text)} chars)")

            if image_task is not None:
                image_result = await image_task
            elif self.settings.story_image_enabled:
                image_result = await self._generate_image(transcript)
            else:
                image_result = None
        finally:
            # Text failure, request timeout or cancellation abandons the image call.
            if image_task is not None and not image_task.done():
                image_task.cancel()

        image_url = None
        if isinstance(image_result, Ok):
            image_url = image_result.value
            logger.info("Stage image_attempted: image present")
        elif isinstance(image_result, Err):
            logger.warning(
                f"Stage image_attempted: no image "
                f"(status={image_result.error.provider_status}), continuing text-only"
            )

        # Title comes from the raw text; the merged body starts with image markup.
        title = extract_title(text)
        draft = StoryDraft(
            title=title,
            body=merge_image(text, image_url),
            prompt=transcript,
            owner_id=owner_id,
        )
        logger.info(f"Stage merged: title='{title}'")

        saved = await self._persist(draft)
        story = saved.value if isinstance(saved, Ok) else None

        logger.info("Stage completed")
        return GenerationResult(body=draft.body, title=title, image_url=image_url, story=story)

    async def _generate_image(self, transcript: str) -> Result[str, ProviderError]:
        """Attempt the cover image for a transcript."""
        return await self.client.generate_image(
            prompt=self.prompt_builder.build_image_prompt(transcript),
            width=self.settings.story_image_width,
            height=self.settings.story_image_height,
            steps=self.settings.story_image_steps,
        )

    async def _persist(self, draft: StoryDraft) -> Result[Story, PersistenceError]:
        """Save the draft in its own transaction."""
        story = Story.from_draft(draft)
        try:
            async with transaction(self.session_factory) as session:
                model = await StoryRepository(session).create(story)
        except (SQLAlchemyError, OSError, TimeoutError) as e:
            logger.error(
                f"Stage persist_failed: story for owner {draft.owner_id} "
                f"titled '{draft.title}' was returned but not saved: {e}"
            )
            return Err(PersistenceError(str(e)))

        story.id = model.id
        story.created_at = model.created_at
        story.updated_at = model.updated_at
        logger.info(f"Stage persisted: story id={story.id} slug={story.slug}")
        return Ok(story)
