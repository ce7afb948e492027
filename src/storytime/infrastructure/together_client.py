"""Together AI client for story text and cover image generation."""

import logging
from typing import Any

import aiohttp
from aiohttp import ClientTimeout
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from storytime.config import Settings, get_settings
from storytime.domain.errors import ConfigurationError, ProviderError, ProviderErrorKind
from storytime.domain.result import Err, Ok, Result

logger = logging.getLogger(__name__)


class TogetherClient:
    """Async client for the Together AI chat and image endpoints.

    Text generation goes through the OpenAI SDK (Together exposes an
    OpenAI-compatible API). Image generation uses a plain aiohttp POST since
    it takes Together-specific size and step parameters.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        text_model: str | None = None,
        image_model: str | None = None,
        text_timeout_seconds: float | None = None,
        image_timeout_seconds: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: Together API key (defaults to config)
            base_url: API base URL, e.g. https://api.together.xyz/v1
            text_model: Chat model identifier
            image_model: Image model identifier
            text_timeout_seconds: Timeout for the chat completion call
            image_timeout_seconds: Timeout for the image generation call
            settings: Settings to read defaults from
        """
        settings = settings or get_settings()
        self.api_key = settings.together_api_key if api_key is None else api_key
        self.base_url = (base_url or settings.together_base_url).rstrip("/")
        self.text_model = text_model or settings.story_text_model
        self.image_model = image_model or settings.story_image_model
        self.text_timeout = text_timeout_seconds or settings.text_timeout_seconds
        self.image_timeout = ClientTimeout(
            total=image_timeout_seconds or settings.image_timeout_seconds
        )
        self._openai: AsyncOpenAI | None = None
        self._session: aiohttp.ClientSession | None = None

    @property
    def is_configured(self) -> bool:
        """Check whether an API key is available."""
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        """Raise ConfigurationError when no API key is configured."""
        if not self.is_configured:
            raise ConfigurationError("TOGETHER_API_KEY is not configured")

    def _get_openai(self) -> AsyncOpenAI:
        """Get or create the OpenAI SDK client."""
        if self._openai is None:
            self._openai = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.text_timeout,
                max_retries=0,
            )
        return self._openai

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.image_timeout)
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP clients."""
        if self._session and not self._session.closed:
            await self._session.close()
        if self._openai is not None:
            await self._openai.close()
            self._openai = None

    async def generate_text(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> Result[str, ProviderError]:
        """Generate story text with a single chat completion call.

        Args:
            system_prompt: System role message
            user_prompt: User role message
            max_tokens: Completion token limit
            temperature: Sampling temperature

        Returns:
            Ok with the message content (possibly empty), or Err with a
            ProviderError when the call failed or the content is missing
        """
        self.ensure_configured()

        try:
            completion = await self._get_openai().chat.completions.create(
                model=self.text_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except APIStatusError as e:
            logger.error(f"Together text generation failed: status={e.status_code} body={e.body}")
            return Err(ProviderError(ProviderErrorKind.UNAVAILABLE, e.status_code, e.body))
        except APIConnectionError as e:
            logger.error(f"Together text generation unreachable: {e}")
            return Err(ProviderError(ProviderErrorKind.UNAVAILABLE, 0, str(e)))

        content = _extract_message_content(completion)
        if content is None:
            logger.error("Together text response missing choices[0].message.content")
            return Err(
                ProviderError(ProviderErrorKind.BAD_RESPONSE, 200, _dump(completion))
            )

        logger.info(f"Together text generation succeeded ({len(content)} chars)")
        return Ok(content)

    async def generate_image(
        self,
        prompt: str,
        width: int,
        height: int,
        steps: int,
    ) -> Result[str, ProviderError]:
        """Generate a cover image. Best-effort: never raises.

        Args:
            prompt: Image description
            width: Image width in pixels
            height: Image height in pixels
            steps: Diffusion steps

        Returns:
            Ok with the image URL, or Err describing why there is no image
        """
        if not self.is_configured:
            return Err(ProviderError(ProviderErrorKind.UNAVAILABLE, 0, "not configured"))

        url = f"{self.base_url}/images/generations"
        payload = {
            "model": self.image_model,
            "prompt": prompt,
            "width": width,
            "height": height,
            "steps": steps,
            "n": 1,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

        try:
            session = await self._get_session()
            async with session.post(url, json=payload, headers=headers) as response:
                if response.status != 200:
                    body = await response.text()
                    logger.warning(f"Together image generation failed: HTTP {response.status}")
                    return Err(
                        ProviderError(ProviderErrorKind.UNAVAILABLE, response.status, body)
                    )
                data = await response.json(content_type=None)
        except TimeoutError:
            logger.warning(f"Timeout generating image after {self.image_timeout.total}s")
            return Err(ProviderError(ProviderErrorKind.UNAVAILABLE, 0, "timeout"))
        except aiohttp.ClientError as e:
            logger.warning(f"Client error generating image: {e}")
            return Err(ProviderError(ProviderErrorKind.UNAVAILABLE, 0, str(e)))
        except Exception as e:
            # Image generation must not take the pipeline down
            logger.warning(f"Unexpected error generating image: {e}", exc_info=True)
            return Err(ProviderError(ProviderErrorKind.UNAVAILABLE, 0, str(e)))

        image_url = _extract_image_url(data)
        if not image_url:
            logger.warning("Together image response missing data[0].url")
            return Err(ProviderError(ProviderErrorKind.BAD_RESPONSE, 200, data))

        logger.info("Together image generation succeeded")
        return Ok(image_url)


def _extract_message_content(completion: Any) -> str | None:
    """Read choices[0].message.content, tolerating malformed payloads."""
    try:
        content = completion.choices[0].message.content
    except (AttributeError, IndexError, KeyError, TypeError):
        return None
    return content if isinstance(content, str) else None


def _extract_image_url(data: Any) -> str | None:
    """Read data[0].url from an image generation payload."""
    try:
        image_url = data["data"][0]["url"]
    except (IndexError, KeyError, TypeError):
        return None
    return image_url if isinstance(image_url, str) else None


def _dump(completion: Any) -> Any:
    """Best-effort serialisation of an SDK response for logging."""
    model_dump = getattr(completion, "model_dump", None)
    if callable(model_dump):
        return model_dump()
    return completion
