"""Edge case tests for TogetherClient: provider failures, malformed payloads, timeouts."""

import logging
from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import httpx
import openai
import pytest

from storytime.domain.errors import ConfigurationError, ProviderErrorKind
from storytime.domain.result import Err, Ok
from storytime.infrastructure.together_client import TogetherClient

CHAT_URL = "https://api.together.xyz/v1/chat/completions"


def _make_client(api_key: str = "test-key") -> TogetherClient:
    return TogetherClient(
        api_key=api_key,
        base_url="https://api.together.xyz/v1",
        text_model="test-text-model",
        image_model="test-image-model",
        text_timeout_seconds=5,
        image_timeout_seconds=5,
    )


def _completion(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def _mock_openai(client: TogetherClient, **create_kwargs) -> AsyncMock:
    create = AsyncMock(**create_kwargs)
    client._openai = MagicMock()
    client._openai.chat.completions.create = create
    return create


def _status_error(status: int, body) -> openai.APIStatusError:
    response = httpx.Response(status, request=httpx.Request("POST", CHAT_URL))
    return openai.APIStatusError("provider error", response=response, body=body)


def _make_mock_response(status=200, json_data=None, text=""):
    """Create a mock aiohttp response."""
    resp = MagicMock()
    resp.status = status
    resp.json = AsyncMock(return_value=json_data)
    resp.text = AsyncMock(return_value=text)
    return resp


def _make_mock_session(response=None, side_effect=None):
    """Create a mock session whose .post() returns an async context manager."""
    mock_session = MagicMock()
    mock_session.closed = False

    @asynccontextmanager
    async def _post(*args, **kwargs):
        if side_effect is not None:
            raise side_effect
        yield response

    mock_session.post = MagicMock(side_effect=lambda *a, **kw: _post(*a, **kw))
    return mock_session


class TestGenerateText:
    """Tests for generate_text."""

    @pytest.mark.asyncio
    async def test_returns_message_content(self):
        client = _make_client()
        create = _mock_openai(client, return_value=_completion("The Dragon's Library\n\nPage 1"))

        result = await client.generate_text("system", "user", max_tokens=500, temperature=0.5)

        assert result == Ok("The Dragon's Library\n\nPage 1")
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == "test-text-model"
        assert kwargs["max_tokens"] == 500
        assert kwargs["temperature"] == 0.5
        assert kwargs["messages"] == [
            {"role": "system", "content": "system"},
            {"role": "user", "content": "user"},
        ]

    @pytest.mark.asyncio
    async def test_empty_content_is_success(self):
        client = _make_client()
        _mock_openai(client, return_value=_completion(""))

        result = await client.generate_text("s", "u", max_tokens=10, temperature=0.7)

        assert result == Ok("")

    @pytest.mark.asyncio
    async def test_status_error_returns_unavailable(self, caplog):
        client = _make_client()
        body = {"error": {"message": "Something went wrong"}}
        _mock_openai(client, side_effect=_status_error(400, body))

        with caplog.at_level(logging.ERROR):
            result = await client.generate_text("s", "u", max_tokens=10, temperature=0.7)

        assert isinstance(result, Err)
        assert result.error.kind is ProviderErrorKind.UNAVAILABLE
        assert result.error.provider_status == 400
        assert result.error.provider_body == body
        assert "text generation failed" in caplog.text

    @pytest.mark.asyncio
    async def test_server_error_returns_unavailable(self):
        client = _make_client()
        _mock_openai(client, side_effect=_status_error(503, None))

        result = await client.generate_text("s", "u", max_tokens=10, temperature=0.7)

        assert isinstance(result, Err)
        assert result.error.provider_status == 503

    @pytest.mark.asyncio
    async def test_timeout_returns_unavailable_without_status(self):
        client = _make_client()
        _mock_openai(
            client,
            side_effect=openai.APITimeoutError(request=httpx.Request("POST", CHAT_URL)),
        )

        result = await client.generate_text("s", "u", max_tokens=10, temperature=0.7)

        assert isinstance(result, Err)
        assert result.error.kind is ProviderErrorKind.UNAVAILABLE
        assert result.error.provider_status == 0

    @pytest.mark.asyncio
    async def test_missing_choices_returns_bad_response(self):
        client = _make_client()
        _mock_openai(client, return_value=SimpleNamespace(choices=[]))

        result = await client.generate_text("s", "u", max_tokens=10, temperature=0.7)

        assert isinstance(result, Err)
        assert result.error.kind is ProviderErrorKind.BAD_RESPONSE
        assert result.error.provider_status == 200

    @pytest.mark.asyncio
    async def test_null_content_returns_bad_response(self):
        client = _make_client()
        _mock_openai(client, return_value=_completion(None))

        result = await client.generate_text("s", "u", max_tokens=10, temperature=0.7)

        assert isinstance(result, Err)
        assert result.error.kind is ProviderErrorKind.BAD_RESPONSE

    @pytest.mark.asyncio
    async def test_missing_key_raises_configuration_error(self):
        client = _make_client(api_key="")
        create = _mock_openai(client, return_value=_completion("text"))

        with pytest.raises(ConfigurationError):
            await client.generate_text("s", "u", max_tokens=10, temperature=0.7)
        create.assert_not_called()

    def test_openai_client_has_no_retries(self):
        client = _make_client()
        sdk = client._get_openai()
        assert sdk.max_retries == 0
        assert str(sdk.base_url).startswith("https://api.together.xyz/v1")


class TestGenerateImage:
    """Tests for generate_image. Every failure must come back as Err."""

    @pytest.mark.asyncio
    async def test_returns_image_url(self):
        client = _make_client()
        response = _make_mock_response(json_data={"data": [{"url": "https://img/1.jpg"}]})
        session = _make_mock_session(response=response)
        client._get_session = AsyncMock(return_value=session)

        result = await client.generate_image("a dragon", width=1024, height=768, steps=4)

        assert result == Ok("https://img/1.jpg")
        args, kwargs = session.post.call_args
        assert args[0] == "https://api.together.xyz/v1/images/generations"
        assert kwargs["json"] == {
            "model": "test-image-model",
            "prompt": "a dragon",
            "width": 1024,
            "height": 768,
            "steps": 4,
            "n": 1,
        }
        assert kwargs["headers"]["Authorization"] == "Bearer test-key"

    @pytest.mark.asyncio
    async def test_non_success_status_returns_err(self, caplog):
        client = _make_client()
        response = _make_mock_response(status=503, text='{"error": "Service unavailable"}')
        client._get_session = AsyncMock(return_value=_make_mock_session(response=response))

        with caplog.at_level(logging.WARNING):
            result = await client.generate_image("a dragon", width=1024, height=768, steps=4)

        assert isinstance(result, Err)
        assert result.error.provider_status == 503
        assert "HTTP 503" in caplog.text

    @pytest.mark.asyncio
    async def test_timeout_returns_err(self):
        client = _make_client()
        client._get_session = AsyncMock(return_value=_make_mock_session(side_effect=TimeoutError()))

        result = await client.generate_image("a dragon", width=1024, height=768, steps=4)

        assert isinstance(result, Err)
        assert result.error.provider_body == "timeout"

    @pytest.mark.asyncio
    async def test_client_error_returns_err(self):
        client = _make_client()
        client._get_session = AsyncMock(
            return_value=_make_mock_session(side_effect=aiohttp.ClientConnectionError("refused"))
        )

        result = await client.generate_image("a dragon", width=1024, height=768, steps=4)

        assert isinstance(result, Err)
        assert result.error.kind is ProviderErrorKind.UNAVAILABLE

    @pytest.mark.asyncio
    async def test_unexpected_exception_returns_err(self):
        client = _make_client()
        client._get_session = AsyncMock(
            return_value=_make_mock_session(side_effect=RuntimeError("boom"))
        )

        result = await client.generate_image("a dragon", width=1024, height=768, steps=4)

        assert isinstance(result, Err)

    @pytest.mark.asyncio
    async def test_missing_url_returns_bad_response(self):
        client = _make_client()
        response = _make_mock_response(json_data={"data": []})
        client._get_session = AsyncMock(return_value=_make_mock_session(response=response))

        result = await client.generate_image("a dragon", width=1024, height=768, steps=4)

        assert isinstance(result, Err)
        assert result.error.kind is ProviderErrorKind.BAD_RESPONSE

    @pytest.mark.asyncio
    async def test_missing_key_returns_err_without_request(self):
        client = _make_client(api_key="")
        client._get_session = AsyncMock()

        result = await client.generate_image("a dragon", width=1024, height=768, steps=4)

        assert isinstance(result, Err)
        client._get_session.assert_not_called()


class TestClientLifecycle:
    """Tests for configuration checks and close()."""

    def test_is_configured(self):
        assert _make_client().is_configured is True
        assert _make_client(api_key="").is_configured is False

    def test_ensure_configured_raises(self):
        with pytest.raises(ConfigurationError):
            _make_client(api_key="").ensure_configured()

    @pytest.mark.asyncio
    async def test_close_closes_session(self):
        client = _make_client()
        session = MagicMock()
        session.closed = False
        session.close = AsyncMock()
        client._session = session

        await client.close()

        session.close.assert_awaited_once()
