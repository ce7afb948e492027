"""Error taxonomy for the story generation pipeline."""

from enum import Enum
from typing import Any


class StorytimeError(Exception):
    """Base class for all application errors."""


class ConfigurationError(StorytimeError):
    """A required setting or template is missing (deployment defect)."""


class ProviderErrorKind(str, Enum):
    """Why a provider call failed."""

    UNAVAILABLE = "unavailable"
    BAD_RESPONSE = "bad_response"


class ProviderError(StorytimeError):
    """A call to an external AI provider did not produce usable output.

    Attributes:
        kind: UNAVAILABLE for transport/status failures, BAD_RESPONSE when
            the call succeeded but the expected field was missing
        provider_status: HTTP status returned by the provider (0 when no
            response was received)
        provider_body: Decoded response body or error message, for logs
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        provider_status: int,
        provider_body: Any = None,
        message: str | None = None,
    ) -> None:
        self.kind = kind
        self.provider_status = provider_status
        self.provider_body = provider_body
        super().__init__(message or f"Provider {kind.value} (status {provider_status})")


class StoryGenerationError(StorytimeError):
    """Fatal pipeline failure: story text could not be generated."""

    def __init__(self, cause: ProviderError | None = None) -> None:
        self.cause = cause
        super().__init__("Story text generation failed")


class PersistenceError(StorytimeError):
    """Writing the generated story to the store failed."""
