"""Domain entities, results and error taxonomy for story generation."""

from storytime.domain.errors import (
    ConfigurationError,
    PersistenceError,
    ProviderError,
    ProviderErrorKind,
    StoryGenerationError,
    StorytimeError,
)
from storytime.domain.result import Err, Ok, Result
from storytime.domain.story import (
    GenerationOptions,
    PromptPair,
    Story,
    StoryDraft,
    make_slug,
    merge_image,
)

__all__ = [
    "ConfigurationError",
    "Err",
    "GenerationOptions",
    "Ok",
    "PersistenceError",
    "PromptPair",
    "ProviderError",
    "ProviderErrorKind",
    "Result",
    "Story",
    "StoryDraft",
    "StoryGenerationError",
    "StorytimeError",
    "make_slug",
    "merge_image",
]
