"""Story domain entities."""

import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime

SLUG_SUFFIX_LENGTH = 6
SLUG_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
NAME_MAX_LENGTH = 255


@dataclass(frozen=True)
class GenerationOptions:
    """Tunable parameters for one text generation call."""

    max_tokens: int = 2000
    temperature: float = 0.7


@dataclass(frozen=True)
class PromptPair:
    """System and user prompt sent to the text provider."""

    system: str
    user: str


@dataclass
class StoryDraft:
    """Merged generation output, alive only for one request."""

    title: str
    body: str
    prompt: str
    owner_id: int


@dataclass
class Story:
    """Represents a persisted user story."""

    id: int | None
    owner_id: int
    name: str
    slug: str
    body: str
    prompt: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_draft(cls, draft: StoryDraft) -> "Story":
        """Create an unsaved Story from a generation draft."""
        name = draft.title[:NAME_MAX_LENGTH]
        return cls(
            id=None,
            owner_id=draft.owner_id,
            name=name,
            slug=make_slug(name),
            body=draft.body,
            prompt=draft.prompt,
        )


def slugify(name: str) -> str:
    """Convert a story name to a URL-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r"[^a-z0-9]+", "-", slug)
    return slug.strip("-")


def make_slug(name: str) -> str:
    """Build a slug with a short random suffix.

    The suffix makes collisions unlikely; it is not checked against
    existing rows.
    """
    suffix = "".join(secrets.choice(SLUG_SUFFIX_ALPHABET) for _ in range(SLUG_SUFFIX_LENGTH))
    base = slugify(name)
    return f"{base}-{suffix}" if base else suffix


def merge_image(text: str, image_url: str | None) -> str:
    """Prepend image markup to the story text when an image exists."""
    if not image_url:
        return text
    return f"![]({image_url})\n\n{text}"
