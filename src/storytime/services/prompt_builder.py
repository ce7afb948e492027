"""Prompt construction from versioned template records."""

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from storytime.domain.errors import ConfigurationError
from storytime.domain.story import PromptPair

logger = logging.getLogger(__name__)

PLACEHOLDER = "{conversation}"
DEFAULT_TEMPLATE_FILE = Path(__file__).resolve().parent.parent / "prompts" / "story_generator.json"


@dataclass(frozen=True)
class PromptTemplate:
    """One versioned set of story prompts."""

    version: str
    system: str
    user_template: str
    image_template: str = ""


def load_templates(path: Path = DEFAULT_TEMPLATE_FILE) -> dict[str, PromptTemplate]:
    """Load all template versions from a JSON file keyed by version."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot load prompt templates from {path}: {e}") from e

    return {
        version: PromptTemplate(
            version=version,
            system=record.get("system", ""),
            user_template=record.get("user_template", ""),
            image_template=record.get("image_template", ""),
        )
        for version, record in raw.items()
    }


@lru_cache
def get_template(version: str, path: Path = DEFAULT_TEMPLATE_FILE) -> PromptTemplate:
    """Get a template version, validated once and cached."""
    templates = load_templates(path)
    template = templates.get(version)
    if template is None:
        raise ConfigurationError(f"Prompt template version '{version}' not found")
    if not template.system or not template.user_template:
        raise ConfigurationError(f"Prompt template '{version}' is missing system or user text")
    logger.info(f"Loaded prompt template version {version}")
    return template


class PromptBuilder:
    """Builds provider prompts from a transcript. Pure, no I/O."""

    def __init__(self, template: PromptTemplate) -> None:
        self.template = template

    def build(self, transcript: str) -> PromptPair:
        """Substitute the transcript verbatim into the user template."""
        return PromptPair(
            system=self.template.system,
            user=self.template.user_template.replace(PLACEHOLDER, transcript),
        )

    def build_image_prompt(self, transcript: str) -> str:
        """Image prompt for the cover; falls back to the raw transcript."""
        if not self.template.image_template:
            return transcript
        return self.template.image_template.replace(PLACEHOLDER, transcript)
