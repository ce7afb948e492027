"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from storytime.domain.story import GenerationOptions


class GenerationOptionsRequest(BaseModel):
    """Optional generation tuning. Unknown keys are ignored."""

    model_config = ConfigDict(populate_by_name=True)

    max_tokens: int | None = Field(None, gt=0, alias="maxTokens")
    temperature: float | None = Field(None, ge=0, le=2)

    def to_domain(self, defaults: GenerationOptions) -> GenerationOptions:
        return GenerationOptions(
            max_tokens=self.max_tokens if self.max_tokens is not None else defaults.max_tokens,
            temperature=(
                self.temperature if self.temperature is not None else defaults.temperature
            ),
        )


class StoryGenerateRequest(BaseModel):
    """Request body for story generation."""

    transcript: str
    options: GenerationOptionsRequest | None = None

    @field_validator("transcript")
    @classmethod
    def transcript_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("The transcript field is required.")
        return value


class GeneratedStory(BaseModel):
    """Generated story payload."""

    story: str


class StoryGenerateResponse(BaseModel):
    """Response envelope for story generation."""

    data: GeneratedStory


class ErrorResponse(BaseModel):
    """Error body for provider and configuration failures."""

    error: str


class StoryResource(BaseModel):
    """Response schema for a story."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    body: str
    prompt: str | None
    user_id: int
    created_at: datetime
    updated_at: datetime


class StoryEnvelope(BaseModel):
    """Single story response."""

    data: StoryResource


class StoryListEnvelope(BaseModel):
    """Story collection response."""

    data: list[StoryResource]


class StoryCreateRequest(BaseModel):
    """Request body for manually saving a story.

    The mobile app sends the text as ``content``; ``body`` is also accepted.
    """

    name: str = Field(min_length=1, max_length=255)
    body: str = Field(min_length=1, validation_alias=AliasChoices("body", "content"))
    prompt: str | None = None


class StoryUpdateRequest(BaseModel):
    """Request body for updating a story. Omitted fields are unchanged."""

    name: str | None = Field(None, min_length=1, max_length=255)
    body: str | None = Field(
        None, min_length=1, validation_alias=AliasChoices("body", "content")
    )
    prompt: str | None = None


class UserResponse(BaseModel):
    """Response schema for the authenticated user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime
    stories_count: int = 0
