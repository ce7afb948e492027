"""Story API endpoints, scoped to the authenticated owner."""

from fastapi import APIRouter, HTTPException, Response

from storytime.api.dependencies import CurrentUserDep, StoryRepoDep
from storytime.api.v1.schemas import (
    StoryCreateRequest,
    StoryEnvelope,
    StoryListEnvelope,
    StoryResource,
    StoryUpdateRequest,
)
from storytime.domain.story import Story, make_slug
from storytime.infrastructure.models import StoryModel
from storytime.repositories.story_repo import StoryRepository

router = APIRouter(prefix="/stories", tags=["stories"])


async def _get_owned_story(story_repo: StoryRepository, slug: str, owner_id: int) -> StoryModel:
    story = await story_repo.get_owned_by_slug(slug, owner_id)
    if not story:
        raise HTTPException(status_code=404, detail="Story not found")
    return story


@router.get("", response_model=StoryListEnvelope)
async def list_stories(
    user: CurrentUserDep,
    story_repo: StoryRepoDep,
) -> StoryListEnvelope:
    """List the authenticated user's stories, newest first."""
    stories = await story_repo.list_by_owner(user.id)
    return StoryListEnvelope(data=[StoryResource.model_validate(s) for s in stories])


@router.get("/{slug}", response_model=StoryEnvelope)
async def get_story(
    slug: str,
    user: CurrentUserDep,
    story_repo: StoryRepoDep,
) -> StoryEnvelope:
    """Get a single story by slug."""
    story = await _get_owned_story(story_repo, slug, user.id)
    return StoryEnvelope(data=StoryResource.model_validate(story))


@router.post("", response_model=StoryEnvelope, status_code=201)
async def create_story(
    request: StoryCreateRequest,
    user: CurrentUserDep,
    story_repo: StoryRepoDep,
) -> StoryEnvelope:
    """Save a story for the authenticated user."""
    story = Story(
        id=None,
        owner_id=user.id,
        name=request.name,
        slug=make_slug(request.name),
        body=request.body,
        prompt=request.prompt,
    )
    model = await story_repo.create(story)
    return StoryEnvelope(data=StoryResource.model_validate(model))


@router.put("/{slug}", response_model=StoryEnvelope)
async def update_story(
    slug: str,
    request: StoryUpdateRequest,
    user: CurrentUserDep,
    story_repo: StoryRepoDep,
) -> StoryEnvelope:
    """Update a story's name, body or prompt."""
    story = await _get_owned_story(story_repo, slug, user.id)
    story = await story_repo.update(
        story, name=request.name, body=request.body, prompt=request.prompt
    )
    return StoryEnvelope(data=StoryResource.model_validate(story))


@router.delete("/{slug}", status_code=204)
async def delete_story(
    slug: str,
    user: CurrentUserDep,
    story_repo: StoryRepoDep,
) -> Response:
    """Delete a story."""
    story = await _get_owned_story(story_repo, slug, user.id)
    await story_repo.delete(story)
    return Response(status_code=204)
