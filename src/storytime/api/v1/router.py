"""API router aggregator.

Story generation lives at /api/stories/generate (the path the mobile app
calls); the owner-scoped story resource lives under /api/v1/stories.
"""

from fastapi import APIRouter

from storytime.api.dependencies import CurrentUserDep, StoryRepoDep
from storytime.api.v1.generation import router as generation_router
from storytime.api.v1.schemas import UserResponse
from storytime.api.v1.stories import router as stories_router

router = APIRouter(prefix="/api")
router.include_router(generation_router)

v1_router = APIRouter(prefix="/v1")
v1_router.include_router(stories_router)
router.include_router(v1_router)


@router.get("/user", response_model=UserResponse, tags=["auth"])
async def current_user(user: CurrentUserDep, repo: StoryRepoDep) -> UserResponse:
    """Return the authenticated user with their story count."""
    response = UserResponse.model_validate(user)
    response.stories_count = await repo.count_by_owner(user.id)
    return response
