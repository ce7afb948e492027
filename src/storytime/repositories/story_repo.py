"""Story repository for database operations."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from storytime.domain.story import Story
from storytime.infrastructure.models import StoryModel

UPDATABLE_FIELDS = ("name", "body", "prompt")


class StoryRepository:
    """Repository for owner-scoped Story CRUD operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def create(self, story: Story) -> StoryModel:
        """Insert a new story and flush to obtain its ID."""
        model = StoryModel(
            user_id=story.owner_id,
            name=story.name,
            slug=story.slug,
            body=story.body,
            prompt=story.prompt,
        )
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return model

    async def list_by_owner(self, owner_id: int) -> list[StoryModel]:
        """List an owner's stories, newest first."""
        stmt = (
            select(StoryModel)
            .where(StoryModel.user_id == owner_id)
            .order_by(StoryModel.created_at.desc(), StoryModel.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_slug(self, slug: str) -> StoryModel | None:
        """Get a story by its slug."""
        stmt = select(StoryModel).where(StoryModel.slug == slug)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_owned_by_slug(self, slug: str, owner_id: int) -> StoryModel | None:
        """Get a story by slug only if it belongs to the given owner."""
        stmt = select(StoryModel).where(
            StoryModel.slug == slug,
            StoryModel.user_id == owner_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_by_owner(self, owner_id: int) -> int:
        """Count an owner's stories."""
        stmt = select(func.count(StoryModel.id)).where(StoryModel.user_id == owner_id)
        result = await self.session.execute(stmt)
        return result.scalar() or 0

    async def update(self, model: StoryModel, **fields: str | None) -> StoryModel:
        """Update editable fields. The slug is never regenerated."""
        for key, value in fields.items():
            if key in UPDATABLE_FIELDS and value is not None:
                setattr(model, key, value)
        await self.session.flush()
        await self.session.refresh(model)
        return model

    async def delete(self, model: StoryModel) -> None:
        """Delete a story."""
        await self.session.delete(model)
        await self.session.flush()
