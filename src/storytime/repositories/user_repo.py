"""User repository for token-based identity lookup."""

import hashlib

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storytime.infrastructure.models import UserModel


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a plain API token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class UserRepository:
    """Repository for user lookups."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session."""
        self.session = session

    async def get_by_token(self, token: str) -> UserModel | None:
        """Resolve a plain bearer token to its user."""
        if not token:
            return None
        stmt = select(UserModel).where(UserModel.api_token_hash == hash_token(token))
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
