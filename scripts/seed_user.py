"""Create a development user and print a bearer token for the mobile app."""

import asyncio
import secrets
import sys

from storytime.infrastructure.database import async_session_factory
from storytime.infrastructure.models import UserModel
from storytime.repositories.user_repo import hash_token


async def seed_user(name: str, email: str) -> None:
    token = secrets.token_urlsafe(32)
    async with async_session_factory() as session:
        session.add(UserModel(name=name, email=email, api_token_hash=hash_token(token)))
        await session.commit()
    print(f"Created user {email}. Bearer token (shown once): {token}")


if __name__ == "__main__":
    if len(sys.argv) != 3:
        sys.exit("usage: python scripts/seed_user.py NAME EMAIL")
    asyncio.run(seed_user(sys.argv[1], sys.argv[2]))
