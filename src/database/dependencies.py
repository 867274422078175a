"""Database dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.client import Database


def get_database(request: Request) -> Database:
    """Return the Database owned by the running application."""
    return request.app.state.database


async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """Get a database session scoped to the current request.

    The session commits when the request handler returns normally and rolls
    back if it raises, so the writes of a single use-case land together.
    """
    async with get_database(request).session() as session:
        yield session
