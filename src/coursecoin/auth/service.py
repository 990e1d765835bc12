"""User lookups used by authentication and the ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import select

from coursecoin.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(
        select(User).where(User.id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()
