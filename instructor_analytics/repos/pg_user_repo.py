"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from instructor_analytics.db.tables import UserRow
from instructor_analytics.models.user import User


class PgUserRepo:
    """Satisfies the UserRepo Protocol using PostgreSQL via SQLAlchemy.

    Each call opens its own short-lived session: analytics reads fan out
    concurrently and an AsyncSession must not be shared between tasks.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_id(self, user_id: UUID) -> User | None:
        stmt = select(UserRow).where(UserRow.id == user_id)
        async with self._session_factory() as session:
            row = (await session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        stmt = select(UserRow).where(UserRow.id.in_(ids))
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return {row.id: _row_to_user(row) for row in rows}


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name or "",
        photo_url=row.photo_url,
        created_at=row.created_at,
        roles=tuple(row.roles) if row.roles else (),
    )
