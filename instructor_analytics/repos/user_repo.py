from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol
from uuid import UUID

from instructor_analytics.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, User]: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def get_many(self, user_ids: Iterable[UUID]) -> dict[UUID, User]:
        # Missing ids are simply absent from the result.
        return {uid: self._by_id[uid] for uid in set(user_ids) if uid in self._by_id}

    def add(self, user: User) -> None:
        if user.id in self._by_id:
            raise ValueError("user already exists")
        self._by_id[user.id] = user

    def clear(self) -> None:
        self._by_id.clear()
