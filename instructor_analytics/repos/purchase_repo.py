from __future__ import annotations

from collections.abc import Collection
from typing import Protocol
from uuid import UUID

from instructor_analytics.models.purchase import Purchase


class PurchaseRepo(Protocol):
    async def list_completed(
        self,
        course_ids: Collection[UUID],
        *,
        user_id: UUID | None = None,
    ) -> list[Purchase]:
        """Completed purchases for the given courses.

        Optionally narrowed to one purchaser.  An empty `course_ids`
        returns [] without touching storage.
        """
        ...


class InMemoryPurchaseRepo:
    def __init__(self) -> None:
        self._store: list[Purchase] = []

    async def list_completed(
        self,
        course_ids: Collection[UUID],
        *,
        user_id: UUID | None = None,
    ) -> list[Purchase]:
        if not course_ids:
            return []
        wanted = set(course_ids)
        return [
            p
            for p in self._store
            if p.is_completed
            and p.course_id in wanted
            and (user_id is None or p.user_id == user_id)
        ]

    def add(self, purchase: Purchase) -> None:
        self._store.append(purchase)

    def clear(self) -> None:
        self._store.clear()
