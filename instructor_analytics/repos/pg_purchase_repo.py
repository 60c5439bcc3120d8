"""PostgreSQL implementation of PurchaseRepo."""

from __future__ import annotations

from collections.abc import Collection
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from instructor_analytics.db.tables import PurchaseRow
from instructor_analytics.models.purchase import COMPLETED, Purchase


class PgPurchaseRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_completed(
        self,
        course_ids: Collection[UUID],
        *,
        user_id: UUID | None = None,
    ) -> list[Purchase]:
        if not course_ids:
            return []
        stmt = select(PurchaseRow).where(
            PurchaseRow.course_id.in_(list(course_ids)),
            PurchaseRow.status == COMPLETED,
        )
        if user_id is not None:
            stmt = stmt.where(PurchaseRow.user_id == user_id)
        stmt = stmt.order_by(PurchaseRow.created_at, PurchaseRow.id)

        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_purchase(row) for row in rows]


def _row_to_purchase(row: PurchaseRow) -> Purchase:
    return Purchase(
        id=row.id,
        course_id=row.course_id,
        user_id=row.user_id,
        amount=row.amount,
        status=row.status,
        created_at=row.created_at,
    )
