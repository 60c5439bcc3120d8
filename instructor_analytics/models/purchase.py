from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from instructor_analytics.models.money import to_money

PENDING = "pending"
COMPLETED = "completed"
FAILED = "failed"

PURCHASE_STATUSES = (PENDING, COMPLETED, FAILED)


@dataclass(frozen=True, slots=True)
class Purchase:
    """A checkout record.  Only completed purchases count as revenue.

    Every construction path, storage rows included, is validated: a
    negative amount or an unknown status raises ValueError.
    """

    id: UUID
    course_id: UUID
    user_id: UUID
    amount: Decimal
    status: str  # pending|completed|failed
    created_at: datetime

    def __post_init__(self) -> None:
        amount = to_money(self.amount)
        if amount < 0:
            raise ValueError(f"purchase {self.id}: amount must be non-negative")
        if self.status not in PURCHASE_STATUSES:
            raise ValueError(f"purchase {self.id}: unknown status {self.status!r}")
        object.__setattr__(self, "amount", amount)

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED

    @staticmethod
    def new(
        *,
        course_id: UUID,
        user_id: UUID,
        amount: Decimal | float,
        status: str = COMPLETED,
        created_at: datetime | None = None,
    ) -> Purchase:
        return Purchase(
            id=uuid4(),
            course_id=course_id,
            user_id=user_id,
            amount=amount,  # type: ignore[arg-type]
            status=status,
            created_at=created_at or datetime.now(UTC),
        )
