from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID, uuid4

from instructor_analytics.models.money import ZERO, to_money


@dataclass(frozen=True, slots=True)
class Course:
    id: UUID
    title: str
    creator_id: UUID  # owner; never changes after creation
    price: Decimal = ZERO
    thumbnail: str | None = None
    is_published: bool = False
    # Grows only when checkout completes (outside this service).
    enrolled_students: tuple[UUID, ...] = ()

    def __post_init__(self) -> None:
        price = to_money(self.price)
        if price < 0:
            raise ValueError(f"course {self.id}: price must be non-negative")
        object.__setattr__(self, "price", price)

    @property
    def enrolled_count(self) -> int:
        return len(self.enrolled_students)

    @staticmethod
    def new(
        *,
        title: str,
        creator_id: UUID,
        price: Decimal | float = ZERO,
        thumbnail: str | None = None,
        is_published: bool = False,
        enrolled_students: tuple[UUID, ...] = (),
    ) -> Course:
        return Course(
            id=uuid4(),
            title=title,
            creator_id=creator_id,
            price=price,  # type: ignore[arg-type]
            thumbnail=thumbnail,
            is_published=is_published,
            enrolled_students=enrolled_students,
        )
