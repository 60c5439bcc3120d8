from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class User:
    """Reference data for a learner or instructor.  Read-only here."""

    id: UUID
    email: str
    name: str = ""
    photo_url: str | None = None
    created_at: datetime | None = None
    roles: tuple[str, ...] = ()  # immutable

    @staticmethod
    def new(
        *,
        email: str,
        name: str = "",
        photo_url: str | None = None,
        roles: tuple[str, ...] = (),
        created_at: datetime | None = None,
    ) -> User:
        return User(
            id=uuid4(),
            email=email.strip().lower(),
            name=name,
            photo_url=photo_url,
            created_at=created_at or datetime.now(UTC),
            roles=roles,
        )
