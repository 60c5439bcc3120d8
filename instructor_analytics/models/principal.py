from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from uuid import UUID

# Admins may open their own analytics too; nobody reads another
# instructor's numbers.
ANALYTICS_ROLES = frozenset({"instructor", "admin"})


@dataclass(frozen=True, slots=True)
class Principal:
    """The caller, as described by a verified access token."""

    subject: str
    roles: frozenset[str]

    @staticmethod
    def from_claims(claims: Mapping[str, object]) -> Principal:
        roles = claims.get("roles") or ()
        if isinstance(roles, str):
            roles = roles.split()
        return Principal(
            subject=str(claims["sub"]),
            roles=frozenset(roles),  # type: ignore[arg-type]
        )

    @property
    def can_read_analytics(self) -> bool:
        return not self.roles.isdisjoint(ANALYTICS_ROLES)

    @property
    def user_id(self) -> UUID | None:
        """The subject as a user id, or None for non-user subjects."""
        try:
            return UUID(self.subject)
        except ValueError:
            return None
