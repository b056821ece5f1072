"""Role checks for payroll and scheduling operations."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

WRITE_ROLES = frozenset({"admin", "superadmin"})
READ_ROLES = WRITE_ROLES | {"manager"}
# Schedule views and shift moves are open to managers as well
SCHEDULING_ROLES = READ_ROLES


class AuthorizationError(Exception):
    """Raised when the caller's role does not permit an operation."""

    code = "forbidden"

    def __init__(self, role: str | None, required: frozenset[str]):
        self.role = role
        self.required = required
        super().__init__(
            f"Role '{role or 'anonymous'}' is not permitted; "
            f"requires one of: {', '.join(sorted(required))}"
        )


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a service operation."""

    tenant_id: UUID
    user_id: UUID | None = None
    role: str | None = None


def require_role(actor: Actor, allowed: frozenset[str] = WRITE_ROLES) -> None:
    """Raise AuthorizationError unless the actor holds one of the allowed roles."""
    if actor.role not in allowed:
        raise AuthorizationError(actor.role, allowed)
