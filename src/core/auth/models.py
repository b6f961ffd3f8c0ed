from dataclasses import dataclass
from enum import StrEnum


class UserRole(StrEnum):
    """Roles issued by the identity service."""

    SUPER_ADMIN = "SuperAdmin"
    ADMIN = "Admin"
    ACCOUNTANT = "Accountant"
    USER = "User"


@dataclass(frozen=True)
class Actor:
    """
    Authenticated caller.

    Users are managed by the identity service; the ledger only needs the id
    (stamped on audit records and account rows) and the role.
    """

    id: int
    role: str
    name: str | None = None

    def has_role(self, *roles: UserRole) -> bool:
        """Check if actor has any of the specified roles."""
        return self.role in [r.value for r in roles]
