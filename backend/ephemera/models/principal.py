# backend/ephemera/models/principal.py
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet


class Role(str, Enum):
    ADMIN = "admin"
    POWER_USER = "power-user"
    USER = "user"


# Available roles as constants (for validation)
AVAILABLE_ROLES = [r.value for r in Role]


@dataclass(frozen=True)
class Principal:
    """Authenticated caller and the roles resolved for it."""

    subject: str
    roles: FrozenSet[str] = field(default_factory=frozenset)

    def has_any_role(self, *roles: str) -> bool:
        return any(role in self.roles for role in roles)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN.value in self.roles
