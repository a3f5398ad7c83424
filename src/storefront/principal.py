"""The acting principal, as asserted by the upstream identity gateway."""

from dataclasses import dataclass
from enum import Enum


class Role(Enum):
    USER = "user"
    ADMIN = "admin"


@dataclass(frozen=True)
class Principal:
    user_id: str
    role: str = Role.USER.value

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
