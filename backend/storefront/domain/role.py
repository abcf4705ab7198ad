"""
Back-office roles

owner is a superset of admin: it can also delete orders and manage roles.
"""
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    USER = "user"

    @property
    def level(self) -> int:
        return {"owner": 3, "admin": 2, "user": 1}[self.value]

    @property
    def is_staff(self) -> bool:
        return self in (Role.OWNER, Role.ADMIN)


def highest_role(roles: Iterable[Role]) -> Optional[Role]:
    roles = list(roles)
    if not roles:
        return None
    return max(roles, key=lambda role: role.level)


class UserRole(BaseModel):
    id: str
    user_id: str
    role: Role

    model_config = ConfigDict(from_attributes=True)
