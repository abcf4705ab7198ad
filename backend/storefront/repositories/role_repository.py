"""
Role Repository - user_roles table
"""
import logging
from typing import List, Optional

from storefront.core.exceptions import ConflictError
from storefront.domain.role import Role, UserRole, highest_role
from storefront.repositories.base import SupabaseRepository

logger = logging.getLogger(__name__)

ROLES_TABLE = "user_roles"


class RoleRepository(SupabaseRepository):
    """Role lookups and grants. A user may hold several roles; the highest wins."""

    def get_role(self, user_id: str) -> Optional[Role]:
        response = self._execute(
            self.client.table(ROLES_TABLE).select("role").eq("user_id", user_id),
            f"fetching roles of {user_id}",
        )
        roles = []
        for row in response.data or []:
            try:
                roles.append(Role(row["role"]))
            except (KeyError, ValueError):
                logger.warning(f"Ignoring unknown role row for user {user_id}: {row}")
        return highest_role(roles)

    def find_all(self) -> List[UserRole]:
        response = self._execute(
            self.client.table(ROLES_TABLE).select("id, user_id, role").order("role"),
            "listing user roles",
        )
        return [UserRole(**row) for row in response.data or []]

    def grant(self, user_id: str, role: Role) -> UserRole:
        existing = self._execute(
            self.client.table(ROLES_TABLE).select("id").eq("user_id", user_id).eq("role", role.value),
            f"checking role {role.value} of {user_id}",
        )
        if existing.data:
            raise ConflictError("This user already has this role")

        response = self._execute(
            self.client.table(ROLES_TABLE).insert({"user_id": user_id, "role": role.value}),
            f"granting {role.value} to {user_id}",
        )
        return UserRole(**response.data[0])

    def revoke(self, role_id: str) -> bool:
        response = self._execute(
            self.client.table(ROLES_TABLE).delete().eq("id", role_id),
            f"revoking role {role_id}",
        )
        return bool(response.data)
