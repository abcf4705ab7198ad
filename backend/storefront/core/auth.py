"""
Authentication and authorization for the admin console

Validates Supabase access tokens (JWT) and resolves the caller's role from
user_roles into a capability set. Every admin route depends on
get_admin_context (or require_capability), so the role check happens once
per request, in one place.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from pydantic import BaseModel

from storefront.core.config import settings
from storefront.core.database import get_service_client
from storefront.core.exceptions import BackendServiceError
from storefront.domain.role import Role
from storefront.repositories.role_repository import RoleRepository

logger = logging.getLogger(__name__)

# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)


class TokenUser(BaseModel):
    """User data extracted from a Supabase JWT"""
    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class Capabilities:
    """What the caller may do in the admin console"""

    can_view_orders: bool = False
    can_update_orders: bool = False
    can_delete_orders: bool = False
    can_manage_roles: bool = False
    can_manage_products: bool = False
    can_view_messages: bool = False

    @classmethod
    def for_role(cls, role: Optional[Role]) -> "Capabilities":
        if role is Role.OWNER:
            return cls(
                can_view_orders=True,
                can_update_orders=True,
                can_delete_orders=True,
                can_manage_roles=True,
                can_manage_products=True,
                can_view_messages=True,
            )
        if role is Role.ADMIN:
            return cls(
                can_view_orders=True,
                can_update_orders=True,
                can_manage_products=True,
                can_view_messages=True,
            )
        return cls()

    def to_dict(self) -> dict:
        return {
            "can_view_orders": self.can_view_orders,
            "can_update_orders": self.can_update_orders,
            "can_delete_orders": self.can_delete_orders,
            "can_manage_roles": self.can_manage_roles,
            "can_manage_products": self.can_manage_products,
            "can_view_messages": self.can_view_messages,
        }


@dataclass(frozen=True)
class AdminContext:
    """Authenticated staff member for the current request"""

    user: TokenUser
    role: Role
    capabilities: Capabilities
    access_token: str

    @property
    def user_id(self) -> str:
        return self.user.id


def decode_supabase_token(token: str) -> dict:
    """
    Decode and validate a Supabase access token.

    Supabase signs session JWTs with the project's JWT secret (HS256) and
    sets aud='authenticated'; the user id is in 'sub'.
    """
    if not settings.SUPABASE_JWT_SECRET:
        raise ValueError("SUPABASE_JWT_SECRET environment variable is not set")

    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except JWTError as e:
        error_msg = str(e).lower()
        if "expired" in error_msg:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"}
        )


def get_role_repository() -> RoleRepository:
    return RoleRepository()


def force_sign_out(access_token: str) -> None:
    """Revoke a session server-side (best effort): logout and non-staff users"""
    try:
        get_service_client().auth.admin.sign_out(access_token)
        logger.info("Revoked a Supabase session")
    except Exception as e:
        logger.warning(f"Could not revoke Supabase session: {e}")


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Dependency that extracts and validates the current user from the JWT.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenUser = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = decode_supabase_token(credentials.credentials)
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing user id",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return TokenUser(id=user_id, email=payload.get("email"))


async def get_admin_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user: TokenUser = Depends(get_current_user),
    roles: RoleRepository = Depends(get_role_repository),
) -> AdminContext:
    """
    Resolve the caller's role and capabilities.

    An authenticated user without an admin/owner role has its session
    revoked and gets 403.
    """
    try:
        role = roles.get_role(user.id)
    except BackendServiceError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not verify permissions. Please try again."
        )

    if role is None or not role.is_staff:
        force_sign_out(credentials.credentials)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required."
        )

    return AdminContext(
        user=user,
        role=role,
        capabilities=Capabilities.for_role(role),
        access_token=credentials.credentials,
    )


def require_capability(capability: str):
    """
    Dependency factory for capability-based access control.

    Usage:
        @router.delete("/orders/{order_id}")
        async def delete_order(
            order_id: str,
            admin: AdminContext = Depends(require_capability("can_delete_orders"))
        ):
            ...
    """
    if not hasattr(Capabilities(), capability):
        raise ValueError(f"Unknown capability: {capability}")

    async def capability_checker(
        admin: AdminContext = Depends(get_admin_context)
    ) -> AdminContext:
        if not getattr(admin.capabilities, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Missing permission: {capability}, your role: {admin.role.value}"
            )
        return admin

    return capability_checker


# Convenience dependencies for common requirements
require_order_access = require_capability("can_view_orders")
require_order_updates = require_capability("can_update_orders")
require_order_deletion = require_capability("can_delete_orders")
require_product_management = require_capability("can_manage_products")
require_message_access = require_capability("can_view_messages")
require_role_management = require_capability("can_manage_roles")
