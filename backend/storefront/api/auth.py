"""
Authentication API endpoints for the admin console
- Login with email/password (Supabase Auth), staff accounts only
- Logout
- Current user, role and capabilities
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, EmailStr, Field

from storefront.api.errors import to_http_exception
from storefront.core.auth import (
    AdminContext, Capabilities, TokenUser, force_sign_out, get_admin_context, get_current_user,
    get_role_repository, security,
)
from storefront.core.config import settings
from storefront.core.database import get_anon_client
from storefront.core.exceptions import AuthenticationError, BackendServiceError, StorefrontError
from storefront.core.rate_limit import rate_limit
from storefront.repositories.role_repository import RoleRepository

logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Pydantic Models
# =============================================================================

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


# =============================================================================
# Helpers
# =============================================================================

def get_auth_client():
    """Anon Supabase client used for password sign-in"""
    return get_anon_client()


def sign_in(client, email: str, password: str):
    """
    Password sign-in through Supabase Auth.

    Raises:
        AuthenticationError: wrong credentials
        BackendServiceError: Supabase unreachable or misbehaving
    """
    try:
        response = client.auth.sign_in_with_password({"email": email, "password": password})
    except Exception as e:
        if getattr(e, "status", None) in (400, 401):
            raise AuthenticationError("Invalid email or password")
        logger.error(f"Supabase sign-in failed: {e}")
        raise BackendServiceError("Authentication service unavailable", cause=e)

    if response is None or response.session is None or response.user is None:
        raise AuthenticationError("Invalid email or password")
    return response


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/login")
async def login(
    body: LoginRequest,
    client=Depends(get_auth_client),
    roles: RoleRepository = Depends(get_role_repository),
    _: None = Depends(rate_limit(settings.LOGIN_RATE_LIMIT)),
):
    """
    Sign in to the admin console

    Accounts without an admin/owner role are signed out again and get 403.
    """
    try:
        response = sign_in(client, body.email, body.password)
        role = roles.get_role(response.user.id)
    except StorefrontError as e:
        raise to_http_exception(e)

    session = response.session

    if role is None or not role.is_staff:
        logger.warning(f"Login refused for non-staff account {response.user.id}")
        force_sign_out(session.access_token)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin privileges required."
        )

    logger.info(f"Admin login: {response.user.id} ({role.value})")

    return {
        "status": "success",
        "data": {
            "access_token": session.access_token,
            "refresh_token": session.refresh_token,
            "expires_at": session.expires_at,
            "token_type": "bearer",
            "user": {"id": response.user.id, "email": response.user.email},
            "role": role.value,
            "capabilities": Capabilities.for_role(role).to_dict(),
        }
    }


@router.post("/logout")
async def logout(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    user: TokenUser = Depends(get_current_user),
):
    """Revoke the caller's session"""
    force_sign_out(credentials.credentials)
    return {"status": "success", "message": f"Signed out {user.email or user.id}"}


@router.get("/me")
async def get_me(admin: AdminContext = Depends(get_admin_context)):
    """Current staff member with role and capabilities"""
    return {
        "status": "success",
        "data": {
            "user": admin.user.model_dump(),
            "role": admin.role.value,
            "capabilities": admin.capabilities.to_dict(),
        }
    }
