"""
Shared FastAPI dependencies for the routers

Repositories and services are built per request from these providers, so
tests replace them with app.dependency_overrides.
"""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status

from storefront.core.auth import AdminContext, get_admin_context
from storefront.core.config import settings
from storefront.core.database import get_user_client
from storefront.domain.i18n import Language
from storefront.repositories.contact_repository import ContactMessageRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.product_repository import ProductRepository
from storefront.repositories.role_repository import RoleRepository
from storefront.repositories.storage_repository import StorageRepository
from storefront.services.cart_store import CartStore
from storefront.services.catalog_service import CatalogService
from storefront.services.notification_service import NotificationOutbox
from storefront.services.order_lifecycle_service import OrderLifecycleService
from storefront.services.session_registry import ClientSessionRegistry, is_valid_session_id


# =============================================================================
# Application state
# =============================================================================

def get_sessions(request: Request) -> ClientSessionRegistry:
    return request.app.state.sessions


def get_outbox(request: Request) -> NotificationOutbox:
    return request.app.state.outbox


# =============================================================================
# Storefront client session
# =============================================================================

def get_session_id(x_session_id: Optional[str] = Header(None)) -> str:
    """The storefront client's session id (X-Session-Id header)"""
    if not x_session_id or not is_valid_session_id(x_session_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing or invalid X-Session-Id header"
        )
    return x_session_id


def get_cart(
    session_id: str = Depends(get_session_id),
    sessions: ClientSessionRegistry = Depends(get_sessions),
) -> CartStore:
    return sessions.cart(session_id)


def get_language(
    lang: Optional[Language] = Query(None, description="Display language (en, ar)"),
    accept_language: Optional[str] = Header(None),
) -> Language:
    if lang is not None:
        return lang
    if accept_language and accept_language.strip().lower().startswith("ar"):
        return Language.AR
    return Language.EN


# =============================================================================
# Repositories and services
# =============================================================================

def get_product_repository() -> ProductRepository:
    return ProductRepository()


def get_contact_repository() -> ContactMessageRepository:
    return ContactMessageRepository()


def get_admin_contact_repository(admin: AdminContext = Depends(get_admin_context)) -> ContactMessageRepository:
    return ContactMessageRepository(get_user_client(admin.access_token))


def get_admin_role_repository(admin: AdminContext = Depends(get_admin_context)) -> RoleRepository:
    return RoleRepository(get_user_client(admin.access_token))


def get_lifecycle_service(
    admin: AdminContext = Depends(get_admin_context),
    outbox: NotificationOutbox = Depends(get_outbox),
) -> OrderLifecycleService:
    """Order service bound to the acting admin, so RLS applies to its writes"""
    return OrderLifecycleService(
        orders=OrderRepository(get_user_client(admin.access_token)),
        outbox=outbox,
        screenshots=StorageRepository(settings.PAYMENT_SCREENSHOTS_BUCKET),
        signed_url_ttl=settings.SCREENSHOT_SIGNED_URL_TTL,
    )


def get_catalog_service(admin: AdminContext = Depends(get_admin_context)) -> CatalogService:
    return CatalogService(
        products=ProductRepository(get_user_client(admin.access_token)),
        images=StorageRepository(settings.PRODUCT_IMAGES_BUCKET),
    )
