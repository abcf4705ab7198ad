"""
Admin API Endpoints
Product editor, contact inbox and role management for the admin console
"""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from pydantic import BaseModel

from storefront.api.deps import (
    get_admin_contact_repository, get_admin_role_repository, get_catalog_service,
)
from storefront.api.errors import to_http_exception
from storefront.core.auth import (
    AdminContext, require_message_access, require_product_management, require_role_management,
)
from storefront.core.exceptions import StorefrontError
from storefront.domain.checkout import ImageUpload
from storefront.domain.product import ProductCreate, ProductUpdate
from storefront.domain.role import Role
from storefront.repositories.contact_repository import ContactMessageRepository
from storefront.repositories.role_repository import RoleRepository
from storefront.services.catalog_service import CatalogService

logger = logging.getLogger(__name__)

router = APIRouter()


# Request models
class RoleGrant(BaseModel):
    user_id: str
    role: Role


# =============================================================================
# Products (can_manage_products)
# =============================================================================

@router.post("/products", status_code=status.HTTP_201_CREATED)
async def create_product(
    product: ProductCreate,
    admin: AdminContext = Depends(require_product_management),
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        created = catalog.create_product(product)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": created.to_dict()}


@router.patch("/products/{product_id}")
async def update_product(
    product_id: str,
    changes: ProductUpdate,
    admin: AdminContext = Depends(require_product_management),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Partial update; only the fields sent are changed"""
    try:
        updated = catalog.update_product(product_id, changes)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": updated.to_dict()}


@router.delete("/products/{product_id}")
async def delete_product(
    product_id: str,
    admin: AdminContext = Depends(require_product_management),
    catalog: CatalogService = Depends(get_catalog_service),
):
    try:
        catalog.delete_product(product_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "message": f"Product {product_id} deleted"}


@router.post("/products/images", status_code=status.HTTP_201_CREATED)
async def upload_product_image(
    file: UploadFile = File(..., description="Product image"),
    admin: AdminContext = Depends(require_product_management),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Upload an image to the product-images bucket and return its public URL"""
    upload = ImageUpload(
        filename=file.filename or "",
        content_type=file.content_type or "",
        data=await file.read(),
    )

    try:
        url = catalog.upload_image(upload)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": {"url": url}}


# =============================================================================
# Contact messages (can_view_messages)
# =============================================================================

@router.get("/messages")
async def get_messages(
    unread_only: bool = Query(False, description="Only unread messages"),
    admin: AdminContext = Depends(require_message_access),
    repo: ContactMessageRepository = Depends(get_admin_contact_repository),
):
    try:
        messages = repo.find_all(unread_only=unread_only)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {
        "status": "success",
        "count": len(messages),
        "data": [message.model_dump(mode="json") for message in messages]
    }


@router.post("/messages/{message_id}/read")
async def mark_message_read(
    message_id: str,
    admin: AdminContext = Depends(require_message_access),
    repo: ContactMessageRepository = Depends(get_admin_contact_repository),
):
    try:
        message = repo.mark_read(message_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    if message is None:
        raise HTTPException(status_code=404, detail=f"Message {message_id} not found")

    return {"status": "success", "data": message.model_dump(mode="json")}


@router.delete("/messages/{message_id}")
async def delete_message(
    message_id: str,
    admin: AdminContext = Depends(require_message_access),
    repo: ContactMessageRepository = Depends(get_admin_contact_repository),
):
    try:
        deleted = repo.delete(message_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    if not deleted:
        raise HTTPException(status_code=404, detail=f"Message {message_id} not found")

    return {"status": "success", "message": f"Message {message_id} deleted"}


# =============================================================================
# Roles (owner only)
# =============================================================================

@router.get("/roles")
async def get_roles(
    admin: AdminContext = Depends(require_role_management),
    repo: RoleRepository = Depends(get_admin_role_repository),
):
    try:
        roles = repo.find_all()
    except StorefrontError as e:
        raise to_http_exception(e)

    return {
        "status": "success",
        "count": len(roles),
        "data": [role.model_dump(mode="json") for role in roles]
    }


@router.post("/roles", status_code=status.HTTP_201_CREATED)
async def grant_role(
    body: RoleGrant,
    admin: AdminContext = Depends(require_role_management),
    repo: RoleRepository = Depends(get_admin_role_repository),
):
    """Grant a role; 409 when the user already has it"""
    try:
        granted = repo.grant(body.user_id, body.role)
    except StorefrontError as e:
        raise to_http_exception(e)

    logger.info(f"{admin.user_id} granted {body.role.value} to {body.user_id}")
    return {"status": "success", "data": granted.model_dump(mode="json")}


@router.delete("/roles/{role_id}")
async def revoke_role(
    role_id: str,
    admin: AdminContext = Depends(require_role_management),
    repo: RoleRepository = Depends(get_admin_role_repository),
):
    try:
        revoked = repo.revoke(role_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    if not revoked:
        raise HTTPException(status_code=404, detail=f"Role {role_id} not found")

    logger.info(f"{admin.user_id} revoked role {role_id}")
    return {"status": "success", "message": f"Role {role_id} revoked"}
