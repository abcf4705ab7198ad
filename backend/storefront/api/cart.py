"""
Cart API Endpoints
Per-session shopping cart (X-Session-Id header)
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from storefront.api.deps import get_cart, get_language, get_product_repository, get_session_id, get_sessions
from storefront.api.errors import to_http_exception
from storefront.core.exceptions import StorefrontError
from storefront.domain.i18n import Language
from storefront.repositories.product_repository import ProductRepository
from storefront.services.cart_store import CartStore
from storefront.services.session_registry import ClientSessionRegistry

router = APIRouter()


# Request models
class AddItemRequest(BaseModel):
    product_id: str = Field(..., min_length=1)


class QuantityUpdate(BaseModel):
    quantity: int


class CartPanelUpdate(BaseModel):
    is_open: bool


@router.get("/")
async def get_cart_contents(
    cart: CartStore = Depends(get_cart),
    language: Language = Depends(get_language),
):
    """Cart lines, total and item count"""
    return {"status": "success", "data": cart.to_dict(language)}


@router.post("/items")
async def add_item(
    body: AddItemRequest,
    cart: CartStore = Depends(get_cart),
    repo: ProductRepository = Depends(get_product_repository),
    language: Language = Depends(get_language),
):
    """
    Add one unit of a product

    The line is a snapshot of the product at this moment (name, price, image).
    """
    try:
        product = repo.find_by_id(body.product_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    if product is None:
        raise HTTPException(status_code=404, detail=f"Product {body.product_id} not found")

    line = cart.add_to_cart(product)
    return {
        "status": "success",
        "item": line.to_dict(language),
        "data": cart.to_dict(language)
    }


@router.put("/items/{product_id}")
async def update_item_quantity(
    product_id: str,
    body: QuantityUpdate,
    cart: CartStore = Depends(get_cart),
    language: Language = Depends(get_language),
):
    """Set a line's quantity; 0 or less removes the line"""
    cart.update_quantity(product_id, body.quantity)
    return {"status": "success", "data": cart.to_dict(language)}


@router.delete("/items/{product_id}")
async def remove_item(
    product_id: str,
    cart: CartStore = Depends(get_cart),
    language: Language = Depends(get_language),
):
    cart.remove_from_cart(product_id)
    return {"status": "success", "data": cart.to_dict(language)}


@router.delete("/")
async def clear_cart(
    cart: CartStore = Depends(get_cart),
    language: Language = Depends(get_language),
):
    cart.clear_cart()
    return {"status": "success", "data": cart.to_dict(language)}


@router.delete("/session")
async def close_session(
    session_id: str = Depends(get_session_id),
    sessions: ClientSessionRegistry = Depends(get_sessions),
):
    """
    End the client session (logout or page reload)

    Drops the in-memory cart and any checkout in progress. The persisted cart
    is kept and rehydrated on the next request of the session.
    """
    sessions.close(session_id)
    return {"status": "success", "message": "Session closed"}


@router.post("/panel")
async def set_cart_panel(
    body: CartPanelUpdate,
    cart: CartStore = Depends(get_cart),
    language: Language = Depends(get_language),
):
    """Open or close the cart panel"""
    cart.set_cart_open(body.is_open)
    return {"status": "success", "data": cart.to_dict(language)}
