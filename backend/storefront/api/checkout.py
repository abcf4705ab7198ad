"""
Checkout API Endpoints
Two-step checkout for the session's cart: shipping form, then payment proof

All endpoints require the X-Session-Id header. A checkout exists from
POST /start until a successful POST /confirm.
"""
from typing import Dict

from fastapi import APIRouter, Body, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel

from storefront.api.deps import get_session_id, get_sessions
from storefront.api.errors import to_http_exception
from storefront.core.config import settings
from storefront.core.exceptions import StorefrontError
from storefront.core.rate_limit import rate_limit
from storefront.domain.checkout import ImageUpload
from storefront.domain.order import PaymentMethod
from storefront.services.checkout_service import CheckoutWorkflow
from storefront.services.session_registry import ClientSessionRegistry

router = APIRouter()


# Request models
class PaymentMethodSelection(BaseModel):
    method: PaymentMethod


def get_workflow(
    session_id: str = Depends(get_session_id),
    sessions: ClientSessionRegistry = Depends(get_sessions),
) -> CheckoutWorkflow:
    workflow = sessions.checkout(session_id)
    if workflow is None:
        raise HTTPException(status_code=404, detail="No checkout in progress. Start checkout first.")
    return workflow


@router.post("/start")
async def start_checkout(
    session_id: str = Depends(get_session_id),
    sessions: ClientSessionRegistry = Depends(get_sessions),
):
    """
    Start (or restart) checkout for the session's cart

    Returns 409 with code 'empty_cart' when the cart has no items.
    """
    try:
        workflow = sessions.begin_checkout(session_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": workflow.summary()}


@router.get("/")
async def get_checkout(workflow: CheckoutWorkflow = Depends(get_workflow)):
    """Current step, form values and errors, payment method and totals"""
    return {"status": "success", "data": workflow.summary()}


@router.post("/shipping")
async def submit_shipping(
    form: Dict[str, str] = Body(..., description="first_name, last_name, email, phone, address and city"),
    workflow: CheckoutWorkflow = Depends(get_workflow),
):
    """Validate the shipping form; on success the checkout moves to the payment step"""
    try:
        workflow.submit_shipping(form)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": workflow.summary()}


@router.post("/back")
async def back_to_shipping(workflow: CheckoutWorkflow = Depends(get_workflow)):
    try:
        workflow.back()
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": workflow.summary()}


@router.post("/payment-method")
async def select_payment_method(
    body: PaymentMethodSelection,
    workflow: CheckoutWorkflow = Depends(get_workflow),
):
    try:
        workflow.select_payment_method(body.method)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": workflow.summary()}


@router.post("/screenshot")
async def attach_screenshot(
    file: UploadFile = File(..., description="Payment screenshot (image, max 5MB)"),
    workflow: CheckoutWorkflow = Depends(get_workflow),
):
    """Attach the payment proof; non-images and oversized files are rejected"""
    data = await file.read()
    upload = ImageUpload(
        filename=file.filename or "",
        content_type=file.content_type or "",
        data=data,
    )

    try:
        workflow.attach_screenshot(upload)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": workflow.summary()}


@router.delete("/screenshot")
async def remove_screenshot(workflow: CheckoutWorkflow = Depends(get_workflow)):
    workflow.remove_screenshot()
    return {"status": "success", "data": workflow.summary()}


@router.post("/confirm")
async def confirm_order(
    session_id: str = Depends(get_session_id),
    sessions: ClientSessionRegistry = Depends(get_sessions),
    workflow: CheckoutWorkflow = Depends(get_workflow),
    _: None = Depends(rate_limit(settings.CHECKOUT_RATE_LIMIT)),
):
    """
    Submit the order

    Uploads the screenshot, stores the order (awaiting_payment / pending) and
    clears the cart. On a 503 the cart is untouched and the call may be retried.
    """
    try:
        confirmation = workflow.confirm_order()
    except StorefrontError as e:
        raise to_http_exception(e)

    sessions.end_checkout(session_id)

    return {
        "status": "success",
        "message": "Order placed. We will confirm it once the payment is verified.",
        "data": confirmation.to_dict()
    }
