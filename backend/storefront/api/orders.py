"""
Admin Orders API Endpoints
Order review, payment approval/rejection, status changes and deletion

Every route is gated by a capability of the caller's role. Writes go through
a client carrying the admin's JWT, so row-level security applies as well.
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from pydantic import BaseModel, Field

from storefront.api.deps import get_lifecycle_service, get_outbox
from storefront.api.errors import to_http_exception
from storefront.core.auth import (
    AdminContext, require_order_access, require_order_deletion, require_order_updates,
)
from storefront.core.exceptions import StorefrontError
from storefront.domain.order import OrderStatus, PaymentStatus
from storefront.services.notification_service import NotificationOutbox
from storefront.services.order_lifecycle_service import OrderLifecycleService, TransitionResult

router = APIRouter()


# Request models
class StatusChange(BaseModel):
    status: OrderStatus
    note: Optional[str] = Field(None, max_length=1000)


class PaymentApproval(BaseModel):
    note: Optional[str] = Field(None, max_length=1000)


class PaymentRejection(BaseModel):
    reason: str = Field("", max_length=1000)


def _transition_response(result: TransitionResult, outbox: NotificationOutbox, background_tasks: BackgroundTasks) -> dict:
    if result.notification_queued:
        background_tasks.add_task(outbox.drain)
    return {"status": "success", "data": result.to_dict()}


# =============================================================================
# Notification outbox
# =============================================================================

@router.get("/notifications")
async def get_pending_notifications(
    admin: AdminContext = Depends(require_order_access),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Customer notifications not delivered yet"""
    pending = outbox.pending
    return {
        "status": "success",
        "count": len(pending),
        "data": [event.to_dict() for event in pending]
    }


@router.post("/notifications")
async def drain_notifications(
    admin: AdminContext = Depends(require_order_updates),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Retry delivery of pending notifications now"""
    report = await outbox.drain()
    return {"status": "success", "data": report.to_dict()}


# =============================================================================
# Orders
# =============================================================================

@router.get("/")
async def get_orders(
    status: Optional[OrderStatus] = Query(None, description="Filter by order status"),
    payment_status: Optional[PaymentStatus] = Query(None, description="Filter by payment status"),
    search: Optional[str] = Query(None, description="Search by order number, customer name, email, phone or city"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    admin: AdminContext = Depends(require_order_access),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    """
    Get orders, newest first

    Returns orders with items, totals and payment information
    """
    try:
        orders, total = service.list_orders(
            order_status=status.value if status else None,
            payment_status=payment_status.value if payment_status else None,
            search=search,
            limit=limit,
            offset=offset
        )
    except StorefrontError as e:
        raise to_http_exception(e)

    return {
        "status": "success",
        "total": total,
        "limit": limit,
        "offset": offset,
        "count": len(orders),
        "data": [order.to_dict() for order in orders]
    }


@router.get("/{order_id}")
async def get_order(
    order_id: str,
    admin: AdminContext = Depends(require_order_access),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    """Order detail with its status timeline (newest first)"""
    try:
        order = service.get_order(order_id)
        timeline = service.get_timeline(order_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {
        "status": "success",
        "data": {
            **order.to_dict(),
            "timeline": [entry.model_dump(mode="json") for entry in timeline],
        }
    }


@router.get("/{order_id}/screenshot")
async def get_order_screenshot(
    order_id: str,
    admin: AdminContext = Depends(require_order_access),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    """Short-lived signed URL of the payment screenshot (null when absent)"""
    try:
        url = service.get_screenshot_url(order_id)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "data": {"url": url, "expires_in": service.signed_url_ttl if url else None}}


@router.post("/{order_id}/status")
async def change_order_status(
    order_id: str,
    body: StatusChange,
    background_tasks: BackgroundTasks,
    admin: AdminContext = Depends(require_order_updates),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """
    Move an order to another status

    Returns 409 when the status is not reachable from the current one.
    """
    try:
        result = service.transition(order_id, body.status, admin.user_id, body.note)
    except StorefrontError as e:
        raise to_http_exception(e)

    return _transition_response(result, outbox, background_tasks)


@router.post("/{order_id}/approve")
async def approve_payment(
    order_id: str,
    background_tasks: BackgroundTasks,
    body: Optional[PaymentApproval] = None,
    admin: AdminContext = Depends(require_order_updates),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Payment verified: order confirmed, payment paid, customer notified"""
    try:
        result = service.approve_payment(order_id, admin.user_id, body.note if body else None)
    except StorefrontError as e:
        raise to_http_exception(e)

    return _transition_response(result, outbox, background_tasks)


@router.post("/{order_id}/reject")
async def reject_payment(
    order_id: str,
    body: PaymentRejection,
    background_tasks: BackgroundTasks,
    admin: AdminContext = Depends(require_order_updates),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
    outbox: NotificationOutbox = Depends(get_outbox),
):
    """Payment rejected with a reason: payment_failed, customer notified"""
    try:
        result = service.reject_payment(order_id, admin.user_id, body.reason)
    except StorefrontError as e:
        raise to_http_exception(e)

    return _transition_response(result, outbox, background_tasks)


@router.delete("/{order_id}")
async def delete_order(
    order_id: str,
    admin: AdminContext = Depends(require_order_deletion),
    service: OrderLifecycleService = Depends(get_lifecycle_service),
):
    """Permanently delete an order and its timeline (owner only)"""
    try:
        service.delete_order(order_id, admin.capabilities)
    except StorefrontError as e:
        raise to_http_exception(e)

    return {"status": "success", "message": f"Order {order_id} deleted"}
