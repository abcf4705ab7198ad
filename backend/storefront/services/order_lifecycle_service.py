"""
Order Lifecycle Service
Admin-driven order status changes, audit timeline and deletion

Each transition:
1. updates order_status (and payment_status for confirm/paid/fail)
2. appends exactly one timeline entry
3. for confirmed / payment_failed, queues a customer notification

The notification is queued after the update has committed; its delivery
can never undo or block the transition.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from storefront.core.exceptions import (
    InvalidTransitionError, NotFoundError, OrderValidationError, PermissionDeniedError,
)
from storefront.domain.order import (
    NOTIFYING_STATUSES, Order, OrderStatus, OrderTimelineEntry, OrderTimelineEntryCreate,
    can_transition, derived_payment_status,
)
from storefront.services.notification_service import NotificationOutbox, OrderStatusChanged

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    order: Order
    timeline_entry: OrderTimelineEntry
    notification_queued: bool = False

    def to_dict(self) -> dict:
        return {
            "order": self.order.to_dict(),
            "timeline_entry": self.timeline_entry.model_dump(mode="json"),
            "notification_queued": self.notification_queued,
        }


class OrderLifecycleService:
    """
    Args:
        orders: OrderRepository (ideally bound to the acting admin's client so
            row-level security applies)
        outbox: NotificationOutbox receiving status-changed events
        screenshots: StorageRepository of the payment-screenshots bucket
        signed_url_ttl: Lifetime of screenshot links in seconds
    """

    def __init__(self, orders, outbox: NotificationOutbox, screenshots=None, signed_url_ttl: int = 3600):
        self.orders = orders
        self.outbox = outbox
        self.screenshots = screenshots
        self.signed_url_ttl = signed_url_ttl

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_orders(self, **filters) -> Tuple[List[Order], int]:
        return self.orders.find_all(**filters)

    def get_order(self, order_id: str) -> Order:
        order = self.orders.find_by_id(order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        return order

    def get_timeline(self, order_id: str) -> List[OrderTimelineEntry]:
        return self.orders.get_timeline(order_id)

    def get_screenshot_url(self, order_id: str) -> Optional[str]:
        """Signed URL of the payment screenshot, None when the order has none"""
        order = self.get_order(order_id)
        if not order.screenshot_url or self.screenshots is None:
            return None
        return self.screenshots.create_signed_url(order.screenshot_url, self.signed_url_ttl)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def transition(
        self,
        order_id: str,
        new_status,
        actor_id: Optional[str],
        note: Optional[str] = None,
    ) -> TransitionResult:
        """
        Move an order to new_status

        Raises:
            OrderValidationError: rejection without a note
            NotFoundError: unknown order
            InvalidTransitionError: new_status not reachable from the current one
        """
        try:
            new_status = OrderStatus(new_status)
        except ValueError:
            raise OrderValidationError({"status": f"Unknown order status: {new_status}"})

        note = note.strip() if note else None
        if new_status is OrderStatus.PAYMENT_FAILED and not note:
            raise OrderValidationError({"note": "A reason is required to reject a payment"})

        order = self.get_order(order_id)
        if not can_transition(order.order_status, new_status):
            raise InvalidTransitionError(order.order_status.value, new_status.value)

        updated = self.orders.update_status(
            order_id,
            new_status,
            payment_status=derived_payment_status(new_status),
            admin_notes=note,
        )
        if updated is None:
            # the row was visible but the update was refused (RLS) or it vanished
            raise NotFoundError(f"Order {order_id} could not be updated")

        logger.info(
            f"Order {order_id} moved {order.order_status.value} -> {new_status.value} by {actor_id}"
        )

        entry = self.orders.add_timeline_entry(OrderTimelineEntryCreate(
            order_id=order_id,
            status=new_status,
            note=note,
            created_by=actor_id,
        ))

        queued = False
        if new_status in NOTIFYING_STATUSES:
            self.outbox.enqueue(OrderStatusChanged(
                order_id=updated.id,
                order_number=updated.order_number or updated.id,
                customer_email=updated.customer_email,
                customer_name=updated.customer_name,
                status="approved" if new_status is OrderStatus.CONFIRMED else "rejected",
                reason=note,
            ))
            queued = True

        return TransitionResult(order=updated, timeline_entry=entry, notification_queued=queued)

    def approve_payment(self, order_id: str, actor_id: Optional[str], note: Optional[str] = None) -> TransitionResult:
        return self.transition(order_id, OrderStatus.CONFIRMED, actor_id, note)

    def reject_payment(self, order_id: str, actor_id: Optional[str], reason: Optional[str]) -> TransitionResult:
        return self.transition(order_id, OrderStatus.PAYMENT_FAILED, actor_id, reason)

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete_order(self, order_id: str, capabilities) -> None:
        """
        Hard-delete an order and its timeline (owner only)

        Raises:
            PermissionDeniedError: caller lacks can_delete_orders, or the
                database refused the delete
            NotFoundError: unknown order
        """
        if not capabilities.can_delete_orders:
            raise PermissionDeniedError("Only the owner can delete orders")

        self.get_order(order_id)
        if not self.orders.delete(order_id):
            raise PermissionDeniedError("Order deletion was refused by the database")

        logger.info(f"Order {order_id} deleted")
