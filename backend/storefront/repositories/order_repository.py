"""
Order Repository - Data Access Layer for Orders

Handles all Supabase queries for orders and their timeline, and returns
Order domain models.
"""
import logging
from typing import List, Optional, Tuple

from storefront.core.exceptions import BackendServiceError, MalformedOrderPayloadError
from storefront.domain.order import (
    Order, OrderCreate, OrderStatus, OrderTimelineEntry, OrderTimelineEntryCreate, PaymentStatus,
)
from storefront.repositories.base import SupabaseRepository

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
TIMELINE_TABLE = "order_timeline"


class OrderRepository(SupabaseRepository):
    """
    Repository for Order data access

    All queries for orders and order_timeline are centralized here.
    """

    def create(self, draft: OrderCreate) -> Order:
        """
        Insert a new order

        Args:
            draft: Validated order to insert

        Returns:
            The stored Order (with id and timestamps)
        """
        response = self._execute(
            self.client.table(ORDERS_TABLE).insert(draft.to_record()),
            "creating order",
        )
        if not response.data:
            raise BackendServiceError("Order insert returned no row")
        return Order.from_record(response.data[0])

    def find_by_id(self, order_id: str) -> Optional[Order]:
        """
        Find order by ID

        Raises MalformedOrderPayloadError if the stored items do not decode.
        """
        response = self._execute(
            self.client.table(ORDERS_TABLE).select("*").eq("id", order_id).limit(1),
            f"fetching order {order_id}",
        )
        if not response.data:
            return None
        return Order.from_record(response.data[0])

    def find_by_order_number(self, order_number: str) -> Optional[Order]:
        """Find order by its human-readable number (unique)"""
        response = self._execute(
            self.client.table(ORDERS_TABLE).select("*").eq("order_number", order_number).limit(1),
            f"fetching order {order_number}",
        )
        if not response.data:
            return None
        return Order.from_record(response.data[0])

    def find_all(
        self,
        order_status: Optional[str] = None,
        payment_status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters, newest first

        Args:
            order_status: Filter by order status
            payment_status: Filter by payment status
            search: Search by order number, customer name, email, phone or city
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of orders, total count)
        """
        query = self.client.table(ORDERS_TABLE).select("*", count="exact")

        if order_status:
            query = query.eq("order_status", order_status)
        if payment_status:
            query = query.eq("payment_status", payment_status)
        if search:
            # PostgREST or-filter syntax; commas and parentheses would break it
            term = search.replace(",", " ").replace("(", " ").replace(")", " ").strip()
            query = query.or_(",".join(
                f"{column}.ilike.%{term}%"
                for column in ["order_number", "customer_name", "customer_email", "customer_phone", "city"]
            ))

        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)
        response = self._execute(query, "listing orders")

        orders = []
        for row in response.data or []:
            try:
                orders.append(Order.from_record(row))
            except MalformedOrderPayloadError as e:
                logger.error(f"Skipping order {row.get('id')} with malformed items: {e}")

        total = response.count if response.count is not None else len(orders)
        return orders, total

    def update_status(
        self,
        order_id: str,
        order_status: OrderStatus,
        payment_status: Optional[PaymentStatus] = None,
        admin_notes: Optional[str] = None,
    ) -> Optional[Order]:
        """Set the order status (and payment status when given); None if no row changed"""
        changes = {
            "order_status": order_status.value,
            "admin_notes": admin_notes,
        }
        if payment_status is not None:
            changes["payment_status"] = payment_status.value

        response = self._execute(
            self.client.table(ORDERS_TABLE).update(changes).eq("id", order_id),
            f"updating order {order_id}",
        )
        if not response.data:
            return None
        return Order.from_record(response.data[0])

    def delete(self, order_id: str) -> bool:
        """
        Delete an order and its timeline entries

        Returns False when no order row was removed (missing, or refused by
        row-level security).
        """
        self._execute(
            self.client.table(TIMELINE_TABLE).delete().eq("order_id", order_id),
            f"deleting timeline of order {order_id}",
        )
        response = self._execute(
            self.client.table(ORDERS_TABLE).delete().eq("id", order_id),
            f"deleting order {order_id}",
        )
        return bool(response.data)

    def add_timeline_entry(self, entry: OrderTimelineEntryCreate) -> OrderTimelineEntry:
        response = self._execute(
            self.client.table(TIMELINE_TABLE).insert(entry.to_record()),
            f"adding timeline entry to order {entry.order_id}",
        )
        if not response.data:
            raise BackendServiceError("Timeline insert returned no row")
        return OrderTimelineEntry(**response.data[0])

    def get_timeline(self, order_id: str) -> List[OrderTimelineEntry]:
        """Timeline entries of an order, newest first"""
        response = self._execute(
            self.client.table(TIMELINE_TABLE)
            .select("*")
            .eq("order_id", order_id)
            .order("created_at", desc=True),
            f"fetching timeline of order {order_id}",
        )
        return [OrderTimelineEntry(**row) for row in response.data or []]
