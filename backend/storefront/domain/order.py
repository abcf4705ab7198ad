"""
Order Domain Models

Represents order-related entities of the storefront: the order itself, its
denormalized item snapshot, the status lifecycle and the audit timeline.
These are the single source of truth for order data structure.
"""
import json
from enum import Enum
from pydantic import (
    AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, model_validator,
)
from typing import Any, Dict, FrozenSet, List, Optional
from datetime import datetime
from decimal import Decimal

from storefront.core.exceptions import MalformedOrderPayloadError


class OrderStatus(str, Enum):
    PENDING = "pending"  # legacy initial state
    AWAITING_PAYMENT = "awaiting_payment"
    CONFIRMED = "confirmed"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    PAYMENT_FAILED = "payment_failed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    VODAFONE = "vodafone"
    INSTAPAY = "instapay"


ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.AWAITING_PAYMENT, OrderStatus.CONFIRMED, OrderStatus.PAID,
        OrderStatus.PAYMENT_FAILED, OrderStatus.CANCELLED,
    }),
    OrderStatus.AWAITING_PAYMENT: frozenset({
        OrderStatus.CONFIRMED, OrderStatus.PAID, OrderStatus.PAYMENT_FAILED, OrderStatus.CANCELLED,
    }),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PAID, OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.PAYMENT_FAILED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Transitions that notify the customer by email
NOTIFYING_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.PAYMENT_FAILED})


def can_transition(current: OrderStatus, requested: OrderStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def derived_payment_status(status: OrderStatus) -> Optional[PaymentStatus]:
    """Payment status implied by an order status, None when it does not change"""
    if status in (OrderStatus.CONFIRMED, OrderStatus.PAID):
        return PaymentStatus.PAID
    if status is OrderStatus.PAYMENT_FAILED:
        return PaymentStatus.FAILED
    return None


class OrderItem(BaseModel):
    """
    Order line - denormalized snapshot of a cart item at submission time

    Legacy rows stored camelCase 'nameAr'; both spellings are accepted.
    """

    id: str = Field(..., min_length=1, description="Product ID")
    name: str = Field(..., description="Product name at order time")
    name_ar: str = Field("", validation_alias=AliasChoices("name_ar", "nameAr"))
    price: Decimal = Field(..., ge=0, description="Unit price at order time")
    quantity: int = Field(..., ge=1, description="Quantity ordered")
    image: str = ""

    model_config = ConfigDict(populate_by_name=True)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def to_dict(self) -> dict:
        data = self.model_dump()
        data["price"] = float(self.price)
        return data


ORDER_ITEMS_SCHEMA_VERSION = 1

_order_items_adapter = TypeAdapter(List[OrderItem])


def encode_order_items(items: List[OrderItem]) -> Dict[str, Any]:
    """Versioned, tagged structure stored in the orders.items jsonb column"""
    return {
        "version": ORDER_ITEMS_SCHEMA_VERSION,
        "items": [item.to_dict() for item in items],
    }


def decode_order_items(raw: Any) -> List[OrderItem]:
    """
    Validate the items payload read from the database.

    Accepts the current tagged structure and the legacy bare array. Anything
    else raises MalformedOrderPayloadError instead of being trusted.
    """
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise MalformedOrderPayloadError(f"Order items are not valid JSON: {e}")

    if isinstance(raw, dict):
        version = raw.get("version")
        if version != ORDER_ITEMS_SCHEMA_VERSION:
            raise MalformedOrderPayloadError(f"Unsupported order items version: {version!r}")
        raw_items = raw.get("items")
        if not isinstance(raw_items, list):
            raise MalformedOrderPayloadError("Order items payload has no 'items' list")
    elif isinstance(raw, list):
        raw_items = raw
    else:
        raise MalformedOrderPayloadError(f"Unexpected order items payload type: {type(raw).__name__}")

    try:
        return _order_items_adapter.validate_python(raw_items)
    except ValidationError as e:
        raise MalformedOrderPayloadError(f"Invalid order items: {e.error_count()} error(s)")


class Order(BaseModel):
    """
    Order domain model - a submitted purchase and its lifecycle status

    Fields:
        id: Order ID (uuid)
        order_number: Human-readable number shown to the customer (TRK-...)
        customer_name / customer_email / customer_phone: Contact details
        shipping_address / city: Delivery details
        items: Snapshot of the cart at submission time
        subtotal / shipping / total: total == subtotal + shipping
        payment_method: vodafone | instapay
        payment_status: pending | paid | failed
        order_status: Lifecycle status (see OrderStatus)
        screenshot_url: Storage key of the payment screenshot
        admin_notes: Last note written by an admin transition
        notes: Customer notes
    """

    id: str = Field(..., description="Order ID")
    order_number: Optional[str] = Field(None, description="Human-readable order number")

    customer_name: str
    customer_email: str
    customer_phone: str
    shipping_address: str
    city: str

    items: List[OrderItem] = Field(default_factory=list)

    subtotal: Decimal = Field(..., ge=0)
    shipping: Decimal = Field(Decimal("0"), ge=0)
    total: Decimal = Field(..., ge=0)

    payment_method: str
    payment_status: PaymentStatus = PaymentStatus.PENDING
    order_status: OrderStatus = OrderStatus.AWAITING_PAYMENT

    screenshot_url: Optional[str] = None
    admin_notes: Optional[str] = None
    notes: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_record(cls, row: dict) -> "Order":
        data = dict(row)
        data["items"] = decode_order_items(data.get("items"))
        return cls(**data)

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def is_paid(self) -> bool:
        return self.payment_status is PaymentStatus.PAID

    def to_dict(self) -> dict:
        """Convert to dictionary with computed fields and floats for money"""
        data = self.model_dump(mode="json")
        for field in ["subtotal", "shipping", "total"]:
            data[field] = float(getattr(self, field))
        data["items"] = [item.to_dict() for item in self.items]
        data["total_quantity"] = self.total_quantity
        data["is_paid"] = self.is_paid
        return data


class OrderCreate(BaseModel):
    """
    Schema for inserting a new order

    total is never entered: it is always subtotal + shipping.
    """

    order_number: str
    customer_name: str
    customer_email: str
    customer_phone: str
    shipping_address: str
    city: str
    items: List[OrderItem] = Field(..., min_length=1)
    subtotal: Decimal = Field(..., ge=0)
    shipping: Decimal = Field(Decimal("0"), ge=0)
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PENDING
    order_status: OrderStatus = OrderStatus.AWAITING_PAYMENT
    screenshot_url: str
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _subtotal_matches_items(self) -> "OrderCreate":
        expected = sum((item.line_total for item in self.items), Decimal("0"))
        if expected != self.subtotal:
            raise ValueError(f"subtotal {self.subtotal} does not match items total {expected}")
        return self

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.shipping

    def to_record(self) -> dict:
        return {
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "shipping_address": self.shipping_address,
            "city": self.city,
            "items": encode_order_items(self.items),
            "subtotal": float(self.subtotal),
            "shipping": float(self.shipping),
            "total": float(self.total),
            "payment_method": self.payment_method.value,
            "payment_status": self.payment_status.value,
            "order_status": self.order_status.value,
            "screenshot_url": self.screenshot_url,
            "notes": self.notes,
        }


class OrderTimelineEntry(BaseModel):
    """Append-only audit record of one status change"""

    id: str
    order_id: str
    status: str
    note: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderTimelineEntryCreate(BaseModel):
    order_id: str
    status: OrderStatus
    note: Optional[str] = None
    created_by: Optional[str] = None

    def to_record(self) -> dict:
        return {
            "order_id": self.order_id,
            "status": self.status.value,
            "note": self.note,
            "created_by": self.created_by,
        }
