"""
Pytest fixtures and configuration for the storefront backend tests

This file provides shared fixtures and in-memory fakes of the Supabase-backed
repositories, so services and routers are tested without a network.
"""
import os

# Settings are read at import time; keep tests independent of any local .env
os.environ.setdefault("SUPABASE_JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("CART_STORAGE_DIR", ".pytest_cart_storage")

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

import pytest
from unittest.mock import MagicMock, Mock

from storefront.core.exceptions import BackendServiceError
from storefront.core.local_storage import MemoryStorage
from storefront.domain.checkout import ImageUpload
from storefront.domain.order import Order, OrderCreate, OrderTimelineEntry
from storefront.domain.product import Category, Product
from storefront.services.cart_store import CartStore


# =============================================================================
# Fakes
# =============================================================================

class FakeOrderRepository:
    """In-memory stand-in for OrderRepository"""

    def __init__(self):
        self.rows: Dict[str, dict] = {}
        self.timeline: List[OrderTimelineEntry] = []
        self.fail_create = False
        self.commit_then_fail = False
        self.fail_lookup = False
        self.refuse_delete = False
        self.created: List[OrderCreate] = []

    def create(self, draft: OrderCreate) -> Order:
        if self.fail_create:
            raise BackendServiceError("Error creating order")
        row = draft.to_record()
        row["id"] = str(uuid.uuid4())
        row["created_at"] = datetime.now(timezone.utc).isoformat()
        self.rows[row["id"]] = row
        self.created.append(draft)
        if self.commit_then_fail:
            raise BackendServiceError("Error creating order: read timed out")
        return Order.from_record(row)

    def add_row(self, **overrides) -> Order:
        row = {
            "id": str(uuid.uuid4()),
            "order_number": "TRK-TEST1",
            "customer_name": "Ahmed Hassan",
            "customer_email": "ahmed@example.com",
            "customer_phone": "01012345678",
            "shipping_address": "12 Tahrir Street",
            "city": "Cairo",
            "items": {"version": 1, "items": [
                {"id": "p1", "name": "Oak Sofa", "name_ar": "", "price": 25000, "quantity": 2, "image": ""},
            ]},
            "subtotal": 50000,
            "shipping": 0,
            "total": 50000,
            "payment_method": "vodafone",
            "payment_status": "pending",
            "order_status": "awaiting_payment",
            "screenshot_url": "1700000000000-abc.png",
        }
        row.update(overrides)
        self.rows[row["id"]] = row
        return Order.from_record(row)

    def find_by_id(self, order_id: str) -> Optional[Order]:
        row = self.rows.get(order_id)
        return Order.from_record(row) if row else None

    def find_by_order_number(self, order_number: str) -> Optional[Order]:
        if self.fail_lookup:
            raise BackendServiceError("Error fetching order")
        for row in self.rows.values():
            if row["order_number"] == order_number:
                return Order.from_record(row)
        return None

    def find_all(self, order_status=None, payment_status=None, search=None, limit=50, offset=0):
        orders = [Order.from_record(row) for row in self.rows.values()]
        if order_status:
            orders = [o for o in orders if o.order_status.value == order_status]
        if payment_status:
            orders = [o for o in orders if o.payment_status.value == payment_status]
        return orders[offset:offset + limit], len(orders)

    def update_status(self, order_id, order_status, payment_status=None, admin_notes=None) -> Optional[Order]:
        row = self.rows.get(order_id)
        if row is None:
            return None
        row["order_status"] = order_status.value
        row["admin_notes"] = admin_notes
        if payment_status is not None:
            row["payment_status"] = payment_status.value
        return Order.from_record(row)

    def delete(self, order_id: str) -> bool:
        if self.refuse_delete or order_id not in self.rows:
            return False
        self.timeline = [entry for entry in self.timeline if entry.order_id != order_id]
        del self.rows[order_id]
        return True

    def add_timeline_entry(self, entry) -> OrderTimelineEntry:
        stored = OrderTimelineEntry(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc) + timedelta(microseconds=len(self.timeline)),
            **entry.to_record(),
        )
        self.timeline.append(stored)
        return stored

    def get_timeline(self, order_id: str) -> List[OrderTimelineEntry]:
        entries = [entry for entry in self.timeline if entry.order_id == order_id]
        return sorted(entries, key=lambda entry: entry.created_at, reverse=True)


class FakeStorage:
    """In-memory stand-in for StorageRepository"""

    def __init__(self, bucket: str = "payment-screenshots"):
        self.bucket = bucket
        self.objects: Dict[str, bytes] = {}
        self.fail_upload = False
        self.fail_remove = False
        self.upload_calls = 0

    def upload(self, key: str, data: bytes, content_type: str) -> str:
        self.upload_calls += 1
        if self.fail_upload:
            raise BackendServiceError(f"Error uploading to {self.bucket}")
        self.objects[key] = data
        return key

    def remove(self, keys: List[str]) -> None:
        if self.fail_remove:
            raise BackendServiceError(f"Error removing from {self.bucket}")
        for key in keys:
            self.objects.pop(key, None)

    def create_signed_url(self, key: str, expires_in: int) -> str:
        return f"https://storage.test/{self.bucket}/{key}?token=signed&expires={expires_in}"

    def get_public_url(self, key: str) -> str:
        return f"https://storage.test/public/{self.bucket}/{key}"


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def sample_category():
    return Category(id="c1", name="Living Room", name_ar="غرفة المعيشة", slug="living-room")


@pytest.fixture
def sample_product(sample_category):
    """A sofa priced at 25,000"""
    return Product(
        id="p1",
        name="Oak Sofa",
        name_ar="كنبة بلوط",
        slug="oak-sofa",
        price=Decimal("25000"),
        images=["https://cdn.test/oak-sofa.jpg"],
        category_id="c1",
        category=sample_category,
    )


@pytest.fixture
def second_product(sample_category):
    return Product(
        id="p2",
        name="Walnut Table",
        name_ar="طاولة جوز",
        price=Decimal("12500.50"),
        images=[],
        category_id="c1",
        category=sample_category,
    )


@pytest.fixture
def memory_storage():
    return MemoryStorage()


@pytest.fixture
def cart(memory_storage):
    return CartStore(memory_storage)


@pytest.fixture
def filled_cart(cart, sample_product):
    """Cart with two sofas (subtotal 50,000)"""
    cart.add_to_cart(sample_product)
    cart.add_to_cart(sample_product)
    return cart


@pytest.fixture
def order_repo():
    return FakeOrderRepository()


@pytest.fixture
def screenshot_storage():
    return FakeStorage()


@pytest.fixture
def valid_shipping():
    return {
        "first_name": "Ahmed",
        "last_name": "Hassan",
        "email": "ahmed@example.com",
        "phone": "01012345678",
        "address": "12 Tahrir Street, Downtown",
        "city": "Cairo",
    }


@pytest.fixture
def screenshot():
    return ImageUpload(filename="receipt.png", content_type="image/png", data=b"\x89PNG" + b"0" * 1024)


@pytest.fixture
def product_image_storage():
    return FakeStorage("product-images")


@pytest.fixture
def mock_supabase():
    """
    Factory for a MagicMock Supabase client.

    Every PostgREST builder method returns the same query mock, and each
    execute() returns the next given response (Mock with data/count).
    """
    def make(*responses):
        query = MagicMock()
        for name in ["select", "insert", "update", "delete", "eq", "order", "range", "limit",
                     "or_", "gte", "lte", "ilike"]:
            getattr(query, name).return_value = query
        query.execute.side_effect = [
            response if isinstance(response, Exception) else Mock(data=response[0], count=response[1])
            for response in responses
        ]
        client = MagicMock()
        client.table.return_value = query
        return client, query

    return make
