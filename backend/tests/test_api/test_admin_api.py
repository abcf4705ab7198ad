"""
Router tests for the admin console: orders, products, inbox and roles

Authentication is replaced by a fixed AdminContext (see as_role); the JWT
guard itself is covered in test_auth_api.py.
"""
import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from storefront.api import deps
from storefront.core.exceptions import ConflictError
from storefront.domain.contact import ContactMessage
from storefront.domain.role import Role, UserRole
from storefront.main import app


@pytest.fixture
def order(order_repo):
    return order_repo.add_row()


class TestOrders:

    def test_list_orders(self, client, as_role, order):
        as_role(Role.ADMIN)

        response = client.get("/api/v1/admin/orders/?status=awaiting_payment")

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 1
        assert body["data"][0]["order_number"] == "TRK-TEST1"
        assert body["data"][0]["total"] == 50000.0

    def test_detail_has_timeline(self, client, as_role, order):
        as_role(Role.ADMIN)
        client.post(f"/api/v1/admin/orders/{order.id}/approve", json={})

        response = client.get(f"/api/v1/admin/orders/{order.id}")

        [entry] = response.json()["data"]["timeline"]
        assert entry["status"] == "confirmed"
        assert entry["created_by"] == "admin-1"

    def test_unknown_order(self, client, as_role):
        as_role(Role.ADMIN)

        response = client.get("/api/v1/admin/orders/missing")

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "not_found"

    def test_screenshot_link(self, client, as_role, order):
        as_role(Role.ADMIN)

        response = client.get(f"/api/v1/admin/orders/{order.id}/screenshot")

        data = response.json()["data"]
        assert data["url"].startswith("https://storage.test/payment-screenshots/1700000000000-abc.png")
        assert data["expires_in"] == 600

    def test_approve_notifies_customer(self, client, as_role, order, outbox, delivered):
        as_role(Role.ADMIN)

        response = client.post(f"/api/v1/admin/orders/{order.id}/approve", json={"note": "Transfer received"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["order"]["order_status"] == "confirmed"
        assert data["order"]["payment_status"] == "paid"
        assert data["notification_queued"] is True

        # delivered by the background task after the response
        [request] = delivered
        assert request.url.path == "/functions/v1/send-order-notification"
        assert json.loads(request.content)["status"] == "approved"
        assert outbox.pending == []

    def test_reject_requires_reason(self, client, as_role, order, order_repo):
        as_role(Role.ADMIN)

        response = client.post(f"/api/v1/admin/orders/{order.id}/reject", json={"reason": " "})

        assert response.status_code == 422
        assert "note" in response.json()["detail"]["errors"]
        assert order_repo.find_by_id(order.id).order_status.value == "awaiting_payment"

    def test_reject_payment(self, client, as_role, order, delivered):
        as_role(Role.ADMIN)

        response = client.post(f"/api/v1/admin/orders/{order.id}/reject", json={"reason": "Amount does not match"})

        assert response.json()["data"]["order"]["payment_status"] == "failed"
        assert json.loads(delivered[0].content)["reason"] == "Amount does not match"

    def test_invalid_transition(self, client, as_role, order):
        as_role(Role.ADMIN)

        response = client.post(f"/api/v1/admin/orders/{order.id}/status", json={"status": "delivered"})

        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "invalid_transition"

    def test_status_change_without_notification(self, client, as_role, order_repo, delivered):
        as_role(Role.ADMIN)
        confirmed = order_repo.add_row(order_status="confirmed", payment_status="paid")

        response = client.post(f"/api/v1/admin/orders/{confirmed.id}/status", json={"status": "processing"})

        assert response.json()["data"]["notification_queued"] is False
        assert delivered == []

    def test_admin_cannot_delete(self, client, as_role, order, order_repo):
        as_role(Role.ADMIN)

        response = client.delete(f"/api/v1/admin/orders/{order.id}")

        assert response.status_code == 403
        assert order.id in order_repo.rows

    def test_owner_deletes(self, client, as_role, order, order_repo):
        as_role(Role.OWNER)

        response = client.delete(f"/api/v1/admin/orders/{order.id}")

        assert response.status_code == 200
        assert order.id not in order_repo.rows

    def test_delete_refused_by_database(self, client, as_role, order, order_repo):
        as_role(Role.OWNER)
        order_repo.refuse_delete = True

        response = client.delete(f"/api/v1/admin/orders/{order.id}")

        assert response.status_code == 403
        assert response.json()["detail"]["code"] == "permission_denied"

    def test_pending_notifications(self, client, as_role, outbox):
        as_role(Role.ADMIN)

        response = client.get("/api/v1/admin/orders/notifications")

        assert response.status_code == 200
        assert response.json()["count"] == 0


class TestProducts:

    def test_create_product(self, client, as_role, product_repo, sample_product):
        as_role(Role.ADMIN)
        product_repo.create.return_value = sample_product

        response = client.post("/api/v1/admin/products", json={"name": "Oak Sofa", "price": 25000})

        assert response.status_code == 201
        assert response.json()["data"]["id"] == "p1"
        assert product_repo.create.call_args[0][0].price == Decimal("25000")

    def test_negative_price_rejected(self, client, as_role, product_repo):
        as_role(Role.ADMIN)

        response = client.post("/api/v1/admin/products", json={"name": "Oak Sofa", "price": -1})

        assert response.status_code == 422
        product_repo.create.assert_not_called()

    def test_update_missing_product(self, client, as_role, product_repo):
        as_role(Role.ADMIN)
        product_repo.update.return_value = None

        response = client.patch("/api/v1/admin/products/nope", json={"in_stock": False})

        assert response.status_code == 404

    def test_upload_image(self, client, as_role, product_image_storage):
        as_role(Role.ADMIN)

        response = client.post(
            "/api/v1/admin/products/images",
            files={"file": ("sofa.jpg", b"\xff\xd8\xff" + b"0" * 64, "image/jpeg")},
        )

        assert response.status_code == 201
        assert response.json()["data"]["url"].startswith("https://storage.test/public/product-images/")
        assert len(product_image_storage.objects) == 1


class TestMessages:

    @pytest.fixture
    def inbox(self, client):
        repo = MagicMock()
        app.dependency_overrides[deps.get_admin_contact_repository] = lambda: repo
        return repo

    def test_list_unread(self, client, as_role, inbox):
        as_role(Role.ADMIN)
        inbox.find_all.return_value = [
            ContactMessage(id="m1", name="Sara", email="sara@example.com", subject="Hi", message="Hello"),
        ]

        response = client.get("/api/v1/admin/messages?unread_only=true")

        assert response.json()["count"] == 1
        inbox.find_all.assert_called_once_with(unread_only=True)

    def test_mark_missing_message_read(self, client, as_role, inbox):
        as_role(Role.ADMIN)
        inbox.mark_read.return_value = None

        assert client.post("/api/v1/admin/messages/m9/read").status_code == 404


class TestRoles:

    @pytest.fixture
    def role_repo(self, client):
        repo = MagicMock()
        app.dependency_overrides[deps.get_admin_role_repository] = lambda: repo
        return repo

    def test_admin_cannot_manage_roles(self, client, as_role, role_repo):
        as_role(Role.ADMIN)

        response = client.get("/api/v1/admin/roles")

        assert response.status_code == 403
        role_repo.find_all.assert_not_called()

    def test_owner_grants_role(self, client, as_role, role_repo):
        as_role(Role.OWNER)
        role_repo.grant.return_value = UserRole(id="r1", user_id="u2", role=Role.ADMIN)

        response = client.post("/api/v1/admin/roles", json={"user_id": "u2", "role": "admin"})

        assert response.status_code == 201
        role_repo.grant.assert_called_once_with("u2", Role.ADMIN)

    def test_duplicate_grant(self, client, as_role, role_repo):
        as_role(Role.OWNER)
        role_repo.grant.side_effect = ConflictError("This user already has this role")

        response = client.post("/api/v1/admin/roles", json={"user_id": "u2", "role": "admin"})

        assert response.status_code == 409
