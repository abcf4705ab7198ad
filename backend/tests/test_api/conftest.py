"""
Fixtures for router tests

The app is exercised through TestClient with its providers replaced by
in-memory fakes via app.dependency_overrides.
"""
import httpx
import pytest
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from storefront.api import deps
from storefront.core.auth import AdminContext, Capabilities, TokenUser, get_admin_context
from storefront.core.config import Settings
from storefront.core.local_storage import MemoryStorage
from storefront.core.rate_limit import rate_limiter
from storefront.domain.role import Role
from storefront.main import app
from storefront.services.catalog_service import CatalogService
from storefront.services.checkout_service import CheckoutWorkflow
from storefront.services.notification_service import NotificationDispatcher, NotificationOutbox
from storefront.services.order_lifecycle_service import OrderLifecycleService
from storefront.services.session_registry import ClientSessionRegistry


def admin_context(role: Role = Role.ADMIN) -> AdminContext:
    return AdminContext(
        user=TokenUser(id=f"{role.value}-1", email=f"{role.value}@example.com"),
        role=role,
        capabilities=Capabilities.for_role(role),
        access_token="test-token",
    )


@pytest.fixture(autouse=True)
def reset_app():
    rate_limiter.reset()
    yield
    app.dependency_overrides.clear()
    rate_limiter.reset()


@pytest.fixture
def delivered():
    """Payloads received by the notification edge function"""
    return []


@pytest.fixture
def outbox(delivered):
    def handler(request):
        delivered.append(request)
        return httpx.Response(200, json={"ok": True})

    config = Settings(SUPABASE_URL="https://project.supabase.test", SUPABASE_ANON_KEY="anon")
    return NotificationOutbox(NotificationDispatcher(config, transport=httpx.MockTransport(handler)))


@pytest.fixture
def sessions(order_repo, screenshot_storage):
    storages = {}
    return ClientSessionRegistry(
        lambda session_id: storages.setdefault(session_id, MemoryStorage()),
        lambda cart: CheckoutWorkflow(
            cart,
            orders=order_repo,
            screenshots=screenshot_storage,
            order_number_factory=lambda: "TRK-API01",
        ),
    )


@pytest.fixture
def product_repo(sample_product, second_product):
    repo = MagicMock()
    catalog = {product.id: product for product in [sample_product, second_product]}
    repo.find_by_id.side_effect = catalog.get
    repo.find_all.return_value = (list(catalog.values()), 2)
    return repo


@pytest.fixture
def client(sessions, outbox, product_repo):
    app.dependency_overrides[deps.get_sessions] = lambda: sessions
    app.dependency_overrides[deps.get_outbox] = lambda: outbox
    app.dependency_overrides[deps.get_product_repository] = lambda: product_repo
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def as_role(order_repo, outbox, screenshot_storage, product_repo, product_image_storage):
    """Act as a staff member of the given role in the admin routes"""
    def act(role: Role) -> AdminContext:
        context = admin_context(role)
        app.dependency_overrides[get_admin_context] = lambda: context
        app.dependency_overrides[deps.get_lifecycle_service] = lambda: OrderLifecycleService(
            order_repo, outbox, screenshots=screenshot_storage, signed_url_ttl=600,
        )
        app.dependency_overrides[deps.get_catalog_service] = lambda: CatalogService(
            product_repo, product_image_storage,
        )
        return context

    return act
