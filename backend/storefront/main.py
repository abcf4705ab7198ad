"""
Capital Furniture - Backend API
Storefront (catalog, cart, checkout) and admin console API
"""
import logging
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables before settings are read
env_path = Path(__file__).parent.parent / '.env'
load_dotenv(env_path)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api import admin, auth, cart, checkout, contact, orders, products
from storefront.core.config import settings
from storefront.core.rate_limit import RateLimitMiddleware
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.storage_repository import StorageRepository
from storefront.services.checkout_service import CheckoutWorkflow
from storefront.services.notification_service import NotificationDispatcher, NotificationOutbox
from storefront.services.session_registry import ClientSessionRegistry

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_checkout(cart) -> CheckoutWorkflow:
    """Checkout workflow wired to the hosted order table and screenshot bucket"""
    return CheckoutWorkflow(
        cart,
        orders=OrderRepository(),
        screenshots=StorageRepository(settings.PAYMENT_SCREENSHOTS_BUCKET),
    )


# FastAPI application
app = FastAPI(
    title=settings.API_TITLE,
    version=settings.API_VERSION,
    description=settings.API_DESCRIPTION
)

# Process-wide state: client sessions and the notification outbox
app.state.sessions = ClientSessionRegistry.with_file_storage(
    settings.CART_STORAGE_DIR,
    build_checkout,
    max_idle_seconds=settings.SESSION_IDLE_SECONDS,
    max_sessions=settings.MAX_ACTIVE_SESSIONS,
)
app.state.outbox = NotificationOutbox(NotificationDispatcher(), settings.NOTIFICATION_MAX_ATTEMPTS)

app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-RateLimit-Limit", "X-RateLimit-Remaining", "Retry-After"],
)

# Storefront
app.include_router(products.router, prefix="/api/v1/products", tags=["Products"])
app.include_router(products.categories_router, prefix="/api/v1/categories", tags=["Products"])
app.include_router(cart.router, prefix="/api/v1/cart", tags=["Cart"])
app.include_router(checkout.router, prefix="/api/v1/checkout", tags=["Checkout"])
app.include_router(contact.router, prefix="/api/v1/contact", tags=["Contact"])

# Admin console
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(orders.router, prefix="/api/v1/admin/orders", tags=["Admin Orders"])
app.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])


@app.get("/")
async def root():
    """Root endpoint - API status"""
    return {
        "message": "Capital Furniture API",
        "status": "online",
        "version": settings.API_VERSION,
    }


@app.get("/health")
async def health():
    """Health check for monitoring"""
    supabase_configured = bool(settings.SUPABASE_URL and settings.SUPABASE_ANON_KEY)
    return {
        "status": "healthy" if supabase_configured else "degraded",
        "service": "capital-furniture-api",
        "version": settings.API_VERSION,
        "supabase": "configured" if supabase_configured else "not_configured",
        "pending_notifications": len(app.state.outbox.pending),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("storefront.main:app", host=settings.API_HOST, port=settings.API_PORT)
