"""
Centralized application configuration
"""
from pydantic_settings import BaseSettings
from typing import Dict, List, Optional


class Settings(BaseSettings):
    """Application settings, read from the environment and .env"""

    # API Settings
    API_TITLE: str = "Capital Furniture API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Storefront and admin API for Capital Furniture"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Supabase (empty values keep the package importable without a .env;
    # clients are created lazily and fail when used unconfigured)
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""
    SUPABASE_JWT_AUDIENCE: str = "authenticated"

    # Direct Postgres access, only used by scripts/migrations
    DATABASE_URL: Optional[str] = None

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:5173,https://yourdomain.com" or '["http://localhost:5173"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:5173,http://localhost:8080"

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:5173"]

        # Try JSON parse first (for array format)
        import json
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    # Storage buckets
    PAYMENT_SCREENSHOTS_BUCKET: str = "payment-screenshots"
    PRODUCT_IMAGES_BUCKET: str = "product-images"
    MAX_SCREENSHOT_BYTES: int = 5 * 1024 * 1024
    SCREENSHOT_SIGNED_URL_TTL: int = 3600

    # Client sessions (cart persistence)
    CART_STORAGE_DIR: str = ".cart_storage"
    SESSION_IDLE_SECONDS: int = 30 * 60
    MAX_ACTIVE_SESSIONS: int = 10000

    # Orders
    ORDER_NUMBER_PREFIX: str = "TRK"
    VODAFONE_CASH_NUMBER: str = "+201060044708"
    INSTAPAY_HANDLE: str = "@capital-furniture"

    def get_payment_destinations(self) -> Dict[str, str]:
        """Where the customer transfers the deposit, per payment method"""
        return {
            "vodafone": self.VODAFONE_CASH_NUMBER,
            "instapay": self.INSTAPAY_HANDLE,
        }

    # Notifications (Supabase edge function)
    NOTIFICATION_FUNCTION: str = "send-order-notification"
    NOTIFICATION_TIMEOUT: float = 10.0
    NOTIFICATION_MAX_ATTEMPTS: int = 5

    # Per-endpoint rate limits (requests per minute)
    CHECKOUT_RATE_LIMIT: int = 10
    CONTACT_RATE_LIMIT: int = 5
    LOGIN_RATE_LIMIT: int = 10

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
