"""
Configuración centralizada de la aplicación

Every secret defaults to an empty string so the app (and the test suite)
can import without a full environment. Operations that need a missing
secret fail at call time with a ConfigurationError.
"""
import json
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuración de la aplicación"""

    # API Settings
    API_TITLE: str = "Storefront API"
    API_VERSION: str = "1.0.0"
    API_DESCRIPTION: str = "Checkout, payments, refunds and media for the Nirchal storefront"
    API_DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - Can be string (comma-separated) or JSON array
    # Example: "http://localhost:5173,https://nirchal.com" or '["http://localhost:5173"]'
    ALLOWED_ORIGINS: Optional[str] = "http://localhost:5173"

    # Database / BaaS
    DATABASE_URL: str = ""
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_JWT_SECRET: str = ""

    # Payment gateway
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    RAZORPAY_WEBHOOK_SECRET: str = ""
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"

    # Transactional email
    RESEND_API_KEY: str = ""
    RESEND_API_URL: str = "https://api.resend.com"
    EMAIL_FROM: str = "support@nirchal.com"
    EMAIL_FROM_NAME: str = "Nirchal"
    SUPPORT_EMAIL: str = "support@nirchal.com"
    ADMIN_NOTIFICATION_EMAILS: str = ""

    # Object storage
    STORAGE_BUCKET: str = "product-images"
    STORAGE_PUBLIC_URL: str = ""
    MAX_IMAGE_BYTES: int = 10 * 1024 * 1024

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS string into list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:5173"]

        # Try JSON parse first (for array format)
        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        # Fall back to comma-separated string
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def get_admin_notification_emails(self) -> List[str]:
        """Recipients of the new-order notification"""
        return [email.strip() for email in self.ADMIN_NOTIFICATION_EMAILS.split(",") if email.strip()]


settings = Settings()
