from decimal import Decimal
from functools import lru_cache
from typing import Literal, Optional

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PLACEHOLDER_JWT_SECRET = "change-me-local-jwt-secret"


class Settings(BaseSettings):
    """Global application settings."""

    # Application
    ENVIRONMENT: Literal["local", "test", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"
    ADMIN_EMAIL: str = "admin@hockeypouches.ca"
    PUBLIC_BASE_URL: str = "http://localhost:3000"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "https://hockeypouches.ca",
        "https://www.hockeypouches.ca",
    ]

    # Database
    DATABASE_URL: str
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800

    # Auth
    # Production refuses the placeholder; see require_real_jwt_secret
    JWT_SECRET: str = PLACEHOLDER_JWT_SECRET
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    AUTH_COOKIE_NAME: str = "auth_token"

    # Redis (rate limiting + arq worker)
    REDIS_URL: Optional[str] = None
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_API: str = "100/minute"
    RATE_LIMIT_ADMIN: str = "300/minute"

    # Stripe
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_WEBHOOK_SECRET: Optional[str] = None
    STRIPE_API_BASE: str = "https://api.stripe.com/v1"
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    # Manual payment instructions shown after checkout
    ETRANSFER_EMAIL: str = "payments@hockeypouches.ca"
    BITCOIN_WALLET_ADDRESS: str = ""

    # Store pricing rules
    CURRENCY: str = "cad"
    SHIPPING_FLAT_RATE: Decimal = Decimal("10.00")
    TAX_RATE: Decimal = Decimal("0.13")
    WHOLESALE_MIN_ORDER_QUANTITY: int = 5

    # Commissions / order housekeeping
    DEFAULT_COMMISSION_RATE: Decimal = Decimal("0.05")
    COMMISSION_HOLD_DAYS: int = 14
    ORDER_PAYMENT_TIMEOUT_HOURS: int = 72

    # Supabase storage (uploads)
    SUPABASE_URL: str = ""
    SUPABASE_SERVICE_ROLE_KEY: str = ""
    SUPABASE_STORAGE_BUCKET: str = "hockeypouches-uploads"
    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024

    # Email (SMTP)
    SMTP_HOST: str = "smtp-relay.brevo.com"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    DEFAULT_FROM_EMAIL: str = "no-reply@hockeypouches.ca"
    DEFAULT_FROM_NAME: str = "Hockey Pouches"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str]) -> str:
        if isinstance(v, str):
            if v.startswith("postgresql://"):
                return v.replace("postgresql://", "postgresql+psycopg://", 1)
        return v

    @model_validator(mode="after")
    def require_real_jwt_secret(self) -> "Settings":
        if self.ENVIRONMENT == "production" and (
            not self.JWT_SECRET or self.JWT_SECRET == PLACEHOLDER_JWT_SECRET
        ):
            raise ValueError("JWT_SECRET must be set to a real secret in production")
        return self

    @property
    def stripe_enabled(self) -> bool:
        return bool(self.STRIPE_SECRET_KEY)


@lru_cache
def get_settings() -> Settings:
    """
    Return the global settings instance, cached.
    """
    return Settings()
