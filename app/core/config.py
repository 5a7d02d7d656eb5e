# app/core/config.py
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application settings loaded from environment.

    Required env vars (.env):
      - DATABASE_URL (Postgres connection string; sqlite:// accepted locally)
      - AUTH_JWT_SECRET (JWT signing secret of the identity provider)

    Optional:
      - STRIPE_SECRET_KEY / STRIPE_WEBHOOK_SECRET (online payments)
      - SMTP_* (e-mail copies of user notifications)
    """

    PROJECT_NAME: str = "PetMart Backend"
    API_V1_STR: str = "/api/v1"

    DATABASE_URL: str

    # JWT verification (backend-side)
    AUTH_JWT_SECRET: str
    AUTH_JWT_ALG: str = "HS256"

    # Payment gateway (Stripe)
    STRIPE_SECRET_KEY: str | None = None
    STRIPE_WEBHOOK_SECRET: str | None = None
    PAYMENT_CURRENCY: str = "usd"
    PAYMENT_GATEWAY_TIMEOUT_SECONDS: float = 10.0
    PAYMENT_GATEWAY_MAX_RETRIES: int = 0

    # Expired order cleanup worker
    ORDER_CLEANUP_ENABLED: bool = True
    ORDER_CLEANUP_INTERVAL_MINUTES: int = 1440
    PENDING_PAYMENT_TTL_HOURS: int = 24

    # SMTP (notification e-mails)
    SMTP_HOST: str | None = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: str | None = None
    SMTP_PASSWORD: str | None = None
    SMTP_FROM_EMAIL: str | None = None
    SMTP_FROM_NAME: str = "PetMart"
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:4200",
    ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """
    Cached settings loader.
    Ensures we don't re-parse .env on every import / request.
    """
    return Settings()
