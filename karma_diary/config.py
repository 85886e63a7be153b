"""
Application Configuration
=========================

Centralized configuration using Pydantic Settings.
Loads from environment variables and an optional ``.env`` file.

Missing or weak values never stop the process; they are reported by
``karma_diary.core.env_check`` at startup instead.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "change-this-secret-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: str = Field(default="development")

    # Server
    PORT: int = Field(default=8000)

    # Database
    DATABASE_URL: str = Field(default="")

    # Redis
    REDIS_URL: str = Field(default="redis://localhost:6379/0")

    # JWT Authentication
    JWT_SECRET: str = Field(default=DEFAULT_JWT_SECRET)
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=1440)  # 24 hours
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = Field(default=30)

    # Google OAuth
    GOOGLE_CLIENT_ID: Optional[str] = Field(default=None)

    # Telegram
    TELEGRAM_BOT_TOKEN: str = Field(default="")
    TELEGRAM_BOT_USERNAME: str = Field(default="karmic_diary_bot")
    BOT_MODE: str = Field(
        default="polling",
        description="polling, webhook or disabled",
    )
    WEBHOOK_SECRET: str = Field(default="")

    # OpenAI
    OPENAI_API_KEY: str = Field(default="")
    OPENAI_MODEL: str = Field(default="gpt-4o")
    AI_MONTHLY_BUDGET_USD: float = Field(default=10.0)

    # WayForPay
    WAYFORPAY_MERCHANT: str = Field(default="")
    WAYFORPAY_SECRET: str = Field(default="")
    WAYFORPAY_DOMAIN: str = Field(default="karmic-diary.app")
    WAYFORPAY_PAY_URL: str = Field(default="https://secure.wayforpay.com/pay")

    # Web Push (VAPID)
    VAPID_PUBLIC_KEY: str = Field(default="")
    VAPID_PRIVATE_KEY: str = Field(default="")
    VAPID_SUBJECT: str = Field(default="mailto:support@karmic-diary.app")

    # Scheduler
    SCHEDULER_ENABLED: bool = Field(default=True)
    SCHEDULER_TIMEZONE: str = Field(default="Europe/Kiev")

    # Subscriptions
    TRIAL_DAYS: int = Field(default=7)

    # App Configuration
    API_BASE_URL: str = Field(default="http://localhost:8000")
    FRONTEND_URL: str = Field(default="http://localhost:5173")
    ALLOWED_ORIGINS: str = Field(default="http://localhost:5173,http://localhost:8000")

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    @property
    def database_url_async(self) -> str:
        """Convert database URL to async format for asyncpg."""
        if self.DATABASE_URL:
            return self.DATABASE_URL.replace(
                "postgresql://", "postgresql+asyncpg://"
            ).replace("postgres://", "postgresql+asyncpg://")
        return ""

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def telegram_enabled(self) -> bool:
        """Bot is started only with a token and a non-disabled mode."""
        return bool(self.TELEGRAM_BOT_TOKEN) and self.BOT_MODE.lower() != "disabled"

    @property
    def push_enabled(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

    @property
    def payments_enabled(self) -> bool:
        return bool(self.WAYFORPAY_MERCHANT and self.WAYFORPAY_SECRET)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Export a default settings instance
settings = get_settings()
