"""Application configuration."""

import os
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Deep Terminal"
    APP_ENV: str = "production"
    DEBUG: bool = False  # Secure default: disabled
    CRON_PREFIX: str = "/api/cron"

    # Database - Credentials must come from environment
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "deepterm"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "deepterm"

    # Database pool configuration
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600

    @property
    def DATABASE_URL(self) -> str:
        """Build async database URL. Uses DATABASE_URL env var if set."""
        external = os.environ.get("DATABASE_URL", "")
        if external:
            return external.replace("postgresql://", "postgresql+asyncpg://")
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # Redis
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379

    @property
    def REDIS_URL(self) -> str:
        """Build Redis URL. Uses REDIS_URL env var if set."""
        external = os.environ.get("REDIS_URL", "")
        if external:
            return external
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/0"

    # Cron invocation
    CRON_SECRET: str = ""
    CRON_SCHEDULER_HEADER: str = "x-vercel-cron"
    ALERT_CHECK_INTERVAL_SECONDS: float = 300.0
    ALERT_SYMBOL_DELAY_SECONDS: float = 0.1
    ALERT_RUN_LOCK_ENABLED: bool = True
    ALERT_RUN_LOCK_TTL: int = 300

    @field_validator("ALERT_SYMBOL_DELAY_SECONDS")
    @classmethod
    def validate_symbol_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError("ALERT_SYMBOL_DELAY_SECONDS must not be negative")
        return v

    # Quote providers
    FMP_API_KEY: Optional[str] = None
    PRICE_HTTP_TIMEOUT: float = 10.0

    # Email (SMTP)
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM_EMAIL: str = "alerts@deepterminal.io"
    SMTP_FROM_NAME: str = "Deep Terminal"
    SMTP_TLS: bool = True

    # Web push (VAPID)
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_EMAIL: str = "admin@deepterm.com"

    @property
    def push_enabled(self) -> bool:
        """Check if web push is configured."""
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

    @property
    def is_development(self) -> bool:
        """Local execution mode, cron authorization is bypassed."""
        return self.APP_ENV == "development"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
