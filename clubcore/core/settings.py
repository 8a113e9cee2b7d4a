"""Application settings and configuration."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Environment
    env: str = Field(default="dev", alias="ENV")
    timezone: str = Field(default="Asia/Bangkok", alias="TZ")

    # Database
    postgres_host: str = Field(default="localhost", alias="POSTGRES_HOST")
    postgres_port: int = Field(default=5432, alias="POSTGRES_PORT")
    postgres_db: str = Field(default="clubcore", alias="POSTGRES_DB")
    postgres_user: str = Field(default="clubcore", alias="POSTGRES_USER")
    postgres_password: str = Field(default="clubcore", alias="POSTGRES_PASSWORD")
    # Full URL override, e.g. sqlite+aiosqlite:///./clubcore.db
    database_url_override: Optional[str] = Field(default=None, alias="DATABASE_URL")

    # Security
    secret_key: str = Field(default="change-me-in-production", alias="SECRET_KEY")
    access_token_expire_minutes: int = Field(
        default=4320, alias="ACCESS_TOKEN_EXPIRE_MINUTES"
    )

    # Telegram notifications (optional)
    telegram_bot_token: Optional[str] = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    notification_chat_id: Optional[int] = Field(default=None, alias="NOTIFICATION_CHAT_ID")

    # Workflow policy
    leave_request_min_lead_minutes: int = Field(
        default=120, alias="LEAVE_REQUEST_MIN_LEAD_MINUTES"
    )
    leave_reason_min_length: int = Field(default=10, alias="LEAVE_REASON_MIN_LENGTH")

    # Retention
    idempotency_key_ttl_hours: int = Field(default=24, alias="IDEMPOTENCY_KEY_TTL_HOURS")
    audit_retention_days: int = Field(default=365, alias="AUDIT_RETENTION_DAYS")
    maintenance_enabled: bool = Field(default=True, alias="MAINTENANCE_ENABLED")

    @property
    def database_url(self) -> str:
        """Get async database URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.notification_chat_id)

    class Config:
        env_file = ".env"
        case_sensitive = False
        populate_by_name = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
