"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LENDBOOK_",
        extra="ignore",
    )

    # Database
    database_url: str = "sqlite:///./lendbook.db"

    # Service
    service_name: str = "lendbook"
    log_level: str = "INFO"

    # Ledger defaults
    default_currency: str = "BRL"
    interest_policy: str = "flat"  # "flat" | "price"
    quick_payment_note: str = "Marked as fully paid"

    # Credit profile cache
    credit_profile_ttl_seconds: int = 300

    # Reminder hand-off (unset = no outbound reminder events)
    reminder_webhook_url: str | None = None
    reminder_anticipation_days: int = 2

    # HTTP Client
    http_timeout_seconds: float = 5.0
    webhook_max_retries: int = 5
    webhook_backoff_base: float = 1.0  # Exponential backoff base in seconds


settings = Settings()
