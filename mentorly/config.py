from decimal import Decimal
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./mentorly.db"

    # Application
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Pricing
    PLATFORM_FEE_RATE: Decimal = Decimal("0.15")
    DEFAULT_CURRENCY: str = "EUR"

    # Slot resolution
    SLOT_GRANULARITY_MINUTES: int = 30

    # Join windows (minutes around scheduled start/end)
    MENTEE_JOIN_EARLY_MINUTES: int = 15
    MENTEE_JOIN_LATE_MINUTES: int = 30
    MENTOR_JOIN_EARLY_MINUTES: int = 5
    MENTOR_JOIN_LATE_MINUTES: int = 30

    # Cancellation / refund policy
    FULL_REFUND_HOURS: int = 24
    PARTIAL_REFUND_HOURS: int = 2
    PARTIAL_REFUND_RATE: Decimal = Decimal("0.5")
    NO_SHOW_COMPENSATION_RATE: Decimal = Decimal("0.10")
    MENTOR_CANCELLATION_COMPENSATION_RATE: Decimal = Decimal("0.10")
    MIN_REASON_LENGTH: int = 10

    # Attendance
    NO_SHOW_GRACE_MINUTES: int = 15

    # Email Configuration
    EMAIL_NOTIFICATIONS_ENABLED: bool = False
    SMTP_SERVER: Optional[str] = None
    SMTP_PORT: int = 587
    SMTP_USERNAME: Optional[str] = None
    EMAIL_FROM: Optional[str] = None
    EMAIL_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    SMTP_TIMEOUT_SECONDS: int = 8

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
