from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Any, ClassVar
from decimal import Decimal
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"

    # JWT configuration (provide a fallback for local development)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Database URL
    # Use an absolute path so running the app from different directories
    # (e.g., repo root or backend/) always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'eventasap.db'}"

    # CORS origins
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    CORS_ALLOW_ALL: bool = False

    # Base frontend URL used to build notification action links
    FRONTEND_URL: str = "http://localhost:3000"

    LOG_LEVEL: str = "INFO"
    ENABLE_CONSOLE_TRACING: bool = False

    # Booking money rules
    DEFAULT_CURRENCY: str = "GBP"
    MAX_BOOKING_PRICE: Decimal = Decimal("1000000.00")
    # Share of each successful payment retained by the platform; the vendor
    # receives the remainder once the booking is completed.
    PLATFORM_COMMISSION_RATE: Decimal = Decimal("0.30")
    # When enabled a vendor may send a new proposal after the client rejected
    # the previous one. Off: PRICE_REJECTED ends the negotiation.
    ALLOW_REPROPOSAL_AFTER_REJECTION: bool = False

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_API_BASE: str = "https://api.stripe.com"
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=True,
    )

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("FRONTEND_URL", "STRIPE_API_BASE", mode="before")
    def strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().rstrip("/")
        return v

    @field_validator("PLATFORM_COMMISSION_RATE")
    def commission_in_range(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 1:
            raise ValueError("PLATFORM_COMMISSION_RATE must be between 0 and 1")
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(self) -> "Settings":
        if self.CORS_ALLOW_ALL:
            self.CORS_ORIGINS = ["*"]
        return self


def load_settings() -> "Settings":
    return Settings(_env_file=os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env")))


settings = load_settings()
