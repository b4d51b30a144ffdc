# backend/reservation_api/core/config.py
import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_DEFAULT_SECRET_KEY = "your-secret-key-change-this-in-production"

MIDTRANS_SANDBOX_URL = "https://app.sandbox.midtrans.com/snap/v1"
MIDTRANS_PRODUCTION_URL = "https://app.midtrans.com/snap/v1"

PROD_ENVIRONMENTS = {"prod", "production"}


# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: str = Field(default="development", alias="APP_ENV")

    database_url: str = Field(
        default="sqlite:///./reservations.db",
        description="SQLAlchemy database URL (PostgreSQL in production)",
    )

    # Identity tokens are issued elsewhere; we only verify them.
    secret_key: SecretStr = Field(
        default=SecretStr(_DEFAULT_SECRET_KEY),
        alias="JWT_SECRET",
        description="Secret used to verify access tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    # Payment gateway (Midtrans Snap). Missing keys switch to dummy payments.
    midtrans_server_key: SecretStr = Field(default=SecretStr(""))
    midtrans_client_key: SecretStr = Field(default=SecretStr(""))
    midtrans_base_url: Optional[str] = Field(
        default=None,
        description="Override for the Snap API base URL (derived from APP_ENV when unset)",
    )
    gateway_timeout_seconds: float = Field(default=10.0, gt=0)
    payment_expiry_hours: int = Field(default=24, gt=0)
    session_price: float = Field(default=100000.0, gt=0, description="Price per session (IDR)")
    dummy_payment_url_base: str = "http://localhost:3000/payment/dummy"
    default_payer_phone: str = "08123456789"

    # Booking rules
    studio_timezone: str = Field(default="UTC", description="Timezone used to resolve 'today'")
    booking_horizon_days: int = Field(default=30, gt=0)

    # Slot locking
    redis_url: Optional[str] = Field(
        default=None,
        description="Enables the distributed slot lock when set",
    )
    slot_lock_ttl_seconds: int = Field(default=30, gt=0)
    slot_lock_wait_seconds: float = Field(default=10.0, gt=0)

    admin_emails: List[str] = Field(
        default_factory=list,
        description="Accounts allowed to manage courts and timeslots",
    )

    frontend_url: str = "http://localhost:3000"
    allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:3001"]
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("environment")
    @classmethod
    def _normalize_environment(cls, value: str) -> str:
        return (value or "development").strip().lower()

    @model_validator(mode="after")
    def _validate_production(self) -> "Settings":
        if self.is_production:
            if self.secret_key.get_secret_value() == _DEFAULT_SECRET_KEY:
                raise ValueError("JWT_SECRET must be set in production environment")
            if not self.gateway_configured:
                logger.warning(
                    "Midtrans credentials not set. Payment features will use dummy mode."
                )
        if self.frontend_url and self.frontend_url not in self.allowed_origins:
            self.allowed_origins.append(self.frontend_url)
        return self

    @property
    def is_production(self) -> bool:
        return self.environment in PROD_ENVIRONMENTS

    @property
    def gateway_configured(self) -> bool:
        return bool(
            self.midtrans_server_key.get_secret_value()
            and self.midtrans_client_key.get_secret_value()
        )

    @property
    def gateway_base_url(self) -> str:
        if self.midtrans_base_url:
            return self.midtrans_base_url.rstrip("/")
        return MIDTRANS_PRODUCTION_URL if self.is_production else MIDTRANS_SANDBOX_URL


settings = Settings()
logger.info(
    "[CONFIG] environment=%s gateway_configured=%s distributed_lock=%s",
    settings.environment,
    settings.gateway_configured,
    bool(settings.redis_url),
)
