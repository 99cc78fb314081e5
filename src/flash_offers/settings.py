"""Process configuration read from the environment."""

from typing import Optional

import structlog
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from flash_offers.errors import ConfigurationError

logger = structlog.get_logger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    SERVICE_NAME: str = Field("flash-offer-push", alias="SERVICE_NAME")

    # Adapter selection
    PUSH_GATEWAY: str = Field("firebase", alias="PUSH_GATEWAY")
    IDENTITY_PROVIDER: str = Field("supabase", alias="IDENTITY_PROVIDER")

    # Credentials
    FIREBASE_SERVICE_ACCOUNT: Optional[str] = Field(None, alias="FIREBASE_SERVICE_ACCOUNT")
    SUPABASE_URL: Optional[str] = Field(None, alias="SUPABASE_URL")
    SUPABASE_ANON_KEY: Optional[str] = Field(None, alias="SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY: Optional[str] = Field(None, alias="SUPABASE_SERVICE_ROLE_KEY")

    # Request lifecycle
    REQUEST_TIMEOUT_SECONDS: float = Field(30.0, alias="REQUEST_TIMEOUT_SECONDS")
    SLOW_REQUEST_WARNING_SECONDS: float = Field(25.0, alias="SLOW_REQUEST_WARNING_SECONDS")
    DB_RETRY_DELAY_SECONDS: float = Field(0.5, alias="DB_RETRY_DELAY_SECONDS")
    IDENTITY_TIMEOUT_SECONDS: float = Field(5.0, alias="IDENTITY_TIMEOUT_SECONDS")

    # Gateway fan-out
    GATEWAY_BATCH_SIZE: int = Field(500, alias="GATEWAY_BATCH_SIZE", gt=0, le=500)
    GATEWAY_MAX_CONCURRENCY: int = Field(4, alias="GATEWAY_MAX_CONCURRENCY", gt=0)

    # Targeting
    BROADCAST_RADIUS_MILES: float = Field(500.0, alias="BROADCAST_RADIUS_MILES")
    DEFAULT_RADIUS_MILES: float = Field(1.0, alias="DEFAULT_RADIUS_MILES")
    CHECKIN_LOOKBACK_DAYS: int = Field(30, alias="CHECKIN_LOOKBACK_DAYS")
    CHECKIN_SCAN_LIMIT: int = Field(1000, alias="CHECKIN_SCAN_LIMIT")

    # Rate limiting
    USER_DAILY_LIMIT: int = Field(10, alias="USER_DAILY_LIMIT")

    def missing_required(self) -> list[str]:
        """Names of variables the selected adapters need but are unset."""
        missing = []
        if self.PUSH_GATEWAY == "firebase" and not self.FIREBASE_SERVICE_ACCOUNT:
            missing.append("FIREBASE_SERVICE_ACCOUNT")
        if self.IDENTITY_PROVIDER == "supabase":
            for name in ("SUPABASE_URL", "SUPABASE_ANON_KEY"):
                if not getattr(self, name):
                    missing.append(name)
        return missing


def load_settings(**overrides) -> Settings:
    """Build settings and fail fast when anything required is absent.

    The variable names are logged; the raised error stays generic so it is
    safe to surface.
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as exc:
        logger.error("Invalid configuration", errors=[err["loc"] for err in exc.errors()])
        raise ConfigurationError("Server configuration error") from exc

    missing = settings.missing_required()
    if missing:
        logger.error("Missing required environment variables", missing=missing)
        raise ConfigurationError("Server configuration error")

    return settings
