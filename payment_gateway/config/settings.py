"""Application settings using Pydantic for environment-based configuration."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Cashfree Configuration
    cashfree_app_id: str = Field(..., description="Cashfree app (client) ID")
    cashfree_secret_key: str = Field(
        ..., description="Cashfree secret key, also used to sign webhooks"
    )
    cashfree_api_version: str = Field(default="2023-08-01", description="Cashfree API version")
    cashfree_base_url_sandbox: str = Field(
        default="https://sandbox.cashfree.com/pg", description="Sandbox PG base URL"
    )
    cashfree_base_url_production: str = Field(
        default="https://api.cashfree.com/pg", description="Production PG base URL"
    )
    upstream_timeout_seconds: float = Field(
        default=30.0, description="Timeout for calls to the payment processor (seconds)"
    )

    # Application Configuration
    app_name: str = Field(default="payment-gateway", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/production)")
    log_level: str = Field(default="INFO", description="Logging level")
    debug: bool = Field(default=False, description="Debug mode")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=5000, description="API port")
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        description="CORS allowed origins (comma-separated)"
    )
    max_request_bytes: int = Field(default=1024 * 1024, description="Max request body size")

    # Verification cache
    verification_cache_ttl_seconds: float = Field(
        default=30.0, description="TTL for regular verification results (seconds)"
    )
    paid_cache_ttl_seconds: float = Field(
        default=300.0, description="TTL for confirmed-paid verification results (seconds)"
    )
    cache_max_entries: int = Field(default=100, description="Cache size ceiling enforced by sweeps")
    sweep_interval_seconds: float = Field(
        default=300.0, description="Interval between cache/throttle maintenance sweeps"
    )

    # Verification throttle (per caller + order)
    throttle_window_seconds: float = Field(default=2.0, description="Throttle cooldown window")
    throttle_burst: int = Field(default=5, description="Calls permitted per window")
    throttle_stale_after_seconds: float = Field(
        default=600.0, description="Idle time after which throttle state is purged"
    )

    # Webhooks
    webhook_tolerance_seconds: int = Field(
        default=300, description="Allowed clock skew for webhook timestamps (seconds)"
    )

    # General API rate limiting (per client IP)
    general_rate_limit_window_seconds: Optional[float] = Field(
        default=None, description="General /api window; 15 min in production, 5 min otherwise"
    )
    general_rate_limit_max: Optional[int] = Field(
        default=None, description="General /api limit; 100 in production, 1000 otherwise"
    )
    payment_rate_limit_window_seconds: float = Field(
        default=300.0, description="Payment routes window (production only)"
    )
    payment_rate_limit_max: int = Field(default=10, description="Payment routes limit")
    webhook_rate_limit_window_seconds: float = Field(default=60.0, description="Webhook window")
    webhook_rate_limit_max: int = Field(default=50, description="Webhook limit")

    # Security
    api_key_header: str = Field(default="X-API-Key", description="Admin API key header name")
    admin_api_key: Optional[str] = Field(
        default=None, description="Key required by admin routes (disabled in production if unset)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("cashfree_app_id", "cashfree_secret_key")
    @classmethod
    def validate_credentials(cls, v: str) -> str:
        """Reject blank Cashfree credentials."""
        if not v or not v.strip():
            raise ValueError("Cashfree APP_ID and SECRET_KEY are required")
        return v.strip()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v.upper()

    @field_validator("throttle_burst", "cache_max_entries")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Must be at least 1")
        return v

    def get_allowed_origins_list(self) -> List[str]:
        """Parse allowed origins from comma-separated string."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env.lower() == "production"

    @property
    def processor_base_url(self) -> str:
        """Cashfree base URL for the current environment."""
        if self.is_production:
            return self.cashfree_base_url_production
        return self.cashfree_base_url_sandbox

    @property
    def general_rate_limit(self) -> tuple[float, int]:
        """(window_seconds, max_requests) for the general /api limiter."""
        window = self.general_rate_limit_window_seconds
        limit = self.general_rate_limit_max
        if window is None:
            window = 15 * 60.0 if self.is_production else 5 * 60.0
        if limit is None:
            limit = 100 if self.is_production else 1000
        return window, limit


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
