"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    # Database
    DATABASE_URL: str = "sqlite:///./bookingpro.db"
    DB_CONNECT_TIMEOUT_SECONDS: int = 5

    # Redis (dedup markers, rate limiting). Empty or memory:// disables Redis.
    REDIS_URL: str = ""

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000"

    # Internal scheduled endpoints (cron jobs)
    INTERNAL_SECRET: str = ""

    # Error Tracking (optional, set in production)
    SENTRY_DSN: str = ""

    # Lead lifecycle
    SESSION_TIMEOUT_SECONDS: int = 24 * 60 * 60
    REQUEST_DEDUP_SECONDS: int = 5
    LEAD_RETENTION_DAYS: int = 30

    # Conversion tracking
    CONVERSION_METRICS_LIMIT: int = 1000
    CONVERSION_TRACKING_RETRIES: int = 2

    # Availability
    AVAILABILITY_MAX_RANGE_DAYS: int = 30

    # Rate Limiting (requests per minute)
    RATE_LIMIT_BOOKING: int = 10  # Booking submissions
    RATE_LIMIT_CAPTURE: int = 120  # Lead capture touches (autosave)
    RATE_LIMIT_API: int = 60  # General API

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS_ORIGINS into a list."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
