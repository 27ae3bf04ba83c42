"""
Kiosk settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings

from shared.config.constants import Limits


class Settings(BaseSettings):
    """Kiosk settings with defaults for development."""

    # Backend API (menu, orders, seats)
    api_base_url: str = "http://localhost:4000"
    tenant_slug: str = "oh"

    # Payment gateway adapter (card reader terminal)
    payments_base_url: str = "http://localhost:3000/api/kiosk/payments"

    # Location this kiosk is installed at
    location_id: str = ""
    kiosk_locale: str = "en"

    # Tax is computed locally and added for display, e.g. 0.0725
    location_tax_rate: float = 0.0

    # Pod selection
    seat_poll_interval_seconds: float = 5.0
    # Advertised to guests as 10 minutes, 5 minutes of grace on top
    pod_reservation_minutes: int = 15

    # Party limits
    max_party_size: int = 8

    # HTTP
    http_timeout_seconds: float = 10.0
    # Card-present charges wait on the guest at the reader
    payment_timeout_seconds: float = 60.0

    # Payment gateway circuit breaker
    payment_breaker_failure_threshold: int = 5
    payment_breaker_timeout_seconds: float = 30.0

    # Environment
    environment: str = "development"
    debug: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def validate_production_settings(self) -> list[str]:
        """
        Validate that the kiosk is configured for production use.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        if not 0 <= self.location_tax_rate < 1:
            errors.append("LOCATION_TAX_RATE must be a fraction between 0 and 1")

        if not Limits.MIN_PARTY_SIZE <= self.max_party_size <= Limits.MAX_PARTY_SIZE:
            errors.append(
                f"MAX_PARTY_SIZE must be between {Limits.MIN_PARTY_SIZE} and {Limits.MAX_PARTY_SIZE}"
            )

        if self.environment == "production":
            if not self.location_id:
                errors.append("LOCATION_ID must be set in production")

            if self.debug:
                errors.append("DEBUG must be False in production")

            if self.api_base_url.startswith("http://localhost"):
                errors.append("API_BASE_URL must point at the production backend")

        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

# Direct access to commonly used settings
API_BASE_URL = settings.api_base_url
PAYMENTS_BASE_URL = settings.payments_base_url
LOCATION_ID = settings.location_id
