"""Storefront configuration via pydantic-settings."""

import warnings
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

_REQUIRED_SECRETS = ("stripe_secret_key", "stripe_webhook_secret")


class StorefrontSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="STOREFRONT_")

    environment: str = "development"

    # Stripe
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_timeout_seconds: float = 20.0
    webhook_tolerance: int = 300  # seconds

    # API
    api_title: str = "Storefront Relay"
    api_version: str = "1.0.0"
    host: str = "0.0.0.0"
    port: int = 3000
    frontend_domain: str = "http://localhost:5173"
    dev_origins: list[str] = ["http://localhost:5173", "http://localhost:3000"]
    log_level: str = "INFO"

    # Rate limiting (requests per window, window in seconds)
    checkout_rate_limit: int = 10
    checkout_rate_window: int = 900
    general_rate_limit: int = 100
    general_rate_window: int = 900

    # Catalog
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Order confirmation e-mail
    email_provider: str = ""
    email_api_key: str = ""
    email_from: str = "orders@localhost"

    # Order totals
    shipping_flat_fee: float = 9.99
    free_shipping_threshold: float = 1000
    tax_rate: float = 0.08

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def allowed_origins(self) -> list[str]:
        """Origins allowed by CORS; localhost dev origins are dropped in production."""
        origins = [self.frontend_domain] if self.frontend_domain else []
        if not self.is_production:
            origins.extend(o for o in self.dev_origins if o not in origins)
        return origins

    def validate_for_production(self) -> None:
        """Raise if Stripe secrets are missing in production."""
        missing = [field for field in _REQUIRED_SECRETS if not getattr(self, field)]

        if self.is_production and missing:
            env_vars = ", ".join(f"STOREFRONT_{f.upper()}" for f in missing)
            raise RuntimeError(
                f"Missing required settings in '{self.environment}' environment: {env_vars}"
            )

        if missing:
            warnings.warn(
                "Stripe is not fully configured; set STOREFRONT_STRIPE_SECRET_KEY "
                "and STOREFRONT_STRIPE_WEBHOOK_SECRET before going live",
                UserWarning,
                stacklevel=2,
            )


@lru_cache
def get_settings() -> StorefrontSettings:
    settings = StorefrontSettings()
    settings.validate_for_production()
    return settings
