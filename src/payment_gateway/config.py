"""Configuration management for the payment gateway."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from payment_gateway.services.health_cache import DEFAULT_HEALTH_CHECK_TTL


class ProviderConfig(BaseModel):
    """
    One provider entry.

    Unknown keys are kept and handed to the driver untouched, so custom
    drivers can take their own settings.
    """

    model_config = ConfigDict(extra="allow")

    driver: str | None = Field(default=None, description="Driver key or class path (defaults to the provider key)")
    enabled: bool = Field(default=True, description="Disabled providers can't be resolved")
    secret_key: str = Field(default="", description="Provider secret API key")
    public_key: str = Field(default="", description="Provider public key")
    base_url: str | None = Field(default=None, description="Override for the provider API base URL")
    callback_url: str | None = Field(default=None, description="Default post-checkout redirect URL")
    currencies: list[str] = Field(default_factory=list, description="Supported ISO currency codes")
    driver_class: Any = Field(default=None, description="Driver class or dotted path override")
    timeout_seconds: int = Field(default=30, description="Provider request timeout")

    @field_validator("currencies", mode="before")
    @classmethod
    def _upper_currencies(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = [part for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(code).strip().upper() for code in value]
        return value

    def to_driver_config(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HealthCheckConfig(BaseModel):
    """Provider health probing."""

    enabled: bool = Field(default=True, description="Skip unhealthy providers during fallback")
    cache_ttl: int = Field(default=DEFAULT_HEALTH_CHECK_TTL, description="Health result TTL in seconds")


class CurrencyConfig(BaseModel):
    default: str = Field(default="NGN", description="Currency used when a payment sets none")

    @field_validator("default")
    @classmethod
    def _upper_default(cls, value: str) -> str:
        return value.strip().upper()


def _default_providers() -> dict[str, ProviderConfig]:
    return {
        "paystack": ProviderConfig(
            driver="paystack",
            enabled=True,
            base_url="https://api.paystack.co",
            currencies=["NGN", "GHS", "ZAR", "USD"],
        ),
        "flutterwave": ProviderConfig(
            driver="flutterwave",
            enabled=False,
            base_url="https://api.flutterwave.com/v3",
            currencies=["NGN", "USD", "EUR", "GBP", "KES", "UGX", "TZS"],
        ),
        "monnify": ProviderConfig(
            driver="monnify",
            enabled=False,
            base_url="https://api.monnify.com",
            currencies=["NGN"],
        ),
        "stripe": ProviderConfig(
            driver="stripe",
            enabled=False,
            currencies=["USD", "EUR", "GBP", "CAD", "AUD"],
        ),
        "paypal": ProviderConfig(
            driver="paypal",
            enabled=False,
            mode="sandbox",
            currencies=["USD", "EUR", "GBP", "CAD", "AUD"],
        ),
    }


class PaymentsConfig(BaseModel):
    """Provider selection and provider entries."""

    default: str | None = Field(default="paystack", description="Default provider key")
    fallback: str | None = Field(default=None, description="Provider tried when the default fails")
    providers: dict[str, ProviderConfig] = Field(default_factory=_default_providers)
    health_check: HealthCheckConfig = Field(default_factory=HealthCheckConfig)
    currency: CurrencyConfig = Field(default_factory=CurrencyConfig)

    def get_provider(self, name: str) -> ProviderConfig | None:
        return self.providers.get(name)

    def enabled_providers(self) -> list[str]:
        return [key for key, provider in self.providers.items() if provider.enabled]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    environment: str = Field(default="development", description="Environment name")
    service_name: str = Field(default="payment-gateway", description="Service name used in logs")
    log_level: str = Field(default="INFO", description="Logging level")
    log_json: bool = Field(default=True, description="Render logs as JSON")

    # Payments
    payments: PaymentsConfig = Field(default_factory=PaymentsConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
    )


# Global settings instance
settings = Settings()
