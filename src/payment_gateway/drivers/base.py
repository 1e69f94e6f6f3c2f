"""Base interface for payment provider drivers."""

import base64
import inspect
import secrets
import time
from abc import ABC, abstractmethod
from typing import Any, Mapping, Protocol, runtime_checkable
from urllib.parse import urlsplit

import httpx
import structlog

from payment_gateway.models import (
    ChargeRequest,
    ChargeResponse,
    InvalidConfigurationException,
    VerificationResponse,
)
from payment_gateway.services.channel_mapper import ChannelMapper
from payment_gateway.services.health_cache import DEFAULT_HEALTH_CHECK_TTL, HealthCheckCache
from payment_gateway.services.status_normalizer import (
    PaymentStatus,
    StatusNormalizer,
    get_status_normalizer,
)

logger = structlog.get_logger(__name__)

# Methods every driver must expose. Checked structurally by the factory.
DRIVER_CAPABILITIES = (
    "charge",
    "verify",
    "get_supported_currencies",
    "is_currency_supported",
    "get_cached_health_check",
)


@runtime_checkable
class DriverInterface(Protocol):
    """Capability set consumed by DriverFactory and PaymentManager."""

    def charge(self, request: ChargeRequest) -> ChargeResponse: ...

    def verify(self, reference: str) -> ChargeResponse: ...

    def get_supported_currencies(self) -> set[str]: ...

    def is_currency_supported(self, currency: str) -> bool: ...

    def get_cached_health_check(self) -> bool: ...


def implements_driver_interface(target: Any) -> bool:
    """
    Check that a driver class or instance satisfies the capability set.

    Abstract classes are rejected since they cannot be instantiated.
    """
    if inspect.isclass(target) and inspect.isabstract(target):
        return False
    return all(callable(getattr(target, method, None)) for method in DRIVER_CAPABILITIES)


def append_query_param(url: str | None, key: str, value: str) -> str | None:
    """Append ``key=value`` to a URL, respecting any existing query string."""
    if not url:
        return None
    separator = "&" if urlsplit(url).query else "?"
    return f"{url}{separator}{key}={value}"


class PaymentDriver(ABC):
    """
    Abstract base class for payment provider drivers.

    All providers (Paystack, Flutterwave, Stripe, etc.) extend this class and
    implement charge/verify/health_check. Currency support, cached health
    checks, reference generation and status normalization are shared.

    Args:
        config: Provider configuration (secret_key, currencies, base_url, ...)
    """

    name: str = ""
    reference_prefix: str | None = None
    required_config: tuple[str, ...] = ("secret_key",)
    status_mappings: dict[PaymentStatus, list[str]] = {}

    def __init__(self, config: Mapping[str, Any] | None = None) -> None:
        self.config: dict[str, Any] = dict(config or {})
        self._status_normalizer: StatusNormalizer | None = None
        self._health_cache: HealthCheckCache | None = None
        self._health_key: str | None = None
        self._channel_mapper = ChannelMapper()
        self.validate_config()

    def validate_config(self) -> None:
        """
        Ensure required configuration is present.

        Raises:
            InvalidConfigurationException: If a required key is missing or empty
        """
        for key in self.required_config:
            if not self.config.get(key):
                raise InvalidConfigurationException(
                    f"{self.name.capitalize() or type(self).__name__} "
                    f"{key.replace('_', ' ')} is required"
                )

    @abstractmethod
    def charge(self, request: ChargeRequest) -> ChargeResponse:
        """
        Initialize a charge with the provider.

        Args:
            request: Validated charge request

        Returns:
            ChargeResponse with the checkout URL the customer is sent to

        Raises:
            ChargeException: Provider rejected the request or was unreachable
        """
        pass

    @abstractmethod
    def verify(self, reference: str) -> VerificationResponse:
        """
        Look up a transaction by reference.

        Raises:
            VerificationException: Provider could not verify the reference
        """
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check the provider API. Returns False rather than raising on transport errors."""
        pass

    def get_name(self) -> str:
        return self.name

    def get_supported_currencies(self) -> set[str]:
        return {str(currency).upper() for currency in self.config.get("currencies") or []}

    def is_currency_supported(self, currency: str) -> bool:
        return currency.strip().upper() in self.get_supported_currencies()

    def set_health_cache(self, cache: HealthCheckCache, key: str | None = None) -> "PaymentDriver":
        """Use a shared health cache; ``key`` defaults to the driver name."""
        self._health_cache = cache
        self._health_key = key
        return self

    def get_cached_health_check(self) -> bool:
        """
        Provider health, cached per provider for the cache TTL.

        A fresh check runs through ``health_check()`` when there is no
        unexpired entry.
        """
        if self._health_cache is None:
            self._health_cache = HealthCheckCache(
                self.config.get("health_check_ttl", DEFAULT_HEALTH_CHECK_TTL)
            )
        return self._health_cache.remember(self._health_key or self.name, self.health_check)

    def set_status_normalizer(self, normalizer: StatusNormalizer) -> "PaymentDriver":
        """Use a specific normalizer; the driver's own vocabulary is merged into it."""
        if self.status_mappings:
            normalizer.register_provider_mappings(self.name, self.status_mappings)
        self._status_normalizer = normalizer
        return self

    def get_status_normalizer(self) -> StatusNormalizer:
        if self._status_normalizer is None:
            self._status_normalizer = get_status_normalizer()
        return self._status_normalizer

    def normalize_status(self, status: str) -> PaymentStatus:
        return self.get_status_normalizer().normalize(status, self.name)

    def generate_reference(self, prefix: str | None = None) -> str:
        """Unique reference: PREFIX_<unix timestamp>_<16 hex chars>."""
        prefix = prefix or self.reference_prefix or self.name.upper()
        return f"{prefix}_{int(time.time())}_{secrets.token_hex(8)}"

    def map_channels(self, request: ChargeRequest) -> list[str] | None:
        """Provider-specific channels, or None to let the provider use its defaults."""
        if not request.channels or not self._channel_mapper.supports_channels(self.name):
            return None
        return self._channel_mapper.map_channels(request.channels, self.name)


class HttpPaymentDriver(PaymentDriver):
    """
    Base for drivers that talk to a JSON REST API over httpx.

    Subclasses set ``default_base_url`` and implement ``default_headers``.
    """

    default_base_url: str = ""

    def __init__(
        self,
        config: Mapping[str, Any] | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(config)
        self.base_url = (self.config.get("base_url") or self.default_base_url).rstrip("/")
        self.timeout_seconds = float(self.config.get("timeout_seconds", 30))
        self.http_client = http_client or httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout_seconds,
            headers=self.default_headers(),
        )

    @abstractmethod
    def default_headers(self) -> dict[str, str]:
        pass

    def idempotency_header(self, key: str) -> dict[str, str]:
        return {"Idempotency-Key": key}

    def request(
        self,
        method: str,
        url: str,
        charge_request: ChargeRequest | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request to the provider API.

        Adds the idempotency header when the charge request carries a key
        and the caller didn't set one explicitly.
        """
        if charge_request is not None and charge_request.idempotency_key:
            headers = dict(kwargs.pop("headers", None) or {})
            for header, value in self.idempotency_header(charge_request.idempotency_key).items():
                headers.setdefault(header, value)
            kwargs["headers"] = headers

        return self.http_client.request(method, url, **kwargs)

    @staticmethod
    def parse_response(response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def close(self) -> None:
        """Close the HTTP connection pool."""
        self.http_client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class TokenAuthPaymentDriver(HttpPaymentDriver):
    """
    Base for APIs that exchange client credentials for a short-lived bearer token.

    The token is cached on the instance until it is within
    ``token_refresh_margin`` seconds of expiry.
    """

    token_refresh_margin = 60

    def __init__(
        self,
        config: Mapping[str, Any] | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(config, http_client)
        self._access_token: str | None = None
        self._token_expires_at = 0.0

    @abstractmethod
    def fetch_access_token(self) -> tuple[str, int]:
        """
        Request a new token from the provider.

        Returns:
            (token, lifetime in seconds)

        Raises:
            ChargeException: Authentication was rejected or the API was unreachable
        """
        pass

    def access_token(self) -> str:
        if self._access_token and time.time() < self._token_expires_at:
            return self._access_token

        token, expires_in = self.fetch_access_token()
        self._access_token = token
        self._token_expires_at = time.time() + expires_in - self.token_refresh_margin
        logger.debug("provider_access_token_refreshed", provider=self.name, expires_in=expires_in)
        return token

    def bearer_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token()}"}

    def basic_credentials(self, username_key: str, password_key: str) -> str:
        raw = f"{self.config[username_key]}:{self.config[password_key]}".encode()
        return f"Basic {base64.b64encode(raw).decode()}"
