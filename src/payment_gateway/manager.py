"""
Payment manager.

Owns the provider configuration, the driver instance cache, the shared
status normalizer and the provider health cache. Everything that talks to a
provider goes through here.
"""

from typing import Any, Mapping

import structlog

from payment_gateway.config import PaymentsConfig, settings
from payment_gateway.drivers.base import DriverInterface
from payment_gateway.models import (
    ChargeRequest,
    ChargeResponse,
    CurrencyNotSupportedException,
    DriverNotFoundException,
    PaymentException,
    ProviderException,
)
from payment_gateway.services.driver_factory import DriverFactory
from payment_gateway.services.health_cache import HealthCheckCache
from payment_gateway.services.provider_detector import ProviderDetector
from payment_gateway.services.status_normalizer import StatusNormalizer, get_status_normalizer

logger = structlog.get_logger(__name__)


class PaymentManager:
    """
    Resolves providers to drivers and runs charges, verification and health checks.

    Args:
        config: PaymentsConfig, a plain mapping validated into one, or None
                for the application settings
        factory: Driver factory (a fresh one by default)
        status_normalizer: Normalizer injected into drivers (shared one by default)
        health_cache: Health result cache (TTL from ``health_check.cache_ttl``)
        provider_detector: Reference prefix lookup used by ``verify``
    """

    def __init__(
        self,
        config: PaymentsConfig | Mapping[str, Any] | None = None,
        factory: DriverFactory | None = None,
        status_normalizer: StatusNormalizer | None = None,
        health_cache: HealthCheckCache | None = None,
        provider_detector: ProviderDetector | None = None,
    ) -> None:
        if config is None:
            config = settings.payments
        elif not isinstance(config, PaymentsConfig):
            config = PaymentsConfig.model_validate(dict(config))

        self.config = config
        self.factory = factory or DriverFactory()
        self.status_normalizer = status_normalizer or get_status_normalizer()
        self.health_cache = health_cache or HealthCheckCache(config.health_check.cache_ttl)
        self.provider_detector = provider_detector or ProviderDetector()
        self._drivers: dict[str, DriverInterface] = {}

    def driver(self, name: str | None = None) -> DriverInterface:
        """
        Get the driver for a provider key, creating it on first use.

        Args:
            name: Provider key; defaults to the configured default provider

        Raises:
            DriverNotFoundException: Provider missing, disabled or unresolvable
            InvalidConfigurationException: Driver rejected its configuration
        """
        name = name or self.get_default_driver()
        if not name:
            raise DriverNotFoundException("No payment provider configured")

        cached = self._drivers.get(name)
        if cached is not None:
            return cached

        provider = self.config.get_provider(name)
        if provider is None or not provider.enabled:
            raise DriverNotFoundException(
                f"Payment driver [{name}] not found or disabled",
                context={"provider": name},
            )

        driver = self.factory.create(provider.driver or name, provider.to_driver_config())
        self._configure_driver(driver, name)

        # Racing first accesses may both construct; only one instance is kept
        return self._drivers.setdefault(name, driver)

    def _configure_driver(self, driver: DriverInterface, name: str) -> None:
        set_normalizer = getattr(driver, "set_status_normalizer", None)
        if callable(set_normalizer):
            set_normalizer(self.status_normalizer)

        set_health_cache = getattr(driver, "set_health_cache", None)
        if callable(set_health_cache):
            set_health_cache(self.health_cache, key=name)

    def register_driver(self, name: str, driver_class: type | str) -> "PaymentManager":
        """
        Register a custom driver class under a driver key.

        Cached drivers for providers using that key are dropped so the next
        ``driver()`` call builds the new class.
        """
        self.factory.register(name, driver_class)
        for key, provider in self.config.providers.items():
            if (provider.driver or key) == name:
                self._release(self._drivers.pop(key, None))
        return self

    def charge(self, request: ChargeRequest, provider: str | None = None) -> ChargeResponse:
        """
        Charge through a single provider.

        Raises:
            CurrencyNotSupportedException: Provider doesn't accept the currency
                                           (the provider is not contacted)
            ChargeException: Provider failed to initialize the charge
        """
        name = provider or self.get_default_driver()
        driver = self.driver(name)

        if not driver.is_currency_supported(request.currency):
            raise CurrencyNotSupportedException(
                f"Currency [{request.currency}] is not supported by provider [{name}]",
                context={"provider": name, "currency": request.currency},
            )

        logger.info(
            "payment_charge_started",
            provider=name,
            currency=request.currency,
            amount=request.amount,
        )
        response = driver.charge(request)
        logger.info("payment_charge_initialized", provider=name, reference=response.reference)
        return response

    def charge_with_fallback(
        self,
        request: ChargeRequest,
        providers: list[str] | None = None,
    ) -> ChargeResponse:
        """
        Try providers in order until one initializes the charge.

        Unhealthy providers (when health checks are enabled) and providers
        that don't support the currency are skipped.

        Raises:
            ProviderException: Every provider failed; ``context["exceptions"]``
                               maps provider key to error message
        """
        chain = list(providers) if providers else self.get_fallback_chain()
        errors: dict[str, str] = {}

        for name in chain:
            try:
                driver = self.driver(name)

                if self.config.health_check.enabled and not driver.get_cached_health_check():
                    errors[name] = "Provider is unhealthy"
                    logger.warning("provider_skipped_unhealthy", provider=name)
                    continue

                if not driver.is_currency_supported(request.currency):
                    errors[name] = f"Currency [{request.currency}] not supported"
                    logger.info(
                        "provider_skipped_currency", provider=name, currency=request.currency
                    )
                    continue

                response = driver.charge(request)
                logger.info(
                    "payment_charge_initialized",
                    provider=name,
                    reference=response.reference,
                    attempts=len(errors) + 1,
                )
                return response

            except PaymentException as e:
                errors[name] = str(e)
                logger.warning(
                    "provider_charge_failed",
                    provider=name,
                    error=str(e),
                    error_type=type(e).__name__,
                )

        logger.error("all_providers_failed", providers=chain, errors=errors)
        raise ProviderException.with_context(
            "All payment providers failed" if chain else "No payment providers available",
            {"exceptions": errors},
        )

    def verify(self, reference: str, provider: str | None = None) -> ChargeResponse:
        """
        Verify a transaction.

        With no provider, the provider detected from the reference prefix is
        tried first, then every enabled provider.

        Raises:
            VerificationException: The named provider failed to verify
            ProviderException: No provider could verify the reference
        """
        if provider:
            return self.driver(provider).verify(reference)

        enabled = self.get_enabled_providers()
        candidates: list[str] = []
        detected = self.provider_detector.detect_from_reference(reference)
        if detected in enabled:
            candidates.append(detected)
        candidates.extend(name for name in enabled if name not in candidates)

        errors: dict[str, str] = {}
        for name in candidates:
            try:
                return self.driver(name).verify(reference)
            except PaymentException as e:
                errors[name] = str(e)
                logger.debug("provider_verification_failed", provider=name, error=str(e))

        raise ProviderException.with_context(
            f"Unable to verify payment reference [{reference}]",
            {"reference": reference, "exceptions": errors},
        )

    def health_report(self) -> dict[str, dict[str, Any]]:
        """
        Health and currencies for every enabled provider.

        Never raises: providers that can't be built or checked are reported
        with ``healthy: False`` and the error message.
        """
        report: dict[str, dict[str, Any]] = {}

        for name in self.get_enabled_providers():
            try:
                driver = self.driver(name)
                report[name] = {
                    "healthy": bool(driver.get_cached_health_check()),
                    "currencies": sorted(driver.get_supported_currencies()),
                }
            except Exception as e:
                logger.error(
                    "provider_health_check_failed",
                    provider=name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                report[name] = {"healthy": False, "currencies": [], "error": str(e)}

        return report

    def get_default_driver(self) -> str | None:
        if self.config.default:
            return self.config.default
        return next(iter(self.config.providers), None)

    def get_fallback_chain(self) -> list[str]:
        chain: list[str] = []
        for name in (self.get_default_driver(), self.config.fallback):
            if name and name not in chain:
                chain.append(name)
        return chain

    def get_enabled_providers(self) -> list[str]:
        return self.config.enabled_providers()

    def forget_drivers(self) -> "PaymentManager":
        """Drop cached driver instances (they are rebuilt on next use)."""
        drivers = list(self._drivers.values())
        self._drivers.clear()
        for driver in drivers:
            self._release(driver)
        return self

    @staticmethod
    def _release(driver: DriverInterface | None) -> None:
        """Close a dropped driver's HTTP connection pool, if it has one."""
        close = getattr(driver, "close", None)
        if callable(close):
            close()
