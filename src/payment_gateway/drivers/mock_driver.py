"""
Mock payment driver for local development and testing.

Makes no network calls. Outcomes are scripted through the provider config
so tests can exercise success, failure and degraded-health paths:

- ``checkout_url``: base of the fake hosted checkout page
- ``charge_status``: raw status returned by ``charge()`` (default "pending")
- ``verify_status``: raw status returned by ``verify()`` (default "success")
- ``fail_charge`` / ``fail_verify``: raise the matching exception
- ``healthy``: result of ``health_check()`` (default True)

Response shapes mirror the real drivers so callers can't tell them apart.
"""

from typing import Any

import structlog

from payment_gateway.drivers.base import PaymentDriver
from payment_gateway.models import (
    ChargeException,
    ChargeRequest,
    ChargeResponse,
    VerificationException,
    VerificationResponse,
)

logger = structlog.get_logger(__name__)

DEFAULT_CHECKOUT_URL = "https://checkout.mock.test/pay"
DEFAULT_MOCK_CURRENCIES = ["NGN", "USD", "GHS", "ZAR", "EUR", "GBP"]


class MockDriver(PaymentDriver):
    """In-memory driver; remembers its charges so they can be verified."""

    name = "mock"
    reference_prefix = "MOCK"
    required_config = ()

    def __init__(self, config=None) -> None:
        super().__init__(config)
        if not self.config.get("currencies"):
            self.config["currencies"] = list(DEFAULT_MOCK_CURRENCIES)
        self.charges: dict[str, ChargeRequest] = {}
        self.health_checks = 0

    def charge(self, request: ChargeRequest) -> ChargeResponse:
        if self.config.get("fail_charge"):
            logger.warning("mock_charge_failed", currency=request.currency)
            raise ChargeException(
                self.config.get("failure_message") or "Mock charge failed",
                context={"provider": self.name},
            )

        reference = request.reference or self.generate_reference()
        self.charges[reference] = request

        checkout_url = (self.config.get("checkout_url") or DEFAULT_CHECKOUT_URL).rstrip("/")
        logger.info("mock_charge_initialized", reference=reference)

        return ChargeResponse(
            reference=reference,
            authorization_url=f"{checkout_url}/{reference}",
            access_code=f"mock_access_{reference}",
            status=self.config.get("charge_status", "pending"),
            provider=self.name,
            metadata=request.metadata,
        )

    def verify(self, reference: str) -> VerificationResponse:
        if self.config.get("fail_verify"):
            raise VerificationException(
                f"Mock verification failed for [{reference}]",
                context={"reference": reference},
            )

        request = self.charges.get(reference)
        if request is None and not self.config.get("verify_unknown", False):
            raise VerificationException(
                f"Transaction [{reference}] not found",
                context={"reference": reference},
            )

        details: dict[str, Any] = {}
        if request is not None:
            details = {
                "amount": request.amount,
                "currency": request.currency,
                "metadata": request.metadata,
                "customer": {"email": request.email},
            }

        return VerificationResponse(
            reference=reference,
            status=self.config.get("verify_status", "success"),
            provider=self.name,
            channel="card",
            **details,
        )

    def health_check(self) -> bool:
        self.health_checks += 1
        return bool(self.config.get("healthy", True))
