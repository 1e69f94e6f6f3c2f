"""
Paystack driver.

Initializes transactions on Paystack's hosted checkout and verifies them by
reference. Paystack expects amounts in the smallest currency unit (kobo for
NGN, cents for USD).

Reference:
- https://paystack.com/docs/api/transaction/#initialize
- https://paystack.com/docs/api/transaction/#verify
"""

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from payment_gateway.drivers.base import HttpPaymentDriver
from payment_gateway.models import (
    ChargeException,
    ChargeRequest,
    ChargeResponse,
    PaymentStatus,
    VerificationException,
    VerificationResponse,
)

logger = structlog.get_logger(__name__)


class PaystackDriver(HttpPaymentDriver):
    """Payments through Paystack's transaction API."""

    name = "paystack"
    reference_prefix = "PAYSTACK"
    default_base_url = "https://api.paystack.co"
    status_mappings = {
        PaymentStatus.FAILED: ["abandoned", "reversed"],
        PaymentStatus.PENDING: ["ongoing", "queued"],
    }

    def default_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config['secret_key']}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def charge(self, request: ChargeRequest) -> ChargeResponse:
        payload: dict[str, Any] = {
            "email": request.email,
            "amount": request.amount_in_minor_units(),
            "currency": request.currency,
            "reference": request.reference or self.generate_reference(),
            "callback_url": request.callback_url or self.config.get("callback_url"),
            "metadata": request.metadata,
        }
        channels = self.map_channels(request)
        if channels:
            payload["channels"] = channels

        try:
            response = self.request(
                "POST",
                "/transaction/initialize",
                charge_request=request,
                json={key: value for key, value in payload.items() if value},
            )
        except httpx.HTTPError as e:
            logger.error("paystack_charge_failed", error=str(e))
            raise ChargeException(f"Paystack charge failed: {e}") from e

        data = self.parse_response(response)
        if not data.get("status"):
            raise ChargeException(
                data.get("message") or "Failed to initialize Paystack transaction",
                context={"http_status": response.status_code},
            )

        result = data.get("data") or {}
        if not result.get("reference") or not result.get("authorization_url"):
            logger.error("paystack_charge_response_incomplete", keys=sorted(result))
            raise ChargeException(
                "Paystack response is missing the reference or authorization URL",
                context={"http_status": response.status_code},
            )

        logger.info(
            "paystack_charge_initialized",
            reference=result["reference"],
            idempotent=request.idempotency_key is not None,
        )

        return ChargeResponse(
            reference=result["reference"],
            authorization_url=result["authorization_url"],
            access_code=result.get("access_code", ""),
            status="pending",
            provider=self.name,
            metadata=request.metadata,
        )

    def verify(self, reference: str) -> VerificationResponse:
        try:
            response = self.request("GET", f"/transaction/verify/{quote(reference, safe='')}")
        except httpx.HTTPError as e:
            logger.error("paystack_verification_failed", reference=reference, error=str(e))
            raise VerificationException(f"Paystack verification failed: {e}") from e

        data = self.parse_response(response)
        if not data.get("status"):
            raise VerificationException(
                data.get("message") or "Failed to verify Paystack transaction",
                context={"reference": reference, "http_status": response.status_code},
            )

        result = data.get("data") or {}
        authorization = result.get("authorization") or {}
        customer = result.get("customer") or {}

        logger.info("paystack_payment_verified", reference=reference, status=result.get("status"))

        return VerificationResponse(
            reference=result.get("reference", reference),
            status=result.get("status", "unknown"),
            amount=(result.get("amount") or 0) / 100,
            currency=str(result.get("currency", "")).upper(),
            paid_at=result.get("paid_at"),
            metadata=result.get("metadata") or {},
            provider=self.name,
            channel=result.get("channel"),
            card_type=authorization.get("card_type"),
            bank=authorization.get("bank"),
            customer={
                "email": customer.get("email"),
                "code": customer.get("customer_code"),
            },
        )

    def health_check(self) -> bool:
        """
        Look up a reference that can't exist.

        Any response below 500 (including "transaction not found") means the
        API is up.
        """
        try:
            response = self.request("GET", "/transaction/verify/invalid_ref_test")
        except httpx.HTTPError as e:
            logger.error("paystack_health_check_failed", error=str(e))
            return False

        return response.status_code < 500
