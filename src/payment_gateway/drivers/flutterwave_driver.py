"""
Flutterwave driver (Standard checkout, v3 API).

Amounts are sent in major units. Verification uses the transaction
reference (tx_ref) rather than Flutterwave's numeric transaction id.
"""

from typing import Any

import httpx
import structlog

from payment_gateway.drivers.base import HttpPaymentDriver, append_query_param
from payment_gateway.models import (
    ChargeException,
    ChargeRequest,
    ChargeResponse,
    PaymentStatus,
    VerificationException,
    VerificationResponse,
)

logger = structlog.get_logger(__name__)


class FlutterwaveDriver(HttpPaymentDriver):
    """Payments through Flutterwave's hosted payment link."""

    name = "flutterwave"
    reference_prefix = "FLW"
    default_base_url = "https://api.flutterwave.com/v3"
    status_mappings = {
        PaymentStatus.SUCCESS: ["successful"],
    }

    def default_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config['secret_key']}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def charge(self, request: ChargeRequest) -> ChargeResponse:
        reference = request.reference or self.generate_reference()
        customer = request.customer or {}

        payload: dict[str, Any] = {
            "tx_ref": reference,
            "amount": request.amount,
            "currency": request.currency,
            "redirect_url": append_query_param(
                request.callback_url or self.config.get("callback_url"),
                "reference",
                reference,
            ),
            "customer": {
                "email": request.email,
                "name": customer.get("name", "Customer"),
            },
            "customizations": {
                "title": request.description or "Payment",
                "description": request.description or "Payment for services",
            },
            "meta": request.metadata,
        }
        channels = self.map_channels(request)
        if channels:
            payload["payment_options"] = ",".join(channels)

        try:
            # Relative path so it joins onto the /v3 base URL
            response = self.request("POST", "payments", charge_request=request, json=payload)
        except httpx.HTTPError as e:
            logger.error("flutterwave_charge_failed", error=str(e))
            raise ChargeException(f"Flutterwave charge failed: {e}") from e

        data = self.parse_response(response)
        if data.get("status") != "success":
            raise ChargeException(
                data.get("message") or "Failed to initialize Flutterwave transaction",
                context={"http_status": response.status_code},
            )

        result = data.get("data") or {}
        if not result.get("link"):
            logger.error("flutterwave_charge_response_incomplete", reference=reference)
            raise ChargeException(
                "Flutterwave response is missing the payment link",
                context={"http_status": response.status_code},
            )

        logger.info(
            "flutterwave_charge_initialized",
            reference=reference,
            idempotent=request.idempotency_key is not None,
        )

        return ChargeResponse(
            reference=reference,
            authorization_url=result["link"],
            access_code=reference,
            status="pending",
            provider=self.name,
            metadata=request.metadata,
        )

    def verify(self, reference: str) -> VerificationResponse:
        try:
            response = self.request(
                "GET",
                "transactions/verify_by_reference",
                params={"tx_ref": reference},
            )
        except httpx.HTTPError as e:
            logger.error("flutterwave_verification_failed", reference=reference, error=str(e))
            raise VerificationException(f"Flutterwave verification failed: {e}") from e

        data = self.parse_response(response)
        if data.get("status") != "success":
            raise VerificationException(
                data.get("message") or "Failed to verify Flutterwave transaction",
                context={"reference": reference, "http_status": response.status_code},
            )

        result = data.get("data") or {}
        card = result.get("card") or {}
        customer = result.get("customer") or {}

        logger.info(
            "flutterwave_payment_verified", reference=reference, status=result.get("status")
        )

        return VerificationResponse(
            reference=result.get("tx_ref", reference),
            status=result.get("status", "unknown"),
            amount=float(result.get("amount") or 0),
            currency=str(result.get("currency", "")).upper(),
            paid_at=result.get("created_at"),
            metadata=result.get("meta") or {},
            provider=self.name,
            channel=result.get("payment_type"),
            card_type=card.get("type"),
            bank=card.get("issuer"),
            customer={
                "email": customer.get("email"),
                "name": customer.get("name"),
            },
        )

    def health_check(self) -> bool:
        """Query the banks list; any non-5xx answer means the API is reachable."""
        try:
            response = self.request("GET", "banks/NG")
        except httpx.HTTPError as e:
            logger.error("flutterwave_health_check_failed", error=str(e))
            return False

        return response.status_code < 500
