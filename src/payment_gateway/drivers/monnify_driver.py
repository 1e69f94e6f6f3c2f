"""
Monnify driver.

Monnify exchanges the API key and secret key (HTTP Basic) for a bearer
token, which then authorizes transaction calls. Amounts are sent in major
units.

Reference:
- https://developers.monnify.com/api/#initialize-transaction
- https://developers.monnify.com/api/#get-transaction-status
"""

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from payment_gateway.drivers.base import TokenAuthPaymentDriver
from payment_gateway.models import (
    ChargeException,
    ChargeRequest,
    ChargeResponse,
    InvalidConfigurationException,
    PaymentStatus,
    VerificationException,
    VerificationResponse,
)

logger = structlog.get_logger(__name__)

DEFAULT_PAYMENT_METHODS = ["CARD", "ACCOUNT_TRANSFER"]


class MonnifyDriver(TokenAuthPaymentDriver):
    """Payments through Monnify's hosted checkout."""

    name = "monnify"
    reference_prefix = "MON"
    default_base_url = "https://api.monnify.com"
    required_config = ("api_key", "secret_key", "contract_code")
    status_mappings = {
        PaymentStatus.SUCCESS: ["paid", "overpaid"],
        PaymentStatus.PENDING: ["pending", "partially_paid"],
        PaymentStatus.FAILED: ["failed", "cancelled", "expired"],
    }

    def validate_config(self) -> None:
        if not self.config.get("api_key") or not self.config.get("secret_key"):
            raise InvalidConfigurationException("Monnify API key and secret key are required")
        if not self.config.get("contract_code"):
            raise InvalidConfigurationException("Monnify contract code is required")

    def default_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    def fetch_access_token(self) -> tuple[str, int]:
        try:
            response = self.request(
                "POST",
                "/api/v1/auth/login",
                headers={"Authorization": self.basic_credentials("api_key", "secret_key")},
            )
        except httpx.HTTPError as e:
            logger.error("monnify_authentication_failed", error=str(e))
            raise ChargeException(f"Monnify authentication failed: {e}") from e

        data = self.parse_response(response)
        body = data.get("responseBody") or {}
        if not data.get("requestSuccessful") or not body.get("accessToken"):
            raise ChargeException(
                "Failed to authenticate with Monnify",
                context={"http_status": response.status_code},
            )

        return body["accessToken"], int(body.get("expiresIn") or 3600)

    def charge(self, request: ChargeRequest) -> ChargeResponse:
        reference = request.reference or self.generate_reference()
        customer = request.customer or {}

        payload: dict[str, Any] = {
            "amount": request.amount,
            "customerName": customer.get("name", "Customer"),
            "customerEmail": request.email,
            "paymentReference": reference,
            "paymentDescription": request.description or "Payment",
            "currencyCode": request.currency,
            "contractCode": self.config["contract_code"],
            "redirectUrl": request.callback_url or self.config.get("callback_url"),
            "paymentMethods": self.map_channels(request) or list(DEFAULT_PAYMENT_METHODS),
            "metadata": request.metadata,
        }

        try:
            response = self.request(
                "POST",
                "/api/v1/merchant/transactions/init-transaction",
                charge_request=request,
                headers=self.bearer_headers(),
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.error("monnify_charge_failed", error=str(e))
            raise ChargeException(f"Monnify charge failed: {e}") from e

        data = self.parse_response(response)
        if not data.get("requestSuccessful"):
            raise ChargeException(
                data.get("responseMessage") or "Failed to initialize Monnify transaction",
                context={"http_status": response.status_code},
            )

        result = data.get("responseBody") or {}
        if not result.get("checkoutUrl"):
            raise ChargeException(
                "Monnify response is missing the checkout URL",
                context={"http_status": response.status_code},
            )

        logger.info("monnify_charge_initialized", reference=reference)

        return ChargeResponse(
            reference=reference,
            authorization_url=result["checkoutUrl"],
            access_code=result.get("transactionReference", ""),
            status="pending",
            provider=self.name,
            metadata=request.metadata,
        )

    def verify(self, reference: str) -> VerificationResponse:
        try:
            headers = self.bearer_headers()
        except ChargeException as e:
            raise VerificationException(str(e), context={"reference": reference, **e.context}) from e

        try:
            response = self.request(
                "GET", f"/api/v2/transactions/{quote(reference, safe='')}", headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("monnify_verification_failed", reference=reference, error=str(e))
            raise VerificationException(f"Monnify verification failed: {e}") from e

        data = self.parse_response(response)
        if not data.get("requestSuccessful"):
            raise VerificationException(
                data.get("responseMessage") or "Failed to verify Monnify transaction",
                context={"reference": reference, "http_status": response.status_code},
            )

        result = data.get("responseBody") or {}
        logger.info(
            "monnify_payment_verified", reference=reference, status=result.get("paymentStatus")
        )

        return VerificationResponse(
            reference=result.get("paymentReference") or reference,
            status=str(result.get("paymentStatus") or "unknown"),
            amount=float(result.get("amountPaid") or 0),
            currency=str(result.get("currencyCode") or "").upper(),
            paid_at=result.get("paidOn"),
            metadata=result.get("metaData") or {},
            provider=self.name,
            channel=result.get("paymentMethod"),
            customer={
                "email": result.get("customerEmail"),
                "name": result.get("customerName"),
            },
        )

    def health_check(self) -> bool:
        """
        Authenticate against the API.

        A 4xx from the login endpoint still means Monnify is reachable.
        """
        try:
            self.access_token()
        except ChargeException as e:
            http_status = e.context.get("http_status")
            logger.warning("monnify_health_check_failed", error=str(e), http_status=http_status)
            return http_status is not None and http_status < 500

        return True
