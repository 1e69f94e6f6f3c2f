"""
PayPal driver (Orders v2).

A charge creates a CAPTURE order and redirects the buyer to its "approve"
link. Verification takes the PayPal order id, which is returned as the
charge's ``access_code``.

Reference:
- https://developer.paypal.com/docs/api/orders/v2/#orders_create
- https://developer.paypal.com/docs/api/orders/v2/#orders_get
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

SANDBOX_BASE_URL = "https://api-m.sandbox.paypal.com"
LIVE_BASE_URL = "https://api-m.paypal.com"

# Currencies PayPal accepts without a fractional part
ZERO_DECIMAL_CURRENCIES = frozenset({"JPY", "KRW", "VND"})


def format_amount(amount: float, currency: str) -> str:
    decimals = 0 if currency.upper() in ZERO_DECIMAL_CURRENCIES else 2
    return f"{amount:.{decimals}f}"


class PayPalDriver(TokenAuthPaymentDriver):
    """Payments through PayPal Checkout orders."""

    name = "paypal"
    reference_prefix = "PAYPAL"
    default_base_url = SANDBOX_BASE_URL
    required_config = ("client_id", "client_secret")
    status_mappings = {
        PaymentStatus.SUCCESS: ["completed"],
        PaymentStatus.PENDING: ["created", "saved", "approved", "payer_action_required"],
        PaymentStatus.FAILED: ["voided", "cancelled"],
    }

    def __init__(self, config: Any = None, http_client: httpx.Client | None = None) -> None:
        config = dict(config or {})
        if not config.get("base_url") and config.get("mode") == "live":
            config["base_url"] = LIVE_BASE_URL
        super().__init__(config, http_client)

    def validate_config(self) -> None:
        if not self.config.get("client_id") or not self.config.get("client_secret"):
            raise InvalidConfigurationException("PayPal client ID and secret are required")

    def default_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "Accept": "application/json"}

    def idempotency_header(self, key: str) -> dict[str, str]:
        return {"PayPal-Request-Id": key}

    def fetch_access_token(self) -> tuple[str, int]:
        try:
            response = self.request(
                "POST",
                "/v1/oauth2/token",
                headers={
                    "Authorization": self.basic_credentials("client_id", "client_secret"),
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                data={"grant_type": "client_credentials"},
            )
        except httpx.HTTPError as e:
            logger.error("paypal_authentication_failed", error=str(e))
            raise ChargeException(f"PayPal authentication failed: {e}") from e

        data = self.parse_response(response)
        if not data.get("access_token"):
            raise ChargeException(
                "Failed to authenticate with PayPal",
                context={"http_status": response.status_code},
            )

        return data["access_token"], int(data.get("expires_in") or 3600)

    def charge(self, request: ChargeRequest) -> ChargeResponse:
        reference = request.reference or self.generate_reference()
        callback = request.callback_url or self.config.get("callback_url")

        payload: dict[str, Any] = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": reference,
                    "custom_id": reference,
                    "description": request.description or "Payment",
                    "amount": {
                        "currency_code": request.currency,
                        "value": format_amount(request.amount, request.currency),
                    },
                }
            ],
            "application_context": {
                "return_url": callback,
                "cancel_url": callback,
                "brand_name": self.config.get("brand_name", "Your Store"),
                "user_action": "PAY_NOW",
            },
        }

        try:
            response = self.request(
                "POST",
                "/v2/checkout/orders",
                charge_request=request,
                headers=self.bearer_headers(),
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.error("paypal_charge_failed", error=str(e))
            raise ChargeException(f"PayPal charge failed: {e}") from e

        data = self.parse_response(response)
        if not data.get("id"):
            raise ChargeException(
                data.get("message") or "Failed to create PayPal order",
                context={"http_status": response.status_code},
            )

        links = data.get("links") or []
        approve_url = next(
            (link.get("href") for link in links if isinstance(link, dict) and link.get("rel") == "approve"),
            None,
        )
        if not approve_url:
            raise ChargeException(
                "PayPal order has no approval link",
                context={"order_id": data["id"]},
            )

        logger.info("paypal_charge_initialized", reference=reference, order_id=data["id"])

        return ChargeResponse(
            reference=reference,
            authorization_url=approve_url,
            access_code=data["id"],
            status=str(data.get("status") or "CREATED"),
            provider=self.name,
            metadata={"order_id": data["id"], "links": links},
        )

    def verify(self, reference: str) -> VerificationResponse:
        """Look up an order by its PayPal order id."""
        try:
            headers = self.bearer_headers()
        except ChargeException as e:
            raise VerificationException(str(e), context={"reference": reference, **e.context}) from e

        try:
            response = self.request(
                "GET", f"/v2/checkout/orders/{quote(reference, safe='')}", headers=headers
            )
        except httpx.HTTPError as e:
            logger.error("paypal_verification_failed", reference=reference, error=str(e))
            raise VerificationException(f"PayPal verification failed: {e}") from e

        data = self.parse_response(response)
        if not data.get("id"):
            raise VerificationException(
                "PayPal order not found",
                context={"reference": reference, "http_status": response.status_code},
            )

        purchase_unit = (data.get("purchase_units") or [{}])[0]
        amount = purchase_unit.get("amount") or {}
        captures = (purchase_unit.get("payments") or {}).get("captures") or [{}]
        capture = captures[0]
        payer = data.get("payer") or {}

        logger.info("paypal_payment_verified", reference=reference, status=data.get("status"))

        return VerificationResponse(
            reference=purchase_unit.get("custom_id") or reference,
            status=str(data.get("status") or "unknown"),
            amount=float(amount.get("value") or 0),
            currency=str(amount.get("currency_code") or "USD").upper(),
            paid_at=capture.get("create_time"),
            metadata={"order_id": data["id"], "capture_id": capture.get("id")},
            provider=self.name,
            channel="paypal",
            customer={
                "email": payer.get("email_address"),
                "name": (payer.get("name") or {}).get("given_name"),
            },
        )

    def health_check(self) -> bool:
        try:
            self.access_token()
        except ChargeException as e:
            logger.warning("paypal_health_check_failed", error=str(e))
            return False

        return True
