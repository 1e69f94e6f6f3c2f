"""
Stripe driver.

Uses Stripe Checkout Sessions so the customer is redirected to a hosted
payment page, the same flow as the other providers.

Reference:
- https://docs.stripe.com/api/checkout/sessions/create
- https://docs.stripe.com/api/payment_intents/retrieve
"""

from datetime import datetime, timezone
from typing import Any

import stripe
import structlog

from payment_gateway.drivers.base import PaymentDriver, append_query_param
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


def _timestamp(value: int | None) -> str | None:
    if not value:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class StripeDriver(PaymentDriver):
    """
    Stripe payments via the official SDK.

    The secret key is passed per call instead of being set on the ``stripe``
    module, so several Stripe accounts can be configured side by side.
    """

    name = "stripe"
    reference_prefix = "STRIPE"
    status_mappings = {
        PaymentStatus.PENDING: ["unpaid", "open"],
        PaymentStatus.SUCCESS: ["no_payment_required"],
    }

    def __init__(self, config=None) -> None:
        super().__init__(config)
        self.api_key = self.config["secret_key"]

    def charge(self, request: ChargeRequest) -> ChargeResponse:
        """
        Create a Checkout Session.

        Raises:
            InvalidConfigurationException: No callback URL to build the
                success/cancel redirects from
            ChargeException: Stripe rejected the session
        """
        reference = request.reference or self.generate_reference()
        callback = request.callback_url or self.config.get("callback_url")
        if not callback:
            raise InvalidConfigurationException(
                "Stripe requires a callback URL for its redirect flow. "
                'Set "callback_url" on the provider config or use .callback() on the payment.'
            )

        success_url = append_query_param(
            append_query_param(callback, "status", "success"), "reference", reference
        )
        cancel_url = append_query_param(
            append_query_param(callback, "status", "cancelled"), "reference", reference
        )

        params: dict[str, Any] = {
            "payment_method_types": self.map_channels(request) or ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": request.currency.lower(),
                        "product_data": {"name": request.description or "Payment"},
                        "unit_amount": request.amount_in_minor_units(),
                    },
                    "quantity": 1,
                }
            ],
            "mode": "payment",
            "success_url": success_url,
            "cancel_url": cancel_url,
            "client_reference_id": reference,
            "customer_email": request.email,
            "metadata": {**request.metadata, "reference": reference},
        }

        options: dict[str, Any] = {"api_key": self.api_key}
        if request.idempotency_key:
            options["idempotency_key"] = request.idempotency_key

        try:
            session = stripe.checkout.Session.create(**options, **params)
        except stripe.StripeError as e:
            logger.error(
                "stripe_charge_failed",
                error=str(e),
                http_status=getattr(e, "http_status", None),
            )
            raise ChargeException(f"Stripe charge failed: {e}") from e

        logger.info(
            "stripe_charge_initialized",
            reference=reference,
            session_id=session["id"],
            idempotent=request.idempotency_key is not None,
        )

        return ChargeResponse(
            reference=reference,
            authorization_url=session["url"],
            access_code=session["id"],
            status="pending",
            provider=self.name,
            metadata={"session_id": session["id"]},
        )

    def verify(self, reference: str) -> VerificationResponse:
        """
        Verify by Checkout Session id (``cs_``), PaymentIntent id (``pi_``),
        or our own reference via a lookup of recent sessions.
        """
        try:
            if reference.startswith("cs_"):
                session = stripe.checkout.Session.retrieve(
                    reference, api_key=self.api_key, expand=["payment_intent"]
                )
                return self._from_checkout_session(session)

            if reference.startswith("pi_"):
                intent = stripe.PaymentIntent.retrieve(reference, api_key=self.api_key)
                return self._from_payment_intent(intent)

            sessions = stripe.checkout.Session.list(limit=20, api_key=self.api_key)
            for session in sessions.get("data", []):
                if session.get("client_reference_id") == reference:
                    return self._from_checkout_session(session)
        except stripe.StripeError as e:
            logger.error("stripe_verification_failed", reference=reference, error=str(e))
            raise VerificationException(f"Stripe verification failed: {e}") from e

        raise VerificationException(
            f"Payment not found for reference [{reference}]",
            context={"reference": reference},
        )

    def health_check(self) -> bool:
        """
        Retrieve the account balance.

        An authentication error still proves the API answered.
        """
        try:
            stripe.Balance.retrieve(api_key=self.api_key)
            return True
        except stripe.AuthenticationError:
            return True
        except stripe.StripeError as e:
            logger.error("stripe_health_check_failed", error=str(e))
            http_status = getattr(e, "http_status", None)
            return http_status is not None and http_status < 500

    def _from_checkout_session(self, session: Any) -> VerificationResponse:
        status = session.get("payment_status") or "unknown"
        if session.get("status") == "expired" and status != "paid":
            status = "expired"

        intent = session.get("payment_intent")
        amount = session.get("amount_total")
        if amount is None and isinstance(intent, dict):
            amount = intent.get("amount")

        details = session.get("customer_details") or {}

        return VerificationResponse(
            reference=session.get("client_reference_id") or session["id"],
            status=status,
            amount=(amount or 0) / 100,
            currency=str(session.get("currency") or "").upper(),
            paid_at=_timestamp(session.get("created")) if status == "paid" else None,
            metadata=dict(session.get("metadata") or {}),
            provider=self.name,
            channel="card",
            customer={"email": details.get("email") or session.get("customer_email")},
        )

    def _from_payment_intent(self, intent: Any) -> VerificationResponse:
        metadata = dict(intent.get("metadata") or {})
        status = intent.get("status") or "unknown"

        return VerificationResponse(
            reference=metadata.get("reference") or intent["id"],
            status=status,
            amount=(intent.get("amount") or 0) / 100,
            currency=str(intent.get("currency") or "").upper(),
            paid_at=_timestamp(intent.get("created")) if status == "succeeded" else None,
            metadata=metadata,
            provider=self.name,
            channel=(intent.get("payment_method_types") or [None])[0],
            customer={"email": intent.get("receipt_email")},
        )
