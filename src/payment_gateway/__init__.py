"""Multi-provider payment gateway: one API over Paystack, Flutterwave, Stripe and custom drivers."""

from payment_gateway.manager import PaymentManager
from payment_gateway.models import ChargeRequest, ChargeResponse, PaymentStatus, VerificationResponse
from payment_gateway.payment import Payment

__version__ = "0.1.0"

__all__ = [
    "ChargeRequest",
    "ChargeResponse",
    "Payment",
    "PaymentManager",
    "PaymentStatus",
    "VerificationResponse",
]
