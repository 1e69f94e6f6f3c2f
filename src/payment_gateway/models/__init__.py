"""Domain models for the payment gateway."""

from payment_gateway.models.exceptions import (
    ChargeException,
    CurrencyNotSupportedException,
    DriverNotFoundException,
    InvalidConfigurationException,
    PaymentException,
    ProviderException,
    ValidationException,
    VerificationException,
)
from payment_gateway.models.payment import (
    ChargeRequest,
    ChargeResponse,
    VerificationResponse,
)
from payment_gateway.models.status import PaymentStatus

__all__ = [
    "ChargeRequest",
    "ChargeResponse",
    "VerificationResponse",
    "PaymentStatus",
    "PaymentException",
    "DriverNotFoundException",
    "CurrencyNotSupportedException",
    "ValidationException",
    "InvalidConfigurationException",
    "ChargeException",
    "VerificationException",
    "ProviderException",
]
