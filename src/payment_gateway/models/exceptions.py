"""Custom exceptions for the payment gateway."""

from typing import Any


class PaymentException(Exception):
    """
    Base exception for payment gateway errors.

    Carries an optional context dictionary with structured details
    (e.g. per-provider error messages after a fallback sweep).
    """

    def __init__(self, message: str = "", context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}

    @classmethod
    def with_context(cls, message: str, context: dict[str, Any]) -> "PaymentException":
        """Build an exception carrying structured context."""
        return cls(message, context=context)


class DriverNotFoundException(PaymentException):
    """
    Raised when a driver cannot be resolved, loaded or does not satisfy
    the driver capability set.

    This is a TERMINAL error for the requested operation.
    """

    pass


class CurrencyNotSupportedException(PaymentException):
    """
    Raised when the requested currency is not in the provider's supported set.

    The provider is never contacted when this is raised.
    """

    pass


class ValidationException(PaymentException):
    """Raised for malformed charge parameters or malformed raw provider payloads."""

    pass


class InvalidConfigurationException(PaymentException):
    """Raised when a driver's configuration is missing required values."""

    pass


class ChargeException(PaymentException):
    """
    Raised when a provider fails to initialize a charge.

    Examples:
    - Provider API returns an error status
    - Network timeout or connection error
    - Provider payload reports failure
    """

    pass


class VerificationException(PaymentException):
    """Raised when a provider fails to verify a transaction."""

    pass


class ProviderException(PaymentException):
    """Raised when every provider attempted for an operation failed."""

    pass
