"""Canonical payment outcomes."""

from enum import Enum


class PaymentStatus(str, Enum):
    """Normalized charge outcome shared by every provider."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    UNKNOWN = "unknown"

    def is_successful(self) -> bool:
        return self is PaymentStatus.SUCCESS

    def is_pending(self) -> bool:
        return self is PaymentStatus.PENDING

    def is_failed(self) -> bool:
        return self is PaymentStatus.FAILED

    @classmethod
    def try_from(cls, value: str) -> "PaymentStatus | None":
        """Return the outcome named by ``value`` (case-insensitive), or None."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None
