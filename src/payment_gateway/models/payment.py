"""Payment request/response data objects."""

import math
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Mapping

from payment_gateway.models.exceptions import ValidationException
from payment_gateway.models.status import PaymentStatus

if TYPE_CHECKING:
    from payment_gateway.services.status_normalizer import StatusNormalizer

MAX_AMOUNT = 999_999_999.99

_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _pick(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, so snake_case and camelCase payloads both work."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _metadata(data: Mapping[str, Any], *keys: str) -> dict[str, Any]:
    value = _pick(data, *keys, default={})
    if not isinstance(value, Mapping):
        raise ValidationException(
            "metadata must be a mapping",
            context={"type": type(value).__name__},
        )
    return dict(value)


@dataclass
class ChargeRequest:
    """
    Everything a provider needs to initialize a charge.

    The amount is held in major units (e.g. 100.00 NGN); drivers send
    ``amount_in_minor_units()`` to providers that expect kobo/cents.
    """

    amount: float
    currency: str
    email: str
    reference: str | None = None
    callback_url: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    description: str | None = None
    customer: dict[str, Any] | None = None
    channels: list[str] | None = None
    idempotency_key: str | None = None

    def __post_init__(self) -> None:
        """Validate amount, currency and email."""
        self.currency = (self.currency or "").strip().upper()

        if isinstance(self.amount, bool) or not isinstance(self.amount, (int, float)):
            raise ValidationException("Amount must be a number")
        if not math.isfinite(self.amount):
            raise ValidationException("Amount must be a finite number")
        if self.amount <= 0:
            raise ValidationException("Amount must be greater than zero")
        if self.amount > MAX_AMOUNT:
            raise ValidationException("Amount exceeds maximum allowed value")
        if not self.currency:
            raise ValidationException("Currency is required")
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise ValidationException("Currency must be a 3-letter ISO code")
        if not self.email or not _EMAIL_PATTERN.match(self.email):
            raise ValidationException("Invalid email address")

    def amount_in_minor_units(self) -> int:
        """Amount in the smallest currency unit (10000 kobo for 100.00 NGN)."""
        return int(round(self.amount * 100))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChargeRequest":
        amount = _pick(data, "amount", default=0)
        try:
            amount = round(float(amount), 2)
        except (TypeError, ValueError) as e:
            raise ValidationException(f"Invalid amount: {amount!r}") from e

        return cls(
            amount=amount,
            currency=str(_pick(data, "currency", default="")),
            email=str(_pick(data, "email", default="")),
            reference=_pick(data, "reference"),
            callback_url=_pick(data, "callback_url", "callbackUrl"),
            metadata=_metadata(data, "metadata"),
            description=_pick(data, "description"),
            customer=_pick(data, "customer"),
            channels=_pick(data, "channels"),
            idempotency_key=_pick(data, "idempotency_key", "idempotencyKey"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "currency": self.currency,
            "email": self.email,
            "reference": self.reference,
            "callback_url": self.callback_url,
            "metadata": self.metadata,
            "description": self.description,
            "customer": self.customer,
            "channels": self.channels,
            "idempotency_key": self.idempotency_key,
        }


@dataclass(frozen=True)
class ChargeResponse:
    """
    Result of a charge attempt.

    Immutable. Whether the charge is "successful" is derived from the raw
    ``status`` and ``provider`` through the status normalizer; it is never
    stored on the object.
    """

    _REQUIRED_FIELDS: ClassVar[dict[str, tuple[str, ...]]] = {
        "reference": ("reference",),
        "authorization_url": ("authorization_url", "authorizationUrl"),
    }

    reference: str
    authorization_url: str
    access_code: str = ""
    status: str = "pending"
    provider: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def _require(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(data, Mapping):
            raise ValidationException(
                f"{cls.__name__} payload must be a mapping, got {type(data).__name__}"
            )

        values = {}
        missing = []
        for name, keys in cls._REQUIRED_FIELDS.items():
            value = _pick(data, *keys)
            if value is None or value == "":
                missing.append(keys[0])
            else:
                values[name] = str(value)

        if missing:
            raise ValidationException(
                f"{cls.__name__} payload missing required keys: {', '.join(missing)}",
                context={"missing": missing},
            )
        return values

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ChargeResponse":
        """
        Build a response from a loosely-keyed provider payload.

        Accepts snake_case and camelCase field names. Unknown keys are ignored.

        Raises:
            ValidationException: If reference or authorization URL is missing
        """
        required = cls._require(data)
        return cls(
            reference=required["reference"],
            authorization_url=required["authorization_url"],
            access_code=str(_pick(data, "access_code", "accessCode", default="")),
            status=str(_pick(data, "status", default="pending")),
            provider=_pick(data, "provider"),
            metadata=_metadata(data, "metadata"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "authorization_url": self.authorization_url,
            "access_code": self.access_code,
            "status": self.status,
            "provider": self.provider,
            "metadata": self.metadata,
        }

    def outcome(self, normalizer: "StatusNormalizer | None" = None) -> PaymentStatus:
        """Canonical outcome of the raw status.

        Uses the given normalizer when available. Otherwise responses that
        name a provider go through the shared normalizer, so provider
        vocabularies apply, and the rest use the built-in default table.
        """
        from payment_gateway.services.status_normalizer import (
            StatusNormalizer,
            get_status_normalizer,
        )

        if normalizer is None and self.provider:
            normalizer = get_status_normalizer()
        if normalizer is not None:
            return normalizer.normalize(self.status, self.provider)

        return StatusNormalizer.normalize_static(self.status)

    def is_successful(self, normalizer: "StatusNormalizer | None" = None) -> bool:
        return self.outcome(normalizer) is PaymentStatus.SUCCESS

    def is_pending(self, normalizer: "StatusNormalizer | None" = None) -> bool:
        return self.outcome(normalizer) is PaymentStatus.PENDING

    def is_failed(self, normalizer: "StatusNormalizer | None" = None) -> bool:
        return self.outcome(normalizer) is PaymentStatus.FAILED


@dataclass(frozen=True)
class VerificationResponse(ChargeResponse):
    """
    Result of verifying a transaction with its provider.

    Verification has no checkout URL, so only ``reference`` is required.
    """

    _REQUIRED_FIELDS: ClassVar[dict[str, tuple[str, ...]]] = {
        "reference": ("reference",),
    }

    authorization_url: str = ""
    status: str = "unknown"
    amount: float = 0.0
    currency: str = ""
    paid_at: str | None = None
    channel: str | None = None
    card_type: str | None = None
    bank: str | None = None
    customer: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VerificationResponse":
        required = cls._require(data)
        amount = _pick(data, "amount", default=0)
        try:
            amount = float(amount)
        except (TypeError, ValueError) as e:
            raise ValidationException(f"Invalid amount: {amount!r}") from e

        return cls(
            reference=required["reference"],
            authorization_url=str(_pick(data, "authorization_url", "authorizationUrl", default="")),
            access_code=str(_pick(data, "access_code", "accessCode", default="")),
            status=str(_pick(data, "status", default="unknown")),
            provider=_pick(data, "provider"),
            metadata=_metadata(data, "metadata"),
            amount=amount,
            currency=str(_pick(data, "currency", default="")).upper(),
            paid_at=_pick(data, "paid_at", "paidAt"),
            channel=_pick(data, "channel"),
            card_type=_pick(data, "card_type", "cardType"),
            bank=_pick(data, "bank"),
            customer=_pick(data, "customer"),
        )

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result.update(
            {
                "amount": self.amount,
                "currency": self.currency,
                "paid_at": self.paid_at,
                "channel": self.channel,
                "card_type": self.card_type,
                "bank": self.bank,
                "customer": self.customer,
            }
        )
        return result
