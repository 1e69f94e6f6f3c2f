"""Fluent payment builder."""

from typing import Any

from fastapi.responses import RedirectResponse

from payment_gateway.manager import PaymentManager
from payment_gateway.models import ChargeRequest, ChargeResponse


class Payment:
    """
    Chainable front door for charging and verifying.

    Example:
        response = (
            Payment(manager)
            .amount(5000)
            .currency("ngn")
            .email("customer@example.com")
            .callback("https://shop.example.com/payments/callback")
            .using(["paystack", "stripe"])
            .charge()
        )
    """

    def __init__(self, manager: PaymentManager | None = None) -> None:
        self.manager = manager or PaymentManager()
        self._data: dict[str, Any] = {}
        self._providers: list[str] = []

    def amount(self, amount: float) -> "Payment":
        self._data["amount"] = amount
        return self

    def currency(self, currency: str) -> "Payment":
        self._data["currency"] = currency.strip().upper()
        return self

    def email(self, email: str) -> "Payment":
        self._data["email"] = email
        return self

    def callback(self, url: str) -> "Payment":
        self._data["callback_url"] = url
        return self

    def reference(self, reference: str) -> "Payment":
        self._data["reference"] = reference
        return self

    def metadata(self, metadata: dict[str, Any]) -> "Payment":
        self._data["metadata"] = dict(metadata)
        return self

    def description(self, description: str) -> "Payment":
        self._data["description"] = description
        return self

    def customer(self, customer: dict[str, Any]) -> "Payment":
        self._data["customer"] = dict(customer)
        return self

    def channels(self, channels: list[str]) -> "Payment":
        self._data["channels"] = list(channels)
        return self

    def idempotency(self, key: str) -> "Payment":
        self._data["idempotency_key"] = key
        return self

    def using(self, providers: str | list[str]) -> "Payment":
        """Charge through one provider, or try several in order."""
        self._providers = [providers] if isinstance(providers, str) else list(providers)
        return self

    def with_(self, providers: str | list[str]) -> "Payment":
        """Alias of ``using()`` (``with`` is a reserved word)."""
        return self.using(providers)

    def build_request(self) -> ChargeRequest:
        """
        Build the validated charge request.

        Raises:
            ValidationException: Missing or invalid amount, currency or email
        """
        data = dict(self._data)
        data.setdefault("currency", self.manager.config.currency.default)
        return ChargeRequest.from_dict(data)

    def charge(self) -> ChargeResponse:
        request = self.build_request()

        if len(self._providers) > 1:
            return self.manager.charge_with_fallback(request, self._providers)

        provider = self._providers[0] if self._providers else None
        return self.manager.charge(request, provider)

    def redirect(self) -> RedirectResponse:
        """Charge and redirect the customer to the provider's checkout page."""
        response = self.charge()
        return RedirectResponse(url=response.authorization_url, status_code=302)

    def verify(self, reference: str, provider: str | None = None) -> ChargeResponse:
        if provider is None and len(self._providers) == 1:
            provider = self._providers[0]
        return self.manager.verify(reference, provider)
