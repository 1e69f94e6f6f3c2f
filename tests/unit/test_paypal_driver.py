"""Unit tests for the PayPal driver."""

import json

import httpx
import pytest

from payment_gateway.drivers import PayPalDriver
from payment_gateway.drivers.paypal_driver import LIVE_BASE_URL, SANDBOX_BASE_URL, format_amount
from payment_gateway.models import (
    ChargeException,
    ChargeRequest,
    InvalidConfigurationException,
    PaymentStatus,
    VerificationException,
)

PAYPAL_CONFIG = {
    "client_id": "client-123",
    "client_secret": "secret-456",
    "currencies": ["USD", "EUR"],
    "callback_url": "https://shop.test/paypal",
}

TOKEN_RESPONSE = {"access_token": "A21AA-token", "expires_in": 32400}

ORDER_RESPONSE = {
    "id": "5O190127TN364715T",
    "status": "CREATED",
    "links": [
        {"href": "https://api-m.sandbox.paypal.com/v2/checkout/orders/5O190127TN364715T", "rel": "self"},
        {"href": "https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T", "rel": "approve"},
    ],
}


def make_driver(handler, **config) -> PayPalDriver:
    client = httpx.Client(
        base_url=SANDBOX_BASE_URL,
        transport=httpx.MockTransport(handler),
    )
    return PayPalDriver({**PAYPAL_CONFIG, **config}, http_client=client)


def routes(**responses):
    """Handler that answers by path and records every request."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.url.path == "/v1/oauth2/token":
            return responses.get("token") or httpx.Response(200, json=TOKEN_RESPONSE)
        api = responses["api"]
        return httpx.Response(api.status_code, headers=api.headers, content=api.content)

    return handler, seen


class TestFormatAmount:
    @pytest.mark.parametrize(
        "amount,currency,expected",
        [
            (10, "USD", "10.00"),
            (19.999, "EUR", "20.00"),
            (1500, "JPY", "1500"),
            (1500.4, "krw", "1500"),
        ],
    )
    def test_format_amount(self, amount, currency, expected):
        assert format_amount(amount, currency) == expected


class TestPayPalConfiguration:
    """Tests for driver construction."""

    @pytest.mark.parametrize("missing", ["client_id", "client_secret"])
    def test_required_config(self, missing):
        config = {key: value for key, value in PAYPAL_CONFIG.items() if key != missing}

        with pytest.raises(InvalidConfigurationException, match="PayPal client ID and secret are required"):
            PayPalDriver(config)

    def test_sandbox_is_default(self):
        driver = PayPalDriver(PAYPAL_CONFIG)

        assert driver.base_url == SANDBOX_BASE_URL
        driver.close()

    def test_live_mode_base_url(self):
        driver = PayPalDriver({**PAYPAL_CONFIG, "mode": "live"})

        assert driver.base_url == LIVE_BASE_URL
        driver.close()

    def test_explicit_base_url_wins(self):
        driver = PayPalDriver({**PAYPAL_CONFIG, "mode": "live", "base_url": "https://paypal.internal/"})

        assert driver.base_url == "https://paypal.internal"
        driver.close()


class TestPayPalAuthentication:
    """Tests for the client credentials exchange."""

    def test_token_request_is_form_encoded(self):
        handler, seen = routes(api=httpx.Response(200, json={}))

        assert make_driver(handler).access_token() == "A21AA-token"

        sent = seen[0]
        assert sent.method == "POST"
        assert sent.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert sent.headers["Authorization"].startswith("Basic ")
        assert sent.content == b"grant_type=client_credentials"

    def test_token_is_reused_across_calls(self):
        """Test that one token serves both a charge and a lookup."""
        handler, seen = routes(api=httpx.Response(201, json={**ORDER_RESPONSE, "purchase_units": []}))
        driver = make_driver(handler)

        driver.charge(ChargeRequest(amount=10, currency="USD", email="buyer@example.com"))
        driver.verify(ORDER_RESPONSE["id"])

        token_calls = [request for request in seen if request.url.path == "/v1/oauth2/token"]
        assert len(token_calls) == 1
        assert len(seen) == 3

    def test_missing_token_raises(self):
        handler, _ = routes(token=httpx.Response(401, json={"error": "invalid_client"}))

        with pytest.raises(ChargeException) as exc_info:
            make_driver(handler).access_token()

        assert str(exc_info.value) == "Failed to authenticate with PayPal"
        assert exc_info.value.context == {"http_status": 401}


class TestPayPalCharge:
    """Tests for order creation."""

    def test_successful_charge(self):
        """Test the order payload and the approval redirect."""
        handler, seen = routes(api=httpx.Response(201, json=ORDER_RESPONSE))
        request = ChargeRequest(
            amount=49.5,
            currency="USD",
            email="buyer@example.com",
            reference="PAYPAL_ref_1",
            description="Order 42",
            channels=["card"],
            idempotency_key="idem-7",
        )

        response = make_driver(handler, brand_name="Shop").charge(request)

        sent = seen[-1]
        body = json.loads(sent.content)
        assert sent.url.path == "/v2/checkout/orders"
        assert sent.headers["Authorization"] == "Bearer A21AA-token"
        assert sent.headers["PayPal-Request-Id"] == "idem-7"
        assert "Idempotency-Key" not in sent.headers
        assert body["intent"] == "CAPTURE"
        assert body["purchase_units"][0]["custom_id"] == "PAYPAL_ref_1"
        assert body["purchase_units"][0]["description"] == "Order 42"
        assert body["purchase_units"][0]["amount"] == {"currency_code": "USD", "value": "49.50"}
        assert body["application_context"]["return_url"] == "https://shop.test/paypal"
        assert body["application_context"]["brand_name"] == "Shop"

        assert response.reference == "PAYPAL_ref_1"
        assert response.authorization_url == "https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T"
        assert response.access_code == "5O190127TN364715T"
        assert response.metadata["order_id"] == "5O190127TN364715T"
        assert response.outcome() is PaymentStatus.PENDING

    def test_generated_reference(self):
        handler, _ = routes(api=httpx.Response(201, json=ORDER_RESPONSE))

        response = make_driver(handler).charge(ChargeRequest(amount=1, currency="USD", email="a@b.co"))

        assert response.reference.startswith("PAYPAL_")

    def test_rejected_order_raises(self):
        handler, _ = routes(
            api=httpx.Response(422, json={"name": "UNPROCESSABLE_ENTITY", "message": "Currency not supported"})
        )

        with pytest.raises(ChargeException) as exc_info:
            make_driver(handler).charge(ChargeRequest(amount=1, currency="USD", email="a@b.co"))

        assert str(exc_info.value) == "Currency not supported"
        assert exc_info.value.context == {"http_status": 422}

    def test_missing_approval_link_raises(self):
        handler, _ = routes(api=httpx.Response(201, json={"id": "ORDER1", "status": "CREATED", "links": []}))

        with pytest.raises(ChargeException, match="no approval link"):
            make_driver(handler).charge(ChargeRequest(amount=1, currency="USD", email="a@b.co"))

    def test_failed_authentication_raises_charge_exception(self):
        handler, seen = routes(token=httpx.Response(401, json={}))

        with pytest.raises(ChargeException):
            make_driver(handler).charge(ChargeRequest(amount=1, currency="USD", email="a@b.co"))

        assert [request.url.path for request in seen] == ["/v1/oauth2/token"]


class TestPayPalVerify:
    """Tests for order lookups."""

    def test_completed_order(self):
        handler, seen = routes(
            api=httpx.Response(
                200,
                json={
                    "id": "5O190127TN364715T",
                    "status": "COMPLETED",
                    "payer": {"email_address": "buyer@example.com", "name": {"given_name": "Ada"}},
                    "purchase_units": [
                        {
                            "custom_id": "PAYPAL_ref_1",
                            "amount": {"currency_code": "usd", "value": "49.50"},
                            "payments": {
                                "captures": [{"id": "CAP1", "create_time": "2024-05-01T10:00:00Z"}]
                            },
                        }
                    ],
                },
            )
        )

        result = make_driver(handler).verify("5O190127TN364715T")

        assert seen[-1].url.path == "/v2/checkout/orders/5O190127TN364715T"
        assert result.reference == "PAYPAL_ref_1"
        assert result.amount == 49.5
        assert result.currency == "USD"
        assert result.paid_at == "2024-05-01T10:00:00Z"
        assert result.channel == "paypal"
        assert result.metadata == {"order_id": "5O190127TN364715T", "capture_id": "CAP1"}
        assert result.customer == {"email": "buyer@example.com", "name": "Ada"}
        assert result.is_successful()

    def test_approved_order_is_pending(self):
        handler, _ = routes(api=httpx.Response(200, json={"id": "O1", "status": "APPROVED"}))

        result = make_driver(handler).verify("O1")

        assert result.reference == "O1"
        assert result.outcome() is PaymentStatus.PENDING

    def test_unknown_order_raises(self):
        handler, _ = routes(api=httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"}))

        with pytest.raises(VerificationException) as exc_info:
            make_driver(handler).verify("missing")

        assert str(exc_info.value) == "PayPal order not found"
        assert exc_info.value.context == {"reference": "missing", "http_status": 404}

    def test_order_id_is_escaped(self):
        handler, seen = routes(api=httpx.Response(200, json={"id": "O1", "status": "CREATED"}))

        make_driver(handler).verify("O1/x?y")

        assert seen[-1].url.raw_path == b"/v2/checkout/orders/O1%2Fx%3Fy"

    def test_failed_authentication_raises_verification_exception(self):
        handler, _ = routes(token=httpx.Response(401, json={}))

        with pytest.raises(VerificationException) as exc_info:
            make_driver(handler).verify("O1")

        assert exc_info.value.context == {"reference": "O1", "http_status": 401}


class TestPayPalHealth:
    def test_healthy_with_token(self):
        handler, _ = routes(api=httpx.Response(200, json={}))

        assert make_driver(handler).health_check() is True

    def test_unhealthy_without_token(self):
        handler, _ = routes(token=httpx.Response(503, json={}))

        assert make_driver(handler).health_check() is False

    def test_unreachable_is_unhealthy(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        assert make_driver(handler).health_check() is False
