"""Unit tests for the Paystack driver."""

import json

import httpx
import pytest

from payment_gateway.drivers import PaystackDriver
from payment_gateway.models import (
    ChargeException,
    ChargeRequest,
    InvalidConfigurationException,
    PaymentStatus,
    VerificationException,
)
from payment_gateway.services.status_normalizer import StatusNormalizer

PAYSTACK_CONFIG = {
    "secret_key": "sk_test_paystack",
    "currencies": ["NGN", "GHS", "ZAR", "USD"],
    "callback_url": "https://shop.test/callback",
}


def make_driver(handler) -> PaystackDriver:
    """PaystackDriver whose HTTP calls are answered by ``handler``."""
    client = httpx.Client(
        base_url="https://api.paystack.co",
        transport=httpx.MockTransport(handler),
    )
    return PaystackDriver(PAYSTACK_CONFIG, http_client=client)


@pytest.fixture
def charge_request() -> ChargeRequest:
    return ChargeRequest(
        amount=150.75,
        currency="NGN",
        email="customer@example.com",
        reference="PAYSTACK_ref_1",
        metadata={"order_id": "42"},
        channels=["card", "qr_code"],
        idempotency_key="idem-123",
    )


class TestPaystackConfiguration:
    """Tests for driver construction."""

    def test_missing_secret_key(self):
        """Test that the secret key is required."""
        with pytest.raises(InvalidConfigurationException) as exc_info:
            PaystackDriver({"currencies": ["NGN"]})

        assert str(exc_info.value) == "Paystack secret key is required"

    def test_default_headers_use_bearer_auth(self):
        """Test the authorization header."""
        driver = PaystackDriver(PAYSTACK_CONFIG)

        assert driver.default_headers()["Authorization"] == "Bearer sk_test_paystack"
        assert driver.base_url == "https://api.paystack.co"
        driver.close()

    def test_currency_support(self):
        """Test currency lookups are case-insensitive."""
        driver = PaystackDriver(PAYSTACK_CONFIG)

        assert driver.is_currency_supported("ngn")
        assert not driver.is_currency_supported("EUR")
        assert driver.get_supported_currencies() == {"NGN", "GHS", "ZAR", "USD"}
        driver.close()


class TestPaystackCharge:
    """Tests for transaction initialization."""

    def test_successful_charge(self, charge_request):
        """Test the request payload and the mapped response."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "message": "Authorization URL created",
                    "data": {
                        "authorization_url": "https://checkout.paystack.com/abc",
                        "access_code": "abc",
                        "reference": "PAYSTACK_ref_1",
                    },
                },
            )

        response = make_driver(handler).charge(charge_request)

        sent = captured["request"]
        body = json.loads(sent.content)
        assert sent.method == "POST"
        assert sent.url.path == "/transaction/initialize"
        assert sent.headers["Idempotency-Key"] == "idem-123"
        assert body["amount"] == 15075
        assert body["currency"] == "NGN"
        assert body["email"] == "customer@example.com"
        assert body["callback_url"] == "https://shop.test/callback"
        assert body["channels"] == ["card", "qr"]

        assert response.reference == "PAYSTACK_ref_1"
        assert response.authorization_url == "https://checkout.paystack.com/abc"
        assert response.access_code == "abc"
        assert response.provider == "paystack"
        assert response.metadata == {"order_id": "42"}
        assert response.is_pending()

    def test_generates_reference_when_missing(self):
        """Test that a PAYSTACK_ reference is generated."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            captured["headers"] = request.headers
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "data": {
                        "authorization_url": "https://checkout.paystack.com/x",
                        "access_code": "x",
                        "reference": captured["body"]["reference"],
                    },
                },
            )

        request = ChargeRequest(amount=10, currency="NGN", email="a@b.co")
        response = make_driver(handler).charge(request)

        assert response.reference.startswith("PAYSTACK_")
        assert "Idempotency-Key" not in captured["headers"]
        assert "channels" not in captured["body"]

    def test_api_error_raises_charge_exception(self, charge_request):
        """Test that status false maps to ChargeException with the provider message."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"status": False, "message": "Invalid key"})

        with pytest.raises(ChargeException) as exc_info:
            make_driver(handler).charge(charge_request)

        assert str(exc_info.value) == "Invalid key"
        assert exc_info.value.context["http_status"] == 400

    def test_transport_error_raises_charge_exception(self, charge_request):
        """Test that network failures are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ChargeException) as exc_info:
            make_driver(handler).charge(charge_request)

        assert "Paystack charge failed: connection refused" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"reference": "PAYSTACK_ref_1"},
            {"authorization_url": "https://checkout.paystack.com/abc"},
        ],
    )
    def test_incomplete_success_envelope_raises_charge_exception(self, charge_request, data):
        """Test that a success envelope without the checkout details is a ChargeException."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": True, "data": data})

        with pytest.raises(ChargeException) as exc_info:
            make_driver(handler).charge(charge_request)

        assert "missing the reference or authorization URL" in str(exc_info.value)
        assert exc_info.value.context == {"http_status": 200}


class TestPaystackVerify:
    """Tests for transaction verification."""

    def test_successful_verification(self):
        """Test that verification details are mapped and amounts converted."""

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/transaction/verify/PAYSTACK_ref_1"
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "data": {
                        "reference": "PAYSTACK_ref_1",
                        "status": "success",
                        "amount": 15075,
                        "currency": "NGN",
                        "paid_at": "2024-05-01T10:00:00.000Z",
                        "channel": "card",
                        "metadata": {"order_id": "42"},
                        "authorization": {"card_type": "visa", "bank": "TEST BANK"},
                        "customer": {"email": "customer@example.com", "customer_code": "CUS_1"},
                    },
                },
            )

        result = make_driver(handler).verify("PAYSTACK_ref_1")

        assert result.amount == 150.75
        assert result.currency == "NGN"
        assert result.card_type == "visa"
        assert result.bank == "TEST BANK"
        assert result.customer == {"email": "customer@example.com", "code": "CUS_1"}
        assert result.is_successful()

    def test_abandoned_is_failed_through_normalizer(self):
        """Test the Paystack vocabulary via an injected normalizer."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={"status": True, "data": {"reference": "r", "status": "abandoned", "amount": 100}},
            )

        normalizer = StatusNormalizer()
        driver = make_driver(handler).set_status_normalizer(normalizer)
        result = driver.verify("r")

        assert result.outcome(normalizer) is PaymentStatus.FAILED
        assert driver.normalize_status("abandoned") is PaymentStatus.FAILED
        assert result.outcome() is PaymentStatus.FAILED

    def test_reference_is_escaped_in_path(self):
        """Test that slashes and query characters stay inside the path segment."""
        captured = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["request"] = request
            return httpx.Response(200, json={"status": True, "data": {"reference": "a/b?c", "status": "success"}})

        make_driver(handler).verify("a/b?c")

        sent = captured["request"]
        assert sent.url.raw_path == b"/transaction/verify/a%2Fb%3Fc"
        assert sent.url.query == b""

    def test_not_found_raises_verification_exception(self):
        """Test that an unknown reference is a VerificationException."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"status": False, "message": "Transaction reference not found"})

        with pytest.raises(VerificationException) as exc_info:
            make_driver(handler).verify("missing")

        assert str(exc_info.value) == "Transaction reference not found"
        assert exc_info.value.context["reference"] == "missing"

    def test_transport_error_raises_verification_exception(self):
        """Test that network failures are wrapped."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(VerificationException):
            make_driver(handler).verify("r")


class TestPaystackHealth:
    """Tests for the health check."""

    @pytest.mark.parametrize("status_code,healthy", [(200, True), (404, True), (400, True), (500, False), (503, False)])
    def test_health_by_status_code(self, status_code, healthy):
        """Test that only 5xx responses are unhealthy."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json={"status": False})

        assert make_driver(handler).health_check() is healthy

    def test_network_error_is_unhealthy(self):
        """Test that a connection error is reported as unhealthy."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        assert make_driver(handler).health_check() is False

    def test_cached_health_check_runs_once(self):
        """Test that repeated checks within the TTL reuse the result."""
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404, json={"status": False})

        driver = make_driver(handler)

        assert driver.get_cached_health_check() is True
        assert driver.get_cached_health_check() is True
        assert len(calls) == 1
