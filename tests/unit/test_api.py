"""Unit tests for the HTTP surface."""

from fastapi.testclient import TestClient

from payment_gateway.api.dependencies import get_payment_manager
from payment_gateway import ChargeRequest
from payment_gateway.api.main import app, status_code_for
from payment_gateway.manager import PaymentManager
from payment_gateway.models import (
    ChargeException,
    CurrencyNotSupportedException,
    DriverNotFoundException,
    ProviderException,
    ValidationException,
)
from payment_gateway.services.status_normalizer import StatusNormalizer


def client_for(config: dict) -> TestClient:
    manager = PaymentManager(config, status_normalizer=StatusNormalizer())
    app.dependency_overrides[get_payment_manager] = lambda: manager
    return TestClient(app)


class TestPaymentsHealthEndpoint:
    """Tests for GET /payments/health."""

    def test_reports_enabled_providers(self, api_client):
        """Test the response shape with healthy providers."""
        response = api_client.get("/payments/health")

        assert response.status_code == 200
        assert response.json() == {
            "status": "operational",
            "providers": {
                "primary": {"healthy": True, "currencies": ["NGN", "USD"]},
                "backup": {"healthy": True, "currencies": ["EUR", "NGN", "USD"]},
            },
        }

    def test_no_providers(self):
        """Test that an empty configuration still answers 200."""
        try:
            response = client_for({"providers": {}}).get("/payments/health")
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 200
        assert response.json() == {"status": "operational", "providers": {}}

    def test_disabled_provider_omitted(self):
        """Test that disabled providers don't appear."""
        try:
            response = client_for(
                {"providers": {"off": {"driver": "mock", "enabled": False}}}
            ).get("/payments/health")
        finally:
            app.dependency_overrides.clear()

        assert response.json()["providers"] == {}

    def test_failing_provider_reported_unhealthy(self):
        """Test that a broken provider doesn't fail the endpoint."""
        try:
            response = client_for(
                {
                    "providers": {
                        "ok": {"driver": "mock", "currencies": ["NGN"]},
                        "down": {"driver": "mock", "healthy": False, "currencies": ["NGN"]},
                        "broken": {"driver": "paystack"},
                    }
                }
            ).get("/payments/health")
        finally:
            app.dependency_overrides.clear()

        body = response.json()
        assert response.status_code == 200
        assert body["providers"]["ok"]["healthy"] is True
        assert body["providers"]["down"] == {"healthy": False, "currencies": ["NGN"]}
        assert body["providers"]["broken"]["healthy"] is False
        assert body["providers"]["broken"]["error"] == "Paystack secret key is required"


class TestVerifyEndpoint:
    """Tests for GET /payments/verify/{reference}."""

    def test_verify_known_reference(self, api_client, manager):
        charge = manager.charge(ChargeRequest(amount=10, currency="NGN", email="a@b.co"))

        response = api_client.get(f"/payments/verify/{charge.reference}")

        assert response.status_code == 200
        body = response.json()
        assert body["reference"] == charge.reference
        assert body["status"] == "success"
        assert body["successful"] is True
        assert body["data"]["currency"] == "NGN"

    def test_verify_unknown_reference_is_bad_gateway(self, api_client):
        response = api_client.get("/payments/verify/MOCK_missing")

        assert response.status_code == 502
        assert response.json()["error"] == "ProviderException"

    def test_verify_unknown_provider_is_not_found(self, api_client):
        response = api_client.get("/payments/verify/ref", params={"provider": "ghost"})

        assert response.status_code == 404
        assert response.json() == {
            "error": "DriverNotFoundException",
            "message": "Payment driver [ghost] not found or disabled",
            "context": {"provider": "ghost"},
        }


class TestErrorMapping:
    """Tests for PaymentException -> HTTP status mapping."""

    def test_status_codes(self):
        assert status_code_for(DriverNotFoundException("x")) == 404
        assert status_code_for(CurrencyNotSupportedException("x")) == 422
        assert status_code_for(ValidationException("x")) == 422
        assert status_code_for(ChargeException("x")) == 502
        assert status_code_for(ProviderException("x")) == 502


class TestRoot:
    def test_root(self, api_client):
        response = api_client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "payment-gateway"
