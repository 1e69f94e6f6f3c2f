"""Pytest configuration and shared fixtures for all tests.

This module provides shared test fixtures including:
- Provider configurations built on the network-free mock driver
- PaymentManager instances with isolated normalizer and health cache
- A FastAPI TestClient with the manager dependency overridden
"""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from payment_gateway.config import PaymentsConfig  # noqa: E402
from payment_gateway.manager import PaymentManager  # noqa: E402
from payment_gateway.services.health_cache import HealthCheckCache  # noqa: E402
from payment_gateway.services.status_normalizer import StatusNormalizer  # noqa: E402


@pytest.fixture
def payments_config() -> PaymentsConfig:
    """Two mock-backed providers plus a disabled one."""
    return PaymentsConfig.model_validate(
        {
            "default": "primary",
            "fallback": "backup",
            "providers": {
                "primary": {
                    "driver": "mock",
                    "currencies": ["NGN", "USD"],
                    "checkout_url": "https://checkout.primary.test/pay",
                },
                "backup": {
                    "driver": "mock",
                    "currencies": ["NGN", "USD", "EUR"],
                    "checkout_url": "https://checkout.backup.test/pay",
                },
                "dormant": {
                    "driver": "mock",
                    "enabled": False,
                    "currencies": ["NGN"],
                },
            },
            "health_check": {"enabled": True, "cache_ttl": 300},
            "currency": {"default": "NGN"},
        }
    )


@pytest.fixture
def status_normalizer() -> StatusNormalizer:
    """Fresh normalizer so registrations don't leak between tests."""
    return StatusNormalizer()


@pytest.fixture
def manager(payments_config, status_normalizer) -> PaymentManager:
    """PaymentManager over the mock providers."""
    return PaymentManager(
        payments_config,
        status_normalizer=status_normalizer,
        health_cache=HealthCheckCache(300),
    )


@pytest.fixture
def api_client(manager):
    """TestClient whose routes use the ``manager`` fixture."""
    from fastapi.testclient import TestClient

    from payment_gateway.api.dependencies import get_payment_manager
    from payment_gateway.api.main import app

    app.dependency_overrides[get_payment_manager] = lambda: manager
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()
