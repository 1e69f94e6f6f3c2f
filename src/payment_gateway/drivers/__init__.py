"""Payment provider drivers."""

from payment_gateway.drivers.base import (
    DRIVER_CAPABILITIES,
    DriverInterface,
    HttpPaymentDriver,
    PaymentDriver,
    TokenAuthPaymentDriver,
    implements_driver_interface,
)
from payment_gateway.drivers.flutterwave_driver import FlutterwaveDriver
from payment_gateway.drivers.mock_driver import MockDriver
from payment_gateway.drivers.monnify_driver import MonnifyDriver
from payment_gateway.drivers.paypal_driver import PayPalDriver
from payment_gateway.drivers.paystack_driver import PaystackDriver
from payment_gateway.drivers.stripe_driver import StripeDriver
from payment_gateway.services.status_normalizer import get_status_normalizer

BUILTIN_DRIVERS: dict[str, type[PaymentDriver]] = {
    PaystackDriver.name: PaystackDriver,
    FlutterwaveDriver.name: FlutterwaveDriver,
    MonnifyDriver.name: MonnifyDriver,
    StripeDriver.name: StripeDriver,
    PayPalDriver.name: PayPalDriver,
    MockDriver.name: MockDriver,
}

# Make provider vocabularies known to the shared normalizer
for _driver_class in BUILTIN_DRIVERS.values():
    if _driver_class.status_mappings:
        get_status_normalizer().register_provider_mappings(
            _driver_class.name, _driver_class.status_mappings
        )

__all__ = [
    "BUILTIN_DRIVERS",
    "DRIVER_CAPABILITIES",
    "DriverInterface",
    "FlutterwaveDriver",
    "HttpPaymentDriver",
    "MockDriver",
    "MonnifyDriver",
    "PayPalDriver",
    "PaymentDriver",
    "PaystackDriver",
    "StripeDriver",
    "TokenAuthPaymentDriver",
    "implements_driver_interface",
]
