"""FastAPI dependencies for the payment routes.

Tests and applications swap the manager through ``app.dependency_overrides``.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from payment_gateway.config import settings
from payment_gateway.manager import PaymentManager


@lru_cache(maxsize=1)
def get_payment_manager() -> PaymentManager:
    """Process-wide PaymentManager built from the application settings.

    Cached so driver instances and health results are shared across requests.
    """
    return PaymentManager(settings.payments)


# Type alias for the payment manager dependency
Manager = Annotated[PaymentManager, Depends(get_payment_manager)]
