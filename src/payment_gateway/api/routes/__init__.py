"""API routes."""

from payment_gateway.api.routes.payments import router as payments_router

__all__ = ["payments_router"]
