"""Provider health and payment verification endpoints."""

from typing import Any

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from payment_gateway.api.dependencies import Manager

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/health")
def payments_health(manager: Manager) -> JSONResponse:
    """Health of every enabled provider.

    Always 200: a failing provider is reported with ``healthy: false``
    rather than failing the whole endpoint.
    """
    providers = manager.health_report()
    logger.debug(
        "payments_health_reported",
        providers=len(providers),
        unhealthy=[name for name, report in providers.items() if not report["healthy"]],
    )
    return JSONResponse(
        status_code=200,
        content={"status": "operational", "providers": providers},
    )


@router.get("/verify/{reference}")
def verify_payment(
    reference: str,
    manager: Manager,
    provider: str | None = None,
) -> dict[str, Any]:
    """Verify a transaction, optionally against a specific provider."""
    response = manager.verify(reference, provider)
    outcome = response.outcome(manager.status_normalizer)

    logger.info(
        "payment_verified",
        reference=reference,
        provider=response.provider,
        outcome=outcome.value,
    )

    return {
        "reference": response.reference,
        "provider": response.provider,
        "status": outcome.value,
        "successful": outcome.is_successful(),
        "data": response.to_dict(),
    }
