"""FastAPI application entry point for the payment gateway."""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from payment_gateway.api.routes import payments_router
from payment_gateway.config import settings
from payment_gateway.logging_config import configure_logging
from payment_gateway.models import (
    CurrencyNotSupportedException,
    DriverNotFoundException,
    PaymentException,
    ValidationException,
)

# Configure logging at module level
configure_logging(
    log_level=settings.log_level,
    format_as_json=settings.log_json,
    service_name=settings.service_name,
)

logger = structlog.get_logger(__name__)

_ERROR_STATUS_CODES: list[tuple[type[PaymentException], int]] = [
    (DriverNotFoundException, 404),
    (CurrencyNotSupportedException, 422),
    (ValidationException, 422),
]


def status_code_for(exc: PaymentException) -> int:
    for exc_type, status_code in _ERROR_STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 502


app = FastAPI(
    title="Payment Gateway",
    description="Multi-provider payment gateway",
    version="0.1.0",
)

app.include_router(payments_router)


@app.middleware("http")
async def bind_correlation_id(request: Request, call_next):
    """Bind X-Request-ID to every log event emitted while handling the request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(correlation_id=request.headers.get("X-Request-ID"))
    return await call_next(request)


@app.exception_handler(PaymentException)
async def payment_exception_handler(request: Request, exc: PaymentException) -> JSONResponse:
    status_code = status_code_for(exc)
    logger.warning(
        "payment_request_failed",
        path=request.url.path,
        error=str(exc),
        error_type=type(exc).__name__,
        status_code=status_code,
    )
    return JSONResponse(
        status_code=status_code,
        content={
            "error": type(exc).__name__,
            "message": str(exc),
            "context": exc.context,
        },
    )


@app.get("/")
def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "service": settings.service_name,
        "version": "0.1.0",
        "environment": settings.environment,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "payment_gateway.api.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=settings.log_level.lower(),
    )
