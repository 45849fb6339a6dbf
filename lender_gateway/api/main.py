"""FastAPI application factory"""

import logging
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from lender_gateway.api.dependencies import get_registry, get_request_id
from lender_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from lender_gateway.api.v1 import applications, lenders
from lender_gateway.domain.exceptions import DomainException, LenderAPIError, LenderNotFoundError
from lender_gateway.domain.registry import LenderRegistry
from lender_gateway.infrastructure.observability.logging import setup_logging
from lender_gateway.config import settings

setup_logging(settings.log_level)

# Domain errors that escape a route, mapped to HTTP status codes
ERROR_STATUS = {
    LenderNotFoundError: 404,
    LenderAPIError: 502,
}


async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    status_code = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 400)
    logging.warning(
        f"Unhandled domain error: {exc}",
        extra={"request_id": get_request_id(request), "error": type(exc).__name__},
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Build the gateway: middleware, domain error mapping, health/metrics and v1 routers"""
    app = FastAPI(
        title="Lender Gateway",
        description="Multi-lender loan submission orchestration service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Last added runs first, so request IDs exist before metrics are taken
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_exception_handler(DomainException, domain_exception_handler)

    @app.get("/health")
    def health_check(registry: LenderRegistry = Depends(get_registry)):
        return {
            "status": "ok",
            "service": settings.service_name,
            "store_backend": settings.store_backend,
            "active_lenders": len(registry.list_active()),
        }

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(applications.router, prefix="/v1", tags=["applications"])
    app.include_router(lenders.router, prefix="/v1", tags=["lenders"])

    return app


app = create_app()
