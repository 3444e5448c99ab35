"""FastAPI application for the invoice app.

Browser-facing API with:
- Health and readiness checks for Kubernetes
- Login/signup with the backend token kept in an HTTP-only cookie
- Catalog, company and invoice proxies to the backend API
- Stateless invoice editor with server-side totals
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import time

import httpx
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from services.api import auth_routes, editor_routes, metrics, proxy_routes
from services.api.dependencies import backend, settings
from services.backend.client import BackendNotConfiguredError, UpstreamError

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Invoice App",
    description="Invoicing API: authentication, item catalog and invoice editing",
    version=settings.service_version,
)

app.include_router(auth_routes.router)
app.include_router(proxy_routes.router)
app.include_router(editor_routes.router)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    # Record metrics
    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    """Relay a backend error body with the backend's status code."""
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


@app.exception_handler(BackendNotConfiguredError)
async def backend_not_configured_handler(
    request: Request, exc: BackendNotConfiguredError
) -> JSONResponse:
    """Report a missing backend base URL."""
    logger.error("Request received but APP_API_BASE_URL is not set")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": str(exc)}
    )


@app.exception_handler(httpx.HTTPError)
async def backend_unreachable_handler(request: Request, exc: httpx.HTTPError) -> JSONResponse:
    """Report a backend transport failure."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": str(exc) or "Backend request failed"},
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe.

    Returns:
        Health status information
    """
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe.

    The service is ready once it knows where the backend API lives.

    Returns:
        Readiness status
    """
    return ReadinessResponse(ready=backend.is_configured())


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)
