"""FastAPI application entrypoint.

Responsibilities kept minimal:
  * Settings / gateway wiring and lifespan (shared HTTP client, webhook check)
  * Route registration (configured webhook route, health, metrics)
  * Cross-cutting concerns: metrics middleware & exception handlers

Run with ``taskflow`` (console script) or
``uvicorn taskflow.main:create_app --factory``.
"""

from contextlib import asynccontextmanager
import logging
import os
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

from .adapters.clickup_gateway import ClickUpGateway, build_client
from .api.webhooks import receive_webhook
from .config import Settings, load_settings
from .errors import BaseAppException
from .logging_setup import configure_logging
from .ports.record_gateway import RecordGateway
from .services.event_router import build_router
from .services.webhook_registry import ensure_webhooks

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080

# --- Metrics setup ---
REQUEST_COUNT = Counter(
    "taskflow_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
REQUEST_LATENCY = Histogram(
    "taskflow_request_latency_seconds", "Latency of HTTP requests", ["method", "path"]
)


def _install_gateway(app: FastAPI, settings: Settings, gateway: RecordGateway) -> None:
    app.state.gateway = gateway
    app.state.event_router = build_router(gateway, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the shared task-service client and verify webhooks before serving traffic."""
    if getattr(app.state, "gateway", None) is not None:
        yield
        return
    settings: Settings = app.state.settings
    async with build_client(settings) as client:
        gateway = ClickUpGateway(client)
        if settings.webhooks.verify_on_startup:
            await ensure_webhooks(gateway, settings)
        _install_gateway(app, settings, gateway)
        yield
        app.state.gateway = None


def create_app(settings: Optional[Settings] = None, gateway: Optional[RecordGateway] = None) -> FastAPI:
    """Build the service. Configuration errors surface here, before any traffic."""
    settings = settings or load_settings()
    app = FastAPI(title="Taskflow Automations", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = None
    if gateway is not None:
        _install_gateway(app, settings, gateway)

    app.add_api_route(settings.webhooks.endpoint_route, receive_webhook, methods=["POST"], tags=["webhooks"])

    @app.middleware("http")
    async def metrics_middleware(request: Request, call_next):
        path = request.url.path
        method = request.method
        with REQUEST_LATENCY.labels(method=method, path=path).time():
            response: Response = await call_next(request)
        REQUEST_COUNT.labels(method=method, path=path, status=str(response.status_code)).inc()
        return response

    @app.get("/metrics")
    def metrics():  # pragma: no cover - external scrape
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/health")
    async def health():
        return PlainTextResponse("ok")

    @app.exception_handler(BaseAppException)
    async def app_exception_handler(request: Request, exc: BaseAppException):
        return JSONResponse(
            status_code=exc.http_status,
            content={"detail": {"code": exc.code, "message": exc.message}},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):  # pragma: no cover
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": {"code": "INTERNAL_ERROR", "message": "unexpected error"}},
        )

    return app


def run() -> None:  # pragma: no cover - process entrypoint
    import uvicorn

    configure_logging()
    app = create_app()
    port = int(os.getenv("PORT") or DEFAULT_PORT)
    logger.info("Listening on http://0.0.0.0:%d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_config=None)
