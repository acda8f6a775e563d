"""
Main FastAPI application.

Wires routers, CORS, request logging, tracing and lifecycle management.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from renderops_server import __version__
from renderops_server.api import actions, auth, connections, members, tenants, ui
from renderops_server.api.errors import (
    general_exception_handler,
    renderops_exception_handler,
    validation_exception_handler,
)
from renderops_server.config import get_settings
from renderops_server.database import close_all_pools
from renderops_server.db.session import create_tables
from renderops_server.errors import RenderOpsError

logger = logging.getLogger(__name__)

_tracing_configured = False


def setup_logging() -> None:
    """Configure application logging."""
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Suppress noisy third-party loggers
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def setup_tracing() -> None:
    """Install the tracer provider once. Spans are exported only if an OTLP endpoint is set."""
    global _tracing_configured
    if _tracing_configured:
        return

    settings = get_settings()
    provider = TracerProvider(resource=Resource.create({"service.name": settings.service_name}))
    if settings.otlp_endpoint:
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint)))
    trace.set_tracer_provider(provider)
    _tracing_configured = True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    logger.info("Starting %s in %s mode", settings.api_title, settings.environment)

    if settings.create_tables_on_startup:
        await create_tables()
        logger.info("Application tables ready")

    yield

    await close_all_pools()
    logger.info("%s shutdown complete", settings.api_title)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()
    setup_logging()
    setup_tracing()

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-RateLimit-Remaining", "Retry-After"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = getattr(request.state, "request_id", "unknown")
        response = await call_next(request)
        logger.info(
            "%s %s [%s] status=%s",
            request.method,
            request.url.path,
            request_id,
            response.status_code,
        )
        return response

    # Registered last so it runs first and the id is set for log_requests
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RenderOpsError, renderops_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    FastAPIInstrumentor.instrument_app(app)

    for module in (auth, tenants, members, connections, actions, ui):
        app.include_router(module.router, prefix=settings.api_prefix)

    @app.get("/")
    async def root():
        return {"message": "RenderOps API", "version": __version__}

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
