from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import time
from typing import AsyncIterator
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from formrelay.apps.api.container import Services, build_services
from formrelay.apps.api.deps import client_ip
from formrelay.apps.api.errors import (
    formrelay_exception_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from formrelay.apps.api.rate_limit import RETRY_AFTER_S
from formrelay.apps.api.response import error_response
from formrelay.apps.api.routes.admin import router as admin_router
from formrelay.apps.api.routes.analytics import router as analytics_router
from formrelay.apps.api.routes.forms import router as forms_router
from formrelay.apps.api.routes.health import router as health_router
from formrelay.core.config import APP_VERSION, Settings, get_settings
from formrelay.core.errors import FormRelayError
from formrelay.core.logging import configure_logging


logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, *, services: Services | None = None) -> FastAPI:
    """Build the API.

    Pass ``services`` to run against pre-built collaborators (tests do); the
    caller then owns their startup and shutdown. Otherwise they are built from
    ``settings`` when the app starts.
    """
    settings = settings or (services.settings if services is not None else get_settings())
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "services", None) is not None:
            yield
            return
        built = build_services(settings)
        await built.startup()
        app.state.services = built
        logger.info("service_started db=%s forms=%s", built.database.backend.name, len(built.registry))
        try:
            yield
        finally:
            await built.shutdown()
            app.state.services = None

    app = FastAPI(title="formrelay API", version=APP_VERSION, debug=settings.debug, lifespan=lifespan)
    app.state.services = services

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):  # type: ignore[override]
        # Preserve incoming request IDs or assign a new one for traceability.
        request_id = request.headers.get("X-Request-Id") or str(uuid4())
        request.state.request_id = request_id
        address = client_ip(request, settings.trust_forwarded_for)
        start = time.monotonic()

        current: Services | None = getattr(request.app.state, "services", None)
        if settings.rate_limit_enabled and current is not None:
            decision = current.rate_limiter.hit(address)
            if not decision.allowed:
                logger.warning("rate_limited client=%s path=%s", address, request.url.path)
                return error_response(
                    429,
                    "Rate limit exceeded",
                    headers={"Retry-After": str(RETRY_AFTER_S), "X-Request-Id": request_id},
                    retry_after=RETRY_AFTER_S,
                )

        response = await call_next(request)
        latency_ms = (time.monotonic() - start) * 1000.0
        logger.info(
            "request method=%s path=%s status=%s latency_ms=%.1f client=%s",
            request.method,
            request.url.path,
            response.status_code,
            latency_ms,
            address,
        )
        response.headers.setdefault("X-Request-Id", request_id)
        return response

    # Added after the http middleware so CORS wraps it and 429s still carry CORS headers.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Content-Length", "Accept-Encoding", "Authorization"],
        expose_headers=["Content-Length"],
        max_age=12 * 60 * 60,
    )

    @app.exception_handler(FormRelayError)
    async def _formrelay_exception_handler(request: Request, exc: FormRelayError):
        return await formrelay_exception_handler(request, exc)

    @app.exception_handler(StarletteHTTPException)
    async def _http_exception_handler(request: Request, exc: StarletteHTTPException):
        return await http_exception_handler(request, exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_exception_handler(request: Request, exc: RequestValidationError):
        return await validation_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception):
        return await unhandled_exception_handler(request, exc)

    app.include_router(health_router)
    app.include_router(forms_router)
    app.include_router(analytics_router)
    app.include_router(admin_router)
    return app


app = create_app()
