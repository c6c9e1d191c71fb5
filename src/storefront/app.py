"""FastAPI application factory for the storefront relay."""

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from storefront.common.config import get_settings
from storefront.common.exceptions import StorefrontError
from storefront.common.logging import setup_logging
from storefront.common.middleware import (
    GeneralRateLimitMiddleware,
    StrictOriginMiddleware,
    error_response,
)
from storefront.common.schemas import HealthResponse, InfoResponse

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.log_level)
    started_at = time.monotonic()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        from storefront.deps import get_checkout_service
        get_checkout_service()
        logger.info(
            "Storefront relay starting (environment=%s, frontend=%s)",
            settings.environment,
            settings.frontend_domain,
        )
        yield

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
    )

    # Last added runs first: CORS, then origin check, then rate limit.
    app.add_middleware(GeneralRateLimitMiddleware)
    if settings.is_production:
        app.add_middleware(StrictOriginMiddleware, allowed_origins=settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StorefrontError)
    async def storefront_error_handler(request: Request, exc: StorefrontError):
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse({"error": "not_found"}, status_code=404)
        if exc.status_code == 405:
            return JSONResponse({"error": "method_not_allowed"}, status_code=405)
        return JSONResponse({"error": "request_failed"}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse({"error": "invalid_request"}, status_code=400)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse({"error": "internal_server_error"}, status_code=500)

    @app.get("/", response_model=InfoResponse)
    async def info():
        return InfoResponse(
            timestamp=_now_iso(),
            environment=settings.environment,
            version=settings.api_version,
        )

    @app.get("/health", response_model=HealthResponse)
    async def health():
        return HealthResponse(
            timestamp=_now_iso(),
            uptime=round(time.monotonic() - started_at, 3),
        )

    from storefront.checkout.router import router as checkout_router
    app.include_router(checkout_router, tags=["checkout"])

    return app
