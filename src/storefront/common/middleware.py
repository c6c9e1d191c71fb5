"""Admission-control middleware: general rate limit and strict origins."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from storefront.common.exceptions import OriginNotAllowedError, RateLimitExceededError
from storefront.common.schemas import ErrorResponse

logger = logging.getLogger(__name__)

EXEMPT_PATHS = frozenset({"/", "/health"})
WEBHOOK_PATH = "/api/webhook"


def error_response(exc) -> JSONResponse:
    headers = {}
    if isinstance(exc, RateLimitExceededError) and exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(
        ErrorResponse(error=exc.code).model_dump(), status_code=exc.status_code, headers=headers,
    )


class GeneralRateLimitMiddleware(BaseHTTPMiddleware):
    """Apply the process-wide per-address request budget."""

    async def dispatch(self, request, call_next):
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        from storefront.deps import get_general_limiter

        address = request.client.host if request.client else "unknown"
        decision = get_general_limiter().hit(address)
        if not decision.allowed:
            logger.warning("General rate limit exceeded for %s", address)
            return error_response(RateLimitExceededError(retry_after=decision.retry_after))
        return await call_next(request)


class StrictOriginMiddleware(BaseHTTPMiddleware):
    """Reject browser API calls without an allow-listed Origin (production only).

    Stripe's webhook deliveries and health probes carry no Origin header and
    are let through.
    """

    def __init__(self, app, allowed_origins: list[str]):
        super().__init__(app)
        self.allowed_origins = frozenset(allowed_origins)

    async def dispatch(self, request, call_next):
        path = request.url.path
        if path in EXEMPT_PATHS or path == WEBHOOK_PATH:
            return await call_next(request)

        origin = request.headers.get("origin")
        if not origin or origin not in self.allowed_origins:
            logger.warning("Rejected request to %s from origin %r", path, origin)
            return error_response(OriginNotAllowedError())
        return await call_next(request)
