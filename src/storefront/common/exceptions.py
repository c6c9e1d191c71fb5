"""Storefront exception hierarchy.

Every error carries a public ``code`` that is safe to return to callers and
an HTTP ``status_code``. The ``message`` is for server-side logs only.
"""


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    status_code = 500

    def __init__(self, message: str = "", code: str = "internal_server_error"):
        self.message = message
        self.code = code
        super().__init__(message or code)


class CheckoutValidationError(StorefrontError):
    """Raised when a checkout request field violates its constraint."""

    status_code = 400

    def __init__(self, reason: str, message: str = ""):
        super().__init__(message or reason, code=reason)


class InvalidSessionIdError(StorefrontError):
    """Raised when a session id is empty or lacks the ``cs_`` prefix."""

    status_code = 400

    def __init__(self, message: str = "Invalid session ID"):
        super().__init__(message, code="invalid_session_id")


class WebhookSignatureError(StorefrontError):
    """Raised when a webhook payload fails signature verification."""

    status_code = 400

    def __init__(self, message: str = "Webhook signature verification failed"):
        super().__init__(message, code="invalid_signature")


class WebhookPayloadError(StorefrontError):
    """Raised when a correctly signed webhook body is not a JSON event object."""

    status_code = 400

    def __init__(self, message: str = "Malformed webhook payload"):
        super().__init__(message, code="invalid_payload")


class OriginNotAllowedError(StorefrontError):
    """Raised when strict-origin enforcement rejects a request."""

    status_code = 403

    def __init__(self, message: str = "Origin not allowed"):
        super().__init__(message, code="origin_not_allowed")


class SessionNotFoundError(StorefrontError):
    """Raised when Stripe does not know the requested checkout session."""

    status_code = 404

    def __init__(self, message: str = "Session not found"):
        super().__init__(message, code="session_not_found")


class RateLimitExceededError(StorefrontError):
    """Raised when a source address exceeds its request window."""

    status_code = 429

    def __init__(self, message: str = "Too many requests", retry_after: int = 0):
        self.retry_after = retry_after
        super().__init__(message, code="too_many_requests")


class UpstreamError(StorefrontError):
    """Raised when the payment processor fails.

    ``code`` is the generic public reason; the underlying cause stays in
    ``message`` and the exception chain.
    """

    status_code = 500

    def __init__(self, code: str, message: str = "Payment processor error"):
        super().__init__(message, code=code)
