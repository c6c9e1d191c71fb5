"""Dependency injection singletons for the storefront relay."""

from storefront.checkout.gateway import StripeGateway
from storefront.checkout.service import CheckoutService
from storefront.common.config import get_settings
from storefront.common.ratelimit import SlidingWindowLimiter

_gateway: StripeGateway | None = None
_checkout: CheckoutService | None = None
_checkout_limiter: SlidingWindowLimiter | None = None
_general_limiter: SlidingWindowLimiter | None = None


def get_stripe_gateway() -> StripeGateway:
    global _gateway
    if _gateway is None:
        _gateway = StripeGateway(get_settings())
    return _gateway


def get_checkout_service() -> CheckoutService:
    global _checkout
    if _checkout is None:
        _checkout = CheckoutService(get_settings(), get_stripe_gateway())
    return _checkout


def get_checkout_limiter() -> SlidingWindowLimiter:
    global _checkout_limiter
    if _checkout_limiter is None:
        settings = get_settings()
        _checkout_limiter = SlidingWindowLimiter(
            settings.checkout_rate_limit, settings.checkout_rate_window,
        )
    return _checkout_limiter


def get_general_limiter() -> SlidingWindowLimiter:
    global _general_limiter
    if _general_limiter is None:
        settings = get_settings()
        _general_limiter = SlidingWindowLimiter(
            settings.general_rate_limit, settings.general_rate_window,
        )
    return _general_limiter


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _gateway, _checkout, _checkout_limiter, _general_limiter
    _gateway = None
    _checkout = None
    _checkout_limiter = None
    _general_limiter = None
