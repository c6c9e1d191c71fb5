"""Storefront: Stripe Checkout relay and storefront client flows."""

from storefront.cart.totals import OrderTotals, compute_totals
from storefront.checkout.validation import validate_checkout_request
from storefront.client import StorefrontClient

__all__ = [
    "OrderTotals",
    "StorefrontClient",
    "compute_totals",
    "validate_checkout_request",
]
__version__ = "1.0.0"
