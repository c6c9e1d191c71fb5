"""Checkout request validation and metadata limits.

Fields are checked in a fixed order and the first violation rejects the
whole request. Reason strings are part of the public API.
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Mapping

from storefront.checkout.schemas import CheckoutRequest
from storefront.common.exceptions import CheckoutValidationError

MAX_AMOUNT = 99_999_900  # minor units
SUPPORTED_CURRENCIES: frozenset[str] = frozenset({"usd", "eur", "gbp", "cad", "aud"})
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_EMAIL_LENGTH = 254
MAX_PRODUCT_NAME_LENGTH = 200
MAX_CUSTOMER_NAME_LENGTH = 100

# Stripe metadata ceilings
MAX_METADATA_KEYS = 50
MAX_METADATA_KEY_LENGTH = 40
MAX_METADATA_VALUE_LENGTH = 500
MAX_CART_ITEMS = 15

_CART_ITEM_KEY = re.compile(r"^item_(\d+)_")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _validate_amount(amount: Any) -> int:
    if not _is_number(amount) or not 0 < amount <= MAX_AMOUNT:
        raise CheckoutValidationError("invalid_amount")
    # Halves round up, as Math.round does.
    rounded = int(Decimal(str(amount)).to_integral_value(rounding=ROUND_HALF_UP))
    if rounded <= 0:
        raise CheckoutValidationError("invalid_amount")
    return rounded


def _validate_currency(currency: Any) -> str:
    if not isinstance(currency, str) or currency.lower() not in SUPPORTED_CURRENCIES:
        raise CheckoutValidationError("unsupported_currency")
    return currency.lower()


def _validate_email(email: Any) -> str:
    if (
        not isinstance(email, str)
        or len(email) > MAX_EMAIL_LENGTH
        or not EMAIL_RE.fullmatch(email)
    ):
        raise CheckoutValidationError("invalid_email")
    return email


def _validate_product_name(name: Any) -> str:
    if not isinstance(name, str) or not name or len(name) > MAX_PRODUCT_NAME_LENGTH:
        raise CheckoutValidationError("invalid_product_name")
    return name


def _validate_customer_name(name: Any) -> str | None:
    if name is None or name == "":
        return None
    if not isinstance(name, str) or len(name) > MAX_CUSTOMER_NAME_LENGTH:
        raise CheckoutValidationError("name_too_long")
    return name


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def sanitize_metadata(metadata: Any) -> dict[str, str]:
    """Coerce caller metadata into something Stripe will accept.

    Values become strings truncated to 500 characters, over-long keys are
    dropped, and ``item_<n>_*`` entries past the 15th cart item are dropped.
    """
    if metadata is None:
        return {}
    if not isinstance(metadata, Mapping):
        raise CheckoutValidationError("invalid_metadata")

    clean: dict[str, str] = {}
    for key, value in metadata.items():
        key = str(key)
        if not key or len(key) > MAX_METADATA_KEY_LENGTH:
            continue
        match = _CART_ITEM_KEY.match(key)
        if match and int(match.group(1)) > MAX_CART_ITEMS:
            continue
        clean[key] = _stringify(value)[:MAX_METADATA_VALUE_LENGTH]
    return clean


def merge_metadata(customer_name: str | None, metadata: Mapping[str, str]) -> dict[str, str]:
    """Customer name first, then caller keys, capped at Stripe's key limit.

    Plain keys are kept before cart items. ``item_<n>_*`` keys are kept or
    dropped as a whole group so no cart line is left half-described.
    """
    merged: dict[str, str] = {}
    if customer_name:
        merged["customer_name"] = customer_name

    item_groups: dict[str, dict[str, str]] = {}
    for key, value in metadata.items():
        match = _CART_ITEM_KEY.match(key)
        if match:
            item_groups.setdefault(match.group(1), {})[key] = value
        elif key in merged or len(merged) < MAX_METADATA_KEYS:
            merged[key] = value

    for group in item_groups.values():
        if len(merged) + len(group) > MAX_METADATA_KEYS:
            break
        merged.update(group)
    return merged


def validate_checkout_request(body: Any) -> CheckoutRequest:
    """Validate a decoded JSON body into a :class:`CheckoutRequest`.

    Raises :class:`CheckoutValidationError` on the first violated field.
    """
    if not isinstance(body, Mapping):
        raise CheckoutValidationError("invalid_amount")

    amount = _validate_amount(body.get("amount"))
    currency = _validate_currency(body.get("currency"))
    email = _validate_email(body.get("customer_email"))
    product_name = _validate_product_name(body.get("product_name"))
    customer_name = _validate_customer_name(body.get("customer_name"))
    metadata = sanitize_metadata(body.get("metadata"))

    return CheckoutRequest(
        amount=amount,
        currency=currency,
        customer_email=email,
        customer_name=customer_name,
        product_name=product_name,
        metadata=metadata,
    )
