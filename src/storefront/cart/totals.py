"""Order total computation."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from storefront.cart.models import CartItem

CENT = Decimal("0.01")

FLAT_SHIPPING_FEE = Decimal("9.99")
FREE_SHIPPING_THRESHOLD = Decimal("1000")
TAX_RATE = Decimal("0.08")


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    shipping: Decimal
    tax: Decimal
    total: Decimal

    @property
    def total_minor_units(self) -> int:
        """Total in cents, as the payment relay expects it."""
        return int((self.total * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _money(value) -> Decimal:
    return Decimal(str(value))


def compute_totals(
    items: Iterable[CartItem],
    shipping_fee=FLAT_SHIPPING_FEE,
    free_shipping_threshold=FREE_SHIPPING_THRESHOLD,
    tax_rate=TAX_RATE,
) -> OrderTotals:
    """
    Compute subtotal, shipping, tax and total for a cart.

    Shipping is free once the subtotal is strictly above the threshold.
    Tax and total are rounded half-up to the cent.
    """
    subtotal = sum(
        (_money(item.price) * item.quantity for item in items),
        Decimal("0"),
    )
    shipping = Decimal("0") if subtotal > _money(free_shipping_threshold) else _money(shipping_fee)
    tax = (subtotal * _money(tax_rate)).quantize(CENT, rounding=ROUND_HALF_UP)
    subtotal = subtotal.quantize(CENT, rounding=ROUND_HALF_UP)
    total = (subtotal + shipping + tax).quantize(CENT, rounding=ROUND_HALF_UP)
    return OrderTotals(subtotal=subtotal, shipping=shipping.quantize(CENT), tax=tax, total=total)


def format_currency(value: Decimal, symbol: str = "$") -> str:
    return f"{symbol}{value.quantize(CENT, rounding=ROUND_HALF_UP):,}"
