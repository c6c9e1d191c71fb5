"""Two-step checkout flow: shipping, then payment."""

import logging
import re
from enum import Enum
from typing import Optional

from storefront.cart.models import ShippingInfo
from storefront.cart.store import LocalStore
from storefront.cart.totals import OrderTotals, compute_totals
from storefront.checkout.widget import (
    PaymentCancelled,
    PaymentFailed,
    PaymentOutcome,
    PaymentSucceeded,
    PaymentWidget,
    run_widget,
)
from storefront.client import ClientSessionResult, StorefrontClient
from storefront.common.config import StorefrontSettings
from storefront.notifications.email_delivery import EmailSender

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_REQUIRED_SHIPPING = ("first_name", "last_name", "email", "address", "city", "zip_code", "country")


class CheckoutStep(str, Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"
    SUCCESS = "success"
    CANCELLED = "cancelled"


class CheckoutStateError(Exception):
    """Raised when an action is not valid in the current step."""


def validate_shipping(info: ShippingInfo) -> dict[str, str]:
    """Form-level checks. Returns ``{field: message}``; empty means valid."""
    errors = {
        name: "required"
        for name in _REQUIRED_SHIPPING
        if not str(getattr(info, name)).strip()
    }
    if "email" not in errors and not _EMAIL_RE.fullmatch(info.email):
        errors["email"] = "invalid email"
    return errors


class CheckoutFlow:
    """
    Client-side checkout state machine.

    ``shipping`` → ``payment`` → ``success``, with ``cancelled`` reachable
    when the shopper abandons the hosted Stripe page. Totals are derived
    from the persisted cart on every read, using the fees in ``settings``
    when given and the standard storefront fees otherwise.
    """

    def __init__(
        self,
        store: LocalStore,
        email_sender: Optional[EmailSender] = None,
        settings: Optional[StorefrontSettings] = None,
    ):
        self.store = store
        self.settings = settings
        if email_sender is None:
            email_sender = EmailSender.from_settings(settings) if settings else EmailSender()
        self.email_sender = email_sender
        self.step = CheckoutStep.SHIPPING
        self.loading = False
        self.error: Optional[str] = None
        self.errors: dict[str, str] = {}
        self.confirmed_total = None

    @property
    def totals(self) -> OrderTotals:
        items = self.store.load_cart().items
        if self.settings is None:
            return compute_totals(items)
        return compute_totals(
            items,
            shipping_fee=self.settings.shipping_flat_fee,
            free_shipping_threshold=self.settings.free_shipping_threshold,
            tax_rate=self.settings.tax_rate,
        )

    def _require(self, step: CheckoutStep) -> None:
        if self.step is not step:
            raise CheckoutStateError(f"expected step {step.value}, at {self.step.value}")

    # ── Shipping ──

    def submit_shipping(self, info: ShippingInfo) -> bool:
        """Persist shipping details and move to payment if the form is valid."""
        self._require(CheckoutStep.SHIPPING)
        self.errors = validate_shipping(info)
        if self.errors:
            return False
        self.store.save_shipping(info)
        self.step = CheckoutStep.PAYMENT
        return True

    def back_to_shipping(self) -> None:
        self._require(CheckoutStep.PAYMENT)
        self.loading = False
        self.step = CheckoutStep.SHIPPING

    def _shipping_for_payment(self) -> ShippingInfo:
        shipping = self.store.load_shipping()
        if shipping is None:
            raise CheckoutStateError("shipping info is missing")
        return shipping

    # ── Embedded widget ──

    async def pay_with_widget(self, widget: PaymentWidget) -> PaymentOutcome:
        """Collect payment through an in-page widget."""
        self._require(CheckoutStep.PAYMENT)
        shipping = self._shipping_for_payment()
        totals = self.totals

        self.loading = True
        self.error = None
        outcome = await run_widget(
            widget,
            email=shipping.email,
            amount=totals.total_minor_units,
            first_name=shipping.first_name,
            last_name=shipping.last_name,
        )

        if isinstance(outcome, PaymentSucceeded):
            logger.info("Payment successful: %s", outcome.reference)
            await self._complete(shipping, totals)
        elif isinstance(outcome, PaymentCancelled):
            logger.info("Payment closed by user")
            self.loading = False
        elif isinstance(outcome, PaymentFailed):
            logger.warning("Payment failed: %s", outcome.error)
            self.error = outcome.error
            self.loading = False
        return outcome

    # ── Hosted Stripe Checkout ──

    async def start_hosted_checkout(self, client: StorefrontClient) -> ClientSessionResult:
        """Create a Checkout session; the caller redirects to Stripe with its id."""
        self._require(CheckoutStep.PAYMENT)
        shipping = self._shipping_for_payment()

        self.loading = True
        self.error = None
        result = await client.checkout_order(shipping, self.store.load_cart(), self.totals)
        if not result.success:
            logger.error("Error creating checkout session: %s", result.error)
            self.error = result.error
            self.loading = False
        return result

    async def complete_hosted_checkout(self, client: StorefrontClient, session_id: str) -> bool:
        """Handle the redirect back from Stripe's success URL."""
        self._require(CheckoutStep.PAYMENT)
        verification = await client.verify_payment(session_id)
        if not verification.paid:
            # Not finalised yet (or unknown); the webhook may still confirm it.
            self.error = verification.error or verification.status
            self.loading = False
            return False

        await self._complete(self._shipping_for_payment(), self.totals)
        return True

    def cancel_hosted_checkout(self) -> None:
        """Handle the redirect back from Stripe's cancel URL."""
        self._require(CheckoutStep.PAYMENT)
        self.loading = False
        self.step = CheckoutStep.CANCELLED

    # ── Completion ──

    async def _complete(self, shipping: ShippingInfo, totals: OrderTotals) -> None:
        cart = self.store.load_cart()
        self.store.clear_cart()
        try:
            await self.email_sender.send_order_confirmation(shipping, cart.items, totals)
        except Exception as e:
            logger.error("Failed to send order email: %s", e)

        self.confirmed_total = totals.total
        self.step = CheckoutStep.SUCCESS
        self.loading = False
