"""Tests for the checkout flow state machine and widget adapter."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.cart.models import Cart, CartItem, ShippingInfo
from storefront.cart.store import LocalStore
from storefront.checkout.flow import (
    CheckoutFlow,
    CheckoutStateError,
    CheckoutStep,
    validate_shipping,
)
from storefront.checkout.widget import (
    PaymentCancelled,
    PaymentFailed,
    PaymentSucceeded,
    run_widget,
)
from storefront.client import ClientSessionResult, ClientVerification
from storefront.common.config import StorefrontSettings


def shipping(**overrides):
    values = dict(
        first_name="Jane",
        last_name="Doe",
        email="jane@example.com",
        address="1 Main St",
        city="Springfield",
        zip_code="12345",
    )
    values.update(overrides)
    return ShippingInfo(**values)


class FakeWidget:
    """Calls back according to ``script`` once opened."""

    def __init__(self, script):
        self.script = script
        self.opened_with = None

    def open(self, *, on_success, on_close, **kwargs):
        self.opened_with = kwargs
        self.script(on_success, on_close)


@pytest.fixture
def store():
    store = LocalStore()
    store.save_cart(Cart([
        CartItem(id="a", name="Scrubs", price=10, quantity=2),
        CartItem(id="b", name="Cap", price=5, quantity=1),
    ]))
    return store


@pytest.fixture
def email_sender():
    sender = MagicMock()
    sender.send_order_confirmation = AsyncMock(return_value=True)
    return sender


@pytest.fixture
def flow(store, email_sender):
    return CheckoutFlow(store, email_sender=email_sender)


@pytest.fixture
def paying_flow(flow):
    assert flow.submit_shipping(shipping())
    return flow


# ── Widget adapter ──


class TestRunWidget:
    async def test_success(self):
        widget = FakeWidget(lambda ok, close: ok({"reference": "ref_1"}))
        outcome = await run_widget(widget, email="a@b.co", amount=100, first_name="A", last_name="B")
        assert outcome == PaymentSucceeded(reference="ref_1", payload={"reference": "ref_1"})
        assert widget.opened_with["amount"] == 100

    async def test_close(self):
        widget = FakeWidget(lambda ok, close: close())
        outcome = await run_widget(widget, email="a@b.co", amount=100, first_name="A", last_name="B")
        assert isinstance(outcome, PaymentCancelled)

    async def test_resolves_at_most_once(self):
        def script(ok, close):
            ok({"reference": "ref_1"})
            close()
            ok({"reference": "ref_2"})

        outcome = await run_widget(
            FakeWidget(script), email="a@b.co", amount=100, first_name="A", last_name="B",
        )
        assert outcome.reference == "ref_1"

    async def test_callback_after_open_returns(self):
        holder = {}
        widget = FakeWidget(lambda ok, close: holder.update(ok=ok))

        async def fire_later():
            await asyncio.sleep(0.01)
            holder["ok"]({"id": "pay_9"})

        asyncio.get_running_loop().create_task(fire_later())
        outcome = await run_widget(widget, email="a@b.co", amount=1, first_name="A", last_name="B")
        assert outcome.reference == "pay_9"

    async def test_open_failure(self):
        def script(ok, close):
            raise RuntimeError("widget failed to load")

        outcome = await run_widget(
            FakeWidget(script), email="a@b.co", amount=100, first_name="A", last_name="B",
        )
        assert outcome == PaymentFailed(error="widget failed to load")


# ── Shipping step ──


class TestShippingStep:
    def test_valid_shipping_advances(self, flow, store):
        assert flow.submit_shipping(shipping()) is True
        assert flow.step is CheckoutStep.PAYMENT
        assert store.load_shipping().email == "jane@example.com"

    def test_missing_fields_stay(self, flow, store):
        assert flow.submit_shipping(shipping(city="", email="nope")) is False
        assert flow.step is CheckoutStep.SHIPPING
        assert flow.errors == {"city": "required", "email": "invalid email"}
        assert store.load_shipping() is None

    def test_validate_shipping_clean(self):
        assert validate_shipping(shipping()) == {}

    def test_email_with_trailing_newline_invalid(self):
        assert validate_shipping(shipping(email="jane@example.com\n")) == {"email": "invalid email"}

    def test_back_to_shipping(self, paying_flow):
        paying_flow.back_to_shipping()
        assert paying_flow.step is CheckoutStep.SHIPPING

    def test_payment_actions_need_payment_step(self, flow):
        with pytest.raises(CheckoutStateError):
            flow.cancel_hosted_checkout()


# ── Totals ──


class TestFlowTotals:
    def test_recomputed_when_cart_changes(self, flow, store):
        assert flow.totals.total == Decimal("36.99")
        cart = store.load_cart()
        cart.add(CartItem(id="c", name="Badge", price=1000, quantity=1))
        store.save_cart(cart)
        assert flow.totals.shipping == Decimal("0")
        assert flow.totals.subtotal == Decimal("1025")

    def test_configured_fees_used(self, store, email_sender):
        settings = StorefrontSettings(shipping_flat_fee=5, tax_rate=0.1, free_shipping_threshold=500)
        flow = CheckoutFlow(store, email_sender=email_sender, settings=settings)
        assert flow.totals.shipping == Decimal("5")
        assert flow.totals.tax == Decimal("2.50")
        assert flow.totals.total == Decimal("32.50")

    def test_configured_threshold_used(self, store, email_sender):
        settings = StorefrontSettings(free_shipping_threshold=20)
        flow = CheckoutFlow(store, email_sender=email_sender, settings=settings)
        assert flow.totals.shipping == Decimal("0")
        assert flow.totals.total == Decimal("27.00")

    async def test_widget_charged_configured_total(self, store, email_sender):
        settings = StorefrontSettings(shipping_flat_fee=5, tax_rate=0.1)
        flow = CheckoutFlow(store, email_sender=email_sender, settings=settings)
        flow.submit_shipping(shipping())
        widget = FakeWidget(lambda ok, close: ok({"reference": "ref_1"}))

        await flow.pay_with_widget(widget)

        assert widget.opened_with["amount"] == 3250
        assert flow.confirmed_total == Decimal("32.50")


# ── Widget payment ──


class TestWidgetPayment:
    async def test_success_clears_cart_and_notifies(self, paying_flow, store, email_sender):
        widget = FakeWidget(lambda ok, close: ok({"reference": "ref_1"}))

        outcome = await paying_flow.pay_with_widget(widget)

        assert isinstance(outcome, PaymentSucceeded)
        assert paying_flow.step is CheckoutStep.SUCCESS
        assert paying_flow.loading is False
        assert paying_flow.confirmed_total == Decimal("36.99")
        assert store.load_cart().items == []
        assert widget.opened_with["amount"] == 3699
        assert widget.opened_with["email"] == "jane@example.com"
        email_sender.send_order_confirmation.assert_awaited_once()

    async def test_email_failure_not_fatal(self, paying_flow, email_sender):
        email_sender.send_order_confirmation.side_effect = RuntimeError("smtp down")
        widget = FakeWidget(lambda ok, close: ok({"reference": "ref_1"}))

        await paying_flow.pay_with_widget(widget)

        assert paying_flow.step is CheckoutStep.SUCCESS

    async def test_close_stays_on_payment(self, paying_flow, store):
        outcome = await paying_flow.pay_with_widget(FakeWidget(lambda ok, close: close()))

        assert isinstance(outcome, PaymentCancelled)
        assert paying_flow.step is CheckoutStep.PAYMENT
        assert paying_flow.loading is False
        assert len(store.load_cart()) == 2

    async def test_missing_shipping_info(self, flow):
        flow.step = CheckoutStep.PAYMENT
        with pytest.raises(CheckoutStateError):
            await flow.pay_with_widget(FakeWidget(lambda ok, close: close()))


# ── Hosted checkout ──


class TestHostedCheckout:
    async def test_start_returns_session(self, paying_flow):
        client = MagicMock()
        client.checkout_order = AsyncMock(
            return_value=ClientSessionResult(success=True, session_id="cs_test_1", status_code=200)
        )

        result = await paying_flow.start_hosted_checkout(client)

        assert result.session_id == "cs_test_1"
        assert paying_flow.loading is True
        shipping_arg, cart_arg, totals_arg = client.checkout_order.call_args.args
        assert shipping_arg.email == "jane@example.com"
        assert len(cart_arg) == 2
        assert totals_arg.total_minor_units == 3699

    async def test_start_failure_resets_loading(self, paying_flow):
        client = MagicMock()
        client.checkout_order = AsyncMock(
            return_value=ClientSessionResult(success=False, error="too_many_requests", status_code=429)
        )
        await paying_flow.start_hosted_checkout(client)
        assert paying_flow.loading is False
        assert paying_flow.error == "too_many_requests"

    async def test_complete_when_paid(self, paying_flow, store):
        client = MagicMock()
        client.verify_payment = AsyncMock(
            return_value=ClientVerification(success=True, status="paid", status_code=200)
        )
        assert await paying_flow.complete_hosted_checkout(client, "cs_test_1") is True
        assert paying_flow.step is CheckoutStep.SUCCESS
        assert store.load_cart().items == []

    async def test_unpaid_stays_on_payment(self, paying_flow, store):
        client = MagicMock()
        client.verify_payment = AsyncMock(
            return_value=ClientVerification(success=True, status="unpaid", status_code=200)
        )
        assert await paying_flow.complete_hosted_checkout(client, "cs_test_1") is False
        assert paying_flow.step is CheckoutStep.PAYMENT
        assert len(store.load_cart()) == 2

    def test_cancel_is_terminal(self, paying_flow):
        paying_flow.cancel_hosted_checkout()
        assert paying_flow.step is CheckoutStep.CANCELLED
        with pytest.raises(CheckoutStateError):
            paying_flow.back_to_shipping()
