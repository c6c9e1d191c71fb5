"""Shared test fixtures for the storefront relay."""

import hashlib
import hmac
import json
import logging
import time

import pytest
from httpx import ASGITransport, AsyncClient


STRIPE_KEY = "sk_test_storefront"
WEBHOOK_SECRET = "whsec_test_secret"
FRONTEND = "https://shop.example.com"


def sign_webhook(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header for ``payload``."""
    ts = str(int(time.time()) if timestamp is None else timestamp)
    sig = hmac.new(secret.encode(), f"{ts}.".encode() + payload, hashlib.sha256).hexdigest()
    return f"t={ts},v1={sig}"


def event_payload(event_type: str, object_id: str = "cs_test_123", event_id: str = "evt_1") -> bytes:
    return json.dumps({
        "id": event_id,
        "type": event_type,
        "data": {"object": {"id": object_id, "customer_email": "buyer@example.com"}},
    }).encode()


def checkout_body(**overrides):
    body = {
        "amount": 3699,
        "currency": "usd",
        "customer_email": "buyer@example.com",
        "customer_name": "Jane Buyer",
        "product_name": "Order from Your Store",
        "metadata": {"order_total": "36.99"},
    }
    body.update(overrides)
    return body


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo setup_logging() so caplog sees records from later tests."""
    yield
    logger = logging.getLogger("storefront")
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def make_app(monkeypatch):
    """Build an app against a fresh settings cache and fresh singletons."""

    def _make(**env):
        values = {
            "STOREFRONT_STRIPE_SECRET_KEY": STRIPE_KEY,
            "STOREFRONT_STRIPE_WEBHOOK_SECRET": WEBHOOK_SECRET,
            "STOREFRONT_FRONTEND_DOMAIN": FRONTEND,
            "STOREFRONT_ENVIRONMENT": "development",
        }
        values.update(env)
        for key, value in values.items():
            monkeypatch.setenv(key, value)

        from storefront.common.config import get_settings
        get_settings.cache_clear()

        from storefront.deps import reset_singletons
        reset_singletons()

        from storefront.app import create_app
        return create_app()

    yield _make

    from storefront.common.config import get_settings
    from storefront.deps import reset_singletons
    get_settings.cache_clear()
    reset_singletons()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
