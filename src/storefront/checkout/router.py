"""Checkout relay API router."""

import json
import logging

from fastapi import APIRouter, Depends, Header, Request

from storefront.checkout.schemas import (
    CheckoutSessionResponse,
    PaymentVerification,
    WebhookAck,
)
from storefront.common.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


def _get_service():
    from storefront.deps import get_checkout_service
    return get_checkout_service()


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def checkout_rate_limit(request: Request) -> None:
    """Admit at most N checkout attempts per source address per window."""
    from storefront.deps import get_checkout_limiter

    address = client_address(request)
    decision = get_checkout_limiter().hit(address)
    if not decision.allowed:
        logger.warning("Checkout rate limit exceeded for %s", address)
        raise RateLimitExceededError(
            "Too many checkout attempts, please try again later.",
            retry_after=decision.retry_after,
        )


@router.post(
    "/create-checkout-session",
    response_model=CheckoutSessionResponse,
    dependencies=[Depends(checkout_rate_limit)],
)
async def create_checkout_session(request: Request):
    """Validate the order and create a Stripe Checkout session for it."""
    raw = await request.body()
    try:
        body = json.loads(raw) if raw else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        body = None
    return await _get_service().create_session(body)


@router.get("/verify-payment/{session_id}", response_model=PaymentVerification)
async def verify_payment(session_id: str):
    return await _get_service().verify_payment(session_id)


@router.get("/verify-payment/", response_model=PaymentVerification, include_in_schema=False)
async def verify_payment_missing_id():
    return await _get_service().verify_payment("")


@router.post("/webhook", response_model=WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
):
    """Handle Stripe webhook deliveries. The raw body is read before any parsing."""
    payload = await request.body()
    return await _get_service().handle_webhook(payload, stripe_signature)
