"""Stripe Checkout gateway.

Wraps the synchronous Stripe SDK so calls run off the event loop under a
bounded timeout, and translates SDK failures into storefront errors.
"""

import asyncio
import logging
import time
from typing import Any

import stripe

from storefront.checkout.schemas import CheckoutRequest, PaymentVerification
from storefront.checkout.validation import merge_metadata
from storefront.common.config import StorefrontSettings
from storefront.common.exceptions import SessionNotFoundError, UpstreamError

logger = logging.getLogger(__name__)

SESSION_ID_PREFIX = "cs_"
SESSION_TTL = 30 * 60  # seconds


class StripeGateway:
    """Creates and retrieves Stripe Checkout sessions."""

    def __init__(self, settings: StorefrontSettings):
        self.settings = settings
        self.api_key = settings.stripe_secret_key
        self.timeout = settings.stripe_timeout_seconds

    def build_session_params(self, request: CheckoutRequest, now: float | None = None) -> dict[str, Any]:
        """Build the ``Session.create`` parameters for a validated request."""
        frontend = self.settings.frontend_domain.rstrip("/")
        issued_at = int(now if now is not None else time.time())

        params: dict[str, Any] = {
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": request.currency,
                        "product_data": {"name": request.product_name},
                        "unit_amount": request.amount,
                    },
                    "quantity": 1,
                }
            ],
            "mode": "payment",
            "customer_email": request.customer_email,
            "success_url": f"{frontend}/success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{frontend}/cancel",
            "expires_at": issued_at + SESSION_TTL,
        }

        metadata = merge_metadata(request.customer_name, request.metadata)
        if metadata:
            params["metadata"] = metadata
        return params

    async def _call(self, fn, *args: Any, **kwargs: Any) -> Any:
        return await asyncio.wait_for(
            asyncio.to_thread(fn, *args, api_key=self.api_key, **kwargs),
            timeout=self.timeout,
        )

    async def create_session(self, request: CheckoutRequest) -> str:
        """Create a Checkout session and return its id."""
        params = self.build_session_params(request)
        try:
            session = await self._call(stripe.checkout.Session.create, **params)
        except stripe.StripeError as e:
            logger.error("Error creating checkout session: %s", e)
            raise UpstreamError("checkout_session_failed", str(e)) from e
        except asyncio.TimeoutError as e:
            logger.error("Timed out creating checkout session after %.1fs", self.timeout)
            raise UpstreamError("checkout_session_failed", "timeout") from e

        logger.info("Created checkout session %s", session.id)
        return session.id

    async def retrieve_session(self, session_id: str) -> PaymentVerification:
        """Fetch a session's payment status; the result is never cached."""
        try:
            session = await self._call(stripe.checkout.Session.retrieve, session_id)
        except stripe.InvalidRequestError as e:
            logger.error("Error verifying payment %s: %s", session_id, e)
            raise SessionNotFoundError() from e
        except stripe.StripeError as e:
            logger.error("Error verifying payment %s: %s", session_id, e)
            raise UpstreamError("verification_failed", str(e)) from e
        except asyncio.TimeoutError as e:
            logger.error("Timed out verifying payment %s", session_id)
            raise UpstreamError("verification_failed", "timeout") from e

        return PaymentVerification(
            status=session.payment_status,
            customer_email=session.customer_email,
            amount_total=session.amount_total,
            currency=session.currency,
        )
