"""Checkout relay service — session creation, verification, webhooks."""

import inspect
import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Union

from storefront.checkout.gateway import SESSION_ID_PREFIX, StripeGateway
from storefront.checkout.schemas import (
    CheckoutSessionResponse,
    PaymentVerification,
    WebhookAck,
    WebhookEvent,
)
from storefront.checkout.validation import validate_checkout_request
from storefront.checkout.webhook import EventType, construct_event
from storefront.common.config import StorefrontSettings
from storefront.common.exceptions import (
    InvalidSessionIdError,
    WebhookPayloadError,
    WebhookSignatureError,
)

logger = logging.getLogger(__name__)

CompletionHook = Callable[[dict[str, Any]], Union[None, Awaitable[None]]]


class CheckoutService:
    """Stateless relay between the storefront and Stripe Checkout.

    The only state kept is a bounded window of recently seen webhook event
    ids, so a redelivered event does not run completion hooks twice.
    """

    recent_event_limit = 1000

    def __init__(self, settings: StorefrontSettings, gateway: StripeGateway):
        self.settings = settings
        self.gateway = gateway
        self._completion_hooks: list[CompletionHook] = []
        self._recent_events: OrderedDict[str, None] = OrderedDict()

    def on_payment_completed(self, hook: CompletionHook) -> CompletionHook:
        """Register a hook called with the completed session object."""
        self._completion_hooks.append(hook)
        return hook

    # ── Session creation ──

    async def create_session(self, body: Any) -> CheckoutSessionResponse:
        request = validate_checkout_request(body)
        session_id = await self.gateway.create_session(request)
        return CheckoutSessionResponse(sessionId=session_id)

    # ── Verification ──

    async def verify_payment(self, session_id: str) -> PaymentVerification:
        if not session_id or not session_id.startswith(SESSION_ID_PREFIX):
            raise InvalidSessionIdError()
        return await self.gateway.retrieve_session(session_id)

    # ── Webhooks ──

    async def handle_webhook(self, payload: bytes, signature_header: str) -> WebhookAck:
        """Verify and dispatch a webhook delivery.

        Raises :class:`WebhookSignatureError` before touching the payload if
        the signature does not match. Past that point nothing escapes: a
        signed body that is not a JSON event is logged and acknowledged.
        """
        try:
            event = construct_event(
                payload,
                signature_header,
                self.settings.stripe_webhook_secret,
                tolerance=self.settings.webhook_tolerance,
            )
        except WebhookSignatureError as e:
            logger.warning("Webhook signature verification failed: %s", e.message)
            raise
        except WebhookPayloadError as e:
            logger.warning("Ignoring signed webhook with malformed payload: %s", e.message)
            return WebhookAck()

        try:
            await self.dispatch(event)
        except Exception:
            logger.exception("Webhook handler failed for event %s", event.id)
        return WebhookAck()

    def _seen(self, event_id: str) -> bool:
        if not event_id:
            return False
        if event_id in self._recent_events:
            return True
        self._recent_events[event_id] = None
        while len(self._recent_events) > self.recent_event_limit:
            self._recent_events.popitem(last=False)
        return False

    async def dispatch(self, event: WebhookEvent) -> EventType:
        event_type = EventType.parse(event.type)
        obj = event.data_object
        object_id = obj.get("id", "")
        log_extra = {"event_id": event.id}

        if self._seen(event.id):
            logger.info("Duplicate webhook event %s (%s) ignored", event.id, event.type, extra=log_extra)
            return event_type

        if event_type is EventType.SESSION_COMPLETED:
            logger.info("Payment succeeded: %s", object_id, extra=log_extra)
            await self._run_completion_hooks(obj)
        elif event_type is EventType.SESSION_EXPIRED:
            logger.info("Checkout session expired: %s", object_id, extra=log_extra)
        elif event_type is EventType.PAYMENT_FAILED:
            logger.info("Payment failed: %s", object_id, extra=log_extra)
        else:
            logger.info("Unhandled event type %s", event.type, extra=log_extra)
        return event_type

    async def _run_completion_hooks(self, session_obj: dict[str, Any]) -> None:
        for hook in self._completion_hooks:
            try:
                result = hook(session_obj)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Payment completion hook %s failed for %s",
                    getattr(hook, "__name__", hook),
                    session_obj.get("id", ""),
                )
