"""Stripe webhook signature verification and event parsing."""

import hashlib
import hmac
import json
import logging
import time
from enum import Enum
from typing import Optional

from storefront.checkout.schemas import WebhookEvent
from storefront.common.exceptions import WebhookPayloadError, WebhookSignatureError

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 300  # seconds


class EventType(str, Enum):
    """Stripe event types the relay acts on. Anything else is ``UNHANDLED``."""

    SESSION_COMPLETED = "checkout.session.completed"
    SESSION_EXPIRED = "checkout.session.expired"
    PAYMENT_FAILED = "payment_intent.payment_failed"
    UNHANDLED = "unhandled"

    @classmethod
    def parse(cls, value: str) -> "EventType":
        try:
            return cls(value)
        except ValueError:
            return cls.UNHANDLED


def _parse_signature_header(header: str) -> tuple[str, list[str]]:
    timestamp = ""
    signatures: list[str] = []
    for item in header.split(","):
        key, _, value = item.partition("=")
        key = key.strip()
        if key == "t":
            timestamp = value.strip()
        elif key == "v1":
            signatures.append(value.strip())
    return timestamp, signatures


def compute_signature(payload: bytes, timestamp: str, webhook_secret: str) -> str:
    signed_payload = f"{timestamp}.".encode() + payload
    return hmac.new(
        webhook_secret.encode(),
        signed_payload,
        hashlib.sha256,
    ).hexdigest()


def verify_stripe_signature(
    payload: bytes,
    signature_header: str,
    webhook_secret: str,
    tolerance: int = DEFAULT_TOLERANCE,
    now: Optional[float] = None,
) -> bool:
    """Verify Stripe webhook signature (v1 scheme).

    Stripe sends: t=<timestamp>,v1=<signature>[,v1=<signature>...]
    during secret rotation. Any matching v1 entry is accepted, provided
    the timestamp is within ``tolerance`` seconds of ``now``.
    """
    if not signature_header or not webhook_secret:
        return False

    timestamp, signatures = _parse_signature_header(signature_header)
    if not timestamp or not signatures:
        return False

    try:
        signed_at = int(timestamp)
    except ValueError:
        return False

    current = time.time() if now is None else now
    if tolerance and abs(current - signed_at) > tolerance:
        return False

    computed = compute_signature(payload, timestamp, webhook_secret)
    return any(hmac.compare_digest(computed, sig) for sig in signatures)


def construct_event(
    payload: bytes,
    signature_header: str,
    webhook_secret: str,
    tolerance: int = DEFAULT_TOLERANCE,
) -> WebhookEvent:
    """Verify ``payload`` and only then decode it into a :class:`WebhookEvent`."""
    if not verify_stripe_signature(payload, signature_header, webhook_secret, tolerance):
        raise WebhookSignatureError()

    try:
        data = json.loads(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise WebhookPayloadError(f"Webhook payload is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise WebhookPayloadError("Webhook payload is not a JSON object")

    return WebhookEvent(
        id=str(data.get("id", "")),
        type=str(data.get("type", "")),
        data=data.get("data") if isinstance(data.get("data"), dict) else {},
    )
