"""
StorefrontClient — async client for the checkout relay.

Used by the checkout flow to create Stripe Checkout sessions and to verify
them after the redirect back from the hosted payment page.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from storefront.cart.models import Cart, ShippingInfo
from storefront.cart.totals import OrderTotals

MAX_METADATA_ITEMS = 15
MAX_ITEM_NAME_LENGTH = 500
DEFAULT_PRODUCT_NAME = "Order from Your Store"


@dataclass
class ClientSessionResult:
    """Result of create_checkout_session()."""

    success: bool
    session_id: Optional[str] = None
    error: str = ""
    status_code: int = 0


@dataclass
class ClientVerification:
    """Result of verify_payment()."""

    success: bool
    status: Optional[str] = None
    customer_email: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    error: str = ""
    status_code: int = 0

    @property
    def paid(self) -> bool:
        return self.success and self.status == "paid"


def build_order_metadata(shipping: ShippingInfo, cart: Cart, totals: OrderTotals) -> dict[str, str]:
    """Flatten shipping details and cart lines into Stripe metadata.

    Only the first 15 cart items are itemised. The relay caps the merged
    mapping at Stripe's 50-key limit, so trailing item keys may be dropped.
    """
    metadata = {
        "shipping_firstName": shipping.first_name,
        "shipping_lastName": shipping.last_name,
        "shipping_email": shipping.email,
        "shipping_address": shipping.address,
        "shipping_city": shipping.city,
        "shipping_zipCode": shipping.zip_code,
        "shipping_country": shipping.country,
        "order_total": str(totals.total),
        "cart_items_count": str(len(cart.items)),
    }
    for index, item in enumerate(cart.items[:MAX_METADATA_ITEMS], start=1):
        metadata[f"item_{index}_name"] = (item.name or "Product")[:MAX_ITEM_NAME_LENGTH]
        metadata[f"item_{index}_price"] = str(item.price)
        metadata[f"item_{index}_quantity"] = str(item.quantity)
    return metadata


class StorefrontClient:
    """
    Async HTTP client for the storefront relay.

    Session creation is never retried, since a retry could open a second
    Checkout session for the same order. Verification is a read and is
    retried on timeouts, transport errors and 5xx responses.
    """

    def __init__(
        self,
        server_url: str = "http://localhost:3000",
        timeout: float = 30,
        max_retries: int = 3,
        retry_backoff_base: float = 0.5,
        http: Optional[httpx.AsyncClient] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_backoff_base = retry_backoff_base
        self._http = http or httpx.AsyncClient(
            base_url=self.server_url,
            timeout=timeout,
        )

    async def _request(
        self,
        method: str,
        path: str,
        retries: int = 1,
        **kwargs: Any,
    ) -> tuple[int, dict[str, Any]]:
        """Send a request and return ``(status_code, json_body)``.

        Transport failures come back as status 0 with an ``error`` entry.
        """
        last_error = ""
        for attempt in range(retries):
            try:
                resp = await self._http.request(method, path, **kwargs)
            except httpx.HTTPError as e:
                last_error = str(e) or type(e).__name__
            else:
                try:
                    data = resp.json()
                except json.JSONDecodeError:
                    data = {"error": "invalid_json_response"}
                if resp.status_code < 500 or attempt == retries - 1:
                    return resp.status_code, data if isinstance(data, dict) else {}
                last_error = f"HTTP {resp.status_code}"

            if attempt < retries - 1:
                await asyncio.sleep(self.retry_backoff_base * (2 ** attempt))

        return 0, {"error": "connection_error", "detail": last_error}

    async def create_checkout_session(
        self,
        amount: int,
        customer_email: str,
        product_name: str = DEFAULT_PRODUCT_NAME,
        currency: str = "usd",
        customer_name: Optional[str] = None,
        metadata: Optional[dict[str, str]] = None,
    ) -> ClientSessionResult:
        body: dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "customer_email": customer_email,
            "product_name": product_name,
        }
        if customer_name:
            body["customer_name"] = customer_name
        if metadata:
            body["metadata"] = metadata

        status, data = await self._request("POST", "/api/create-checkout-session", json=body)
        if status == 200 and data.get("sessionId"):
            return ClientSessionResult(success=True, session_id=data["sessionId"], status_code=status)
        return ClientSessionResult(
            success=False,
            error=data.get("error", "checkout_session_failed"),
            status_code=status,
        )

    async def checkout_order(
        self,
        shipping: ShippingInfo,
        cart: Cart,
        totals: OrderTotals,
    ) -> ClientSessionResult:
        """Create a Checkout session for the whole cart."""
        if not shipping.email or not shipping.first_name or not shipping.last_name:
            return ClientSessionResult(success=False, error="invalid_input")
        if totals.total_minor_units <= 0:
            return ClientSessionResult(success=False, error="invalid_input")

        return await self.create_checkout_session(
            amount=totals.total_minor_units,
            customer_email=shipping.email,
            customer_name=shipping.full_name,
            metadata=build_order_metadata(shipping, cart, totals),
        )

    async def verify_payment(self, session_id: str) -> ClientVerification:
        status, data = await self._request(
            "GET", f"/api/verify-payment/{session_id}", retries=self.max_retries,
        )
        if status != 200:
            return ClientVerification(
                success=False,
                error=data.get("error", "verification_failed"),
                status_code=status,
            )
        return ClientVerification(
            success=True,
            status=data.get("status"),
            customer_email=data.get("customer_email"),
            amount_total=data.get("amount_total"),
            currency=data.get("currency"),
            status_code=status,
        )

    async def health(self) -> dict[str, Any]:
        status, data = await self._request("GET", "/health", retries=self.max_retries)
        return data if status == 200 else {"status": "unreachable", **data}

    async def close(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "StorefrontClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()
