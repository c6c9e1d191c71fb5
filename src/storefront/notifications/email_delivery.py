"""Order confirmation e-mail — SendGrid / Resend integration."""

import logging
from decimal import Decimal
from typing import Iterable

import httpx

from storefront.cart.models import CartItem, ShippingInfo
from storefront.cart.totals import OrderTotals, format_currency

logger = logging.getLogger(__name__)


class EmailSender:
    """Sends order confirmation emails.

    Supports SendGrid and Resend. With no provider configured the
    confirmation is only logged.
    """

    def __init__(
        self,
        provider: str = "",
        api_key: str = "",
        from_email: str = "orders@localhost",
        from_name: str = "Your Store",
        timeout: float = 30,
    ):
        self.provider = provider.lower()  # "sendgrid" or "resend"
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "EmailSender":
        return cls(
            provider=settings.email_provider,
            api_key=settings.email_api_key,
            from_email=settings.email_from,
        )

    async def send_order_confirmation(
        self,
        shipping: ShippingInfo,
        items: Iterable[CartItem],
        totals: OrderTotals,
    ) -> bool:
        """Send an order confirmation to the shipping e-mail address.

        Returns False when nothing was delivered. Transport errors propagate
        so the caller can decide whether they matter.
        """
        subject = "Your order confirmation"
        body = self._build_body(shipping, list(items), totals)

        if self.provider == "sendgrid":
            return await self._send_sendgrid(shipping.email, subject, body)
        elif self.provider == "resend":
            return await self._send_resend(shipping.email, subject, body)
        else:
            logger.info(
                "No email provider configured; order confirmation for %s (%s)",
                shipping.email,
                format_currency(totals.total),
            )
            return False

    def _build_body(
        self,
        shipping: ShippingInfo,
        items: list[CartItem],
        totals: OrderTotals,
    ) -> str:
        lines = [
            f"  {item.quantity} x {item.name} @ {format_currency(Decimal(str(item.price)))}"
            for item in items
        ]
        return (
            f"Hi {shipping.first_name or 'there'},\n\n"
            f"Thank you for your order.\n\n"
            + "\n".join(lines)
            + "\n\n"
            f"Subtotal: {format_currency(totals.subtotal)}\n"
            f"Shipping: {format_currency(totals.shipping)}\n"
            f"Tax:      {format_currency(totals.tax)}\n"
            f"Total:    {format_currency(totals.total)}\n\n"
            f"Shipping to:\n"
            f"  {shipping.full_name}\n"
            f"  {shipping.address}\n"
            f"  {shipping.city} {shipping.zip_code}\n"
            f"  {shipping.country}\n\n"
            f"Thanks,\n{self.from_name}"
        )

    async def _send_sendgrid(self, to: str, subject: str, body: str) -> bool:
        """Send via SendGrid v3 API."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                "https://api.sendgrid.com/v3/mail/send",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "personalizations": [{"to": [{"email": to}]}],
                    "from": {"email": self.from_email, "name": self.from_name},
                    "subject": subject,
                    "content": [{"type": "text/plain", "value": body}],
                },
            )
        if resp.status_code in (200, 202):
            logger.info("SendGrid email sent to %s", to)
            return True
        logger.warning("SendGrid error: %s %s", resp.status_code, resp.text)
        return False

    async def _send_resend(self, to: str, subject: str, body: str) -> bool:
        """Send via Resend API."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                "https://api.resend.com/emails",
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": f"{self.from_name} <{self.from_email}>",
                    "to": [to],
                    "subject": subject,
                    "text": body,
                },
            )
        if resp.status_code in (200, 201):
            logger.info("Resend email sent to %s", to)
            return True
        logger.warning("Resend error: %s %s", resp.status_code, resp.text)
        return False
