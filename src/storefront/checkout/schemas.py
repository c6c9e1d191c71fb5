"""Pydantic schemas for the checkout relay."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class CheckoutRequest(BaseModel):
    """A checkout request that passed validation."""

    model_config = ConfigDict(frozen=True)

    amount: int = Field(..., gt=0)
    currency: str
    customer_email: str
    customer_name: Optional[str] = None
    product_name: str
    metadata: dict[str, str] = Field(default_factory=dict)


class CheckoutSessionResponse(BaseModel):
    sessionId: str


class PaymentVerification(BaseModel):
    """Read projection of a Stripe checkout session."""

    status: Optional[str] = None
    customer_email: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None


class WebhookAck(BaseModel):
    received: bool = True


class WebhookEvent(BaseModel):
    """The fields of a verified Stripe event the relay dispatches on."""

    id: str = ""
    type: str = ""
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def data_object(self) -> dict[str, Any]:
        obj = self.data.get("object")
        return obj if isinstance(obj, dict) else {}
