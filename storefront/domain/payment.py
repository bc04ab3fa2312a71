"""
Razorpay payment requests and webhook payloads

Only the webhook envelope is modelled; entities stay plain dicts because the
gateway adds fields freely.

Example:
    {
        "event": "payment.captured",
        "payload": {"payment": {"entity": {"id": "pay_...", "order_id": "order_...", ...}}}
    }
"""
from pydantic import BaseModel, ConfigDict, Field
from decimal import Decimal
from typing import Any, Dict, Optional


class WebhookEntity(BaseModel):
    entity: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")


class WebhookPayload(BaseModel):
    payment: Optional[WebhookEntity] = None
    order: Optional[WebhookEntity] = None
    refund: Optional[WebhookEntity] = None

    model_config = ConfigDict(extra="allow")


class RazorpayWebhookEvent(BaseModel):
    event: str
    payload: WebhookPayload = Field(default_factory=WebhookPayload)
    created_at: Optional[int] = None

    model_config = ConfigDict(extra="allow")

    @property
    def payment_entity(self) -> Optional[Dict[str, Any]]:
        return self.payload.payment.entity if self.payload.payment else None

    @property
    def order_entity(self) -> Optional[Dict[str, Any]]:
        return self.payload.order.entity if self.payload.order else None

    @property
    def refund_entity(self) -> Optional[Dict[str, Any]]:
        return self.payload.refund.entity if self.payload.refund else None


class GatewayOrderRequest(BaseModel):
    """
    Checkout asks for a Razorpay order

    Fields are optional here and checked in the service so missing input
    answers 400 like the rest of the payment endpoints.
    """
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    receipt: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    notes: Dict[str, Any] = Field(default_factory=dict)
    order_id: Optional[str] = None


class VerifyPaymentRequest(BaseModel):
    """Razorpay Checkout handler response plus our order id"""
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    order_id: Optional[str] = None
