"""
Webhooks API Endpoints
Razorpay payment and refund events

The body is read raw: the signature covers the exact bytes sent.
"""
from fastapi import APIRouter, Header, Request
from typing import Optional

from storefront.api.errors import http_error, unexpected_error
from storefront.core.exceptions import ServiceError
from storefront.services.webhook_service import WebhookService

router = APIRouter()


@router.post("/razorpay")
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: Optional[str] = Header(None)
):
    """
    Receive a Razorpay webhook

    Any non-2xx makes Razorpay re-deliver, which is what we want for
    database errors; handlers are idempotent.
    """
    raw_body = await request.body()

    try:
        result = await WebhookService().handle(raw_body, x_razorpay_signature)

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("processing Razorpay webhook")

    return {**result, "message": "Webhook processed successfully"}
