"""
Refunds API Endpoints
Admin-only Razorpay refunds for approved return requests

Author: TM3
Date: 2026-09-02
"""
from decimal import Decimal
from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from storefront.api.errors import http_error, unexpected_error
from storefront.core.auth import TokenUser, require_admin
from storefront.core.exceptions import ServiceError
from storefront.services.refund_service import RefundService

router = APIRouter()


class CreateRefundRequest(BaseModel):
    return_request_id: str = Field(..., description="Return request UUID")
    payment_id: str = Field(..., description="Razorpay payment ID to refund")
    amount: Decimal = Field(..., gt=0, description="Refund amount in rupees")
    notes: Optional[Dict[str, str]] = None


class GatewayStatusRequest(BaseModel):
    payment_id: str
    refund_id: str


@router.post("")
async def create_refund(request: CreateRefundRequest, user: TokenUser = Depends(require_admin)):
    """
    Refund an approved return through Razorpay

    409 when the return is already refunded or a refund is in flight.
    """
    try:
        return await RefundService().create_refund(
            return_request_id=request.return_request_id,
            payment_id=request.payment_id,
            amount=request.amount,
            notes=request.notes,
            initiated_by=user.id,
        )

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("creating refund")


@router.post("/gateway-status")
async def get_gateway_refund_status(request: GatewayStatusRequest, user: TokenUser = Depends(require_admin)):
    """Refund status straight from Razorpay"""
    try:
        return await RefundService().check_refund_status_from_gateway(request.payment_id, request.refund_id)

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("fetching refund status from gateway")


@router.post("/{return_id}/retry")
async def retry_refund(return_id: str, user: TokenUser = Depends(require_admin)):
    try:
        return await RefundService().retry_failed_refund(return_id, initiated_by=user.id)

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("retrying refund")


@router.get("/{return_id}")
async def get_refund_status(return_id: str, user: TokenUser = Depends(require_admin)):
    """Latest refund status plus every transaction for the return"""
    try:
        service = RefundService()
        refund_status = service.get_refund_status(return_id)
        transactions = service.list_transactions(return_id)

        return {
            "status": "success",
            "data": {
                "refund": refund_status,
                "transactions": [t.to_dict() for t in transactions],
            }
        }

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("fetching refund status")
