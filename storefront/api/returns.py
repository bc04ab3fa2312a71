"""
Returns API Endpoints
Return eligibility for customer orders
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from storefront.api.errors import http_error, unexpected_error
from storefront.core.auth import TokenUser, can_access_order, get_current_user
from storefront.core.exceptions import ServiceError
from storefront.repositories.order_repository import OrderRepository
from storefront.services.return_eligibility_service import ReturnEligibilityService

router = APIRouter()


class ItemEligibilityRequest(BaseModel):
    item_ids: List[int] = Field(..., min_length=1)


def _ensure_order_access(order_id: str, user: TokenUser):
    order = OrderRepository().find_by_id(order_id)
    if not order or not can_access_order(user, order.customer_id, order.billing_email):
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")


@router.get("/eligibility/{order_id}")
async def get_return_eligibility(order_id: str, user: TokenUser = Depends(get_current_user)):
    """
    Whether an order can be returned, and which of its items

    An ineligible order is still a 200; the reasons say why.
    """
    try:
        _ensure_order_access(order_id, user)
        eligibility = ReturnEligibilityService().check_order_eligibility(order_id)

        return {
            "status": "success",
            "data": eligibility.to_dict()
        }

    except HTTPException:
        raise
    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("checking return eligibility")


@router.post("/eligibility/{order_id}/items")
async def check_items_eligibility(
    order_id: str,
    request: ItemEligibilityRequest,
    user: TokenUser = Depends(get_current_user)
):
    try:
        _ensure_order_access(order_id, user)
        result = ReturnEligibilityService().check_items_eligibility(order_id, request.item_ids)

        return {
            "status": "success",
            "data": result
        }

    except HTTPException:
        raise
    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("checking item eligibility")
