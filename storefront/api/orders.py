"""
Orders API Endpoints
Checkout order creation and order lookup

Author: TM3
Date: 2025-10-03
Updated: 2026-09-02 (storefront checkout: create order + items, owner-only lookup)
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from storefront.api.errors import http_error, unexpected_error
from storefront.core.auth import TokenUser, can_access_order, get_current_user, get_current_user_optional
from storefront.core.exceptions import ServiceError
from storefront.core.rate_limit import rate_limit
from storefront.domain.order import CreateOrderRequest
from storefront.repositories.order_repository import OrderRepository
from storefront.services.checkout_service import CheckoutService

router = APIRouter()


@router.post("", dependencies=[Depends(rate_limit(max_requests=20, window_seconds=60))])
async def create_order(
    request: CreateOrderRequest,
    user: Optional[TokenUser] = Depends(get_current_user_optional)
):
    """
    Create a pending order from the checkout form

    Totals are validated against the lines before anything is written.
    Guests may check out; a customer_id must belong to the signed-in user.
    """
    try:
        result = CheckoutService().create_order(request, user)

        return {
            "status": "success",
            "data": result
        }

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("creating order")


@router.get("/{order_id}")
async def get_order(order_id: str, user: TokenUser = Depends(get_current_user)):
    """Get an order with items; customers only see their own orders"""
    try:
        order = OrderRepository().find_by_id(order_id)
    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("fetching order")

    if not order or not can_access_order(user, order.customer_id, order.billing_email):
        raise HTTPException(status_code=404, detail=f"Order {order_id} not found")

    return {
        "status": "success",
        "data": order.to_dict()
    }
