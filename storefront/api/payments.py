"""
Payments API Endpoints
Razorpay order creation and checkout verification
"""
from fastapi import APIRouter
from fastapi.responses import JSONResponse

from storefront.api.errors import http_error, unexpected_error
from storefront.core.exceptions import ServiceError
from storefront.domain.payment import GatewayOrderRequest, VerifyPaymentRequest
from storefront.services.checkout_service import CheckoutService
from storefront.services.payment_service import PaymentService

router = APIRouter()


@router.post("/razorpay/orders")
async def create_razorpay_order(request: GatewayOrderRequest):
    """
    Create a Razorpay order and the config the browser passes to Checkout

    Returns {order, checkout_config}
    """
    try:
        return await CheckoutService().create_gateway_order(request)

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("creating Razorpay order")


@router.post("/razorpay/verify")
async def verify_razorpay_payment(request: VerifyPaymentRequest):
    """
    Verify the Checkout signature and mark the order paid

    400 with verified=false on a bad signature; 200 with
    already_processed=true when the order was already paid.
    """
    try:
        result = await PaymentService().verify_payment(
            razorpay_order_id=request.razorpay_order_id,
            razorpay_payment_id=request.razorpay_payment_id,
            razorpay_signature=request.razorpay_signature,
            order_id=request.order_id,
        )

    except ServiceError as e:
        raise http_error(e)
    except Exception:
        raise unexpected_error("verifying payment")

    if not result['verified']:
        return JSONResponse(status_code=400, content=result)

    return result
