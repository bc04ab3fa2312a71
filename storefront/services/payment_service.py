"""
Payment Service - verifies Razorpay Checkout callbacks

The browser posts the handler response (order id, payment id, signature)
after checkout. A valid signature moves the order to paid exactly once;
the webhook may race this call and whichever arrives second is a no-op.
"""
import logging
from typing import Any, Dict, Optional

from storefront.connectors.razorpay_connector import RazorpayConnector
from storefront.core.config import settings
from storefront.core.exceptions import ConfigurationError, NotFound, ValidationFailed
from storefront.core.signatures import truncate_signature, verify_payment_signature
from storefront.repositories.order_repository import OrderRepository
from storefront.services.email_service import EmailService

logger = logging.getLogger(__name__)

INVALID_SIGNATURE_ERROR = "Invalid payment signature"


class PaymentService:

    def __init__(self, order_repository: OrderRepository = None,
                 email_service: EmailService = None,
                 razorpay: RazorpayConnector = None):
        self.orders = order_repository or OrderRepository()
        self.email = email_service or EmailService()
        self._razorpay = razorpay

    async def _fetch_payment_details(self, razorpay_payment_id: str) -> Optional[Dict[str, Any]]:
        """Payment entity for the audit column; None when unavailable"""
        try:
            razorpay = self._razorpay or RazorpayConnector()
            return await razorpay.fetch_payment(razorpay_payment_id)
        except Exception as e:
            logger.warning(f"Could not fetch payment details for {razorpay_payment_id}, continuing: {e}")
            return None

    async def verify_payment(
        self,
        razorpay_order_id: Optional[str],
        razorpay_payment_id: Optional[str],
        razorpay_signature: Optional[str],
        order_id: Optional[str]
    ) -> Dict[str, Any]:
        """
        Verify a checkout signature and mark the order paid

        Returns:
            {'verified': False, ...} on a bad signature,
            {'verified': True, 'already_processed': True, ...} on a repeat,
            {'verified': True, 'order_id', 'payment_id'} on first success
        """
        if not razorpay_order_id or not razorpay_payment_id or not razorpay_signature or not order_id:
            raise ValidationFailed("Missing required fields")

        secret = settings.RAZORPAY_KEY_SECRET
        if not secret:
            raise ConfigurationError("Payment gateway not configured")

        if not verify_payment_signature(secret, razorpay_order_id, razorpay_payment_id, razorpay_signature):
            logger.error(
                f"Payment signature verification failed for order {order_id} "
                f"(razorpay order {razorpay_order_id}, payment {razorpay_payment_id}, "
                f"received {truncate_signature(razorpay_signature)})"
            )
            self.orders.mark_failed(order_id, INVALID_SIGNATURE_ERROR)
            return {
                'verified': False,
                'error': 'Payment verification failed',
            }

        payment_details = await self._fetch_payment_details(razorpay_payment_id)

        order = self.orders.find_by_id(order_id)
        if not order:
            raise NotFound("Order not found")

        updated = self.orders.mark_paid(
            order_id,
            razorpay_payment_id=razorpay_payment_id,
            razorpay_order_id=razorpay_order_id,
            payment_details=payment_details,
        )

        if updated is None:
            logger.warning(
                f"Duplicate payment verification for order {order_id} "
                f"(payment {razorpay_payment_id}); order already paid"
            )
            return {
                'verified': True,
                'already_processed': True,
                'message': 'Payment already processed for this order',
                'order_id': order_id,
            }

        logger.info(f"Payment verified and order updated: {order_id} ({razorpay_payment_id})")

        details = self.orders.get_notification_details(order_id)
        if details:
            await self.email.send_admin_order_notification(details, razorpay_payment_id)

        return {
            'verified': True,
            'message': 'Payment verified successfully',
            'order_id': order_id,
            'payment_id': razorpay_payment_id,
        }
