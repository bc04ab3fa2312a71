"""
Webhook Service - Razorpay event reconciliation

Razorpay re-delivers a webhook until it gets a 2xx, so:
- every state change is a guarded UPDATE and replays change nothing
- database errors propagate (HTTP 500) to get the event re-delivered
- events we cannot match (unknown order) are logged and acknowledged

Handled events:
    payment.captured, order.paid  -> order paid
    payment.failed                -> order failed (never overwrites paid)
    refund.processed              -> refund processed, return refund_completed
    refund.failed                 -> refund failed, return back to approved
    refund.*                      -> gateway status recorded
"""
import json
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from storefront.connectors.razorpay_connector import from_paise
from storefront.core.config import settings
from storefront.core.exceptions import ConfigurationError, Unauthorized, ValidationFailed
from storefront.core.signatures import truncate_signature, verify_webhook_signature
from storefront.domain.payment import RazorpayWebhookEvent
from storefront.domain.refund import ReturnStatus
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.refund_repository import RefundRepository
from storefront.repositories.return_repository import ReturnRepository
from storefront.services.email_service import EmailService

logger = logging.getLogger(__name__)


class WebhookService:

    def __init__(self, order_repository: OrderRepository = None,
                 refund_repository: RefundRepository = None,
                 return_repository: ReturnRepository = None,
                 email_service: EmailService = None):
        self.orders = order_repository or OrderRepository()
        self.refunds = refund_repository or RefundRepository()
        self.returns = return_repository or ReturnRepository()
        self.email = email_service or EmailService()

    async def handle(self, raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify and dispatch one webhook delivery

        Args:
            raw_body: Exact request body bytes
            signature: X-Razorpay-Signature header

        Returns:
            {'success': True, 'event': ..., 'processed': bool}
        """
        if not signature:
            raise ValidationFailed("Missing signature header")

        secret = settings.RAZORPAY_WEBHOOK_SECRET
        if not secret:
            raise ConfigurationError("Webhook secret not configured")

        if not raw_body:
            raise ValidationFailed("No request body")

        if not verify_webhook_signature(secret, raw_body, signature):
            logger.error(f"Invalid webhook signature (received {truncate_signature(signature)})")
            raise Unauthorized("Invalid signature")

        try:
            event = RazorpayWebhookEvent.model_validate(json.loads(raw_body))
        except (ValueError, ValidationError) as e:
            logger.error(f"Unparsable webhook body: {e}")
            raise ValidationFailed("Invalid webhook payload")

        logger.info(f"Razorpay webhook received: {event.event}")

        handlers = {
            'payment.captured': self._payment_captured,
            'order.paid': self._order_paid,
            'payment.failed': self._payment_failed,
            'refund.processed': self._refund_processed,
            'refund.failed': self._refund_failed,
        }

        handler = handlers.get(event.event)
        if handler:
            processed = await handler(event)
        elif event.event.startswith('refund.'):
            processed = self._refund_status_update(event)
        else:
            logger.info(f"Unhandled webhook event: {event.event}")
            processed = False

        return {'success': True, 'event': event.event, 'processed': processed}

    # ------------------------------------------------------------------
    # Payment events
    # ------------------------------------------------------------------

    async def _payment_captured(self, event: RazorpayWebhookEvent) -> bool:
        payment = event.payment_entity or {}
        payment_id = payment.get('id')
        razorpay_order_id = payment.get('order_id')

        if not payment_id or not razorpay_order_id:
            logger.error("payment.captured without payment id or order id")
            return False

        existing = self.orders.find_by_payment_id(payment_id)
        if existing:
            logger.warning(
                f"Duplicate payment.captured for {payment_id}: already recorded on order "
                f"{existing.order_number} ({existing.payment_status})"
            )
            return False

        order = self.orders.find_by_razorpay_order_id(razorpay_order_id)
        if not order:
            logger.error(f"Order not found for Razorpay order {razorpay_order_id}")
            return False

        updated = self.orders.mark_paid(order.id, payment_id, razorpay_order_id, payment)
        if updated is None:
            logger.warning(f"Order {order.order_number} already paid, ignoring payment {payment_id}")
            return False

        logger.info(f"Order {order.order_number} marked paid via webhook ({payment_id})")
        return True

    async def _order_paid(self, event: RazorpayWebhookEvent) -> bool:
        gateway_order = event.order_entity or {}
        payment = event.payment_entity or {}
        razorpay_order_id = gateway_order.get('id')

        if not razorpay_order_id:
            logger.error("order.paid without order entity id")
            return False

        order = self.orders.find_by_razorpay_order_id(razorpay_order_id)
        if not order:
            logger.error(f"Order not found for order.paid event: {razorpay_order_id}")
            return False

        updated = self.orders.mark_paid(
            order.id,
            payment.get('id'),
            razorpay_order_id,
            {'order': gateway_order, 'payment': payment or None},
        )
        if updated is None:
            logger.info(f"Order {order.order_number} already paid (order.paid replay)")
            return False

        logger.info(f"Order {order.order_number} marked paid via order.paid")
        return True

    async def _payment_failed(self, event: RazorpayWebhookEvent) -> bool:
        payment = event.payment_entity or {}
        razorpay_order_id = payment.get('order_id')

        order = self.orders.find_by_razorpay_order_id(razorpay_order_id) if razorpay_order_id else None
        if not order:
            logger.error(f"Order not found for failed payment: {razorpay_order_id}")
            return False

        error = payment.get('error_description') or 'Payment failed'
        updated = self.orders.mark_failed(order.id, error, payment)
        if not updated:
            logger.warning(f"payment.failed ignored for order {order.order_number}: already paid")
            return False

        logger.info(f"Order {order.order_number} payment failed: {error}")
        return True

    # ------------------------------------------------------------------
    # Refund events
    # ------------------------------------------------------------------

    def _return_request_id(self, transaction_row: Optional[Dict[str, Any]], refund: Dict[str, Any]) -> Optional[str]:
        if transaction_row and transaction_row.get('return_request_id'):
            return str(transaction_row['return_request_id'])
        notes = refund.get('notes') or {}
        if isinstance(notes, dict):
            return notes.get('return_request_id')
        return None

    def _is_replay(self, refund_id: str) -> bool:
        """The guarded UPDATE matched nothing: either a replay or an unknown refund"""
        return self.refunds.find_by_refund_id(refund_id) is not None

    async def _refund_processed(self, event: RazorpayWebhookEvent) -> bool:
        refund = event.refund_entity or {}
        refund_id = refund.get('id')
        if not refund_id:
            logger.error("refund.processed without refund id")
            return False

        row = self.refunds.mark_processed(refund_id, refund.get('status', 'processed'), refund)
        if row is None and self._is_replay(refund_id):
            logger.info(f"Refund {refund_id} already processed (replay)")
            return False

        return_request_id = self._return_request_id(row, refund)
        if not return_request_id:
            logger.error(f"Refund {refund_id} processed but no return_request_id found")
            return False

        return_request = self.returns.find_by_id(return_request_id)
        if not return_request:
            logger.error(f"Return request {return_request_id} not found for refund {refund_id}")
            return False

        if row is None and return_request.status == ReturnStatus.REFUND_COMPLETED:
            # No transaction row was ever recorded and the return is already done
            return False

        self.returns.update_status(return_request_id, ReturnStatus.REFUND_COMPLETED, refund_id)
        self.returns.add_history(
            return_request_id,
            ReturnStatus.REFUND_COMPLETED,
            f"Refund processed successfully. Refund ID: {refund_id}",
        )

        refund_amount = row.get('refund_amount') if row else None
        if refund_amount is None and refund.get('amount') is not None:
            refund_amount = from_paise(refund['amount'])

        await self.email.send_refund_email('refund_completed', return_request, {
            'refund_amount': refund_amount,
            'reference': (row or {}).get('transaction_number') or refund_id,
        })

        logger.info(f"Refund {refund_id} processed; return {return_request_id} completed")
        return True

    async def _refund_failed(self, event: RazorpayWebhookEvent) -> bool:
        refund = event.refund_entity or {}
        refund_id = refund.get('id')
        if not refund_id:
            logger.error("refund.failed without refund id")
            return False

        reason = refund.get('error_description') or 'Refund failed'
        row = self.refunds.mark_failed(refund_id, refund.get('status', 'failed'), refund, reason)
        if row is None and self._is_replay(refund_id):
            logger.info(f"Refund {refund_id} already settled, ignoring refund.failed")
            return False

        return_request_id = self._return_request_id(row, refund)
        if not return_request_id:
            logger.error(f"Refund {refund_id} failed but no return_request_id found")
            return False

        if row is None:
            return_request = self.returns.find_by_id(return_request_id)
            if not return_request or return_request.status != ReturnStatus.REFUND_INITIATED:
                return False

        # Back to approved so an admin can retry the refund
        self.returns.update_status(return_request_id, ReturnStatus.APPROVED)
        self.returns.add_history(
            return_request_id,
            ReturnStatus.APPROVED,
            f"Refund failed. Refund ID: {refund_id}",
        )

        logger.warning(f"Refund {refund_id} failed for return {return_request_id}: {reason}")
        return True

    def _refund_status_update(self, event: RazorpayWebhookEvent) -> bool:
        refund = event.refund_entity or {}
        refund_id = refund.get('id')
        if not refund_id:
            return False

        updated = self.refunds.update_gateway_status(refund_id, refund.get('status') or event.event, refund)
        logger.info(f"{event.event} for refund {refund_id} recorded: {updated}")
        return updated
