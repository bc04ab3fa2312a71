"""
Refund Service - Razorpay refunds for approved return requests

Flow for one refund:
1. Refuse if the return is already refunded or has a refund in flight
2. Ask Razorpay to refund (amount in paise, return id in notes)
3. Record the transaction, move the return to refund_initiated
4. Email the customer

The gateway call is the point of no return: once Razorpay accepted the
refund, later bookkeeping failures are logged rather than raised so the
admin is not tempted to refund twice. The refund.processed / refund.failed
webhooks finish the job.

Author: TM3
Date: 2026-09-02
"""
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from storefront.connectors.razorpay_connector import RazorpayConnector, RazorpayError, from_paise, to_paise
from storefront.core.exceptions import Conflict, NotFound, ValidationFailed
from storefront.domain.refund import RefundStatus, RefundTransaction, ReturnStatus
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.refund_repository import RefundRepository
from storefront.repositories.return_repository import ReturnRepository
from storefront.services.email_service import EmailService

logger = logging.getLogger(__name__)

INSUFFICIENT_BALANCE_MESSAGE = (
    "Insufficient balance in Razorpay account to process refund. Please add funds to your "
    "Razorpay account from the dashboard or contact support."
)


class RefundService:
    """
    Service for return refunds

    Handles:
    - Refund creation and retry
    - Refund status (database and gateway)
    - Refund transaction listing
    """

    def __init__(self, refund_repository: RefundRepository = None,
                 return_repository: ReturnRepository = None,
                 order_repository: OrderRepository = None,
                 email_service: EmailService = None,
                 razorpay: RazorpayConnector = None):
        self.refunds = refund_repository or RefundRepository()
        self.returns = return_repository or ReturnRepository()
        self.orders = order_repository or OrderRepository()
        self.email = email_service or EmailService()
        self._razorpay = razorpay

    @property
    def razorpay(self) -> RazorpayConnector:
        if self._razorpay is None:
            self._razorpay = RazorpayConnector()
        return self._razorpay

    async def create_refund(
        self,
        return_request_id: str,
        payment_id: str,
        amount: Decimal,
        notes: Optional[Dict[str, str]] = None,
        initiated_by: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Refund an approved return through Razorpay

        Args:
            return_request_id: Return request UUID
            payment_id: Razorpay payment to refund
            amount: Refund amount in rupees
            notes: Extra gateway notes
            initiated_by: Admin user id

        Returns:
            {'success': True, 'refund_id', 'transaction_number'}
        """
        if not return_request_id or not payment_id or amount is None or Decimal(str(amount)) <= 0:
            raise ValidationFailed("Missing required fields: return_request_id, payment_id, amount")

        amount = Decimal(str(amount))

        return_request = self.returns.find_by_id(return_request_id)
        if not return_request:
            raise NotFound("Return request not found")

        if return_request.status == ReturnStatus.REFUND_COMPLETED:
            raise Conflict("Refund already completed for this return")

        if return_request.status == ReturnStatus.REFUND_INITIATED:
            raise Conflict("A refund is already in progress for this return")

        if self.refunds.has_open_refund(return_request_id):
            raise Conflict("A refund is already in progress for this return")

        # Claimed before the gateway call so a concurrent request cannot refund twice
        if not self.returns.claim_for_refund(return_request_id, return_request.status):
            raise Conflict("A refund is already in progress for this return")

        gateway_notes = {'return_request_id': return_request_id}
        gateway_notes.update(notes or {})

        amount_paise = to_paise(amount)
        logger.info(f"Initiating refund for return {return_request_id}: ₹{amount} ({amount_paise} paise)")

        try:
            refund = await self.razorpay.create_refund(payment_id, amount_paise, notes=gateway_notes)
        except RazorpayError as e:
            # Rejected by Razorpay, so nothing was refunded. Other errors (timeouts)
            # keep the claim until the gateway status has been checked.
            self._release_claim(return_request_id, return_request.status)
            if 'does not have enough balance' in (e.description or ''):
                raise RazorpayError(e.status_code, INSUFFICIENT_BALANCE_MESSAGE, e.code, e.payload)
            raise

        refund_id = refund['id']
        original_amount = return_request.original_order_amount or amount
        transaction: Optional[RefundTransaction] = None

        try:
            transaction = self.refunds.create(
                return_request_id=return_request_id,
                order_id=return_request.order_id,
                razorpay_payment_id=payment_id,
                razorpay_refund_id=refund_id,
                refund_amount=amount,
                status=RefundStatus.INITIATED if refund.get('status') == 'pending' else refund.get('status'),
                razorpay_status=refund.get('status'),
                razorpay_speed=refund.get('speed_requested') or 'normal',
                razorpay_response=refund,
                original_amount=original_amount,
                deduction_amount=original_amount - amount,
                initiated_by=initiated_by,
                notes=json.dumps(notes) if notes else None,
            )
            logger.info(f"Refund transaction saved: {transaction.transaction_number}")
        except Exception as e:
            logger.error(f"Refund {refund_id} accepted by Razorpay but saving the transaction failed: {e}")

        reference = (transaction.transaction_number if transaction else None) or refund_id

        try:
            self.returns.update_status(return_request_id, ReturnStatus.REFUND_INITIATED, refund_id)
            self.returns.add_history(
                return_request_id,
                ReturnStatus.REFUND_INITIATED,
                f"Refund initiated: {reference}",
                initiated_by,
            )
        except Exception as e:
            logger.error(f"Refund {refund_id} accepted but updating return {return_request_id} failed: {e}")

        await self.email.send_refund_email('refund_initiated', return_request, {
            'refund_amount': amount,
            'reference': reference,
        })

        logger.info(f"Refund created successfully: {refund_id}")

        return {
            'success': True,
            'refund_id': refund_id,
            'transaction_number': transaction.transaction_number if transaction else None,
        }

    def _release_claim(self, return_request_id: str, previous_status: str):
        try:
            self.returns.release_refund_claim(return_request_id, previous_status)
        except Exception as e:
            logger.error(f"Could not release refund claim on return {return_request_id}: {e}")

    async def retry_failed_refund(self, return_request_id: str, initiated_by: Optional[str] = None) -> Dict[str, Any]:
        """Refund the return's final amount again after a failed attempt"""
        return_request = self.returns.find_by_id(return_request_id)
        if not return_request:
            raise NotFound("Return request not found")

        if not return_request.final_refund_amount:
            raise ValidationFailed("Final refund amount not set")

        order = self.orders.find_by_id(return_request.order_id)
        if not order or not order.razorpay_payment_id:
            raise ValidationFailed("Payment ID not found for this return request")

        return await self.create_refund(
            return_request_id,
            order.razorpay_payment_id,
            return_request.final_refund_amount,
            notes={
                'retry': 'true',
                'original_refund_id': return_request.razorpay_refund_id or '',
            },
            initiated_by=initiated_by,
        )

    def get_refund_status(self, return_request_id: str) -> Dict[str, Any]:
        """Latest refund transaction for a return, from our database"""
        latest = self.refunds.find_latest_for_return(return_request_id)
        if not latest:
            return {'status': RefundStatus.PENDING, 'error': 'No refund transaction found'}

        return {
            'status': latest.status,
            'refund_id': latest.razorpay_refund_id,
            'amount': float(latest.refund_amount),
            'created_at': latest.created_at.isoformat() if latest.created_at else None,
        }

    async def check_refund_status_from_gateway(self, payment_id: str, refund_id: str) -> Dict[str, Any]:
        """Ask Razorpay directly, e.g. when a webhook was missed"""
        if not payment_id or not refund_id:
            raise ValidationFailed("Missing required fields: payment_id, refund_id")

        refund = await self.razorpay.fetch_refund(payment_id, refund_id)

        created_at = refund.get('created_at')
        return {
            'status': refund.get('status'),
            'refund_id': refund.get('id'),
            'amount': float(from_paise(refund.get('amount') or 0)),
            'created_at': (
                datetime.fromtimestamp(created_at, tz=timezone.utc).isoformat() if created_at else None
            ),
        }

    def list_transactions(self, return_request_id: str) -> List[RefundTransaction]:
        return self.refunds.list_for_return(return_request_id)
