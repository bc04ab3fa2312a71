"""
Unit tests for RefundService
"""
import asyncio
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.connectors.razorpay_connector import RazorpayError
from storefront.core.exceptions import Conflict, NotFound, ValidationFailed
from storefront.domain.refund import RefundTransaction
from storefront.services.refund_service import INSUFFICIENT_BALANCE_MESSAGE, RefundService


def _service(return_request=None, has_open_refund=False, gateway_refund=None, claimed=True):
    refunds = MagicMock()
    refunds.has_open_refund.return_value = has_open_refund
    refunds.create.return_value = RefundTransaction(
        id='tx-1', return_request_id='return-1', transaction_number='RFD-0001',
        refund_amount=Decimal('1299.00'), razorpay_payment_id='pay_1', razorpay_refund_id='rfnd_1',
        status='initiated',
    )
    returns = MagicMock()
    returns.find_by_id.return_value = return_request
    returns.claim_for_refund.return_value = claimed
    email = MagicMock()
    email.send_refund_email = AsyncMock(return_value=True)
    razorpay = MagicMock()
    razorpay.create_refund = AsyncMock(return_value=gateway_refund or {
        'id': 'rfnd_1', 'status': 'pending', 'speed_requested': 'normal', 'amount': 129900,
    })
    return RefundService(
        refund_repository=refunds,
        return_repository=returns,
        order_repository=MagicMock(),
        email_service=email,
        razorpay=razorpay,
    )


class TestCreateRefund:

    def test_successful_refund(self, return_request):
        service = _service(return_request)

        result = asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('1299.00'), initiated_by='admin-1'))

        assert result == {'success': True, 'refund_id': 'rfnd_1', 'transaction_number': 'RFD-0001'}
        service.razorpay.create_refund.assert_awaited_once_with(
            'pay_1', 129900, notes={'return_request_id': 'return-1'}
        )
        create_kwargs = service.refunds.create.call_args.kwargs
        assert create_kwargs['status'] == 'initiated'
        assert create_kwargs['deduction_amount'] == Decimal('200.00')
        service.returns.update_status.assert_called_once_with('return-1', 'refund_initiated', 'rfnd_1')
        service.returns.add_history.assert_called_once_with(
            'return-1', 'refund_initiated', 'Refund initiated: RFD-0001', 'admin-1'
        )
        kind = service.email.send_refund_email.call_args[0][0]
        assert kind == 'refund_initiated'

    def test_second_refund_is_refused(self, return_request):
        service = _service(return_request, has_open_refund=True)

        with pytest.raises(Conflict):
            asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('1299.00')))

        service.razorpay.create_refund.assert_not_called()

    def test_initiated_return_without_transaction_is_refused(self, return_request):
        """A refund whose bookkeeping failed still blocks a second gateway refund"""
        service = _service(return_request.model_copy(update={'status': 'refund_initiated'}))

        with pytest.raises(Conflict):
            asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('100')))

        service.razorpay.create_refund.assert_not_called()
        service.returns.claim_for_refund.assert_not_called()

    def test_losing_the_claim_race_is_refused(self, return_request):
        service = _service(return_request, claimed=False)

        with pytest.raises(Conflict):
            asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('1299.00')))

        service.returns.claim_for_refund.assert_called_once_with('return-1', 'approved')
        service.razorpay.create_refund.assert_not_called()

    def test_gateway_rejection_releases_claim(self, return_request):
        service = _service(return_request)
        service.razorpay.create_refund = AsyncMock(side_effect=RazorpayError(400, 'Payment not captured'))

        with pytest.raises(RazorpayError):
            asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('1299.00')))

        service.returns.release_refund_claim.assert_called_once_with('return-1', 'approved')

    def test_gateway_timeout_keeps_claim(self, return_request):
        service = _service(return_request)
        service.razorpay.create_refund = AsyncMock(side_effect=TimeoutError("read timeout"))

        with pytest.raises(TimeoutError):
            asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('1299.00')))

        service.returns.release_refund_claim.assert_not_called()

    def test_completed_return_is_refused(self, return_request):
        service = _service(return_request.model_copy(update={'status': 'refund_completed'}))

        with pytest.raises(Conflict):
            asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('10')))

    def test_unknown_return(self):
        with pytest.raises(NotFound):
            asyncio.run(_service(None).create_refund('missing', 'pay_1', Decimal('10')))

    def test_invalid_amount(self, return_request):
        with pytest.raises(ValidationFailed):
            asyncio.run(_service(return_request).create_refund('return-1', 'pay_1', Decimal('0')))

    def test_insufficient_balance_message(self, return_request):
        service = _service(return_request)
        service.razorpay.create_refund = AsyncMock(side_effect=RazorpayError(
            400, 'Your account does not have enough balance to carry out the refund operation.', 'BAD_REQUEST_ERROR'
        ))

        with pytest.raises(RazorpayError) as exc:
            asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('1299.00')))

        assert exc.value.message == INSUFFICIENT_BALANCE_MESSAGE
        service.refunds.create.assert_not_called()

    def test_bookkeeping_failure_after_gateway_success_is_logged(self, return_request):
        """Once Razorpay accepted the refund the call must not fail"""
        service = _service(return_request)
        service.refunds.create.side_effect = RuntimeError("db down")

        result = asyncio.run(service.create_refund('return-1', 'pay_1', Decimal('1299.00')))

        assert result == {'success': True, 'refund_id': 'rfnd_1', 'transaction_number': None}
        service.returns.add_history.assert_called_once_with(
            'return-1', 'refund_initiated', 'Refund initiated: rfnd_1', None
        )


class TestRetryAndStatus:

    def test_retry_uses_final_amount_and_order_payment(self, return_request, make_order):
        service = _service(return_request.model_copy(update={'razorpay_refund_id': 'rfnd_old'}))
        service.orders.find_by_id.return_value = make_order()

        asyncio.run(service.retry_failed_refund('return-1', initiated_by='admin-1'))

        service.razorpay.create_refund.assert_awaited_once_with('pay_RZP123', 129900, notes={
            'return_request_id': 'return-1', 'retry': 'true', 'original_refund_id': 'rfnd_old',
        })

    def test_retry_without_final_amount(self, return_request):
        service = _service(return_request.model_copy(update={'final_refund_amount': None}))

        with pytest.raises(ValidationFailed) as exc:
            asyncio.run(service.retry_failed_refund('return-1'))
        assert exc.value.message == "Final refund amount not set"

    def test_retry_without_payment_id(self, return_request, make_order):
        service = _service(return_request)
        service.orders.find_by_id.return_value = make_order(razorpay_payment_id=None)

        with pytest.raises(ValidationFailed) as exc:
            asyncio.run(service.retry_failed_refund('return-1'))
        assert exc.value.message == "Payment ID not found for this return request"

    def test_status_without_transactions(self):
        service = _service()
        service.refunds.find_latest_for_return.return_value = None

        assert service.get_refund_status('return-1') == {
            'status': 'pending', 'error': 'No refund transaction found',
        }

    def test_status_from_latest_transaction(self):
        service = _service()
        service.refunds.find_latest_for_return.return_value = RefundTransaction(
            id='tx-2', return_request_id='return-1', refund_amount=Decimal('500.50'),
            razorpay_payment_id='pay_1', razorpay_refund_id='rfnd_2', status='processed',
            created_at=datetime(2026, 9, 2, 12, 0),
        )

        assert service.get_refund_status('return-1') == {
            'status': 'processed',
            'refund_id': 'rfnd_2',
            'amount': 500.5,
            'created_at': '2026-09-02T12:00:00',
        }

    def test_status_from_gateway(self):
        service = _service()
        service.razorpay.fetch_refund = AsyncMock(return_value={
            'id': 'rfnd_1', 'status': 'processed', 'amount': 129900, 'created_at': 1788350400,
        })

        result = asyncio.run(service.check_refund_status_from_gateway('pay_1', 'rfnd_1'))

        assert result['status'] == 'processed'
        assert result['amount'] == 1299.0
        assert result['created_at'].startswith('2026-')
