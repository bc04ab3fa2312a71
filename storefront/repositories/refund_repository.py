"""
Refund Repository - razorpay_refund_transactions

Webhook-driven transitions are guarded:
- processed only from a non-processed row
- failed only from a row that is neither processed nor failed
so re-delivered refund events are no-ops.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from psycopg2.extras import Json

from storefront.core.database import get_db_connection_dict
from storefront.domain.refund import RefundStatus, RefundTransaction

logger = logging.getLogger(__name__)


def _to_transaction(row) -> RefundTransaction:
    data = dict(row)
    for key in ('id', 'return_request_id', 'order_id', 'initiated_by'):
        if data.get(key) is not None:
            data[key] = str(data[key])
    return RefundTransaction(**data)


class RefundRepository:

    def create(
        self,
        return_request_id: str,
        order_id: Optional[str],
        razorpay_payment_id: str,
        razorpay_refund_id: str,
        refund_amount: Decimal,
        status: str,
        razorpay_status: Optional[str],
        razorpay_speed: Optional[str],
        razorpay_response: Dict[str, Any],
        original_amount: Decimal,
        deduction_amount: Decimal,
        initiated_by: Optional[str] = None,
        notes: Optional[str] = None
    ) -> RefundTransaction:
        """Insert a refund transaction; transaction_number is generated by the database"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO razorpay_refund_transactions (
                    return_request_id, order_id, razorpay_payment_id, razorpay_refund_id,
                    refund_amount, status, razorpay_status, razorpay_speed, razorpay_response,
                    original_amount, deduction_amount, initiated_by, notes, initiated_at
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, NOW())
                RETURNING *
            """, (
                return_request_id, order_id, razorpay_payment_id, razorpay_refund_id,
                refund_amount, status, razorpay_status, razorpay_speed, Json(razorpay_response),
                original_amount, deduction_amount, initiated_by, notes,
            ))

            row = cursor.fetchone()
            conn.commit()
            return _to_transaction(row)

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def _guarded_update(self, sql: str, params: tuple) -> Optional[Dict[str, Any]]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(sql, params)
            row = cursor.fetchone()
            conn.commit()
            return dict(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def mark_processed(
        self,
        razorpay_refund_id: str,
        razorpay_status: str,
        response: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Returns:
            The updated row (id, return_request_id, transaction_number,
            refund_amount) or None when already processed or unknown.
        """
        return self._guarded_update("""
            UPDATE razorpay_refund_transactions
            SET status = %s,
                razorpay_status = %s,
                razorpay_response = %s,
                processed_at = NOW(),
                updated_at = NOW()
            WHERE razorpay_refund_id = %s AND status <> %s
            RETURNING id, return_request_id, transaction_number, refund_amount
        """, (
            RefundStatus.PROCESSED, razorpay_status, Json(response),
            razorpay_refund_id, RefundStatus.PROCESSED,
        ))

    def mark_failed(
        self,
        razorpay_refund_id: str,
        razorpay_status: str,
        response: Dict[str, Any],
        reason: str
    ) -> Optional[Dict[str, Any]]:
        return self._guarded_update("""
            UPDATE razorpay_refund_transactions
            SET status = %s,
                razorpay_status = %s,
                razorpay_response = %s,
                failure_reason = %s,
                failed_at = NOW(),
                updated_at = NOW()
            WHERE razorpay_refund_id = %s AND status NOT IN (%s, %s)
            RETURNING id, return_request_id, transaction_number, refund_amount
        """, (
            RefundStatus.FAILED, razorpay_status, Json(response), reason,
            razorpay_refund_id, RefundStatus.PROCESSED, RefundStatus.FAILED,
        ))

    def update_gateway_status(
        self,
        razorpay_refund_id: str,
        razorpay_status: str,
        response: Dict[str, Any]
    ) -> bool:
        """Record an intermediate gateway status without changing our own status"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE razorpay_refund_transactions
                SET razorpay_status = %s, razorpay_response = %s, updated_at = NOW()
                WHERE razorpay_refund_id = %s
            """, (razorpay_status, Json(response), razorpay_refund_id))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def find_by_refund_id(self, razorpay_refund_id: str) -> Optional[RefundTransaction]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT * FROM razorpay_refund_transactions
                WHERE razorpay_refund_id = %s
                LIMIT 1
            """, (razorpay_refund_id,))
            row = cursor.fetchone()
            return _to_transaction(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def list_for_return(self, return_request_id: str) -> List[RefundTransaction]:
        """All refund attempts for a return, newest first"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT * FROM razorpay_refund_transactions
                WHERE return_request_id = %s
                ORDER BY created_at DESC
            """, (return_request_id,))
            return [_to_transaction(row) for row in cursor.fetchall()]

        finally:
            cursor.close()
            conn.close()

    def find_latest_for_return(self, return_request_id: str) -> Optional[RefundTransaction]:
        transactions = self.list_for_return(return_request_id)
        return transactions[0] if transactions else None

    def has_open_refund(self, return_request_id: str) -> bool:
        """True when a refund for this return is pending, initiated or already processed"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM razorpay_refund_transactions
                WHERE return_request_id = %s AND status = ANY(%s)
                LIMIT 1
            """, (return_request_id, list(RefundStatus.OPEN)))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()
