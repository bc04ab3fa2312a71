"""
Return Repository - return_requests and return_status_history
"""
import logging
from typing import Optional

from storefront.core.database import get_db_connection_dict
from storefront.domain.refund import ReturnRequest, ReturnStatus

logger = logging.getLogger(__name__)


class ReturnRepository:

    def find_by_id(self, return_request_id: str) -> Optional[ReturnRequest]:
        """
        Find a return request with the customer contact from its order

        Returns:
            ReturnRequest or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT
                    r.id, r.return_number, r.order_id, r.status,
                    r.original_order_amount, r.final_refund_amount,
                    r.razorpay_refund_id, r.created_at,
                    o.order_number,
                    o.billing_first_name AS customer_first_name,
                    o.billing_last_name AS customer_last_name,
                    o.billing_email AS customer_email
                FROM return_requests r
                JOIN orders o ON o.id = r.order_id
                WHERE r.id = %s
            """, (return_request_id,))

            row = cursor.fetchone()
            if not row:
                return None

            data = dict(row)
            data['id'] = str(data['id'])
            data['order_id'] = str(data['order_id'])
            return ReturnRequest(**data)

        finally:
            cursor.close()
            conn.close()

    def update_status(
        self,
        return_request_id: str,
        status: str,
        razorpay_refund_id: Optional[str] = None
    ) -> bool:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE return_requests
                SET status = %s,
                    razorpay_refund_id = COALESCE(%s, razorpay_refund_id),
                    updated_at = NOW()
                WHERE id = %s
            """, (status, razorpay_refund_id, return_request_id))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def claim_for_refund(self, return_request_id: str, expected_status: str) -> bool:
        """
        Move the return to refund_initiated if it is still in expected_status

        Only one caller wins when two refunds race for the same return.

        Returns:
            True if this call claimed the return
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE return_requests
                SET status = %s,
                    updated_at = NOW()
                WHERE id = %s
                  AND status = %s
                  AND status NOT IN (%s, %s)
                RETURNING id
            """, (
                ReturnStatus.REFUND_INITIATED,
                return_request_id,
                expected_status,
                ReturnStatus.REFUND_INITIATED,
                ReturnStatus.REFUND_COMPLETED,
            ))
            claimed = cursor.fetchone() is not None
            conn.commit()
            return claimed

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def release_refund_claim(self, return_request_id: str, previous_status: str) -> bool:
        """Undo claim_for_refund after the gateway rejected the refund"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE return_requests
                SET status = %s,
                    updated_at = NOW()
                WHERE id = %s AND status = %s
            """, (previous_status, return_request_id, ReturnStatus.REFUND_INITIATED))
            released = cursor.rowcount > 0
            conn.commit()
            return released

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def add_history(
        self,
        return_request_id: str,
        status: str,
        notes: str,
        created_by: Optional[str] = None
    ) -> None:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO return_status_history (return_request_id, status, notes, created_by)
                VALUES (%s, %s, %s, %s)
            """, (return_request_id, status, notes, created_by))
            conn.commit()

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def has_active_return(self, order_id: str) -> bool:
        """An order may only have one return that is still in progress"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT 1 FROM return_requests
                WHERE order_id = %s AND status <> ALL(%s)
                LIMIT 1
            """, (order_id, list(ReturnStatus.CLOSED)))
            return cursor.fetchone() is not None

        finally:
            cursor.close()
            conn.close()
