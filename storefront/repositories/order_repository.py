"""
Order Repository - Data Access Layer for Orders

Handles all database queries for storefront orders and returns Order
domain models. Payment state changes are guarded UPDATEs: the WHERE
clause carries the expected prior state, so a replayed webhook or a
double-submitted verification changes nothing the second time.

Author: TM3
Date: 2026-09-02
"""
import logging
from typing import Any, Dict, Optional

from psycopg2.extras import Json

from storefront.domain.order import CreateOrderRequest, Order, OrderItem, PaymentStatus
from storefront.core.database import get_db_connection_dict

logger = logging.getLogger(__name__)

ORDER_COLUMNS = """
    o.id, o.order_number, o.customer_id,
    o.subtotal, o.tax_amount, o.shipping_amount, o.discount_amount, o.total_amount,
    o.status, o.payment_status, o.payment_method,
    o.razorpay_order_id, o.razorpay_payment_id, o.payment_error,
    o.billing_first_name, o.billing_last_name, o.billing_email, o.billing_phone,
    o.delivered_at, o.created_at, o.updated_at
"""


class OrderRepository:
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    """

    def create_with_items(
        self,
        order_number: str,
        customer_id: Optional[str],
        request: CreateOrderRequest
    ) -> Dict[str, Any]:
        """
        Insert an order and all of its items in one transaction

        Returns:
            {'id': ..., 'order_number': ...}
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        billing = request.billing
        delivery = request.delivery

        try:
            cursor.execute("""
                INSERT INTO orders (
                    order_number, customer_id, status, payment_status, payment_method,
                    subtotal, tax_amount, shipping_amount, discount_amount, total_amount,
                    billing_first_name, billing_last_name, billing_address_line_1,
                    billing_address_line_2, billing_city, billing_state, billing_postal_code,
                    billing_country, billing_phone, billing_email,
                    shipping_first_name, shipping_last_name, shipping_address_line_1,
                    shipping_address_line_2, shipping_city, shipping_state, shipping_postal_code,
                    shipping_country, shipping_phone
                )
                VALUES (
                    %s, %s, 'pending', %s, %s,
                    %s, 0, %s, 0, %s,
                    %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                    %s, %s, %s, %s, %s, %s, %s, %s, %s
                )
                RETURNING id, order_number
            """, (
                order_number, customer_id, PaymentStatus.PENDING, request.payment_method,
                request.subtotal, request.shipping_amount, request.total_amount,
                billing.first_name, billing.last_name, billing.address_line_1,
                billing.address_line_2, billing.city, billing.state, billing.postal_code,
                billing.country or 'India', billing.phone, billing.email,
                delivery.first_name, delivery.last_name, delivery.address_line_1,
                delivery.address_line_2, delivery.city, delivery.state, delivery.postal_code,
                delivery.country or 'India', delivery.phone,
            ))

            order = cursor.fetchone()

            for item in request.items:
                cursor.execute("""
                    INSERT INTO order_items (
                        order_id, product_id, product_variant_id, product_name, product_sku,
                        variant_size, variant_color, variant_material,
                        unit_price, quantity, total_price
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """, (
                    order['id'], item.product_id, item.product_variant_id, item.product_name,
                    item.product_sku, item.variant_size, item.variant_color, item.variant_material,
                    item.unit_price, item.quantity, item.total_price,
                ))

            conn.commit()
            return {'id': str(order['id']), 'order_number': order['order_number']}

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def _find_one(self, where: str, value: Any, with_items: bool = False) -> Optional[Order]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders o
                WHERE {where}
                LIMIT 1
            """, (value,))

            row = cursor.fetchone()
            if not row:
                return None

            order_dict = dict(row)
            order_dict['id'] = str(order_dict['id'])
            if order_dict.get('customer_id') is not None:
                order_dict['customer_id'] = str(order_dict['customer_id'])

            if with_items:
                cursor.execute("""
                    SELECT
                        id, order_id, product_id, product_variant_id, product_name, product_sku,
                        unit_price, quantity, total_price,
                        variant_size, variant_color, variant_material
                    FROM order_items
                    WHERE order_id = %s
                    ORDER BY id
                """, (order_dict['id'],))
                order_dict['items'] = [
                    OrderItem(**{**item, 'order_id': str(item['order_id'])})
                    for item in cursor.fetchall()
                ]

            return Order(**order_dict)

        finally:
            cursor.close()
            conn.close()

    def find_by_id(self, order_id: str) -> Optional[Order]:
        """
        Find order by ID with its items

        Args:
            order_id: Order UUID

        Returns:
            Order with items or None if not found
        """
        return self._find_one("o.id = %s", order_id, with_items=True)

    def find_by_razorpay_order_id(self, razorpay_order_id: str) -> Optional[Order]:
        return self._find_one("o.razorpay_order_id = %s", razorpay_order_id)

    def find_by_payment_id(self, razorpay_payment_id: str) -> Optional[Order]:
        return self._find_one("o.razorpay_payment_id = %s", razorpay_payment_id)

    def attach_gateway_order(self, order_id: str, razorpay_order_id: str) -> bool:
        """Remember which gateway order belongs to an unpaid order"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET razorpay_order_id = %s, updated_at = NOW()
                WHERE id = %s AND payment_status <> %s
            """, (razorpay_order_id, order_id, PaymentStatus.PAID))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def mark_paid(
        self,
        order_id: str,
        razorpay_payment_id: Optional[str],
        razorpay_order_id: Optional[str] = None,
        payment_details: Optional[Dict[str, Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Transition an order to paid, once

        Returns:
            The updated row, or None when the order is missing or was
            already paid (nothing changed).
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET payment_status = %s,
                    razorpay_payment_id = COALESCE(%s, razorpay_payment_id),
                    razorpay_order_id = COALESCE(%s, razorpay_order_id),
                    payment_transaction_id = COALESCE(%s, payment_transaction_id),
                    payment_details = COALESCE(%s, payment_details),
                    payment_error = NULL,
                    updated_at = NOW()
                WHERE id = %s AND payment_status <> %s
                RETURNING id, order_number, payment_status, razorpay_payment_id, razorpay_order_id
            """, (
                PaymentStatus.PAID,
                razorpay_payment_id,
                razorpay_order_id,
                razorpay_payment_id,
                Json(payment_details) if payment_details is not None else None,
                order_id,
                PaymentStatus.PAID,
            ))

            row = cursor.fetchone()
            conn.commit()
            return dict(row) if row else None

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def mark_failed(
        self,
        order_id: str,
        error: str,
        payment_details: Optional[Dict[str, Any]] = None
    ) -> bool:
        """
        Record a failed payment unless the order is already paid

        Returns:
            True if the row changed
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                UPDATE orders
                SET payment_status = %s,
                    payment_error = %s,
                    payment_details = COALESCE(%s, payment_details),
                    updated_at = NOW()
                WHERE id = %s AND payment_status <> %s
            """, (
                PaymentStatus.FAILED,
                error,
                Json(payment_details) if payment_details is not None else None,
                order_id,
                PaymentStatus.PAID,
            ))
            updated = cursor.rowcount > 0
            conn.commit()
            return updated

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def get_notification_details(self, order_id: str) -> Optional[Dict[str, Any]]:
        """Fields the admin new-order email needs"""
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                SELECT order_number, billing_first_name, billing_last_name,
                       billing_email, billing_phone, total_amount, payment_method
                FROM orders
                WHERE id = %s
            """, (order_id,))
            row = cursor.fetchone()
            return dict(row) if row else None

        finally:
            cursor.close()
            conn.close()
