"""
Inventory Repository - stock adjustments and their audit trail

Every admin adjustment writes an inventory_history row in the same
transaction as the quantity change.

Author: TM3
Date: 2026-09-02
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from storefront.core.database import get_db_connection_dict

logger = logging.getLogger(__name__)


class InventoryRepository:

    def adjust(
        self,
        inventory_id: int,
        new_quantity: int,
        reason: str,
        notes: Optional[str] = None,
        user_name: str = "Admin"
    ) -> Optional[Dict[str, Any]]:
        """
        Set an inventory row to new_quantity and log the change

        Returns:
            {'item_id', 'old_quantity', 'new_quantity', 'adjustment'} or
            None if the inventory row does not exist
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            # Lock the row so concurrent adjustments log correct old quantities
            cursor.execute("""
                SELECT id, product_id, quantity FROM inventory
                WHERE id = %s
                FOR UPDATE
            """, (inventory_id,))
            current = cursor.fetchone()
            if not current:
                conn.rollback()
                return None

            old_quantity = current['quantity'] or 0
            adjustment = new_quantity - old_quantity

            cursor.execute("""
                UPDATE inventory
                SET quantity = %s, updated_at = NOW()
                WHERE id = %s
            """, (new_quantity, inventory_id))

            cursor.execute("""
                INSERT INTO inventory_history (
                    inventory_id, product_id, old_quantity, new_quantity, adjustment,
                    reason, notes, action_type, user_name
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, 'adjustment', %s)
            """, (
                inventory_id, current['product_id'], old_quantity, new_quantity, adjustment,
                reason, notes, user_name,
            ))

            conn.commit()

            return {
                'item_id': inventory_id,
                'old_quantity': old_quantity,
                'new_quantity': new_quantity,
                'adjustment': adjustment,
            }

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def list_history(
        self,
        inventory_id: Optional[int] = None,
        product_id: Optional[int] = None,
        action_type: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Dict[str, Any]], int]:
        """
        Find inventory history with filters, newest first

        Returns:
            Tuple of (list of history rows with product_name, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            conditions = []
            params = []

            if inventory_id:
                conditions.append("h.inventory_id = %s")
                params.append(inventory_id)

            if product_id:
                conditions.append("h.product_id = %s")
                params.append(product_id)

            if action_type:
                conditions.append("h.action_type = %s")
                params.append(action_type)

            if start_date:
                conditions.append("h.created_at >= %s")
                params.append(start_date)

            if end_date:
                conditions.append("h.created_at <= %s")
                params.append(end_date)

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM inventory_history h
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT
                    h.id, h.inventory_id, h.product_id,
                    COALESCE(p.name, 'Unknown Product') AS product_name,
                    h.old_quantity, h.new_quantity, h.adjustment,
                    h.reason, h.notes, h.user_name, h.action_type, h.created_at
                FROM inventory_history h
                LEFT JOIN products p ON p.id = h.product_id
                WHERE {where_clause}
                ORDER BY h.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            return [dict(row) for row in cursor.fetchall()], total

        finally:
            cursor.close()
            conn.close()
