"""
Customer Repository - checkout customers and their addresses

Checkout creates (or reuses) a customer keyed by billing email. The
preferred path is the create_checkout_customer RPC, which also issues a
temporary password for new accounts; a plain upsert is the fallback.
"""
import logging
from typing import Any, Dict, Optional

from storefront.core.database import get_db_connection_dict, get_supabase
from storefront.domain.order import AddressInput

logger = logging.getLogger(__name__)


class CustomerRepository:

    def __init__(self, supabase_client=None):
        self._supabase = supabase_client

    @property
    def supabase(self):
        if self._supabase is None:
            self._supabase = get_supabase()
        return self._supabase

    def upsert_checkout_customer(
        self,
        email: str,
        first_name: str,
        last_name: str,
        phone: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create or reuse the customer for a checkout email

        Returns:
            {'id', 'temp_password', 'existing_customer', 'needs_welcome_email'}
        """
        try:
            response = self.supabase.rpc('create_checkout_customer', {
                'p_email': email,
                'p_first_name': first_name,
                'p_last_name': last_name,
                'p_phone': phone,
            }).execute()
            data = response.data
            if isinstance(data, list):
                data = data[0] if data else None
            if not data or not data.get('id'):
                raise ValueError("create_checkout_customer returned no id")

            return {
                'id': str(data['id']),
                'temp_password': data.get('temp_password'),
                'existing_customer': bool(data.get('existing_customer')),
                'needs_welcome_email': bool(data.get('needs_welcome_email')),
            }

        except Exception as e:
            logger.warning(f"create_checkout_customer RPC failed, falling back to upsert: {e}")

        return self._upsert_by_email(email, first_name, last_name, phone)

    def _upsert_by_email(
        self,
        email: str,
        first_name: str,
        last_name: str,
        phone: Optional[str]
    ) -> Dict[str, Any]:
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute("""
                INSERT INTO customers (email, first_name, last_name, phone, updated_at)
                VALUES (%s, %s, %s, %s, NOW())
                ON CONFLICT (email) DO UPDATE
                SET first_name = EXCLUDED.first_name,
                    last_name = EXCLUDED.last_name,
                    phone = COALESCE(EXCLUDED.phone, customers.phone),
                    updated_at = NOW()
                RETURNING id, welcome_email_sent
            """, (email, first_name, last_name, phone))

            row = cursor.fetchone()
            conn.commit()

            return {
                'id': str(row['id']),
                'temp_password': None,
                'existing_customer': False,
                'needs_welcome_email': not row.get('welcome_email_sent'),
            }

        except Exception:
            conn.rollback()
            raise

        finally:
            cursor.close()
            conn.close()

    def upsert_address(
        self,
        customer_id: str,
        address: AddressInput,
        address_type: str = 'delivery'
    ) -> Optional[int]:
        """
        Update the customer's address of this type, or insert one

        Address book upkeep is a convenience for the next checkout, so
        failures are logged and None is returned.
        """
        try:
            conn = get_db_connection_dict()
        except Exception as e:
            logger.warning(f"Address upsert ({address_type}) skipped for customer {customer_id}, no connection: {e}")
            return None

        cursor = conn.cursor()

        values = (
            address.first_name, address.last_name, address.address_line_1,
            address.address_line_2, address.city, address.state, address.postal_code,
            address.country or 'India', address.phone,
        )

        try:
            cursor.execute("""
                SELECT id FROM customer_addresses
                WHERE customer_id = %s AND type = %s
                ORDER BY is_default DESC
                LIMIT 1
            """, (customer_id, address_type))
            existing = cursor.fetchone()

            if existing:
                cursor.execute("""
                    UPDATE customer_addresses
                    SET first_name = %s, last_name = %s, address_line_1 = %s,
                        address_line_2 = %s, city = %s, state = %s, postal_code = %s,
                        country = %s, phone = %s, is_default = TRUE
                    WHERE id = %s
                    RETURNING id
                """, values + (existing['id'],))
            else:
                cursor.execute("""
                    INSERT INTO customer_addresses (
                        first_name, last_name, address_line_1, address_line_2,
                        city, state, postal_code, country, phone,
                        customer_id, type, is_default
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, TRUE)
                    RETURNING id
                """, values + (customer_id, address_type))

            address_id = cursor.fetchone()['id']
            conn.commit()
            return address_id

        except Exception as e:
            conn.rollback()
            logger.warning(f"Address upsert ({address_type}) failed for customer {customer_id} (non-fatal): {e}")
            return None

        finally:
            cursor.close()
            conn.close()
