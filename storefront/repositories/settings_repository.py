"""
Settings Repository - admin-editable key/value settings

Values are stored as text; callers interpret them ('true', '900', ...).
"""
from typing import Dict, Iterable, Optional

from storefront.core.database import get_db_connection_dict


class SettingsRepository:

    def get_category(self, category: str, keys: Optional[Iterable[str]] = None) -> Dict[str, str]:
        """
        Read settings of one category

        Args:
            category: settings.category (payment, returns, ...)
            keys: Restrict to these keys

        Returns:
            {key: value}
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            if keys:
                cursor.execute("""
                    SELECT key, value FROM settings
                    WHERE category = %s AND key = ANY(%s)
                """, (category, list(keys)))
            else:
                cursor.execute("""
                    SELECT key, value FROM settings
                    WHERE category = %s
                """, (category,))

            return {
                row['key']: ('' if row['value'] is None else str(row['value']))
                for row in cursor.fetchall()
            }

        finally:
            cursor.close()
            conn.close()
