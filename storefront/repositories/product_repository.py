"""
Product Repository - Data Access Layer for Products

Handles the public catalog queries and returns Product domain models.
Only active products are ever returned.

Author: TM3
Date: 2025-10-17
"""
from typing import List, Optional, Tuple
from storefront.domain.product import Product
from storefront.core.database import get_db_connection_dict


PRODUCT_SELECT = """
    SELECT
        p.id, p.name, p.slug, p.sku, p.description,
        p.category_id, c.name AS category_name,
        p.price, p.sale_price, p.is_active, p.is_featured,
        p.created_at, p.updated_at,
        (
            SELECT pi.image_url FROM product_images pi
            WHERE pi.product_id = p.id
            ORDER BY pi.is_primary DESC, pi.id
            LIMIT 1
        ) AS image_url,
        (
            SELECT COALESCE(SUM(i.quantity), 0) FROM inventory i
            WHERE i.product_id = p.id
        ) AS stock_quantity
    FROM products p
    LEFT JOIN categories c ON c.id = p.category_id
"""


class ProductRepository:
    """
    Repository for Product data access

    All SQL queries for products are centralized here.
    Returns Product domain models, not raw dictionaries.
    """

    @staticmethod
    def _map_row_to_product(row: dict) -> Product:
        """Map a catalog row (with category, image and stock sub-selects) to Product"""
        return Product(
            id=row['id'],
            name=row['name'],
            slug=row['slug'],
            sku=row.get('sku'),
            description=row.get('description'),
            category_id=row.get('category_id'),
            category_name=row.get('category_name'),
            image_url=row.get('image_url'),
            price=row['price'],
            sale_price=row.get('sale_price'),
            stock_quantity=int(row.get('stock_quantity') or 0),
            is_active=row['is_active'],
            is_featured=bool(row.get('is_featured')),
            created_at=row.get('created_at'),
            updated_at=row.get('updated_at')
        )

    def find_by_slug(self, slug: str) -> Optional[Product]:
        """
        Find an active product by slug

        Args:
            slug: URL slug

        Returns:
            Product or None if not found
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            cursor.execute(f"""
                {PRODUCT_SELECT}
                WHERE p.slug = %s AND p.is_active = TRUE
            """, (slug,))

            row = cursor.fetchone()
            return self._map_row_to_product(row) if row else None

        finally:
            cursor.close()
            conn.close()

    def find_all(
        self,
        category: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Product], int]:
        """
        Find active products with filters

        Args:
            category: Filter by category slug
            search: Search in name or SKU
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of products, total count)
        """
        conn = get_db_connection_dict()
        cursor = conn.cursor()

        try:
            # Build WHERE clause
            conditions = ["p.is_active = TRUE"]
            params = []

            if category:
                conditions.append("c.slug = %s")
                params.append(category)

            if search:
                conditions.append("(p.name ILIKE %s OR p.sku ILIKE %s)")
                search_term = f"%{search}%"
                params.extend([search_term, search_term])

            where_clause = " AND ".join(conditions)

            # Get total count
            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM products p
                LEFT JOIN categories c ON c.id = p.category_id
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                {PRODUCT_SELECT}
                WHERE {where_clause}
                ORDER BY p.is_featured DESC, p.created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            rows = cursor.fetchall()
            products = [self._map_row_to_product(row) for row in rows]

            return products, total

        finally:
            cursor.close()
            conn.close()
