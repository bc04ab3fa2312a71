"""
Unit tests for ProductRepository

These tests validate repository logic without requiring a database connection.

Author: TM3
Date: 2025-10-17
"""
from unittest.mock import patch
from datetime import datetime
from decimal import Decimal

from storefront.domain.product import Product
from storefront.repositories.product_repository import ProductRepository


PRODUCT_ROW = {
    'id': 7,
    'name': 'Silk Saree',
    'slug': 'silk-saree',
    'sku': 'SAR-001',
    'description': 'Handwoven silk',
    'category_id': 2,
    'category_name': 'Sarees',
    'image_url': 'https://cdn.example.com/products/silk-saree-1.jpg',
    'price': Decimal('1999.00'),
    'sale_price': Decimal('1499.00'),
    'stock_quantity': 4,
    'is_active': True,
    'is_featured': True,
    'created_at': datetime(2026, 8, 1),
    'updated_at': None,
}


class TestProductRepository:
    """Test ProductRepository methods"""

    @patch('storefront.repositories.product_repository.get_db_connection_dict')
    def test_find_by_slug_returns_product(self, mock_get_conn, mock_db):
        """Test find_by_slug returns a Product domain model"""
        # Arrange: Mock database connection
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = PRODUCT_ROW

        # Act: Call repository method
        product = ProductRepository().find_by_slug('silk-saree')

        # Assert: Verify result
        assert isinstance(product, Product)
        assert product.slug == 'silk-saree'
        assert product.effective_price == Decimal('1499.00')
        assert product.in_stock is True

        # Verify database was called correctly
        sql, params = cursor.execute.call_args[0]
        assert "p.is_active = TRUE" in sql
        assert params == ('silk-saree',)
        conn.close.assert_called_once()

    @patch('storefront.repositories.product_repository.get_db_connection_dict')
    def test_find_by_slug_not_found(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert ProductRepository().find_by_slug('missing') is None

    @patch('storefront.repositories.product_repository.get_db_connection_dict')
    def test_find_all_with_filters(self, mock_get_conn, mock_db):
        """Test find_all builds category and search filters"""
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {'total': 1}
        cursor.fetchall.return_value = [PRODUCT_ROW]

        products, total = ProductRepository().find_all(category='sarees', search='silk', limit=10, offset=0)

        assert total == 1
        assert len(products) == 1
        count_sql, count_params = cursor.execute.call_args_list[0][0]
        assert "c.slug = %s" in count_sql
        assert count_params == ['sarees', '%silk%', '%silk%']
        list_params = cursor.execute.call_args_list[1][0][1]
        assert list_params[-2:] == [10, 0]
