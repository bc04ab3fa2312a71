"""
Unit tests for InventoryRepository
"""
from unittest.mock import patch

from storefront.repositories.inventory_repository import InventoryRepository


class TestInventoryRepository:

    @patch('storefront.repositories.inventory_repository.get_db_connection_dict')
    def test_adjust_logs_history(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = {'id': 3, 'product_id': 7, 'quantity': 10}

        result = InventoryRepository().adjust(3, 4, 'Damaged stock', user_name='admin@example.com')

        assert result == {'item_id': 3, 'old_quantity': 10, 'new_quantity': 4, 'adjustment': -6}
        history_params = cursor.execute.call_args_list[2][0][1]
        assert history_params[2:5] == (10, 4, -6)
        assert history_params[-1] == 'admin@example.com'
        conn.commit.assert_called_once()

    @patch('storefront.repositories.inventory_repository.get_db_connection_dict')
    def test_adjust_missing_row(self, mock_get_conn, mock_db):
        conn, cursor = mock_db
        mock_get_conn.return_value = conn
        cursor.fetchone.return_value = None

        assert InventoryRepository().adjust(99, 1, 'Recount') is None
        conn.commit.assert_not_called()
