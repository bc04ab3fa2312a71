"""
Repository Layer - Data Access

This layer handles all database queries and returns domain models.
Repositories abstract away SQL details from business logic.

Author: TM3
Date: 2025-10-17
"""
from storefront.repositories.product_repository import ProductRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.customer_repository import CustomerRepository
from storefront.repositories.refund_repository import RefundRepository
from storefront.repositories.return_repository import ReturnRepository
from storefront.repositories.settings_repository import SettingsRepository
from storefront.repositories.inventory_repository import InventoryRepository

__all__ = [
    'ProductRepository',
    'OrderRepository',
    'CustomerRepository',
    'RefundRepository',
    'ReturnRepository',
    'SettingsRepository',
    'InventoryRepository',
]
