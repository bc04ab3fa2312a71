"""
Domain Layer - Business Entities

This layer contains Pydantic models representing business entities.
These models enforce type safety and validation across the application.

Author: TM3
Date: 2025-10-17
"""
from storefront.domain.product import Product, InventoryAdjustment
from storefront.domain.order import (
    AddressInput,
    BillingAddress,
    CreateOrderRequest,
    Order,
    OrderItem,
    OrderItemInput,
    PaymentStatus,
)
from storefront.domain.refund import (
    RefundStatus,
    RefundTransaction,
    ReturnEligibility,
    ReturnRequest,
    ReturnStatus,
)
from storefront.domain.payment import GatewayOrderRequest, RazorpayWebhookEvent, VerifyPaymentRequest

__all__ = [
    'Product', 'InventoryAdjustment',
    'AddressInput', 'BillingAddress', 'CreateOrderRequest', 'Order', 'OrderItem',
    'OrderItemInput', 'PaymentStatus',
    'RefundStatus', 'RefundTransaction', 'ReturnEligibility', 'ReturnRequest', 'ReturnStatus',
    'GatewayOrderRequest', 'RazorpayWebhookEvent', 'VerifyPaymentRequest',
]
