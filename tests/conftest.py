"""
Pytest fixtures and configuration for Storefront Backend tests

This file provides shared fixtures that can be used across all test modules.
Nothing here touches a real database or gateway: repositories are tested
against a mocked connection and connectors against respx.

Author: TM3
Date: 2025-10-17
Updated: 2026-09-02
"""
import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from jose import jwt

from storefront.core.config import settings
from storefront.core.rate_limit import rate_limiter
from storefront.domain.order import Order, OrderItem
from storefront.domain.refund import ReturnRequest

TEST_KEY_ID = "rzp_test_key"
TEST_KEY_SECRET = "test_key_secret"
TEST_WEBHOOK_SECRET = "test_webhook_secret"
TEST_JWT_SECRET = "test-jwt-secret-with-enough-length"


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Every test starts with empty rate limit windows"""
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture
def gateway_settings(monkeypatch):
    """
    Razorpay credentials for tests

    Scope: function (monkeypatch restores the real settings afterwards)
    """
    monkeypatch.setattr(settings, "RAZORPAY_KEY_ID", TEST_KEY_ID)
    monkeypatch.setattr(settings, "RAZORPAY_KEY_SECRET", TEST_KEY_SECRET)
    monkeypatch.setattr(settings, "RAZORPAY_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
    return settings


@pytest.fixture
def make_token(monkeypatch):
    """
    Provides a function that signs Supabase-style access tokens

    Usage:
        token = make_token("user-1", "a@b.com", role="admin")
    """
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", TEST_JWT_SECRET)

    def _make(user_id="user-1", email="customer@example.com", role=None, expires_in=3600):
        claims = {
            "sub": user_id,
            "email": email,
            "role": "authenticated",
            "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        }
        if role:
            claims["app_metadata"] = {"role": role}
        return jwt.encode(claims, TEST_JWT_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def mock_db():
    """
    Provides a (connection, cursor) pair of MagicMocks

    Patch a repository's get_db_connection_dict to return the connection.
    """
    conn = MagicMock()
    cursor = MagicMock()
    conn.cursor.return_value = cursor
    return conn, cursor


@pytest.fixture
def make_order():
    """
    Provides a factory for Order domain models

    Defaults describe a paid order delivered yesterday with one
    returnable item.
    """
    def _make(**overrides):
        data = {
            "id": "order-1",
            "order_number": "ORD-20260901-123456",
            "customer_id": "user-1",
            "subtotal": Decimal("1499.00"),
            "total_amount": Decimal("1499.00"),
            "status": "delivered",
            "payment_status": "paid",
            "payment_method": "razorpay",
            "razorpay_order_id": "order_RZP123",
            "razorpay_payment_id": "pay_RZP123",
            "billing_first_name": "Asha",
            "billing_last_name": "Rao",
            "billing_email": "customer@example.com",
            "delivered_at": datetime.now(timezone.utc) - timedelta(days=1),
            "items": [
                OrderItem(
                    id=1,
                    order_id="order-1",
                    product_name="Silk Saree",
                    unit_price=Decimal("1499.00"),
                    quantity=1,
                    total_price=Decimal("1499.00"),
                    variant_size="Free Size",
                )
            ],
        }
        data.update(overrides)
        return Order(**data)

    return _make


@pytest.fixture
def return_request():
    """Provides an approved return request with customer contact"""
    return ReturnRequest(
        id="return-1",
        return_number="RET-0001",
        order_id="order-1",
        order_number="ORD-20260901-123456",
        status="approved",
        original_order_amount=Decimal("1499.00"),
        final_refund_amount=Decimal("1299.00"),
        customer_first_name="Asha",
        customer_last_name="Rao",
        customer_email="customer@example.com",
    )


@pytest.fixture
def order_payload():
    """
    Provides a valid checkout payload for POST /api/v1/orders
    """
    address = {
        "first_name": "Asha",
        "last_name": "Rao",
        "address_line_1": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "phone": "9876543210",
    }
    return {
        "payment_method": "razorpay",
        "subtotal": "2998.00",
        "shipping_amount": "100.00",
        "total_amount": "3098.00",
        "billing": {**address, "email": "Customer@Example.com"},
        "delivery": address,
        "items": [
            {
                "product_id": 7,
                "product_name": "Silk Saree",
                "product_sku": "SAR-001",
                "unit_price": "1499.00",
                "quantity": 2,
                "total_price": "2998.00",
            }
        ],
    }
