"""
API tests for catalog, orders, returns, refunds, emails, images and inventory

Authentication runs for real with tokens signed by the make_token fixture.
"""
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from storefront.core.exceptions import Conflict
from storefront.domain.product import Product
from storefront.domain.refund import ReturnEligibility
from storefront.main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def customer_headers(make_token):
    return {'Authorization': f"Bearer {make_token('user-1', 'customer@example.com')}"}


@pytest.fixture
def stranger_headers(make_token):
    return {'Authorization': f"Bearer {make_token('user-2', 'other@example.com')}"}


@pytest.fixture
def admin_headers(make_token):
    return {'Authorization': f"Bearer {make_token('admin-1', 'admin@nirchal.com', role='admin')}"}


def test_health_reports_database(client):
    with patch('storefront.main.get_db_connection_dict_with_retry') as mock_conn:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json()['status'] == 'healthy'
    mock_conn.assert_called_once_with(max_retries=1, retry_delay=0.5)


def test_health_degraded_without_database(client):
    with patch('storefront.main.get_db_connection_dict_with_retry', side_effect=RuntimeError("refused")):
        response = client.get("/health")

    assert response.json()['status'] == 'degraded'
    assert response.json()['database']['status'] == 'disconnected'


class TestProductsEndpoint:

    @patch('storefront.api.products.ProductRepository')
    def test_list_products(self, mock_repo, client):
        product = Product(id=7, name='Silk Saree', slug='silk-saree', price=Decimal('1999'), stock_quantity=3)
        mock_repo.return_value.find_all.return_value = ([product], 1)

        response = client.get("/api/v1/products?category=sarees&limit=10")

        assert response.status_code == 200
        body = response.json()
        assert body['total'] == 1
        assert body['count'] == 1
        assert body['data'][0]['slug'] == 'silk-saree'
        mock_repo.return_value.find_all.assert_called_once_with(category='sarees', search=None, limit=10, offset=0)

    @patch('storefront.api.products.ProductRepository')
    def test_unknown_slug(self, mock_repo, client):
        mock_repo.return_value.find_by_slug.return_value = None
        assert client.get("/api/v1/products/nope").status_code == 404


class TestOrdersEndpoint:

    @patch('storefront.api.orders.CheckoutService')
    def test_create_order(self, mock_service, client, order_payload):
        mock_service.return_value.create_order.return_value = {
            'id': 'order-1', 'order_number': 'ORD-1', 'customer_id': 'cust-1',
        }

        response = client.post("/api/v1/orders", json=order_payload)

        assert response.status_code == 200
        assert response.json()['data']['order_number'] == 'ORD-1'

    def test_anonymous_order_for_existing_customer_is_403(self, client, order_payload):
        response = client.post("/api/v1/orders", json={**order_payload, 'customer_id': 'victim-uuid'})

        assert response.status_code == 403
        assert response.json()['detail'] == {'error': 'Not allowed to place orders for this customer'}

    @patch('storefront.api.orders.CheckoutService')
    def test_signed_in_customer_is_passed_to_checkout(self, mock_service, client, order_payload, customer_headers):
        mock_service.return_value.create_order.return_value = {'id': 'o', 'order_number': 'n', 'customer_id': 'user-1'}

        response = client.post("/api/v1/orders", headers=customer_headers,
                               json={**order_payload, 'customer_id': 'user-1'})

        assert response.status_code == 200
        request, user = mock_service.return_value.create_order.call_args[0]
        assert request.customer_id == 'user-1'
        assert user.id == 'user-1'

    def test_create_order_rejects_bad_totals(self, client, order_payload):
        response = client.post("/api/v1/orders", json={**order_payload, 'total_amount': '1.00'})
        assert response.status_code == 422

    @patch('storefront.api.orders.CheckoutService')
    def test_create_order_is_rate_limited(self, mock_service, client, order_payload):
        mock_service.return_value.create_order.return_value = {'id': 'o', 'order_number': 'n', 'customer_id': 'c'}

        statuses = [client.post("/api/v1/orders", json=order_payload).status_code for _ in range(21)]

        assert statuses[:20] == [200] * 20
        assert statuses[20] == 429

    @patch('storefront.api.orders.OrderRepository')
    def test_owner_can_read_order(self, mock_repo, client, customer_headers, make_order):
        mock_repo.return_value.find_by_id.return_value = make_order(customer_id='user-1')

        response = client.get("/api/v1/orders/order-1", headers=customer_headers)

        assert response.status_code == 200
        assert response.json()['data']['total_amount'] == 1499.0

    @patch('storefront.api.orders.OrderRepository')
    def test_other_customers_get_404(self, mock_repo, client, stranger_headers, make_order):
        mock_repo.return_value.find_by_id.return_value = make_order(customer_id='user-1')

        response = client.get("/api/v1/orders/order-1", headers=stranger_headers)

        assert response.status_code == 404

    def test_order_requires_token(self, client):
        assert client.get("/api/v1/orders/order-1").status_code == 401


class TestReturnsEndpoint:

    @patch('storefront.api.returns.ReturnEligibilityService')
    @patch('storefront.api.returns.OrderRepository')
    def test_eligibility(self, mock_repo, mock_service, client, customer_headers, make_order):
        mock_repo.return_value.find_by_id.return_value = make_order(customer_id='user-1')
        mock_service.return_value.check_order_eligibility.return_value = ReturnEligibility(
            is_eligible=False, reasons=['Return window expired. Returns are allowed within 2 days of delivery.'],
        )

        response = client.get("/api/v1/returns/eligibility/order-1", headers=customer_headers)

        assert response.status_code == 200
        assert response.json()['data']['is_eligible'] is False


class TestRefundsEndpoint:

    def test_customers_cannot_refund(self, client, customer_headers):
        response = client.post("/api/v1/refunds", headers=customer_headers, json={
            'return_request_id': 'return-1', 'payment_id': 'pay_1', 'amount': 100,
        })
        assert response.status_code == 403

    @patch('storefront.api.refunds.RefundService')
    def test_admin_refund(self, mock_service, client, admin_headers):
        mock_service.return_value.create_refund = AsyncMock(return_value={
            'success': True, 'refund_id': 'rfnd_1', 'transaction_number': 'RFD-0001',
        })

        response = client.post("/api/v1/refunds", headers=admin_headers, json={
            'return_request_id': 'return-1', 'payment_id': 'pay_1', 'amount': '1299.00',
        })

        assert response.status_code == 200
        kwargs = mock_service.return_value.create_refund.call_args.kwargs
        assert kwargs['amount'] == Decimal('1299.00')
        assert kwargs['initiated_by'] == 'admin-1'

    @patch('storefront.api.refunds.RefundService')
    def test_duplicate_refund_is_409(self, mock_service, client, admin_headers):
        mock_service.return_value.create_refund = AsyncMock(
            side_effect=Conflict("A refund is already in progress for this return")
        )

        response = client.post("/api/v1/refunds", headers=admin_headers, json={
            'return_request_id': 'return-1', 'payment_id': 'pay_1', 'amount': 10,
        })

        assert response.status_code == 409

    @patch('storefront.api.refunds.RefundService')
    def test_refund_status(self, mock_service, client, admin_headers):
        mock_service.return_value.get_refund_status.return_value = {
            'status': 'pending', 'error': 'No refund transaction found',
        }
        mock_service.return_value.list_transactions.return_value = []

        response = client.get("/api/v1/refunds/return-1", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()['data'] == {
            'refund': {'status': 'pending', 'error': 'No refund transaction found'},
            'transactions': [],
        }


class TestEmailsEndpoint:

    @patch('storefront.api.emails.EmailService')
    def test_contact_form_rate_limit(self, mock_service, client):
        mock_service.return_value.send_contact_form = AsyncMock(return_value={'success': True})
        body = {'name': 'Asha', 'email': 'asha@example.com', 'subject': 'Sizing', 'message': 'Hi'}

        statuses = [client.post("/api/v1/emails/contact", json=body).status_code for _ in range(6)]

        assert statuses == [200] * 5 + [429]

    def test_contact_form_validates_email(self, client):
        body = {'name': 'Asha', 'email': 'not-an-email', 'subject': 'Sizing', 'message': 'Hi'}
        assert client.post("/api/v1/emails/contact", json=body).status_code == 422

    def test_send_requires_admin(self, client):
        response = client.post("/api/v1/emails/send", json={'to': 'a@b.com', 'subject': 's', 'html': 'h'})
        assert response.status_code == 401

    @patch('storefront.api.emails.EmailService')
    def test_send_with_from_alias(self, mock_service, client, admin_headers):
        mock_service.return_value.send_email = AsyncMock(return_value={'success': True, 'id': 'email_1'})

        response = client.post("/api/v1/emails/send", headers=admin_headers, json={
            'to': ['a@b.com'], 'subject': 's', 'html': 'h', 'from': 'offers@nirchal.com',
        })

        assert response.status_code == 200
        assert mock_service.return_value.send_email.call_args.kwargs['from_address'] == 'offers@nirchal.com'


class TestImagesEndpoint:

    @patch('storefront.api.images.ImageStorageService')
    def test_admin_base64_upload(self, mock_service, client, admin_headers):
        mock_service.return_value.upload_image.return_value = {'success': True, 'key': 'products/a-1.jpg'}

        response = client.post("/api/v1/images", headers=admin_headers, json={
            'fileName': 'a.jpg', 'folder': 'products', 'imageData': 'aGVsbG8=',
        })

        assert response.status_code == 200
        mock_service.return_value.upload_image.assert_called_once_with('a.jpg', 'products', b'hello', 'image/jpeg')

    @patch('storefront.api.images.ImageStorageService')
    def test_customer_return_photo(self, mock_service, client, customer_headers):
        mock_service.return_value.upload_image.return_value = {'success': True}

        response = client.post(
            "/api/v1/images/returns",
            headers=customer_headers,
            files={'file': ('damage.png', b'png-bytes', 'image/png')},
        )

        assert response.status_code == 200
        mock_service.return_value.upload_image.assert_called_once_with(
            'damage.png', 'returns', b'png-bytes', 'image/png'
        )

    @patch('storefront.api.images.ImageStorageService')
    def test_delete(self, mock_service, client, admin_headers):
        mock_service.return_value.delete_image.return_value = {'success': True, 'key': 'products/a.jpg'}

        response = client.delete("/api/v1/images?fileName=a.jpg&folder=products", headers=admin_headers)

        assert response.status_code == 200
        mock_service.return_value.delete_image.assert_called_once_with('a.jpg', 'products')


class TestInventoryEndpoint:

    @patch('storefront.api.inventory.InventoryRepository')
    def test_adjust_records_admin(self, mock_repo, client, admin_headers):
        mock_repo.return_value.adjust.return_value = {
            'item_id': 3, 'old_quantity': 10, 'new_quantity': 4, 'adjustment': -6,
        }

        response = client.post("/api/v1/inventory/adjust", headers=admin_headers, json={
            'inventory_id': 3, 'new_quantity': 4, 'reason': 'Damaged stock',
        })

        assert response.status_code == 200
        assert mock_repo.return_value.adjust.call_args.kwargs['user_name'] == 'admin@nirchal.com'

    @patch('storefront.api.inventory.InventoryRepository')
    def test_adjust_missing_row(self, mock_repo, client, admin_headers):
        mock_repo.return_value.adjust.return_value = None

        response = client.post("/api/v1/inventory/adjust", headers=admin_headers, json={
            'inventory_id': 99, 'new_quantity': 1,
        })

        assert response.status_code == 404

    def test_negative_quantity_rejected(self, client, admin_headers):
        response = client.post("/api/v1/inventory/adjust", headers=admin_headers, json={
            'inventory_id': 3, 'new_quantity': -1,
        })
        assert response.status_code == 422
