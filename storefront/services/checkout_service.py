"""
Checkout Service
Creates storefront orders and the Razorpay orders that pay for them

Author: TM3
Date: 2026-09-02
"""
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from storefront.connectors.razorpay_connector import RazorpayConnector, to_paise
from storefront.core.auth import TokenUser
from storefront.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from storefront.domain.order import CreateOrderRequest
from storefront.domain.payment import GatewayOrderRequest
from storefront.repositories.customer_repository import CustomerRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.settings_repository import SettingsRepository

logger = logging.getLogger(__name__)

PAYMENT_SETTING_KEYS = [
    'razorpay_enabled',
    'razorpay_auto_capture',
    'razorpay_company_name',
    'razorpay_company_logo',
    'razorpay_theme_color',
    'razorpay_description',
    'razorpay_timeout',
]

DEFAULT_CHECKOUT_TIMEOUT = 900


def generate_order_number(now: Optional[datetime] = None) -> str:
    """ORD-YYYYMMDD-<last six digits of the epoch milliseconds>"""
    now = now or datetime.now()
    millis = str(int(now.timestamp() * 1000))
    return f"ORD-{now:%Y%m%d}-{millis[-6:]}"


def _int_setting(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value else default
    except ValueError:
        return default


class CheckoutService:
    """
    Service for checkout

    Handles:
    - Customer upsert by billing email
    - Address book upkeep
    - Order + items insert
    - Razorpay order creation and checkout config
    """

    def __init__(self, order_repository: OrderRepository = None,
                 customer_repository: CustomerRepository = None,
                 settings_repository: SettingsRepository = None,
                 razorpay: RazorpayConnector = None):
        self.orders = order_repository or OrderRepository()
        self.customers = customer_repository or CustomerRepository()
        self.settings = settings_repository or SettingsRepository()
        self._razorpay = razorpay

    @property
    def razorpay(self) -> RazorpayConnector:
        if self._razorpay is None:
            self._razorpay = RazorpayConnector()
        return self._razorpay

    def create_order(self, request: CreateOrderRequest, user: Optional[TokenUser] = None) -> Dict[str, Any]:
        """
        Create a pending order from a validated checkout payload

        A customer_id in the payload is only honoured for that signed-in
        customer or an admin; guests are matched by billing email.

        Returns:
            {'id', 'order_number', 'customer_id'}
        """
        customer_id = request.customer_id

        if customer_id and not (user and (user.is_admin or user.id == customer_id)):
            logger.warning(f"Rejected checkout for customer {customer_id}: token does not match")
            raise Forbidden("Not allowed to place orders for this customer")

        if not customer_id:
            customer = self.customers.upsert_checkout_customer(
                email=request.billing.email,
                first_name=request.billing.first_name,
                last_name=request.billing.last_name,
                phone=request.billing.phone,
            )
            customer_id = customer['id']

        self.customers.upsert_address(customer_id, request.billing, 'billing')
        self.customers.upsert_address(customer_id, request.delivery, 'delivery')

        order_number = generate_order_number()
        order = self.orders.create_with_items(order_number, customer_id, request)

        logger.info(
            f"Order {order['order_number']} created: {len(request.items)} item(s), "
            f"total {request.total_amount}, method {request.payment_method}"
        )

        return {
            'id': order['id'],
            'order_number': order['order_number'],
            'customer_id': customer_id,
        }

    async def create_gateway_order(self, request: GatewayOrderRequest) -> Dict[str, Any]:
        """
        Create the Razorpay order the browser checkout will pay

        Returns:
            {'order': <razorpay order>, 'checkout_config': {...}}
        """
        if not request.amount or request.amount <= 0 or not request.currency \
                or not request.receipt or not request.customer_email:
            raise ValidationFailed("Missing required fields")

        razorpay = self.razorpay

        payment_settings = self.settings.get_category('payment', PAYMENT_SETTING_KEYS)
        if payment_settings.get('razorpay_enabled') != 'true':
            raise ValidationFailed("Razorpay payment gateway is disabled")

        if request.order_id:
            order = self.orders.find_by_id(request.order_id)
            if not order:
                raise NotFound("Order not found")
            if order.is_paid:
                raise Conflict("Order is already paid")
            if to_paise(order.total_amount) != to_paise(request.amount):
                raise ValidationFailed("Amount does not match order total")

        currency = request.currency.upper()
        notes = dict(request.notes or {})
        if request.order_id:
            notes.setdefault('order_id', request.order_id)

        gateway_order = await razorpay.create_order(
            amount_paise=to_paise(request.amount),
            currency=currency,
            receipt=request.receipt,
            notes=notes,
            payment_capture=1 if payment_settings.get('razorpay_auto_capture') == 'true' else 0,
        )

        if request.order_id:
            self.orders.attach_gateway_order(request.order_id, gateway_order['id'])

        return {
            'order': gateway_order,
            'checkout_config': {
                'key': razorpay.key_id,
                'order_id': gateway_order['id'],
                'currency': currency,
                'amount': gateway_order.get('amount'),
                'name': payment_settings.get('razorpay_company_name') or 'Nirchal',
                'description': payment_settings.get('razorpay_description') or 'Payment for Nirchal order',
                'image': payment_settings.get('razorpay_company_logo'),
                'prefill': {
                    'email': request.customer_email,
                    'contact': request.customer_phone,
                },
                'theme': {
                    'color': payment_settings.get('razorpay_theme_color') or '#f59e0b',
                },
                'timeout': _int_setting(payment_settings.get('razorpay_timeout'), DEFAULT_CHECKOUT_TIMEOUT),
            },
        }
