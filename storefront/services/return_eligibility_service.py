"""
Return Eligibility Service
Checks if an order is eligible for return based on business rules

Rules (in order, first failure wins):
1. Returns enabled
2. Order exists, is delivered and has delivered_at
3. Within the return window (days since delivery, rounded up)
4. Order total >= minimum
5. Payment completed
6. No other active return for the order
7. At least one returnable item (services/custom stitching excluded)
"""
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from storefront.domain.order import Order, OrderItem
from storefront.domain.refund import ReturnEligibility
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.return_repository import ReturnRepository
from storefront.repositories.settings_repository import SettingsRepository

logger = logging.getLogger(__name__)

RETURN_SETTING_KEYS = ['return_enabled', 'return_window_days', 'min_order_amount', 'exclude_services']


@dataclass
class ReturnSettings:
    return_enabled: bool = True
    return_window_days: int = 2
    min_order_amount: Decimal = Decimal("0")
    exclude_services: bool = True


def days_between(a: datetime, b: datetime) -> int:
    """Whole days between two instants, rounded up"""
    seconds = abs((a - b).total_seconds())
    return math.ceil(seconds / 86400)


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


class ReturnEligibilityService:

    def __init__(self, order_repository: OrderRepository = None,
                 return_repository: ReturnRepository = None,
                 settings_repository: SettingsRepository = None):
        self.orders = order_repository or OrderRepository()
        self.returns = return_repository or ReturnRepository()
        self.settings = settings_repository or SettingsRepository()

    def get_return_settings(self) -> ReturnSettings:
        """Return settings; defaults when the settings table cannot be read"""
        try:
            values = self.settings.get_category('returns', RETURN_SETTING_KEYS)
        except Exception as e:
            logger.error(f"Error fetching return settings, using defaults: {e}")
            return ReturnSettings()

        try:
            window = int(values.get('return_window_days') or 2)
        except ValueError:
            window = 2

        try:
            min_amount = Decimal(values.get('min_order_amount') or "0")
        except InvalidOperation:
            min_amount = Decimal("0")

        return ReturnSettings(
            return_enabled=values.get('return_enabled') == 'true',
            return_window_days=window,
            min_order_amount=min_amount,
            exclude_services=values.get('exclude_services') != 'false',
        )

    def _order_level_check(self, order: Order, settings: ReturnSettings, now: datetime):
        """Returns (reason or None, days_remaining)"""
        if order.status != 'delivered':
            return 'Order must be delivered before requesting a return', 0

        if not order.delivered_at:
            return 'Delivery date not available', 0

        days_since_delivery = days_between(_aware(now), _aware(order.delivered_at))
        days_remaining = settings.return_window_days - days_since_delivery

        if days_since_delivery > settings.return_window_days:
            return (
                f"Return window expired. Returns are allowed within "
                f"{settings.return_window_days} days of delivery."
            ), 0

        if order.total_amount < settings.min_order_amount:
            return f"Order amount must be at least ₹{settings.min_order_amount} for returns", days_remaining

        if not order.is_paid:
            return 'Payment must be completed before requesting a return', days_remaining

        return None, days_remaining

    def check_order_eligibility(self, order_id: str, now: Optional[datetime] = None) -> ReturnEligibility:
        """
        Check if an order is eligible for return

        Args:
            order_id: Order UUID
            now: Reference time (defaults to current UTC time)
        """
        now = now or datetime.now(timezone.utc)
        settings = self.get_return_settings()

        if not settings.return_enabled:
            return ReturnEligibility(is_eligible=False, reasons=['Return functionality is currently disabled'])

        order = self.orders.find_by_id(order_id)
        if not order:
            return ReturnEligibility(is_eligible=False, reasons=['Order not found'])

        reason, days_remaining = self._order_level_check(order, settings, now)
        if reason:
            return ReturnEligibility(
                is_eligible=False,
                reasons=[reason],
                ineligible_items=order.items,
                days_remaining=days_remaining,
            )

        if self.returns.has_active_return(order_id):
            return ReturnEligibility(
                is_eligible=False,
                reasons=['Return request already exists for this order'],
                ineligible_items=order.items,
                days_remaining=days_remaining,
            )

        eligible: List[OrderItem] = []
        ineligible: List[OrderItem] = []
        for item in order.items:
            if settings.exclude_services and item.is_service:
                ineligible.append(item)
            else:
                eligible.append(item)

        if not eligible:
            return ReturnEligibility(
                is_eligible=False,
                reasons=['No eligible items for return (all items are services or excluded)'],
                ineligible_items=ineligible,
                days_remaining=days_remaining,
            )

        return ReturnEligibility(
            is_eligible=True,
            eligible_items=eligible,
            ineligible_items=ineligible,
            days_remaining=days_remaining,
        )

    def check_items_eligibility(self, order_id: str, item_ids: Iterable[int],
                                now: Optional[datetime] = None) -> dict:
        """Every requested item must be in the eligible list"""
        eligibility = self.check_order_eligibility(order_id, now)
        if not eligibility.is_eligible:
            return {'eligible': False, 'reasons': eligibility.reasons}

        eligible_ids = {item.id for item in eligibility.eligible_items}
        if not all(int(item_id) in eligible_ids for item_id in item_ids):
            return {'eligible': False, 'reasons': ['One or more selected items are not eligible for return']}

        return {'eligible': True, 'reasons': []}
