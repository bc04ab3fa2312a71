"""
Razorpay REST Connector
Handles all interactions with the Razorpay payments API

Amounts sent to and received from Razorpay are integers in paise.
Use to_paise/from_paise at the boundary; everything else works in rupees.

Author: TM3
Date: 2026-09-02
"""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional, Union

import httpx

from storefront.core.config import settings
from storefront.core.exceptions import ConfigurationError, ServiceError

logger = logging.getLogger(__name__)


def to_paise(amount: Union[Decimal, float, int, str]) -> int:
    """Rupees to paise, rounding half up (199.995 -> 20000)"""
    rupees = Decimal(str(amount))
    return int((rupees * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_paise(amount: int) -> Decimal:
    return (Decimal(int(amount)) / 100).quantize(Decimal("0.01"))


class RazorpayError(ServiceError):
    """Non-2xx answer from Razorpay; status_code mirrors the gateway's"""

    def __init__(self, status_code: int, description: str, code: Optional[str] = None,
                 payload: Optional[Dict[str, Any]] = None):
        super().__init__(description, status_code=status_code, details={"code": code} if code else None)
        self.description = description
        self.code = code
        self.payload = payload or {}


class RazorpayConnector:
    """
    Connector for the Razorpay REST API

    Handles:
    - Order creation (checkout)
    - Payment lookup
    - Refund creation and lookup
    """

    def __init__(self, key_id: str = None, key_secret: str = None, base_url: str = None):
        """
        Initialize Razorpay connector

        Args:
            key_id: Razorpay key id (rzp_live_... / rzp_test_...)
            key_secret: Razorpay key secret
            base_url: API base URL (default https://api.razorpay.com/v1)
        """
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret or settings.RAZORPAY_KEY_SECRET

        if not self.key_id or not self.key_secret:
            raise ConfigurationError("Payment gateway not configured")

        self.base_url = (base_url or settings.RAZORPAY_API_URL).rstrip('/')

    async def _request(self, method: str, path: str, payload: Dict = None) -> Dict:
        """Execute a REST call and return the JSON body"""
        async with httpx.AsyncClient(
            auth=(self.key_id, self.key_secret),
            timeout=30.0
        ) as client:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers={'Content-Type': 'application/json'}
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.is_error:
            error = data.get('error') or {}
            description = error.get('description') or f"Razorpay API error ({response.status_code})"
            logger.error(f"Razorpay {method} {path} failed: {response.status_code} {description}")
            raise RazorpayError(response.status_code, description, error.get('code'), data)

        return data

    async def create_order(self, amount_paise: int, currency: str, receipt: str,
                           notes: Dict[str, Any] = None, payment_capture: int = 1) -> Dict:
        """
        Create a gateway order for checkout

        Returns:
            Razorpay order entity (id, amount, currency, receipt, status, ...)
        """
        payload = {
            'amount': amount_paise,
            'currency': currency,
            'receipt': receipt,
            'payment_capture': payment_capture,
            'notes': notes or {},
        }
        order = await self._request('POST', '/orders', payload)
        logger.info(f"Razorpay order created: {order.get('id')} for receipt {receipt}")
        return order

    async def fetch_payment(self, payment_id: str) -> Dict:
        return await self._request('GET', f'/payments/{payment_id}')

    async def create_refund(self, payment_id: str, amount_paise: int, speed: str = 'normal',
                            notes: Dict[str, Any] = None, receipt: str = None) -> Dict:
        """
        Refund (part of) a captured payment

        Returns:
            Razorpay refund entity (id, amount, status, speed_requested, ...)
        """
        payload = {'amount': amount_paise, 'speed': speed}
        if notes:
            payload['notes'] = notes
        if receipt:
            payload['receipt'] = receipt

        refund = await self._request('POST', f'/payments/{payment_id}/refund', payload)
        logger.info(f"Razorpay refund created: {refund.get('id')} ({refund.get('status')}) for {payment_id}")
        return refund

    async def fetch_refund(self, payment_id: str, refund_id: str) -> Dict:
        return await self._request('GET', f'/payments/{payment_id}/refunds/{refund_id}')
