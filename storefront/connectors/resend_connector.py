"""
Resend Email Connector
Sends transactional email through the Resend REST API
"""
import logging
from typing import Any, Dict

import httpx

from storefront.core.config import settings
from storefront.core.exceptions import ConfigurationError, ServiceError

logger = logging.getLogger(__name__)


class EmailDeliveryError(ServiceError):
    """Resend rejected the message"""

    def __init__(self, status_code: int, details: Any = None):
        super().__init__("Failed to send email", status_code=status_code, details=details)


class ResendConnector:

    def __init__(self, api_key: str = None, base_url: str = None):
        self.api_key = api_key or settings.RESEND_API_KEY
        if not self.api_key:
            raise ConfigurationError("Email service not configured")

        self.base_url = (base_url or settings.RESEND_API_URL).rstrip('/')

    async def send(self, payload: Dict[str, Any]) -> Dict:
        """
        POST /emails

        Args:
            payload: Resend message (from, to, subject, html, text, reply_to, cc, bcc)

        Returns:
            Resend response, {'id': '...'}
        """
        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                f"{self.base_url}/emails",
                json=payload,
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json'
                }
            )

        try:
            data = response.json()
        except ValueError:
            data = {'message': response.text}

        if response.is_error:
            logger.error(f"Resend API error {response.status_code}: {data}")
            raise EmailDeliveryError(response.status_code, data)

        return data
