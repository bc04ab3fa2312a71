"""
Email Service - transactional email through Resend

send_email / send_campaign_email / send_contact_form raise on failure;
the notification helpers (admin new-order, refund updates) are side
effects of payment and refund flows and only log when delivery fails.

Author: TM3
Date: 2026-09-02
"""
import logging
from typing import Any, Dict, List, Optional, Union

from storefront.connectors.resend_connector import ResendConnector
from storefront.core.config import settings
from storefront.core.exceptions import ValidationFailed
from storefront.domain.refund import ReturnRequest
from storefront.services import email_templates

logger = logging.getLogger(__name__)

Recipients = Union[str, List[str], None]


def _as_list(value: Recipients) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [v for v in value if v]


class EmailService:
    """Service for composing and sending transactional email"""

    def __init__(self, connector: Optional[ResendConnector] = None):
        self._connector = connector

    @property
    def connector(self) -> ResendConnector:
        # Created on first use so a missing API key only fails email calls
        if self._connector is None:
            self._connector = ResendConnector()
        return self._connector

    async def send_email(
        self,
        to: Recipients,
        subject: str,
        html: str,
        text: Optional[str] = None,
        reply_to: Optional[str] = None,
        cc: Recipients = None,
        bcc: Recipients = None,
        from_address: Optional[str] = None,
        from_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send one message

        Returns:
            {'success': True, 'id': ..., 'to': [...], 'subject': ...}
        """
        connector = self.connector

        to_addresses = _as_list(to)
        if not to_addresses or not subject or not html:
            raise ValidationFailed("Missing required fields: to, subject, html")

        name = from_name or settings.EMAIL_FROM_NAME or "Nirchal"
        address = from_address or settings.EMAIL_FROM

        payload = {
            'from': f"{name} <{address}>",
            'to': to_addresses,
            'subject': subject,
            'html': html,
        }
        if text:
            payload['text'] = text
        if reply_to:
            payload['reply_to'] = reply_to
        if _as_list(cc):
            payload['cc'] = _as_list(cc)
        if _as_list(bcc):
            payload['bcc'] = _as_list(bcc)

        logger.info(f"Sending email '{subject}' to {len(to_addresses)} recipient(s)")
        result = await connector.send(payload)

        return {
            'success': True,
            'id': result.get('id'),
            'to': to_addresses,
            'subject': subject,
        }

    async def send_campaign_email(self, to: str, from_address: str, subject: str, html: str) -> Dict[str, Any]:
        """Marketing send; the caller supplies the full from field"""
        connector = self.connector

        if not to or not from_address or not subject or not html:
            raise ValidationFailed("Missing required fields: to, from, subject, html")

        result = await connector.send({
            'from': from_address,
            'to': to,
            'subject': subject,
            'html': html,
        })
        return {'success': True, 'message_id': result.get('id')}

    async def send_contact_form(self, name: str, email: str, subject: str, message: str) -> Dict[str, Any]:
        """
        Forward a contact-form message to support and acknowledge the sender

        The support email must go out; the auto-reply is best effort.
        """
        if not name or not email or not subject or not message:
            raise ValidationFailed("Missing required fields: name, email, subject, message")

        await self.send_email(
            to=settings.SUPPORT_EMAIL,
            subject=f"Contact Form: {subject}",
            html=email_templates.contact_support(name, email, subject, message),
            reply_to=email,
        )

        auto_reply_sent = True
        try:
            await self.send_email(
                to=email,
                subject="Thank you for contacting Nirchal - We'll be in touch soon!",
                html=email_templates.contact_auto_reply(name, subject),
            )
        except Exception as e:
            auto_reply_sent = False
            logger.warning(f"Contact form auto-reply failed (non-fatal): {e}")

        return {
            'success': True,
            'message': 'Your message has been sent successfully',
            'auto_reply_sent': auto_reply_sent,
        }

    async def send_admin_order_notification(self, order_details: Dict[str, Any], payment_id: str) -> bool:
        """
        Tell the shop admins about a newly paid order

        Returns:
            True if sent, False if skipped or failed
        """
        recipients = settings.get_admin_notification_emails()
        if not recipients:
            logger.info("No admin notification emails configured, skipping new-order email")
            return False

        order_number = order_details.get('order_number', '')
        customer_name = " ".join(
            p for p in [order_details.get('billing_first_name'), order_details.get('billing_last_name')] if p
        )
        total = order_details.get('total_amount') or 0

        try:
            await self.send_email(
                to=recipients,
                subject=f"New Order #{order_number} - ₹{email_templates.format_inr(total)} - Nirchal",
                html=email_templates.admin_order_notification(
                    order_number=order_number,
                    customer_name=customer_name,
                    customer_email=order_details.get('billing_email'),
                    total_amount=total,
                    payment_method=order_details.get('payment_method'),
                    payment_id=payment_id,
                ),
            )
            return True
        except Exception as e:
            logger.error(f"Admin notification for order {order_number} failed (non-fatal): {e}")
            return False

    async def send_refund_email(self, kind: str, return_request: ReturnRequest, refund: Dict[str, Any]) -> bool:
        """
        Refund status email to the customer

        Args:
            kind: refund_initiated or refund_completed
            return_request: Return with customer contact
            refund: {'refund_amount', 'reference'}
        """
        if not return_request.customer_email:
            logger.warning(f"Return {return_request.id} has no customer email, skipping {kind} email")
            return False

        subject = (
            "Your refund has been processed - Nirchal"
            if kind == "refund_completed"
            else "Your refund has been initiated - Nirchal"
        )

        try:
            await self.send_email(
                to=return_request.customer_email,
                subject=subject,
                html=email_templates.refund_status(
                    kind=kind,
                    customer_name=return_request.customer_name,
                    return_number=return_request.return_number,
                    order_number=return_request.order_number,
                    refund_amount=refund.get('refund_amount'),
                    reference=refund.get('reference'),
                ),
            )
            return True
        except Exception as e:
            logger.error(f"{kind} email for return {return_request.id} failed (non-fatal): {e}")
            return False
