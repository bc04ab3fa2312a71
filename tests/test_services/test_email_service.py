"""
Unit tests for EmailService and the email templates
"""
import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.core.config import settings
from storefront.core.exceptions import ValidationFailed
from storefront.services import email_templates
from storefront.services.email_service import EmailService


def _service(send=None):
    connector = MagicMock()
    connector.send = send or AsyncMock(return_value={'id': 'email_1'})
    return EmailService(connector=connector)


class TestTemplates:

    @pytest.mark.parametrize("amount,expected", [
        (1499, "1,499"),
        (Decimal("1234567.5"), "12,34,567.5"),
        (Decimal("999.00"), "999"),
        (Decimal("100000.25"), "1,00,000.25"),
        (None, "0"),
    ])
    def test_format_inr(self, amount, expected):
        assert email_templates.format_inr(amount) == expected

    def test_format_ist(self):
        moment = datetime(2026, 9, 2, 9, 45, 0, tzinfo=timezone.utc)
        assert email_templates.format_ist(moment) == "02/09/2026, 03:15:00 PM IST"

    def test_contact_support_escapes_input(self):
        html = email_templates.contact_support("<b>Eve</b>", "eve@example.com", "Hi", "<script>x</script>")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "&lt;b&gt;Eve&lt;/b&gt;" in html


class TestSendEmail:

    def test_send_email_builds_payload(self, monkeypatch):
        monkeypatch.setattr(settings, "EMAIL_FROM", "support@nirchal.com")
        monkeypatch.setattr(settings, "EMAIL_FROM_NAME", "Nirchal")
        service = _service()

        result = asyncio.run(service.send_email(
            to="a@example.com", subject="Hello", html="<p>Hi</p>", cc=["c@example.com"], reply_to="r@example.com",
        ))

        assert result == {'success': True, 'id': 'email_1', 'to': ['a@example.com'], 'subject': 'Hello'}
        payload = service.connector.send.call_args[0][0]
        assert payload == {
            'from': 'Nirchal <support@nirchal.com>',
            'to': ['a@example.com'],
            'subject': 'Hello',
            'html': '<p>Hi</p>',
            'reply_to': 'r@example.com',
            'cc': ['c@example.com'],
        }

    def test_missing_fields(self):
        with pytest.raises(ValidationFailed) as exc:
            asyncio.run(_service().send_email(to=[], subject="Hello", html="<p>Hi</p>"))
        assert exc.value.message == "Missing required fields: to, subject, html"

    def test_campaign_email(self):
        service = _service()

        result = asyncio.run(service.send_campaign_email(
            "a@example.com", "Nirchal <offers@nirchal.com>", "Sale", "<p>Sale</p>"
        ))

        assert result == {'success': True, 'message_id': 'email_1'}
        assert service.connector.send.call_args[0][0]['from'] == 'Nirchal <offers@nirchal.com>'


class TestContactForm:

    def test_support_mail_then_auto_reply(self, monkeypatch):
        monkeypatch.setattr(settings, "SUPPORT_EMAIL", "support@nirchal.com")
        service = _service()

        result = asyncio.run(service.send_contact_form("Asha", "asha@example.com", "Sizing", "Question"))

        assert result == {
            'success': True,
            'message': 'Your message has been sent successfully',
            'auto_reply_sent': True,
        }
        support, auto_reply = [c[0][0] for c in service.connector.send.call_args_list]
        assert support['to'] == ['support@nirchal.com']
        assert support['subject'] == 'Contact Form: Sizing'
        assert support['reply_to'] == 'asha@example.com'
        assert auto_reply['to'] == ['asha@example.com']

    def test_auto_reply_failure_is_not_fatal(self):
        send = AsyncMock(side_effect=[{'id': 'email_1'}, RuntimeError("rejected")])

        result = asyncio.run(_service(send).send_contact_form("Asha", "asha@example.com", "Sizing", "Question"))

        assert result['success'] is True
        assert result['auto_reply_sent'] is False

    def test_support_failure_propagates(self):
        send = AsyncMock(side_effect=RuntimeError("rejected"))

        with pytest.raises(RuntimeError):
            asyncio.run(_service(send).send_contact_form("Asha", "asha@example.com", "Sizing", "Question"))


class TestNotifications:

    def test_admin_notification_skipped_without_recipients(self, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_NOTIFICATION_EMAILS", "")
        service = _service()

        assert asyncio.run(service.send_admin_order_notification({'order_number': 'ORD-1'}, 'pay_1')) is False
        service.connector.send.assert_not_called()

    def test_admin_notification_subject(self, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_NOTIFICATION_EMAILS", "a@nirchal.com, b@nirchal.com")
        service = _service()

        sent = asyncio.run(service.send_admin_order_notification(
            {'order_number': 'ORD-1', 'total_amount': Decimal('3098.00'), 'billing_first_name': 'Asha'}, 'pay_1'
        ))

        assert sent is True
        payload = service.connector.send.call_args[0][0]
        assert payload['to'] == ['a@nirchal.com', 'b@nirchal.com']
        assert payload['subject'] == 'New Order #ORD-1 - ₹3,098 - Nirchal'

    def test_refund_email_failure_is_not_fatal(self, return_request):
        service = _service(AsyncMock(side_effect=RuntimeError("rejected")))

        sent = asyncio.run(service.send_refund_email(
            'refund_initiated', return_request, {'refund_amount': Decimal('1299'), 'reference': 'RFD-0001'}
        ))

        assert sent is False

    def test_refund_email_without_customer_email(self, return_request):
        service = _service()
        no_email = return_request.model_copy(update={'customer_email': None})

        assert asyncio.run(service.send_refund_email('refund_completed', no_email, {})) is False
        service.connector.send.assert_not_called()
