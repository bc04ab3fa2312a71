"""
HTML bodies for transactional email

Every value that can come from a customer or an admin goes through
html.escape before it is placed in markup.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from html import escape
from typing import Optional, Union

IST = timezone(timedelta(hours=5, minutes=30), "IST")

BRAND = "Nirchal"
BRAND_COLOR = "#f59e0b"


def format_inr(amount: Union[Decimal, float, int, None]) -> str:
    """
    Indian digit grouping: 1234567.5 -> '12,34,567.5'

    Up to two decimals, trailing zeros dropped.
    """
    value = Decimal(str(amount or 0)).quantize(Decimal("0.01"))
    sign = "-" if value < 0 else ""
    integer, _, fraction = f"{abs(value):.2f}".partition(".")
    fraction = fraction.rstrip("0")

    if len(integer) > 3:
        head, tail = integer[:-3], integer[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        integer = ",".join(groups + [tail])

    return f"{sign}{integer}.{fraction}" if fraction else f"{sign}{integer}"


def format_ist(moment: Optional[datetime] = None) -> str:
    """'02/09/2026, 03:15:00 PM IST'"""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(IST).strftime("%d/%m/%Y, %I:%M:%S %p") + " IST"


def _layout(title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html>
  <body style="margin:0;padding:0;background:#f9fafb;font-family:Arial,sans-serif;">
    <div style="max-width:600px;margin:0 auto;background:#ffffff;">
      <div style="background:{BRAND_COLOR};padding:24px;text-align:center;">
        <h1 style="color:#ffffff;margin:0;font-size:22px;">{escape(title)}</h1>
      </div>
      <div style="padding:24px;color:#1f2937;">
        {body}
      </div>
      <div style="padding:16px;text-align:center;color:#6b7280;font-size:12px;">
        &copy; {BRAND}
      </div>
    </div>
  </body>
</html>"""


def _row(label: str, value: str) -> str:
    return (
        f'<tr><td style="padding:8px 0;color:#6b7280;">{escape(label)}:</td>'
        f'<td style="padding:8px 0;font-weight:600;">{escape(value)}</td></tr>'
    )


def admin_order_notification(order_number: str, customer_name: str, customer_email: str,
                             total_amount, payment_method: str, payment_id: str,
                             moment: Optional[datetime] = None) -> str:
    rows = "".join([
        _row("Order", f"#{order_number}"),
        _row("Customer", customer_name or "-"),
        _row("Email", customer_email or "-"),
        _row("Amount", f"₹{format_inr(total_amount)}"),
        _row("Payment Method", payment_method or "razorpay"),
        _row("Payment ID", payment_id or "-"),
        _row("Time", format_ist(moment)),
    ])
    return _layout("New Order Received", f"<table style=\"width:100%\">{rows}</table>")


def contact_support(name: str, email: str, subject: str, message: str) -> str:
    rows = "".join([
        _row("Name", name),
        _row("Email", email),
        _row("Subject", subject),
    ])
    body = (
        f"<table style=\"width:100%\">{rows}</table>"
        f"<h3>Message</h3>"
        f"<div style=\"white-space:pre-wrap;background:#f3f4f6;padding:16px;\">{escape(message)}</div>"
    )
    return _layout("New Contact Form Submission", body)


def contact_auto_reply(name: str, subject: str) -> str:
    body = (
        f"<p>Dear {escape(name)},</p>"
        f"<p>Thank you for reaching out to {BRAND}. We have received your message and "
        f"our team will get back to you within 24 hours.</p>"
        f"<p><strong>Subject:</strong> {escape(subject or 'General Inquiry')}</p>"
        f"<p style=\"color:#6b7280;font-size:12px;\">This is an automated response. "
        f"Please do not reply to this email.</p>"
    )
    return _layout("Thank you for contacting us", body)


def refund_status(kind: str, customer_name: str, return_number: str, order_number: str,
                  refund_amount, reference: str, moment: Optional[datetime] = None) -> str:
    """kind is refund_initiated or refund_completed"""
    if kind == "refund_completed":
        title = "Your refund is complete"
        lead = "Your refund has been processed and should reflect in your account shortly."
    else:
        title = "Your refund has been initiated"
        lead = "We have initiated your refund. It usually takes 5-7 business days to reach your account."

    rows = "".join([
        _row("Return", return_number or "-"),
        _row("Order", f"#{order_number}" if order_number else "-"),
        _row("Refund Amount", f"₹{format_inr(refund_amount)}"),
        _row("Reference", reference or "-"),
        _row("Date", format_ist(moment)),
    ])
    body = (
        f"<p>Dear {escape(customer_name)},</p>"
        f"<p>{lead}</p>"
        f"<table style=\"width:100%\">{rows}</table>"
    )
    return _layout(title, body)
